"""In-app (browser) delivery channel."""

import structlog

from domain.entities.notification import DeliveryMethod, DeliveryOutcome
from domain.services.delivery import DeliveryRequest

logger = structlog.get_logger()


class BrowserChannel:
    """In-app delivery.

    The delivery records written by the fan-out are what the browser feed
    reads, so by the time this channel runs the notification is already
    visible to every recipient.
    """

    method = DeliveryMethod.BROWSER

    async def deliver(self, request: DeliveryRequest) -> DeliveryOutcome:
        logger.debug(
            "browser_delivery",
            notification_id=str(request.notification.id),
            recipients=len(request.recipient_ids),
        )
        return DeliveryOutcome.DELIVERED
