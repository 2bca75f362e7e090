"""Email delivery channel backed by an HTTP mail relay."""

from typing import Optional

import httpx
import structlog

from domain.entities.notification import DeliveryMethod, DeliveryOutcome
from domain.services.delivery import DeliveryRequest

logger = structlog.get_logger()


class EmailRelayChannel:
    """Posts notifications to a mail relay that owns addressing and sending.

    An empty relay URL disables the channel; deliveries are then reported as
    skipped. HTTP errors are raised to the caller.
    """

    method = DeliveryMethod.EMAIL

    def __init__(
        self,
        relay_url: str,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._relay_url = relay_url
        self._timeout_s = timeout_s
        self._transport = transport

    async def deliver(self, request: DeliveryRequest) -> DeliveryOutcome:
        if not self._relay_url:
            logger.info(
                "email_relay_not_configured",
                notification_id=str(request.notification.id),
            )
            return DeliveryOutcome.SKIPPED

        notification = request.notification
        body = {
            "notification_id": str(notification.id),
            "title": notification.title,
            "content": notification.content,
            "priority": notification.priority.value,
            "type": notification.type.value,
            "recipient_ids": sorted(str(uid) for uid in request.recipient_ids),
        }

        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            response = await client.post(self._relay_url, json=body)
        response.raise_for_status()

        logger.info(
            "email_relay_accepted",
            notification_id=str(notification.id),
            recipients=len(request.recipient_ids),
            status_code=response.status_code,
        )
        return DeliveryOutcome.DELIVERED
