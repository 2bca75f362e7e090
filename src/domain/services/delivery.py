"""Delivery channel protocol."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from domain.entities.notification import DeliveryMethod, DeliveryOutcome, Notification


@dataclass(frozen=True, slots=True)
class DeliveryRequest:
    """What a channel needs to deliver one notification."""

    notification: Notification
    recipient_ids: frozenset[UUID] = field(default_factory=frozenset)


class IDeliveryChannel(Protocol):
    """A transport that pushes a stored notification to its recipients.

    Implementations may raise; the fan-out captures any failure into the
    per-channel status map.
    """

    method: DeliveryMethod

    async def deliver(self, request: DeliveryRequest) -> DeliveryOutcome:
        """Deliver the notification and report the outcome."""
        ...
