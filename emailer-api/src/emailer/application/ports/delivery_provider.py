from __future__ import annotations

from typing import Protocol

from emailer.domain.models import DeliveryOutcome, EmailMessage


class DeliveryProvider(Protocol):
    """External service that transmits a message to its recipient."""

    async def send(self, message: EmailMessage) -> DeliveryOutcome: ...
