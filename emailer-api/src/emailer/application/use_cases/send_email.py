"""Save an outbound email, then hand it to the delivery provider."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from emailer.application.ports.delivery_provider import DeliveryProvider
from emailer.application.use_cases.persist_email import EmailPersistence
from emailer.domain.entities.email_record import RecordKey
from emailer.domain.errors import ProviderError
from emailer.domain.models import DeliveryOutcome, EmailMessage


@dataclass(frozen=True)
class SendReceipt:
    key: RecordKey
    outcome: DeliveryOutcome


class SendEmailUseCase:
    """Persist-then-dispatch flow used by the API.

    Flow:
    1. Validate caps and save record + attachments
    2. Submit once to the provider
    3. A rejected submission raises ProviderError; nothing is resubmitted
    """

    def __init__(self, persistence: EmailPersistence, provider: DeliveryProvider) -> None:
        self.persistence = persistence
        self.provider = provider

    async def execute(self, message: EmailMessage) -> SendReceipt:
        key = await self.persistence.save(message)
        outcome = await self.provider.send(message)

        if not outcome.success:
            logger.error(f"Failed to send email {key.row_key}: {outcome.status_code} {outcome.message}")
            raise ProviderError(
                f"Failed to send email: {outcome.status_code}",
                status_code=outcome.status_code,
            )

        logger.info(f"Email sent successfully: {message.subject}")
        return SendReceipt(key=key, outcome=outcome)
