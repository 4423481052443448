"""Save-then-send use case."""

import pytest

from emailer.application.use_cases.send_email import SendEmailUseCase
from emailer.domain.errors import ProviderError, ValidationError
from emailer.domain.models import Attachment, DeliveryOutcome


class StubProvider:
    def __init__(self, outcome: DeliveryOutcome):
        self.outcome = outcome
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        return self.outcome


async def test_saves_then_sends(persistence, records, make_message):
    provider = StubProvider(DeliveryOutcome(success=True, status_code=202))
    message = make_message([Attachment(file_name="a.txt", content=b"a")])

    receipt = await SendEmailUseCase(persistence, provider).execute(message)

    assert provider.sent == [message]
    assert receipt.outcome.status_code == 202
    assert (receipt.key.partition_key, receipt.key.row_key) in records.rows


async def test_provider_rejection_raises_and_keeps_record(persistence, records, make_message):
    provider = StubProvider(DeliveryOutcome(success=False, status_code=401, message="HTTP 401: bad key"))

    with pytest.raises(ProviderError) as excinfo:
        await SendEmailUseCase(persistence, provider).execute(make_message())

    assert excinfo.value.status_code == 401
    assert len(provider.sent) == 1
    assert len(records.rows) == 1


async def test_validation_failure_never_reaches_provider(persistence, records, make_message):
    provider = StubProvider(DeliveryOutcome(success=True, status_code=202))
    message = make_message([Attachment(file_name=f"{i}.txt") for i in range(6)])

    with pytest.raises(ValidationError):
        await SendEmailUseCase(persistence, provider).execute(message)

    assert provider.sent == []
    assert records.rows == {}
