"""Shared fixtures for emailer tests."""

from __future__ import annotations

import pytest
from fakes import InMemoryBlobStore, InMemoryRecordStore

from emailer.application.use_cases.persist_email import EmailPersistence
from emailer.domain.models import Attachment, EmailMessage


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def persistence(records, blobs) -> EmailPersistence:
    return EmailPersistence(records, blobs)


@pytest.fixture
def make_message():
    """Factory for valid messages with the given attachments."""

    def _make(attachments: list[Attachment] | None = None, **overrides) -> EmailMessage:
        fields = {
            "from_name": "Alice Sender",
            "from_email": "alice@example.com",
            "to_name": "Bob Recipient",
            "to_email": "bob@example.org",
            "subject": "Quarterly report",
            "body": "Please find the report attached.",
            "attachments": attachments or [],
        }
        fields.update(overrides)
        return EmailMessage(**fields)

    return _make
