"""SendGrid integration for outbound email."""

from emailer.infrastructure.email.providers.sendgrid.outbound import (
    SendGridProvider,
    build_payload,
    classify_response,
)

__all__ = [
    "SendGridProvider",
    "build_payload",
    "classify_response",
]
