"""Application layer - ports and use cases."""

from emailer.application.retry import RetryPolicy
from emailer.application.use_cases.persist_email import EmailPersistence
from emailer.application.use_cases.retention_sweep import RetentionSweeper, SweepReport
from emailer.application.use_cases.send_email import SendEmailUseCase, SendReceipt

__all__ = [
    "EmailPersistence",
    "RetentionSweeper",
    "RetryPolicy",
    "SendEmailUseCase",
    "SendReceipt",
    "SweepReport",
]
