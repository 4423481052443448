"""Emailer: persist, dispatch and expire outbound email."""

__version__ = "0.1.0"
