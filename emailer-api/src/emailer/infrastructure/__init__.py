# src/emailer/infrastructure/__init__.py
"""Infrastructure layer - stores, delivery provider, and configuration."""

from emailer.infrastructure.container import Services, build_services
from emailer.infrastructure.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Wiring
    "Services",
    "build_services",
]
