"""Shared FastAPI dependencies."""

from homelearn.config import get_settings
from homelearn.ws.notifier import Notifier, build_notifier


def get_notifier() -> Notifier:
    """Notifier for the configured backend; overridden in tests."""
    return build_notifier(get_settings().notifier_backend)
