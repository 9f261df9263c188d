"""Configuration package."""

from familybudget.config.settings import (
    AppSettings,
    FirebaseAuthSettings,
    FirestoreSettings,
    MailSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirebaseAuthSettings",
    "FirestoreSettings",
    "MailSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
