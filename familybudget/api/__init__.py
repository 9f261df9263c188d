"""HTTP API package."""

from familybudget.api.app import create_app

__all__ = ["create_app"]
