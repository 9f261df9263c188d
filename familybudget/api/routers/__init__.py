"""HTTP routers, one per resource."""

from familybudget.api.routers import budget, family, invites, users

__all__ = ["budget", "family", "invites", "users"]
