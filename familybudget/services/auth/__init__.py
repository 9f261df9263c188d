"""Bearer token verification."""

from familybudget.services.auth.verifier import FirebaseTokenVerifier, TokenVerifier

__all__ = ["FirebaseTokenVerifier", "TokenVerifier"]
