"""
Bearer Token Verification

DESIGN DECISION: The API trusts identities only through a TokenVerifier.
The production verifier checks Firebase ID tokens with google-auth:
1. Signature against Google's published certificates
2. Audience and issuer equal to the configured Firebase project
3. Expiry

Tests swap in a fake verifier, so no test ever fetches certificates.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import google.auth.exceptions
import google.auth.transport.requests
import structlog
from google.oauth2 import id_token

from familybudget.config import FirebaseAuthSettings, get_settings
from familybudget.models.user import AuthenticatedUser
from familybudget.services.errors import UnauthorizedError, UpstreamError


class TokenVerifier(ABC):
    """Turns a bearer token into the authenticated caller."""

    @abstractmethod
    async def verify(self, token: str) -> AuthenticatedUser:
        """
        Raises:
            UnauthorizedError: If the token is missing, malformed, expired
                or issued for another project
        """
        pass


class FirebaseTokenVerifier(TokenVerifier):
    """Verifies Firebase ID tokens."""

    def __init__(self, settings: Optional[FirebaseAuthSettings] = None):
        self._settings = settings or get_settings().firebase
        self._request = google.auth.transport.requests.Request()
        self._logger = structlog.get_logger(__name__)

    def _verify_claims(self, token: str) -> dict[str, Any]:
        return id_token.verify_firebase_token(
            token,
            self._request,
            audience=self._settings.project_id,
        )

    async def verify(self, token: str) -> AuthenticatedUser:
        if not token:
            raise UnauthorizedError("Missing bearer token")

        try:
            claims = await asyncio.to_thread(self._verify_claims, token)
        except google.auth.exceptions.TransportError as e:
            self._logger.error("token_certificates_unavailable", error=str(e))
            raise UpstreamError("Could not fetch token signing certificates") from e
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            self._logger.warning("token_rejected", error=str(e))
            raise UnauthorizedError("Invalid or expired token") from e

        uid = (claims or {}).get("user_id") or (claims or {}).get("sub")
        if not uid:
            raise UnauthorizedError("Token has no subject")
        return AuthenticatedUser(uid=uid, email=claims.get("email") or "")
