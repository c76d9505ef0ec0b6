"""
Identity-token verification.

Callers authenticate with ``Authorization: Bearer <Google ID token>``. The
token's signature, expiry, issuer and audience are checked by google-auth;
this module only turns a verified token into a ``Principal``.
"""

import logging
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from fleet.domain import Principal

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@runtime_checkable
class TokenVerifier(Protocol):
    def verify(self, token: str) -> Optional[Principal]:
        """Return the Principal named by ``token``, or None if the token is
        not valid."""
        ...


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization`` header value."""
    if not authorization:
        return None
    if not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


def principal_from_claims(claims: Dict[str, Any]) -> Optional[Principal]:
    sub = claims.get("sub")
    if not sub:
        return None
    return Principal(
        sub=str(sub),
        first_name=claims.get("given_name", ""),
        last_name=claims.get("family_name", ""),
    )


class GoogleTokenVerifier:
    """Verifies Google-issued OpenID Connect ID tokens.

    Args:
        client_id: OAuth client id the tokens must be issued for. When None
            the audience is not checked, which is only suitable for local
            development.
        verify: Injected for tests; defaults to
            ``google.oauth2.id_token.verify_oauth2_token``.
    """

    def __init__(
        self,
        client_id: Optional[str],
        verify: Optional[Callable[..., Dict[str, Any]]] = None,
    ) -> None:
        self.client_id = client_id
        self._verify = verify or id_token.verify_oauth2_token
        self._request = google_requests.Request()
        if client_id is None:
            logger.warning(
                "GOOGLE_CLIENT_ID is not set; ID token audience is not "
                "checked"
            )

    def verify(self, token: str) -> Optional[Principal]:
        try:
            claims = self._verify(token, self._request, self.client_id)
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.info("ID token rejected", extra={"error": str(e)})
            return None
        principal = principal_from_claims(claims)
        if principal is None:
            logger.info("ID token carries no subject")
        return principal
