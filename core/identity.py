# core/identity.py

import secrets
from typing import Optional

from supabase import Client

from core.config import settings
from core.logging_config import logger
from models.rbac import Principal


SYSTEM_PRINCIPAL = Principal(id="system", email=None, is_system=True)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """`Authorization: Bearer <token>` → token, anything else → None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


# ============================================================
# IDENTITY RESOLVER (Supabase GoTrue)
# ============================================================
class SupabaseIdentityResolver:
    """
    Resolves a bearer token to exactly one Principal, or None.

    Never guesses: any failure, a missing user or a missing email is
    Unauthenticated. user_metadata is ignored for authorization purposes
    because users can edit it themselves.
    """

    def __init__(self, client: Optional[Client], system_token: Optional[str] = None):
        self._client = client
        self._system_token = system_token

    def resolve(self, token: Optional[str]) -> Optional[Principal]:
        if not token:
            return None

        # ---------------------------------------------------------
        # Explicit system principal
        # ---------------------------------------------------------
        if self._system_token and secrets.compare_digest(
            token.encode(), self._system_token.encode()
        ):
            logger.warning("🔐 System principal authenticated via service token")
            return SYSTEM_PRINCIPAL

        if self._client is None:
            logger.error("Supabase client not configured; cannot resolve identity")
            return None

        # ---------------------------------------------------------
        # Validate JWT via Supabase GoTrue
        # ---------------------------------------------------------
        try:
            auth_resp = self._client.auth.get_user(token)
        except Exception as e:
            logger.info(f"Token rejected by auth service: {e}")
            return None

        auth_user = getattr(auth_resp, "user", None) if auth_resp else None
        if auth_user is None or not getattr(auth_user, "id", None):
            return None

        email = getattr(auth_user, "email", None)
        if not email:
            return None

        return Principal(id=str(auth_user.id), email=email)


def build_identity_resolver(client: Optional[Client]) -> SupabaseIdentityResolver:
    return SupabaseIdentityResolver(client, system_token=settings.RBAC_SYSTEM_TOKEN)
