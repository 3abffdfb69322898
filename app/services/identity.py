"""Identity providers: Supabase Auth for user tokens, signed JWTs for tenant API keys."""
from typing import Any, Optional

import httpx
import jwt

from app.core.clock import utcnow
from app.core.errors import AuthError, UpstreamError
from app.core.logging import get_logger
from app.schemas.tenant import Role

logger = get_logger(__name__)

ROLE_PERMISSIONS: dict[Role, set[str]] = {
    Role.ADMIN: {"*"},
    Role.USER: {"read", "create"},
    Role.VIEWER: {"read"},
}


def has_permission(role: Role, action: str) -> bool:
    allowed = ROLE_PERMISSIONS.get(role, set())
    return "*" in allowed or action in allowed


class SupabaseIdentityProvider:
    """Verifies user access tokens against Supabase Auth."""

    def __init__(self, supabase_url: str, anon_key: str, timeout_seconds: float = 10.0):
        self.supabase_url = supabase_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.supabase_url and self.anon_key)

    def verify_token(self, token: str) -> dict[str, Any]:
        """Return the Supabase user for a valid access token."""
        if not self.configured:
            raise AuthError("Token verification failed: identity provider not configured")

        try:
            response = httpx.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise UpstreamError("Identity provider unavailable", {"message": str(e)}) from e

        if response.status_code in (401, 403):
            raise AuthError("Token verification failed: invalid or expired token")
        if response.status_code >= 400:
            raise UpstreamError(
                "Identity provider error",
                {"status": response.status_code, "body": response.text[:200]},
            )

        user = response.json()
        if not user.get("id"):
            raise AuthError("Token verification failed: no user in token")
        logger.debug(f"Token verified for user: {user['id']}")
        return user


class ApiKeyManager:
    """Issues and verifies tenant-scoped API keys."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def generate_api_key(self, user_id: str, tenant_id: str, role: Role = Role.USER) -> str:
        payload = {
            "userId": user_id,
            "tenantId": tenant_id,
            "role": role.value,
            "type": "api_key",
            "issued_at": utcnow().isoformat(),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_api_key(self, api_key: str) -> Optional[dict[str, Any]]:
        """Decode an API key. Returns None when the token is not one of ours."""
        try:
            claims = jwt.decode(api_key, self.secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            return None
        if claims.get("type") != "api_key" or not claims.get("tenantId") or not claims.get("userId"):
            return None
        return claims
