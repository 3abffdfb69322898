from typing import Callable, Iterator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core.db import get_session
from app.core.errors import AuthError, TenantAccessError
from app.core.logging import get_logger, tenant_id_var
from app.core.redis_clients import get_sync_redis
from app.core.settings import settings
from app.repositories.agent_repo import UserRepository
from app.schemas.tenant import Role, TenantContext
from app.services.events import EventPublisher
from app.services.identity import ApiKeyManager, SupabaseIdentityProvider, has_permission
from app.services.inference import HuggingFaceClient, InferenceProvider

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_api_key_manager() -> ApiKeyManager:
    return ApiKeyManager(settings.jwt_secret, settings.jwt_algorithm)


def get_identity_provider() -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider(settings.supabase_url, settings.supabase_anon_key)


def get_inference_provider() -> Iterator[InferenceProvider]:
    client = HuggingFaceClient(
        settings.huggingface_api_key,
        settings.huggingface_api_url,
        settings.inference_timeout_seconds,
    )
    try:
        yield client
    finally:
        client.close()


def get_event_publisher() -> EventPublisher:
    return EventPublisher(get_sync_redis())


def _parse_role(value: Optional[str]) -> Role:
    try:
        return Role((value or Role.USER.value).lower())
    except ValueError:
        logger.warning(f"Unknown role '{value}', defaulting to viewer")
        return Role.VIEWER


def get_tenant_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session),
    api_keys: ApiKeyManager = Depends(get_api_key_manager),
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
) -> TenantContext:
    """Resolve the caller's tenant from a tenant API key or a Supabase access token."""
    if credentials is None:
        raise AuthError("Authorization header required")

    token = credentials.credentials
    claims = api_keys.verify_api_key(token)
    if claims:
        ctx = TenantContext(
            tenant_id=claims["tenantId"],
            user_id=claims["userId"],
            role=_parse_role(claims.get("role")),
        )
    else:
        user = identity.verify_token(token)
        db_user = UserRepository(session).get_user(user["id"])
        if not db_user or not db_user.tenant_id:
            raise TenantAccessError("Tenant context required")
        ctx = TenantContext(tenant_id=db_user.tenant_id, user_id=db_user.id, role=_parse_role(db_user.role))

    tenant_id_var.set(ctx.tenant_id)
    return ctx


def require_permission(action: str) -> Callable[..., TenantContext]:
    def dependency(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if not has_permission(ctx.role, action):
            raise TenantAccessError(
                "Insufficient permissions", {"role": ctx.role.value, "action": action}
            )
        return ctx

    return dependency
