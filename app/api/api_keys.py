from fastapi import APIRouter, Depends

from app.api.deps import get_api_key_manager, get_tenant_context
from app.core.errors import TenantAccessError
from app.core.logging import get_logger
from app.schemas.task import ApiResponse
from app.schemas.tenant import ApiKeyRequest, ApiKeyResponse, Role, TenantContext
from app.services.identity import ApiKeyManager

router = APIRouter(prefix="/api-keys", tags=["API Keys"])
logger = get_logger(__name__)

ROLE_RANK = {Role.VIEWER: 1, Role.USER: 2, Role.ADMIN: 3}


@router.post("", status_code=201, response_model=ApiResponse[ApiKeyResponse])
def create_api_key(
    payload: ApiKeyRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    api_keys: ApiKeyManager = Depends(get_api_key_manager),
):
    """Issue an API key for the caller's tenant, at most with the caller's role."""
    role = payload.role or ctx.role
    if ROLE_RANK[role] > ROLE_RANK[ctx.role]:
        raise TenantAccessError("Cannot issue a key above your own role", {"role": role.value})

    api_key = api_keys.generate_api_key(ctx.user_id, ctx.tenant_id, role)
    logger.info(f"Issued {role.value} API key for user {ctx.user_id}")
    return ApiResponse(
        data=ApiKeyResponse(api_key=api_key, tenant_id=ctx.tenant_id, user_id=ctx.user_id, role=role),
        message="API key created successfully",
    )
