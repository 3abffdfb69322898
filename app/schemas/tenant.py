from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"


class TenantContext(BaseModel):
    """Caller identity resolved once per request and passed down explicitly."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    user_id: str
    role: Role = Role.USER


class ApiKeyRequest(BaseModel):
    role: Optional[Role] = None


class ApiKeyResponse(BaseModel):
    api_key: str
    tenant_id: str
    user_id: str
    role: Role
