from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class AgentType(str, Enum):
    SENTIMENT = "sentiment"
    RECOMMENDATION = "recommendation"
    PERFORMANCE = "performance"


class AgentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    ERROR = "error"
    DEPLOYED = "deployed"


class AgentConfig(BaseModel):
    """Typed tunables for one agent kind.

    Keys a client sends that are not fields of the concrete config are kept
    under ``extensions`` instead of being rejected.
    """

    model_config = ConfigDict(extra="forbid")

    extensions: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_extensions(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        extensions = dict(data.get("extensions") or {})
        typed = {}
        for key, value in data.items():
            if key == "extensions":
                continue
            if key in known:
                typed[key] = value
            else:
                extensions[key] = value
        typed["extensions"] = extensions
        return typed


class SentimentConfig(AgentConfig):
    model: str = "cardiffnlp/twitter-roberta-base-sentiment-latest"
    batch_size: int = Field(default=10, ge=1)
    confidence_threshold: float = Field(default=0.7, ge=0, le=1)


class RecommendationConfig(AgentConfig):
    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    similarity_threshold: float = Field(default=0.7, ge=-1, le=1)
    max_recommendations: int = Field(default=10, ge=1)


class PerformanceConfig(AgentConfig):
    check_interval: int = Field(default=300, ge=1)  # seconds
    alert_threshold: float = Field(default=0.8, ge=0, le=1)
    metrics_retention: int = Field(default=30, ge=1)  # days


CONFIG_MODELS: dict[AgentType, type[AgentConfig]] = {
    AgentType.SENTIMENT: SentimentConfig,
    AgentType.RECOMMENDATION: RecommendationConfig,
    AgentType.PERFORMANCE: PerformanceConfig,
}


def build_config(agent_type: AgentType, overrides: Optional[dict] = None, base: Optional[dict] = None) -> AgentConfig:
    """Merge overrides over an existing (or default) config for the agent type."""
    merged = {**(base or {}), **(overrides or {})}
    if base and overrides and "extensions" in overrides:
        merged["extensions"] = {**base.get("extensions", {}), **overrides["extensions"]}
    return CONFIG_MODELS[agent_type].model_validate(merged)


class AgentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: AgentType
    description: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[AgentStatus] = None
    version: Optional[str] = None
    config: Optional[dict[str, Any]] = None


class AgentRead(BaseModel):
    id: str
    tenant_id: str
    name: str
    type: AgentType
    status: AgentStatus
    version: str
    description: str
    endpoint_url: str
    config: dict[str, Any]
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AgentStatistics(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: dict[str, int]


class AgentListResponse(BaseModel):
    success: bool = True
    data: list[AgentRead]
    pagination: Pagination
    statistics: AgentStatistics
