from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Classification(BaseModel):
    label: str
    score: float


class SentimentResult(BaseModel):
    text: str
    sentiment: str
    confidence: float
    timestamp: datetime


class SentimentSummary(BaseModel):
    total: int
    positive: int
    negative: int
    neutral: int


class BatchSentimentResult(BaseModel):
    results: list[SentimentResult]
    summary: SentimentSummary
    timestamp: datetime


class SentimentInput(BaseModel):
    text: Optional[str] = None
    texts: Optional[list[str]] = None


class SentimentRequest(BaseModel):
    agent_id: str = Field(min_length=1)
    input_data: SentimentInput
    batch_mode: bool = False

    @model_validator(mode="after")
    def check_input_shape(self) -> "SentimentRequest":
        if self.batch_mode and self.input_data.texts:
            return self
        if not self.batch_mode and self.input_data.text:
            return self
        raise ValueError("Invalid input data format")


class RecommendationItem(BaseModel):
    """Candidate item; any extra fields are carried through to the output."""

    model_config = ConfigDict(extra="allow")

    text: Optional[str] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def require_text(self) -> "RecommendationItem":
        if not (self.text or self.content):
            raise ValueError("each item needs text or content")
        return self

    @property
    def body(self) -> str:
        return self.text or self.content or ""


class RecommendationInput(BaseModel):
    query: str = Field(min_length=1)
    items: list[RecommendationItem] = Field(min_length=1)
    threshold: Optional[float] = Field(default=None, ge=-1, le=1)


class RecommendationRequest(BaseModel):
    agent_id: str = Field(min_length=1)
    input_data: RecommendationInput


class ScoredItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    similarity: float
    relevant: bool


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchCategory(str, Enum):
    EXACT = "exact_match"
    STRONG = "strong_match"
    MODERATE = "moderate_match"
    WEAK = "weak_match"


class EnhancedRecommendation(ScoredItem):
    confidence: Confidence
    category: MatchCategory
    rank: int


class EnhancementSummary(BaseModel):
    total: int
    high_confidence: int
    medium_confidence: int
    low_confidence: int


class EnhancedRecommendations(BaseModel):
    recommendations: list[EnhancedRecommendation]
    metadata: EnhancementSummary
    timestamp: datetime


class RecommendationResult(BaseModel):
    query: str
    recommendations: list[ScoredItem]
    total: int
    threshold: float
    enhanced: EnhancedRecommendations
    timestamp: datetime
