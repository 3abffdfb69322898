from typing import Optional

from app.core.clock import utcnow
from app.schemas.inference import (
    Confidence,
    EnhancedRecommendation,
    EnhancedRecommendations,
    EnhancementSummary,
    MatchCategory,
    RecommendationItem,
    RecommendationResult,
    ScoredItem,
)
from app.services.inference import InferenceProvider, cosine_similarity, parallel_map


def confidence_for(similarity: float) -> Confidence:
    if similarity >= 0.8:
        return Confidence.HIGH
    if similarity >= 0.6:
        return Confidence.MEDIUM
    return Confidence.LOW


def category_for(similarity: float) -> MatchCategory:
    if similarity >= 0.9:
        return MatchCategory.EXACT
    if similarity >= 0.7:
        return MatchCategory.STRONG
    if similarity >= 0.5:
        return MatchCategory.MODERATE
    return MatchCategory.WEAK


class RecommendationEngine:
    """Similarity-based recommendations over caller-supplied items."""

    def __init__(self, provider: InferenceProvider, model: str, max_workers: int = 8):
        self.provider = provider
        self.model = model
        self.max_workers = max_workers

    def find_similar_items(
        self,
        query: str,
        items: list[RecommendationItem],
        threshold: float,
        limit: Optional[int] = None,
    ) -> list[ScoredItem]:
        """Items with similarity >= threshold, most similar first."""
        query_vector = self.provider.embed(query, self.model)
        item_vectors = parallel_map(
            lambda item: self.provider.embed(item.body, self.model),
            items,
            self.max_workers,
        )

        scored = []
        for item, vector in zip(items, item_vectors):
            similarity = cosine_similarity(query_vector, vector)
            scored.append(
                ScoredItem(
                    **item.model_dump(exclude_none=True),
                    similarity=similarity,
                    relevant=similarity >= threshold,
                )
            )

        recommendations = sorted(
            (s for s in scored if s.relevant), key=lambda s: s.similarity, reverse=True
        )
        return recommendations[:limit] if limit else recommendations

    def enhance_recommendations(self, recommendations: list[ScoredItem]) -> EnhancedRecommendations:
        enhanced = [
            EnhancedRecommendation(
                **rec.model_dump(),
                confidence=confidence_for(rec.similarity),
                category=category_for(rec.similarity),
                rank=rank,
            )
            for rank, rec in enumerate(recommendations, start=1)
        ]
        return EnhancedRecommendations(
            recommendations=enhanced,
            metadata=EnhancementSummary(
                total=len(enhanced),
                high_confidence=sum(1 for r in enhanced if r.confidence == Confidence.HIGH),
                medium_confidence=sum(1 for r in enhanced if r.confidence == Confidence.MEDIUM),
                low_confidence=sum(1 for r in enhanced if r.confidence == Confidence.LOW),
            ),
            timestamp=utcnow(),
        )

    def recommend(
        self,
        query: str,
        items: list[RecommendationItem],
        threshold: float,
        limit: Optional[int] = None,
    ) -> RecommendationResult:
        recommendations = self.find_similar_items(query, items, threshold, limit)
        return RecommendationResult(
            query=query,
            recommendations=recommendations,
            total=len(recommendations),
            threshold=threshold,
            enhanced=self.enhance_recommendations(recommendations),
            timestamp=utcnow(),
        )
