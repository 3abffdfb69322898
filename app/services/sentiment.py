from app.core.clock import utcnow
from app.schemas.inference import BatchSentimentResult, SentimentResult, SentimentSummary
from app.services.inference import InferenceProvider, parallel_map


class SentimentAnalyzer:
    """Sentiment classification for single texts and batches."""

    def __init__(self, provider: InferenceProvider, model: str, max_workers: int = 8):
        self.provider = provider
        self.model = model
        self.max_workers = max_workers

    def analyze_sentiment(self, text: str) -> SentimentResult:
        classification = self.provider.classify(text, self.model)
        return SentimentResult(
            text=text,
            sentiment=classification.label,
            confidence=classification.score,
            timestamp=utcnow(),
        )

    def analyze_batch(self, texts: list[str]) -> BatchSentimentResult:
        results = parallel_map(self.analyze_sentiment, texts, self.max_workers)
        labels = [r.sentiment.upper() for r in results]
        return BatchSentimentResult(
            results=results,
            summary=SentimentSummary(
                total=len(results),
                positive=labels.count("POSITIVE"),
                negative=labels.count("NEGATIVE"),
                neutral=labels.count("NEUTRAL"),
            ),
            timestamp=utcnow(),
        )
