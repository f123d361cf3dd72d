"""
Common ground service layer

Orchestrates one topic's analysis lifecycle:
- Run a pass (load snapshot, enhance, persist, cache)
- Serve the latest result (cache, then store, then a default message)
- Bridging suggestions and divergence points on demand
- Per-response recompute hook
"""

from typing import Any, Dict, Optional

from config import get_logger
from deliberation.background import BackgroundTaskRunner
from deliberation.bridging import BridgingSuggester
from deliberation.detector import CommonGroundDetector
from deliberation.divergence import analyze_topic as analyze_divergence
from deliberation.models import AnalysisSnapshot, SynthesisResult
from deliberation.protocols import (
    AnalysisCache,
    CommonGroundStore,
    MetricsCollector,
    NullMetrics,
    latest_analysis_cache_key,
)
from deliberation.trigger import RecomputeTrigger

logger = get_logger(__name__).bind(component="common_ground_service")

NO_ANALYSIS_MESSAGE = (
    "Common ground analysis is not available yet. It is generated once the "
    "discussion has enough participants and responses."
)


def _analysis_payload(topic_id: str, result: SynthesisResult, snapshot: AnalysisSnapshot) -> Dict[str, Any]:
    return {
        "topic_id": topic_id,
        "response_count": snapshot.response_count,
        "participant_count": snapshot.participant_count,
        "created_at": snapshot.created_at.isoformat(),
        **result.to_dict(),
    }


class CommonGroundService:
    """Wires the engine to a store, a cache and the background runner"""

    def __init__(
        self,
        store: CommonGroundStore,
        detector: CommonGroundDetector,
        suggester: BridgingSuggester,
        cache: AnalysisCache,
        runner: BackgroundTaskRunner,
        metrics: Optional[MetricsCollector] = None,
        cache_ttl_seconds: Optional[int] = None,
    ):
        self.store = store
        self.detector = detector
        self.suggester = suggester
        self.cache = cache
        self.runner = runner
        self.metrics = metrics or NullMetrics()
        self.cache_ttl_seconds = cache_ttl_seconds
        self.trigger = RecomputeTrigger(
            store=store,
            cache=cache,
            runner=runner,
            recompute=self.analyze_topic,
            metrics=self.metrics,
        )

    async def analyze_topic(self, topic_id: str) -> Optional[Dict[str, Any]]:
        """Run a full pass and persist it; None for an unknown topic"""
        counters = await self.store.get_topic_counters(topic_id)
        if counters is None:
            logger.info("topic not found, skipping analysis", topic_id=topic_id)
            return None

        topic_data = await self.store.get_topic_data(topic_id)
        if topic_data is None:
            logger.info("topic disappeared before analysis", topic_id=topic_id)
            return None

        result = await self.detector.enhance(topic_data)
        snapshot = await self.store.save_analysis(topic_id, result, counters)

        payload = _analysis_payload(topic_id, result, snapshot)
        await self.cache.set(latest_analysis_cache_key(topic_id), payload, self.cache_ttl_seconds)

        logger.info(
            "analyzed topic",
            topic_id=topic_id,
            agreement_zones=len(result.agreement_zones),
            misunderstandings=len(result.misunderstandings),
            genuine_disagreements=len(result.genuine_disagreements),
            overall_consensus_score=result.overall_consensus_score,
        )
        return payload

    async def get_latest(self, topic_id: str) -> Optional[Dict[str, Any]]:
        """Latest result, a default message if none exists yet, None for an unknown topic"""
        key = latest_analysis_cache_key(topic_id)

        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        stored = await self.store.get_latest_analysis(topic_id)
        if stored is not None:
            await self.cache.set(key, stored, self.cache_ttl_seconds)
            return stored

        if await self.store.get_topic_counters(topic_id) is None:
            return None

        return {
            "topic_id": topic_id,
            "message": NO_ANALYSIS_MESSAGE,
            **SynthesisResult().to_dict(),
        }

    async def get_bridging(self, topic_id: str) -> Dict[str, Any]:
        result = await self.suggester.suggest(topic_id)
        return {"topic_id": topic_id, **result.to_dict()}

    async def get_divergence(self, topic_id: str) -> Dict[str, Any]:
        propositions = await self.store.get_propositions(topic_id)
        return analyze_divergence(topic_id, propositions).to_dict()

    def on_response_created(self, topic_id: str) -> None:
        """Schedule the recompute check; never waits on or raises from it"""
        self.trigger.notify_response_created(topic_id)
