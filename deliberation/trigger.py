"""Recompute trigger

Decides when a topic's common-ground analysis is stale enough to regenerate:
- No prior snapshot: only once the cold-start floor is reached
  (participants >= 10 AND responses >= 10)
- Prior snapshot: responses grew by >= 10, OR the snapshot is >= 6 hours old

The decision itself is pure. check_and_trigger() is the only side effect and
never raises; notify_response_created() never blocks its caller. At most one
recompute per topic runs at a time; checks arriving while it runs are skipped.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Set, Tuple

from config import get_logger
from deliberation.background import BackgroundTaskRunner
from deliberation.models import AnalysisSnapshot, TopicCounters
from deliberation.protocols import (
    AnalysisCache,
    CommonGroundStore,
    MetricsCollector,
    NullMetrics,
    latest_analysis_cache_key,
)

logger = get_logger(__name__).bind(component="trigger")

COLD_START_MIN_PARTICIPANTS = 10
COLD_START_MIN_RESPONSES = 10
RESPONSE_DELTA_THRESHOLD = 10
STALENESS_WINDOW = timedelta(hours=6)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def evaluate(
    counters: TopicCounters,
    snapshot: Optional[AnalysisSnapshot],
    now: Optional[datetime] = None,
) -> Tuple[bool, str]:
    """Recompute decision with the reason behind it

    Returns:
        (should_trigger, reason) where reason is one of cold_start,
        cold_start_pending, response_delta, elapsed_time, fresh
    """
    if snapshot is None:
        if (
            counters.participant_count >= COLD_START_MIN_PARTICIPANTS
            and counters.response_count >= COLD_START_MIN_RESPONSES
        ):
            return True, "cold_start"
        return False, "cold_start_pending"

    if counters.response_count - snapshot.response_count >= RESPONSE_DELTA_THRESHOLD:
        return True, "response_delta"

    now = _as_utc(now or datetime.now(timezone.utc))
    if now - _as_utc(snapshot.created_at) >= STALENESS_WINDOW:
        return True, "elapsed_time"

    return False, "fresh"


def should_trigger(
    counters: TopicCounters,
    snapshot: Optional[AnalysisSnapshot],
    now: Optional[datetime] = None,
) -> bool:
    return evaluate(counters, snapshot, now)[0]


class RecomputeTrigger:
    """Threshold-based recompute scheduling for one store

    Args:
        store: Source of topic counters and the latest analysis snapshot
        cache: Latest-analysis cache, invalidated on trigger
        runner: Background runner the recomputation is submitted to
        recompute: Coroutine function running a full analysis pass for a topic
        metrics: Metrics collector (NullMetrics when omitted)
    """

    def __init__(
        self,
        store: CommonGroundStore,
        cache: AnalysisCache,
        runner: BackgroundTaskRunner,
        recompute: Callable[[str], Awaitable[Any]],
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.cache = cache
        self.runner = runner
        self.recompute = recompute
        self.metrics = metrics or NullMetrics()
        self._in_flight: Set[str] = set()

    async def check_and_trigger(self, topic_id: str) -> bool:
        """Evaluate the topic and submit a recompute if due

        Returns True when a recomputation was submitted. Any error is logged
        and reported as False.
        """
        if topic_id in self._in_flight:
            logger.debug("recompute already running, skipping check", topic_id=topic_id)
            self.metrics.recompute_triggers.labels(reason="in_flight").inc()
            return False

        try:
            counters = await self.store.get_topic_counters(topic_id)
            if counters is None:
                logger.debug("topic not found, skipping recompute check", topic_id=topic_id)
                return False

            snapshot = await self.store.get_latest_snapshot(topic_id)
            triggered, reason = evaluate(counters, snapshot)
            self.metrics.recompute_triggers.labels(reason=reason).inc()

            if not triggered:
                logger.debug(
                    "recompute not needed",
                    topic_id=topic_id,
                    reason=reason,
                    response_count=counters.response_count,
                    participant_count=counters.participant_count,
                )
                return False

            # Another check may have claimed the topic while this one awaited the store
            if topic_id in self._in_flight:
                logger.debug("recompute already running, skipping check", topic_id=topic_id)
                return False

            self._in_flight.add(topic_id)
            try:
                await self.cache.delete(latest_analysis_cache_key(topic_id))
                self.runner.submit(self._run_recompute(topic_id), name=f"recompute:{topic_id}")
            except Exception:
                self._in_flight.discard(topic_id)
                raise

            logger.info(
                "triggered common ground recompute",
                topic_id=topic_id,
                reason=reason,
                response_count=counters.response_count,
                participant_count=counters.participant_count,
            )
            return True

        except Exception as e:
            self.metrics.record_error("trigger", e)
            logger.error("recompute check failed", topic_id=topic_id, error=str(e), error_type=type(e).__name__)
            return False

    def notify_response_created(self, topic_id: str) -> asyncio.Task:
        """Per-response hook: schedule the check and return immediately"""
        return self.runner.submit(self.check_and_trigger(topic_id), name=f"recompute-check:{topic_id}")

    async def _run_recompute(self, topic_id: str) -> Any:
        try:
            return await self.recompute(topic_id)
        finally:
            self._in_flight.discard(topic_id)
