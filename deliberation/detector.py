"""Semantic enhancement layer

Wraps the pattern synthesizer. When the semantic collaborator is ready,
misunderstandings are re-clustered from nuanced explanations and genuine
disagreements get underlying values attached. Anything slow, failing or
empty falls back to the pattern baseline for that item only.
"""

import asyncio
import time
from dataclasses import replace
from typing import Awaitable, List, Optional, TypeVar

from config import get_logger
from deliberation.models import (
    DivergencePoint,
    Interpretation,
    Misunderstanding,
    Stance,
    SynthesisResult,
    TopicData,
)
from deliberation.protocols import (
    MetricsCollector,
    NullMetrics,
    NullSemanticAnalyzer,
    SemanticAnalyzer,
    is_degraded_values,
)
from deliberation.synthesizer import PatternSynthesizer
from exceptions import SemanticAnalysisError

logger = get_logger(__name__).bind(component="detector")

MAX_INTERPRETATION_CLUSTERS = 3
DEFAULT_TIMEOUT_SECONDS = 20.0

T = TypeVar("T")


class CommonGroundDetector:
    """Pattern synthesis plus optional semantic enhancement

    The baseline is computed exactly once per call and is always the
    fallback.
    """

    def __init__(
        self,
        synthesizer: Optional[PatternSynthesizer] = None,
        analyzer: Optional[SemanticAnalyzer] = None,
        metrics: Optional[MetricsCollector] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.synthesizer = synthesizer or PatternSynthesizer()
        self.analyzer = analyzer or NullSemanticAnalyzer()
        self.metrics = metrics or NullMetrics()
        self.timeout_seconds = timeout_seconds

    @property
    def provider(self) -> str:
        return getattr(self.analyzer, "name", type(self.analyzer).__name__)

    async def enhance(self, topic_data: TopicData) -> SynthesisResult:
        start_time = time.time()
        baseline = self.synthesizer.synthesize(topic_data)

        if not await self._analyzer_ready():
            logger.debug("semantic analyzer not ready, returning pattern analysis", topic_id=topic_data.topic_id)
            self._record_run("pattern", start_time)
            return baseline

        misunderstandings, disagreements = await asyncio.gather(
            asyncio.gather(*[
                self._enhance_misunderstanding(m, topic_data)
                for m in baseline.misunderstandings
            ]),
            asyncio.gather(*[
                self._enhance_disagreement(d)
                for d in baseline.genuine_disagreements
            ]),
        )

        self._record_run("enhanced", start_time)
        logger.info(
            "enhanced topic analysis",
            topic_id=topic_data.topic_id,
            provider=self.provider,
            misunderstandings=len(misunderstandings),
            genuine_disagreements=len(disagreements),
            duration_seconds=round(time.time() - start_time, 2),
        )
        return baseline.with_enhancements(list(misunderstandings), list(disagreements))

    async def _analyzer_ready(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self.analyzer.is_ready(), timeout=self.timeout_seconds))
        except Exception as e:
            logger.warning("semantic readiness probe failed", provider=self.provider, error=str(e), error_type=type(e).__name__)
            return False

    async def _call(self, capability: str, awaitable: Awaitable[T]) -> T:
        """Run one collaborator call under the timeout, recording the outcome"""
        start_time = time.time()
        try:
            result = await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self.metrics.record_semantic_call(self.provider, capability, time.time() - start_time, status="timeout")
            raise SemanticAnalysisError(
                f"{capability} timed out after {self.timeout_seconds}s",
                capability=capability,
                provider=self.provider,
                original_error=e,
            ) from e
        except Exception:
            self.metrics.record_semantic_call(self.provider, capability, time.time() - start_time, status="error")
            raise

        self.metrics.record_semantic_call(self.provider, capability, time.time() - start_time)
        return result

    async def _enhance_misunderstanding(
        self, misunderstanding: Misunderstanding, topic_data: TopicData
    ) -> Misunderstanding:
        proposition = topic_data.find_proposition(misunderstanding.topic)
        if proposition is None:
            return misunderstanding

        texts = proposition.explanations(Stance.NUANCED)
        if not texts:
            return misunderstanding

        try:
            clusters = await self._call(
                "cluster_texts",
                self.analyzer.cluster_texts(texts, MAX_INTERPRETATION_CLUSTERS),
            )
            interpretations = [
                Interpretation(label=cluster["theme"], participant_count=len(cluster["members"]))
                for cluster in clusters or []
                if cluster.get("theme") and cluster.get("members")
            ]
            if not interpretations:
                return misunderstanding

            clarification = await self._call(
                "generate_clarification",
                self.analyzer.generate_clarification(
                    misunderstanding.topic,
                    [{"label": i.label, "participant_count": i.participant_count} for i in interpretations],
                ),
            )
        except Exception as e:
            self.metrics.record_error("detector", e)
            logger.warning(
                "failed to enhance misunderstanding",
                proposition=misunderstanding.topic[:50],
                error=str(e),
                error_type=type(e).__name__,
            )
            return misunderstanding

        return replace(
            misunderstanding,
            interpretations=interpretations,
            clarification=clarification.strip() if clarification and clarification.strip() else misunderstanding.clarification,
        )

    async def _enhance_disagreement(self, disagreement: DivergencePoint) -> DivergencePoint:
        excerpts: List[str] = disagreement.reasoning_excerpts()
        if not excerpts:
            return disagreement

        try:
            values = await self._call("identify_values", self.analyzer.identify_values(excerpts))
        except Exception as e:
            self.metrics.record_error("detector", e)
            logger.warning(
                "failed to enhance disagreement",
                proposition=disagreement.proposition[:50],
                error=str(e),
                error_type=type(e).__name__,
            )
            return disagreement

        if is_degraded_values(values):
            logger.debug("value identification returned no usable values", proposition=disagreement.proposition[:50])
            return disagreement

        return replace(disagreement, underlying_values=list(values))

    def _record_run(self, mode: str, start_time: float) -> None:
        self.metrics.analysis_runs.labels(mode=mode).inc()
        self.metrics.analysis_duration.labels(mode=mode).observe(time.time() - start_time)
