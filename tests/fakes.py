"""
Builders and in-memory fakes shared by the test modules
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from deliberation.models import (
    Alignment,
    AnalysisSnapshot,
    Proposition,
    Stance,
    SynthesisResult,
    TopicCounters,
    TopicData,
)
from deliberation.protocols import NullMetrics


def make_alignments(proposition_id: str, stance: Stance, count: int, texts: Sequence[str] = ()) -> List[Alignment]:
    """count alignments with unique users; the first len(texts) carry an explanation"""
    return [
        Alignment(
            user_id=f"{proposition_id}-{stance.value.lower()}-{i}",
            stance=stance,
            nuance_explanation=texts[i] if i < len(texts) else None,
        )
        for i in range(count)
    ]


def make_proposition(
    proposition_id: str,
    support: int = 0,
    oppose: int = 0,
    nuanced: int = 0,
    consensus_score: Optional[float] = None,
    statement: Optional[str] = None,
    support_texts: Sequence[str] = (),
    oppose_texts: Sequence[str] = (),
    nuanced_texts: Sequence[str] = (),
) -> Proposition:
    return Proposition(
        id=proposition_id,
        statement=statement or f"Statement {proposition_id}",
        support_count=support,
        oppose_count=oppose,
        nuanced_count=nuanced,
        consensus_score=consensus_score,
        alignments=(
            make_alignments(proposition_id, Stance.SUPPORT, support, support_texts)
            + make_alignments(proposition_id, Stance.OPPOSE, oppose, oppose_texts)
            + make_alignments(proposition_id, Stance.NUANCED, nuanced, nuanced_texts)
        ),
    )


def make_topic(*propositions: Proposition, topic_id: str = "topic-1") -> TopicData:
    return TopicData(
        topic_id=topic_id,
        propositions=list(propositions),
        participant_count=len({a.user_id for p in propositions for a in p.alignments}),
    )


class FakeStore:
    """In-memory CommonGroundStore"""

    def __init__(self):
        self.counters: Dict[str, TopicCounters] = {}
        self.snapshots: Dict[str, AnalysisSnapshot] = {}
        self.propositions: Dict[str, List[Proposition]] = {}
        self.saved: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    def add_topic(
        self,
        topic_id: str,
        propositions: Sequence[Proposition] = (),
        response_count: int = 0,
        participant_count: int = 0,
    ) -> None:
        self.counters[topic_id] = TopicCounters(
            topic_id=topic_id,
            response_count=response_count,
            participant_count=participant_count,
        )
        self.propositions[topic_id] = list(propositions)

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def get_topic_counters(self, topic_id: str) -> Optional[TopicCounters]:
        self._check()
        return self.counters.get(topic_id)

    async def get_latest_snapshot(self, topic_id: str) -> Optional[AnalysisSnapshot]:
        self._check()
        return self.snapshots.get(topic_id)

    async def get_propositions(self, topic_id: str) -> List[Proposition]:
        self._check()
        return list(self.propositions.get(topic_id, []))

    async def get_topic_data(self, topic_id: str) -> Optional[TopicData]:
        self._check()
        if topic_id not in self.counters:
            return None
        return TopicData(
            topic_id=topic_id,
            propositions=self.propositions[topic_id],
            participant_count=self.counters[topic_id].participant_count,
        )

    async def save_analysis(self, topic_id: str, result: SynthesisResult, counters: TopicCounters) -> AnalysisSnapshot:
        snapshot = AnalysisSnapshot(
            response_count=counters.response_count,
            participant_count=counters.participant_count,
            created_at=datetime.now(timezone.utc),
        )
        self.snapshots[topic_id] = snapshot
        self.saved.append((topic_id, result))
        return snapshot

    async def get_latest_analysis(self, topic_id: str) -> Optional[dict]:
        for saved_topic, result in reversed(self.saved):
            if saved_topic == topic_id:
                return {"topic_id": topic_id, **result.to_dict()}
        return None


class FakeAnalyzer:
    """Scriptable SemanticAnalyzer that records every call"""

    name = "fake"

    def __init__(
        self,
        ready: bool = True,
        clusters: Optional[List[dict]] = None,
        values: Optional[List[str]] = None,
        clarification: str = "Participants mean different things by the key term.",
        fail_on: Optional[str] = None,
        delay: float = 0.0,
    ):
        self.ready = ready
        self.clusters = clusters if clusters is not None else []
        self.values = values if values is not None else []
        self.clarification = clarification
        self.fail_on = fail_on
        self.delay = delay
        self.cluster_calls: List[List[str]] = []
        self.value_calls: List[List[str]] = []
        self.clarification_calls: List[tuple] = []

    async def is_ready(self) -> bool:
        if isinstance(self.ready, Exception):
            raise self.ready
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.ready

    async def cluster_texts(self, texts: List[str], max_clusters: int = 3) -> List[dict]:
        self.cluster_calls.append(list(texts))
        if self.fail_on and any(self.fail_on in text for text in texts):
            raise ConnectionError("semantic service unreachable")
        return self.clusters

    async def identify_values(self, texts: List[str]) -> List[str]:
        self.value_calls.append(list(texts))
        if self.fail_on and any(self.fail_on in text for text in texts):
            raise ConnectionError("semantic service unreachable")
        return self.values

    async def generate_clarification(self, topic: str, interpretations: List[dict]) -> str:
        self.clarification_calls.append((topic, interpretations))
        return self.clarification


class RecordingMetrics(NullMetrics):
    """NullMetrics that keeps semantic calls and errors for assertions"""

    def __init__(self):
        super().__init__()
        self.semantic_calls: List[tuple] = []
        self.errors: List[tuple] = []

    def record_error(self, component: str, error: Exception) -> None:
        self.errors.append((component, type(error).__name__))

    def record_semantic_call(self, provider, capability, duration_seconds, status="success") -> None:
        self.semantic_calls.append((provider, capability, status))
