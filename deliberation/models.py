"""
Deliberation Models

Pydantic dataclasses with runtime validation for the proposition/alignment
snapshot handed to the engine and the insights derived from it.

Derived types (zones, misunderstandings, divergence points, suggestions) are
recomputed wholesale on every pass and never mutated in place; enhanced
copies are produced with dataclasses.replace().
"""

from dataclasses import asdict, replace
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, model_validator
from pydantic.dataclasses import dataclass


class Stance(str, Enum):
    """Directional stance a participant records on a proposition"""
    SUPPORT = "SUPPORT"
    OPPOSE = "OPPOSE"
    NUANCED = "NUANCED"


# --- Input snapshot ---


@dataclass
class Alignment:
    """One participant's stance on a proposition"""
    user_id: str
    stance: Stance
    nuance_explanation: Optional[str] = None


@dataclass
class Proposition:
    """A claim inside a topic with its aggregated counters and raw alignments

    Counters are owned by the participation subsystem and may be ahead of the
    alignments list (the list can be a sample); classification always uses
    the counters, excerpts always come from the alignments.
    """
    id: str
    statement: str
    support_count: int = Field(default=0, ge=0)
    oppose_count: int = Field(default=0, ge=0)
    nuanced_count: int = Field(default=0, ge=0)
    consensus_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    alignments: List[Alignment] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_alignment_per_user(self) -> "Proposition":
        seen = set()
        for alignment in self.alignments:
            if alignment.user_id in seen:
                raise ValueError(
                    f"duplicate alignment for user {alignment.user_id} on proposition {self.id}"
                )
            seen.add(alignment.user_id)
        return self

    @property
    def total_alignments(self) -> int:
        return self.support_count + self.oppose_count + self.nuanced_count

    def explanations(self, stance: Optional[Stance] = None) -> List[str]:
        """Non-empty nuance explanations, optionally restricted to one stance"""
        return [
            a.nuance_explanation.strip()
            for a in self.alignments
            if a.nuance_explanation
            and a.nuance_explanation.strip()
            and (stance is None or a.stance == stance)
        ]


@dataclass
class ResponseData:
    """A discussion response carried alongside the propositions"""
    id: str
    author_id: str
    content: str
    contains_opinion: bool = False
    contains_factual_claims: bool = False


@dataclass
class TopicData:
    """Materialized snapshot of one topic, the input to every analysis pass"""
    topic_id: str
    propositions: List[Proposition] = Field(default_factory=list)
    responses: List[ResponseData] = Field(default_factory=list)
    participant_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _unique_proposition_ids(self) -> "TopicData":
        ids = [p.id for p in self.propositions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate proposition ids in topic {self.topic_id}")
        return self

    def find_proposition(self, statement: str) -> Optional[Proposition]:
        """First proposition whose statement matches exactly"""
        for proposition in self.propositions:
            if proposition.statement == statement:
                return proposition
        return None


# --- Derived insights ---


@dataclass
class AgreementZone:
    proposition: str
    agreement_percentage: int = Field(ge=0, le=100)
    supporting_evidence: List[str] = Field(default_factory=list)
    participant_count: int = 0


@dataclass
class Interpretation:
    label: str
    participant_count: int = Field(ge=0)


@dataclass
class Misunderstanding:
    topic: str  # Statement of the anchoring proposition
    interpretations: List[Interpretation] = Field(default_factory=list)
    clarification: str = ""


@dataclass
class Viewpoint:
    position: str  # "Support" | "Oppose"
    participant_count: int = Field(ge=0)
    percentage: int = Field(default=0, ge=0, le=100)
    reasoning: List[str] = Field(default_factory=list)


@dataclass
class DivergencePoint:
    """A proposition where both sides are substantial and nuance is low"""
    proposition: str
    viewpoints: List[Viewpoint] = Field(default_factory=list)
    polarization_score: float = Field(default=0.0, ge=0.0, le=1.0)
    total_participants: int = 0
    proposition_id: Optional[str] = None
    underlying_values: Optional[List[str]] = None

    def reasoning_excerpts(self) -> List[str]:
        return [text for viewpoint in self.viewpoints for text in viewpoint.reasoning]


# The synthesizer's genuine disagreements and the scorer's divergence points
# share one shape.
GenuineDisagreement = DivergencePoint


@dataclass
class SynthesisResult:
    agreement_zones: List[AgreementZone] = Field(default_factory=list)
    misunderstandings: List[Misunderstanding] = Field(default_factory=list)
    genuine_disagreements: List[DivergencePoint] = Field(default_factory=list)
    overall_consensus_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SynthesisResult":
        return cls(
            agreement_zones=data.get("agreement_zones") or [],
            misunderstandings=data.get("misunderstandings") or [],
            genuine_disagreements=data.get("genuine_disagreements") or [],
            overall_consensus_score=data.get("overall_consensus_score"),
        )

    def with_enhancements(
        self,
        misunderstandings: List[Misunderstanding],
        genuine_disagreements: List[DivergencePoint],
    ) -> "SynthesisResult":
        """Copy with replaced semantic categories; zones and score untouched"""
        return replace(
            self,
            misunderstandings=misunderstandings,
            genuine_disagreements=genuine_disagreements,
        )


@dataclass
class DivergenceAnalysis:
    topic_id: str
    divergence_points: List[DivergencePoint] = Field(default_factory=list)
    overall_polarization: float = 0.0
    participant_count: int = 0
    analyzed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["analyzed_at"] = self.analyzed_at.isoformat() if self.analyzed_at else None
        return data


@dataclass
class BridgingSuggestion:
    proposition_id: str
    source_position: Stance
    target_position: Stance
    bridging_language: str
    common_ground: str
    reasoning: str
    confidence_score: float = Field(ge=0.0, le=1.0)


@dataclass
class BridgingSuggestionResult:
    suggestions: List[BridgingSuggestion] = Field(default_factory=list)
    overall_consensus_score: float = 0.0
    conflict_areas: List[str] = Field(default_factory=list)
    common_ground_areas: List[str] = Field(default_factory=list)
    confidence_score: float = 0.5
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- Scheduler inputs ---


@dataclass
class TopicCounters:
    """Live counters of a topic as maintained by the participation subsystem"""
    topic_id: str
    response_count: int = Field(default=0, ge=0)
    participant_count: int = Field(default=0, ge=0)


@dataclass
class AnalysisSnapshot:
    """Counters and time recorded when the last analysis pass completed"""
    response_count: Annotated[int, Field(ge=0)]
    participant_count: Annotated[int, Field(ge=0)]
    created_at: datetime
