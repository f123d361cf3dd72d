"""Divergence scoring

Identifies propositions where participants hold clearly understood but
opposing positions, and scores how evenly they are split.

Scoring:
1. Skip propositions with fewer than MIN_PARTICIPANTS alignments
2. Qualify when both sides reach SIGNIFICANT_VIEWPOINT_THRESHOLD and nuance
   stays below MAX_NUANCE_FOR_DIVERGENCE (heavy nuance reads as
   misunderstanding, not disagreement)
3. Polarization = normalized Gini impurity over support/oppose shares
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from config import get_logger
from deliberation.aggregation import round_half_up, to_percentage
from deliberation.models import (
    DivergenceAnalysis,
    DivergencePoint,
    Proposition,
    Stance,
    Viewpoint,
)

logger = get_logger(__name__).bind(component="divergence")

MIN_PARTICIPANTS = 3
SIGNIFICANT_VIEWPOINT_THRESHOLD = 0.2
MAX_NUANCE_FOR_DIVERGENCE = 0.4
MAX_REASONING_EXCERPTS = 3

# Maximum two-way impurity, reached at an exact 50/50 split
_MAX_IMPURITY = 0.5

SUPPORT_PLACEHOLDER = "Supports this proposition"
OPPOSE_PLACEHOLDER = "Opposes this proposition"


def calculate_polarization(support_pct: float, oppose_pct: float) -> float:
    """Polarization in [0, 1]: 1.0 at an even split, near 0 when one side dominates

    Clamped at 1.0; with a nuanced share present the raw impurity over two
    components can exceed the 50/50 maximum.
    """
    impurity = 1 - (support_pct ** 2 + oppose_pct ** 2)
    return round_half_up(min(impurity / _MAX_IMPURITY, 1.0))


def build_viewpoints(proposition: Proposition, with_placeholders: bool = True) -> List[Viewpoint]:
    """Support and Oppose viewpoints for every side with at least one alignment"""
    total = proposition.total_alignments
    sides = (
        ("Support", Stance.SUPPORT, proposition.support_count, SUPPORT_PLACEHOLDER),
        ("Oppose", Stance.OPPOSE, proposition.oppose_count, OPPOSE_PLACEHOLDER),
    )

    viewpoints = []
    for position, stance, count, placeholder in sides:
        if count == 0:
            continue
        reasoning = proposition.explanations(stance)[:MAX_REASONING_EXCERPTS]
        if not reasoning and with_placeholders:
            reasoning = [placeholder]
        viewpoints.append(Viewpoint(
            position=position,
            participant_count=count,
            percentage=to_percentage(count / total) if total else 0,
            reasoning=reasoning,
        ))
    return viewpoints


def score_proposition(proposition: Proposition) -> Optional[DivergencePoint]:
    """Divergence point for one proposition, or None if it does not qualify"""
    total = proposition.total_alignments
    if total < MIN_PARTICIPANTS:
        return None

    support_pct = proposition.support_count / total
    oppose_pct = proposition.oppose_count / total
    nuanced_pct = proposition.nuanced_count / total

    if (
        support_pct < SIGNIFICANT_VIEWPOINT_THRESHOLD
        or oppose_pct < SIGNIFICANT_VIEWPOINT_THRESHOLD
        or nuanced_pct >= MAX_NUANCE_FOR_DIVERGENCE
    ):
        return None

    return DivergencePoint(
        proposition=proposition.statement,
        proposition_id=proposition.id,
        viewpoints=build_viewpoints(proposition),
        polarization_score=calculate_polarization(support_pct, oppose_pct),
        total_participants=total,
    )


def calculate_overall_polarization(points: List[DivergencePoint]) -> float:
    """Participant-weighted mean polarization; 0 when nothing qualified"""
    total_weight = sum(point.total_participants for point in points)
    if not points or total_weight == 0:
        return 0.0

    weighted_sum = sum(point.polarization_score * point.total_participants for point in points)
    return round_half_up(weighted_sum / total_weight)


def count_unique_participants(propositions: Iterable[Proposition]) -> int:
    """Distinct user ids across every proposition's alignments"""
    return len({
        alignment.user_id
        for proposition in propositions
        for alignment in proposition.alignments
    })


def analyze_topic(topic_id: str, propositions: List[Proposition]) -> DivergenceAnalysis:
    points = [
        point for point in (score_proposition(p) for p in propositions)
        if point is not None
    ]

    logger.debug("identified divergence points", topic_id=topic_id, count=len(points))

    return DivergenceAnalysis(
        topic_id=topic_id,
        divergence_points=points,
        overall_polarization=calculate_overall_polarization(points),
        participant_count=count_unique_participants(propositions),
        analyzed_at=datetime.now(timezone.utc),
    )
