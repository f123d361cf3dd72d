"""Bridging suggestions

Reads a topic's propositions through the store and proposes reframings for
every proposition where perspectives differ (support and opposition both
present, or any nuance), plus conflict and common-ground summaries.
"""

import random
from typing import List, Optional

from config import get_logger
from deliberation.aggregation import round_half_up
from deliberation.models import (
    BridgingSuggestion,
    BridgingSuggestionResult,
    Proposition,
    Stance,
)
from deliberation.protocols import CommonGroundStore

logger = get_logger(__name__).bind(component="bridging")

NEUTRAL_CONFIDENCE = 0.5
COMMON_GROUND_CONSENSUS_THRESHOLD = 0.7
AREA_STATEMENT_LIMIT = 100
BRIDGING_EXCERPT_LIMIT = 50

EMPTY_TOPIC_REASONING = (
    "No propositions found for this topic. Bridging suggestions require active "
    "discussion with multiple viewpoints."
)
RULE_BASED_CAVEAT = (
    "Note: This is a rule-based analysis of alignment counts. Semantic analysis "
    "of the explanations can surface more specific bridging language."
)
NUANCED_COMMON_GROUND = (
    "The nuanced perspectives suggest there may be shared concerns or values "
    "that transcend simple support/oppose positions."
)
POLAR_COMMON_GROUND = (
    "Both positions likely share fundamental values or goals, even if they "
    "disagree on this specific approach."
)

BRIDGING_TEMPLATES = (
    'While there are different views on "{excerpt}...", both perspectives share concerns about...',
    "Consider how those who {source} and those who {target} this idea might find common ground in...",
    "Rather than viewing this as {source} vs {target}, we could explore the underlying values both sides care about...",
    "This disagreement may stem from different priorities rather than fundamentally opposed values. What if we focused on...",
)


def _volume_bonus(count: int) -> float:
    if count >= 10:
        return 0.2
    if count >= 5:
        return 0.1
    return 0.0


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


class BridgingSuggester:
    """Rule-based bridging suggestions for one topic at a time

    Template phrasing is drawn from an injectable random.Random; pass a seeded
    instance for reproducible output.
    """

    def __init__(self, store: CommonGroundStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    async def suggest(self, topic_id: str) -> BridgingSuggestionResult:
        propositions = await self.store.get_propositions(topic_id)
        result = self.build(propositions)
        logger.debug(
            "generated bridging suggestions",
            topic_id=topic_id,
            propositions=len(propositions),
            suggestions=len(result.suggestions),
        )
        return result

    def build(self, propositions: List[Proposition]) -> BridgingSuggestionResult:
        if not propositions:
            return BridgingSuggestionResult(
                confidence_score=NEUTRAL_CONFIDENCE,
                reasoning=EMPTY_TOPIC_REASONING,
            )

        suggestions: List[BridgingSuggestion] = []
        conflict_areas: List[str] = []
        common_ground_areas: List[str] = []
        consensus_scores: List[float] = []

        for proposition in propositions:
            if proposition.consensus_score is not None:
                consensus_scores.append(float(proposition.consensus_score))

            contested = proposition.support_count > 0 and proposition.oppose_count > 0
            if contested or proposition.nuanced_count > 0:
                suggestions.append(self._suggestion_for(proposition))
                if contested:
                    conflict_areas.append(proposition.statement[:AREA_STATEMENT_LIMIT])

            if (
                proposition.consensus_score is not None
                and proposition.consensus_score > COMMON_GROUND_CONSENSUS_THRESHOLD
            ):
                common_ground_areas.append(proposition.statement[:AREA_STATEMENT_LIMIT])

        overall_consensus = (
            round_half_up(sum(consensus_scores) / len(consensus_scores)) if consensus_scores else 0.0
        )

        return BridgingSuggestionResult(
            suggestions=suggestions,
            overall_consensus_score=overall_consensus,
            conflict_areas=conflict_areas,
            common_ground_areas=common_ground_areas,
            confidence_score=self._overall_confidence(len(propositions), len(suggestions)),
            reasoning=self._reasoning(
                len(propositions),
                len(suggestions),
                overall_consensus,
                len(conflict_areas),
                len(common_ground_areas),
            ),
        )

    def _suggestion_for(self, proposition: Proposition) -> BridgingSuggestion:
        source, target = Stance.SUPPORT, Stance.OPPOSE
        if proposition.oppose_count > proposition.support_count:
            source, target = Stance.OPPOSE, Stance.SUPPORT

        # Nuanced participants are the natural bridge
        if proposition.nuanced_count > 0:
            target = Stance.NUANCED

        template = self.rng.choice(BRIDGING_TEMPLATES)
        bridging_language = template.format(
            excerpt=proposition.statement[:BRIDGING_EXCERPT_LIMIT],
            source=source.value.lower(),
            target=target.value.lower(),
        )

        confidence = NEUTRAL_CONFIDENCE + _volume_bonus(proposition.total_alignments)
        if proposition.nuanced_count > 0:
            confidence += 0.15

        return BridgingSuggestion(
            proposition_id=proposition.id,
            source_position=source,
            target_position=target,
            bridging_language=bridging_language,
            common_ground=NUANCED_COMMON_GROUND if proposition.nuanced_count > 0 else POLAR_COMMON_GROUND,
            reasoning=(
                f"This proposition has {proposition.support_count} supporters, "
                f"{proposition.oppose_count} opponents, and {proposition.nuanced_count} nuanced views. "
                f"Bridging these perspectives could help find shared values."
            ),
            confidence_score=round_half_up(min(confidence, 1.0)),
        )

    @staticmethod
    def _overall_confidence(proposition_count: int, suggestion_count: int) -> float:
        confidence = NEUTRAL_CONFIDENCE + _volume_bonus(proposition_count)
        if suggestion_count > 0:
            confidence += 0.15
        return round_half_up(min(confidence, 1.0))

    @staticmethod
    def _reasoning(
        proposition_count: int,
        suggestion_count: int,
        consensus_score: float,
        conflict_count: int,
        common_ground_count: int,
    ) -> str:
        parts = [
            f"Analyzed {proposition_count} {_plural(proposition_count, 'proposition', 'propositions')} from this topic."
        ]

        if suggestion_count > 0:
            parts.append(
                f"Found {suggestion_count} bridging {_plural(suggestion_count, 'opportunity', 'opportunities')} "
                f"where different perspectives could be connected."
            )
        if conflict_count > 0:
            parts.append(
                f"Identified {conflict_count} {_plural(conflict_count, 'area', 'areas')} of disagreement "
                f"that could benefit from bridging dialogue."
            )
        if common_ground_count > 0:
            parts.append(
                f"Found {common_ground_count} {_plural(common_ground_count, 'area', 'areas')} "
                f"of common ground with high consensus."
            )
        if consensus_score > 0:
            if consensus_score > 0.7:
                level = "high"
            elif consensus_score > 0.4:
                level = "moderate"
            else:
                level = "low"
            parts.append(f"Overall consensus level is {level} ({consensus_score * 100:.0f}%).")

        parts.append(RULE_BASED_CAVEAT)
        return " ".join(parts)
