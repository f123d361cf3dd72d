"""Pattern synthesizer

Deterministic, I/O-free classification of a topic's propositions into:
1. Agreement zones - strong one-sided consensus
2. Misunderstandings - nuance dominates, participants read the claim differently
3. Genuine disagreements - both sides substantial and comparable, little nuance

Each proposition lands in at most one category, checked in that order.

Thresholds:
    MIN_PARTICIPATION                 3     fewer alignments => excluded everywhere
    AGREEMENT_THRESHOLD               0.70  effective agreement fraction (>=)
    MISUNDERSTANDING_NUANCE_THRESHOLD 0.60  nuanced share (>=)
    SIGNIFICANT_SIDE_THRESHOLD        0.25  support and oppose shares each (>=)
    COMPARABLE_SIDES_RATIO            0.50  smaller side / larger side (>=)
    LOW_NUANCE_THRESHOLD              0.30  nuanced share (<)

Nuanced explanations are grouped by stance keywords first, then split into
brief and detailed at the median word count (brief is strictly below it).
When neither yields two non-empty groups the nuanced count is halved.
"""

import statistics
from typing import List, Optional

from config import get_logger
from deliberation.aggregation import (
    calculate_agreement_percentage,
    compute_consensus_score,
    round_half_up,
    to_percentage,
)
from deliberation.divergence import build_viewpoints, calculate_polarization
from deliberation.models import (
    AgreementZone,
    DivergencePoint,
    Interpretation,
    Misunderstanding,
    Proposition,
    Stance,
    SynthesisResult,
    TopicData,
)

logger = get_logger(__name__).bind(component="synthesizer")

MIN_PARTICIPATION = 3
AGREEMENT_THRESHOLD = 0.70
MISUNDERSTANDING_NUANCE_THRESHOLD = 0.60
SIGNIFICANT_SIDE_THRESHOLD = 0.25
COMPARABLE_SIDES_RATIO = 0.50
LOW_NUANCE_THRESHOLD = 0.30

MAX_EVIDENCE = 3

SUPPORT_LEANING_LABEL = "Support with conditions or caveats"
OPPOSITION_LEANING_LABEL = "Opposition with exceptions"
CONTEXT_DEPENDENT_LABEL = "Context-dependent position"
BRIEF_LABEL = "Brief reservations without stated conditions"
DETAILED_LABEL = "Detailed conditional reasoning"
SCOPE_LABEL = "Reservations about scope"
APPLICATION_LABEL = "Reservations about application"


def effective_consensus(proposition: Proposition) -> float:
    """Stored consensus score, or ((support - oppose) / total + 1) / 2"""
    if proposition.consensus_score is not None:
        return float(proposition.consensus_score)
    return compute_consensus_score(
        proposition.support_count,
        proposition.oppose_count,
        proposition.nuanced_count,
        digits=None,
    )


class PatternSynthesizer:
    """Rule-based common-ground synthesis

    Stateless; one instance can be shared across topics and tasks.
    """

    def synthesize(self, topic_data: TopicData) -> SynthesisResult:
        considered = [
            p for p in topic_data.propositions
            if p.total_alignments >= MIN_PARTICIPATION
        ]

        agreement_zones: List[AgreementZone] = []
        misunderstandings: List[Misunderstanding] = []
        disagreements: List[DivergencePoint] = []

        for proposition in considered:
            zone = self._agreement_zone(proposition)
            if zone is not None:
                agreement_zones.append(zone)
                continue

            misunderstanding = self._misunderstanding(proposition)
            if misunderstanding is not None:
                misunderstandings.append(misunderstanding)
                continue

            disagreement = self._genuine_disagreement(proposition)
            if disagreement is not None:
                disagreements.append(disagreement)

        # sorted() is stable, ties keep input order
        agreement_zones = sorted(agreement_zones, key=lambda z: -z.agreement_percentage)

        result = SynthesisResult(
            agreement_zones=agreement_zones,
            misunderstandings=misunderstandings,
            genuine_disagreements=disagreements,
            overall_consensus_score=self._overall_consensus(considered),
        )

        logger.debug(
            "synthesized topic",
            topic_id=topic_data.topic_id,
            propositions=len(topic_data.propositions),
            considered=len(considered),
            agreement_zones=len(agreement_zones),
            misunderstandings=len(misunderstandings),
            genuine_disagreements=len(disagreements),
        )
        return result

    def _agreement_zone(self, proposition: Proposition) -> Optional[AgreementZone]:
        if proposition.consensus_score is not None:
            fraction = float(proposition.consensus_score)
            percentage = to_percentage(fraction)
        else:
            fraction = proposition.support_count / proposition.total_alignments
            percentage = calculate_agreement_percentage(
                proposition.support_count,
                proposition.oppose_count,
                proposition.nuanced_count,
            )

        if fraction < AGREEMENT_THRESHOLD:
            return None

        return AgreementZone(
            proposition=proposition.statement,
            agreement_percentage=percentage,
            supporting_evidence=proposition.explanations()[:MAX_EVIDENCE],
            participant_count=proposition.support_count,
        )

    def _misunderstanding(self, proposition: Proposition) -> Optional[Misunderstanding]:
        nuanced_share = proposition.nuanced_count / proposition.total_alignments
        if nuanced_share < MISUNDERSTANDING_NUANCE_THRESHOLD:
            return None

        interpretations = self._group_interpretations(proposition)
        return Misunderstanding(
            topic=proposition.statement,
            interpretations=interpretations,
            clarification=(
                f"This proposition has {proposition.nuanced_count} nuanced responses "
                f"spread across {len(interpretations)} distinct interpretations, "
                f"suggesting participants may interpret key terms differently."
            ),
        )

    def _group_interpretations(self, proposition: Proposition) -> List[Interpretation]:
        """At least two interpretation groups, falling back keyword -> length -> count split"""
        texts = proposition.explanations(Stance.NUANCED)

        keyword_groups = self._keyword_groups(texts)
        if len(keyword_groups) >= 2:
            return keyword_groups

        length_groups = self._length_groups(texts)
        if length_groups:
            return length_groups

        # Too little text to tell groups apart; split the nuanced count itself
        first = (proposition.nuanced_count + 1) // 2
        return [
            Interpretation(label=SCOPE_LABEL, participant_count=first),
            Interpretation(label=APPLICATION_LABEL, participant_count=proposition.nuanced_count - first),
        ]

    @staticmethod
    def _keyword_groups(texts: List[str]) -> List[Interpretation]:
        support = oppose = context = 0
        for text in texts:
            lowered = text.lower()
            mentions_support = "support" in lowered
            mentions_oppose = "oppose" in lowered
            if mentions_support:
                support += 1
            if mentions_oppose:
                oppose += 1
            if not mentions_support and not mentions_oppose:
                context += 1

        groups = [
            (SUPPORT_LEANING_LABEL, support),
            (OPPOSITION_LEANING_LABEL, oppose),
            (CONTEXT_DEPENDENT_LABEL, context),
        ]
        return [
            Interpretation(label=label, participant_count=count)
            for label, count in groups
            if count > 0
        ]

    @staticmethod
    def _length_groups(texts: List[str]) -> List[Interpretation]:
        """Split at the median word count; [] when either side would be empty"""
        if len(texts) < 2:
            return []
        word_counts = [len(text.split()) for text in texts]
        cutoff = statistics.median(word_counts)
        brief = sum(1 for count in word_counts if count < cutoff)
        if brief == 0 or brief == len(word_counts):
            return []
        return [
            Interpretation(label=BRIEF_LABEL, participant_count=brief),
            Interpretation(label=DETAILED_LABEL, participant_count=len(word_counts) - brief),
        ]

    def _genuine_disagreement(self, proposition: Proposition) -> Optional[DivergencePoint]:
        total = proposition.total_alignments
        support_pct = proposition.support_count / total
        oppose_pct = proposition.oppose_count / total
        nuanced_pct = proposition.nuanced_count / total

        if support_pct < SIGNIFICANT_SIDE_THRESHOLD or oppose_pct < SIGNIFICANT_SIDE_THRESHOLD:
            return None
        if min(support_pct, oppose_pct) / max(support_pct, oppose_pct) < COMPARABLE_SIDES_RATIO:
            return None
        if nuanced_pct >= LOW_NUANCE_THRESHOLD:
            return None

        return DivergencePoint(
            proposition=proposition.statement,
            proposition_id=proposition.id,
            viewpoints=build_viewpoints(proposition, with_placeholders=False),
            polarization_score=calculate_polarization(support_pct, oppose_pct),
            total_participants=total,
        )

    @staticmethod
    def _overall_consensus(considered: List[Proposition]) -> Optional[float]:
        if not considered:
            return None
        scores = [effective_consensus(p) for p in considered]
        return round_half_up(sum(scores) / len(scores))
