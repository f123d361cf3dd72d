"""Alignment aggregation

Turns raw alignments into the per-proposition counters and consensus score the
rest of the engine classifies on.
"""

import math
from typing import Iterable, NamedTuple, Optional

from deliberation.models import Alignment, Stance


def round_half_up(value: float, digits: int = 2) -> float:
    """Round with halves going up (62.5 -> 63), unlike round()'s half-to-even"""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def to_percentage(fraction: float) -> int:
    """Whole-number percentage of a 0-1 fraction, halves rounded up"""
    return int(round_half_up(fraction * 100, 0))


class AlignmentTally(NamedTuple):
    support: int
    oppose: int
    nuanced: int
    consensus_score: Optional[float]

    @property
    def total(self) -> int:
        return self.support + self.oppose + self.nuanced


def compute_consensus_score(
    support: int,
    oppose: int,
    nuanced: int,
    digits: Optional[int] = 2,
) -> Optional[float]:
    """Normalized agreement in [0, 1]: ((support - oppose) / total + 1) / 2

    Returns None when there are no alignments. digits=None skips rounding.
    """
    total = support + oppose + nuanced
    if total == 0:
        return None
    score = ((support - oppose) / total + 1) / 2
    return score if digits is None else round_half_up(score, digits)


def calculate_agreement_percentage(support: int, oppose: int, nuanced: int) -> Optional[int]:
    total = support + oppose + nuanced
    if total == 0:
        return None
    return to_percentage(support / total)


def tally_alignments(alignments: Iterable[Alignment]) -> AlignmentTally:
    support = oppose = nuanced = 0
    for alignment in alignments:
        if alignment.stance == Stance.SUPPORT:
            support += 1
        elif alignment.stance == Stance.OPPOSE:
            oppose += 1
        else:
            nuanced += 1

    return AlignmentTally(
        support=support,
        oppose=oppose,
        nuanced=nuanced,
        consensus_score=compute_consensus_score(support, oppose, nuanced),
    )
