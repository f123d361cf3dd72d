"""Deliberation module - common-ground analytics over proposition alignments

Turns support/oppose/nuanced alignments into:
- Agreement zones, misunderstandings and genuine disagreements
- Divergence points with polarization scores
- Bridging suggestions across opposed camps
- Threshold-based recompute decisions
"""

from deliberation.bridging import BridgingSuggester
from deliberation.detector import CommonGroundDetector
from deliberation.divergence import analyze_topic as analyze_divergence
from deliberation.synthesizer import PatternSynthesizer
from deliberation.trigger import RecomputeTrigger, should_trigger

__all__ = [
    "BridgingSuggester",
    "CommonGroundDetector",
    "PatternSynthesizer",
    "RecomputeTrigger",
    "analyze_divergence",
    "should_trigger",
]
