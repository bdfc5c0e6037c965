"""
Harmony score domain model.

The harmony score answers: "How balanced and how alive are my Mind, Body
and Soul practices right now?" It is deterministic and bounded to 0..100.
"""

from dataclasses import dataclass, asdict


@dataclass
class HarmonyScoreComponents:
    """Inputs and intermediate terms behind a harmony score."""

    mind_streak: int = 0
    body_streak: int = 0
    soul_streak: int = 0
    magnitude: float = 0.0  # sum of the three current streaks
    imbalance: float = 0.0  # max - min of the three current streaks
    raw: float = 0.0  # magnitude - weight * imbalance
    score: int = 0  # 0..100

    def validate(self) -> None:
        """Ensure all terms are in valid ranges."""
        assert self.magnitude >= 0.0, f"magnitude out of range: {self.magnitude}"
        assert self.imbalance >= 0.0, f"imbalance out of range: {self.imbalance}"
        assert self.imbalance <= self.magnitude, f"imbalance exceeds magnitude: {self.imbalance}"
        assert 0 <= self.score <= 100, f"score out of range: {self.score}"

    def to_dict(self) -> dict:
        """Serialize to dict."""
        return asdict(self)
