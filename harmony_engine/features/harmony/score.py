"""
Harmony Score Calculator

Pure, deterministic computation of the harmony score from the three
category streaks. No external calls, no randomness, no side effects.

Scoring:
- magnitude = mind + body + soul current streaks
- imbalance = max - min of the same three streaks
- raw = magnitude - BALANCE_WEIGHT * imbalance
- score = 100 * (1 - e^(-raw / SCALE_DAYS)), rounded, 0 when raw <= 0

With 0 <= BALANCE_WEIGHT <= 1, one more day in any single category adds
1 to the magnitude and at most 1 to the imbalance, so raw never drops.
At a fixed magnitude a wider imbalance always lowers raw. The saturating
curve keeps both properties and bounds the result to 0..100.
"""

import math
from typing import Mapping, Optional

from harmony_engine.core.config import settings
from harmony_engine.models.harmony import HarmonyScoreComponents
from harmony_engine.models.progress import Category
from harmony_engine.models.streak import CategoryStreak


DEFAULT_SCALE_DAYS = 21.0


def _configured_weight() -> float:
    # validate_config reports out-of-range values; scoring clamps them
    return min(1.0, max(0.0, float(settings.HARMONY_BALANCE_WEIGHT)))


def _configured_scale() -> float:
    scale = float(settings.HARMONY_SCALE_DAYS)
    return scale if scale > 0 else DEFAULT_SCALE_DAYS


class HarmonyScoreCalculator:
    """Pure deterministic harmony scoring."""

    MIN_SCORE = 0
    MAX_SCORE = 100

    @staticmethod
    def compute_components(
        mind: int,
        body: int,
        soul: int,
        balance_weight: Optional[float] = None,
        scale_days: Optional[float] = None,
    ) -> HarmonyScoreComponents:
        """
        Compute the score breakdown from raw current-streak values.

        Args:
            mind: Mind current streak (days)
            body: Body current streak (days)
            soul: Soul current streak (days)
            balance_weight: Imbalance penalty per day of spread (0..1)
            scale_days: Raw value at which the score reaches ~63

        Returns:
            HarmonyScoreComponents with the final score filled in
        """
        weight = _configured_weight() if balance_weight is None else balance_weight
        scale = _configured_scale() if scale_days is None else scale_days
        if not 0.0 <= weight <= 1.0:
            raise ValueError(f"balance_weight must be within 0..1, got {weight}")
        if scale <= 0:
            raise ValueError(f"scale_days must be positive, got {scale}")

        values = [max(0, int(mind)), max(0, int(body)), max(0, int(soul))]
        magnitude = float(sum(values))
        imbalance = float(max(values) - min(values))
        raw = magnitude - weight * imbalance

        components = HarmonyScoreComponents(
            mind_streak=values[0],
            body_streak=values[1],
            soul_streak=values[2],
            magnitude=magnitude,
            imbalance=imbalance,
            raw=raw,
            score=HarmonyScoreCalculator._curve(raw, scale),
        )
        components.validate()
        return components

    @staticmethod
    def _curve(raw: float, scale: float) -> int:
        if raw <= 0:
            return HarmonyScoreCalculator.MIN_SCORE
        score = round(100.0 * (1.0 - math.exp(-raw / scale)))
        return max(HarmonyScoreCalculator.MIN_SCORE, min(HarmonyScoreCalculator.MAX_SCORE, score))


def compute_harmony_score(
    category_streaks: Mapping[Category, CategoryStreak],
    balance_weight: Optional[float] = None,
    scale_days: Optional[float] = None,
) -> int:
    """Harmony score (0..100) from per-category current streaks."""

    def current(category: Category) -> int:
        streak = category_streaks.get(category)
        return streak.current_streak if streak else 0

    components = HarmonyScoreCalculator.compute_components(
        current(Category.MIND),
        current(Category.BODY),
        current(Category.SOUL),
        balance_weight=balance_weight,
        scale_days=scale_days,
    )
    return components.score
