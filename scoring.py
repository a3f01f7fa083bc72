"""Scoring rules for captures, rallies and the Moment of the Game.

All functions here are pure. Multipliers are kept as ``Decimal`` so products
like 1.5 x 2.5 stay exact before rounding, and rounding is half-up.
"""

from __future__ import annotations

import enum
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType


BASE_CAPTURE_POINTS = 10
RALLIES_PER_GAME = 12
RALLY_VOTER_POINTS = 2
MOMENT_OF_GAME_BASE = 100


class Significance(str, enum.Enum):
    REGULAR = "REGULAR"
    CONFERENCE = "CONFERENCE"
    RIVALRY = "RIVALRY"
    POSTSEASON = "POSTSEASON"
    CHAMPIONSHIP = "CHAMPIONSHIP"


class EventStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"


class MomentType(str, enum.Enum):
    STANDARD = "STANDARD"
    SPONSORED = "SPONSORED"
    EMOTIONAL = "EMOTIONAL"
    HISTORIC = "HISTORIC"


SIGNIFICANCE_MULTIPLIERS = MappingProxyType(
    {
        Significance.REGULAR: Decimal("1"),
        Significance.CONFERENCE: Decimal("1.5"),
        Significance.RIVALRY: Decimal("2"),
        Significance.POSTSEASON: Decimal("2.5"),
        Significance.CHAMPIONSHIP: Decimal("3"),
    }
)

MOMENT_MULTIPLIERS = MappingProxyType(
    {
        MomentType.STANDARD: Decimal("1"),
        MomentType.SPONSORED: Decimal("2.5"),
        MomentType.EMOTIONAL: Decimal("2"),
        MomentType.HISTORIC: Decimal("4"),
    }
)


def parse_moment_type(value: object) -> MomentType:
    """Return the moment type named by ``value``, or STANDARD for anything else."""
    if isinstance(value, MomentType):
        return value
    try:
        return MomentType(value)
    except (TypeError, ValueError):
        return MomentType.STANDARD


def significance_multiplier(significance: Significance | str) -> Decimal:
    return SIGNIFICANCE_MULTIPLIERS[Significance(significance)]


def moment_multiplier(moment_type: MomentType | str) -> Decimal:
    return MOMENT_MULTIPLIERS[MomentType(moment_type)]


def round_points(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rally_bonus(rally_count: int) -> int:
    """Diminishing-returns bonus: 5 per rally up to 10, then 2 up to 50, then 1."""
    if rally_count < 0:
        raise ValueError(f"rally_count must be >= 0, got {rally_count}")
    if rally_count <= 10:
        return rally_count * 5
    if rally_count <= 50:
        return 50 + (rally_count - 10) * 2
    return 130 + (rally_count - 50)


def base_points(significance: Significance | str, moment_type: MomentType | str) -> int:
    return round_points(
        BASE_CAPTURE_POINTS * significance_multiplier(significance) * moment_multiplier(moment_type)
    )


def total_points(
    rally_count: int,
    significance: Significance | str,
    moment_type: MomentType | str,
    base: int = BASE_CAPTURE_POINTS,
) -> int:
    """Score of a capture after ``rally_count`` rallies.

    The multipliers are applied to ``base + rally_bonus``, where ``base`` is the
    flat capture constant and not the capture's stored ``base_points``.
    """
    return round_points(
        (base + rally_bonus(rally_count))
        * significance_multiplier(significance)
        * moment_multiplier(moment_type)
    )


def moment_of_game_bonus(significance: Significance | str) -> int:
    return round_points(MOMENT_OF_GAME_BASE * significance_multiplier(significance))
