"""Rank table: cumulative-attendance tiers with permanent point boosts.

Ranks are keyed off connected days (lifetime check-ins), so a broken streak
never costs a rank. The table is kept in declared order and never re-sorted
by boost.
"""

from collections.abc import Sequence

from schemas import RankTier
from services.checkin_errors import InvalidConfigurationError

RANK_TABLE: tuple[RankTier, ...] = (
    RankTier(key="rookie", symbol="⭐", name="Rookie", threshold=10, boost_fraction=0.05),
    RankTier(key="regular", symbol="🌟", name="Regular", threshold=20, boost_fraction=0.10),
    RankTier(key="devoted", symbol="💫", name="Devoted", threshold=30, boost_fraction=0.20),
    RankTier(key="veteran", symbol="🌠", name="Veteran", threshold=60, boost_fraction=0.25),
    RankTier(key="legend", symbol="👑", name="Legend", threshold=100, boost_fraction=0.30),
)


def validate_rank_table(tiers: Sequence[RankTier]) -> None:
    """Raises InvalidConfigurationError for duplicate keys, non-increasing
    thresholds, or boosts outside [0, 1)."""
    keys = [tier.key for tier in tiers]
    if len(set(keys)) != len(keys):
        raise InvalidConfigurationError(f"Duplicate rank keys: {keys}")

    thresholds = [tier.threshold for tier in tiers]
    if any(b <= a for a, b in zip(thresholds, thresholds[1:], strict=False)):
        raise InvalidConfigurationError(
            f"Rank thresholds must be strictly increasing, got {thresholds}"
        )

    for tier in tiers:
        if not 0 <= tier.boost_fraction < 1:
            raise InvalidConfigurationError(
                f"Rank {tier.key!r} boost must be in [0, 1), got {tier.boost_fraction}"
            )


validate_rank_table(RANK_TABLE)


def rank_for_attendance(
    connected_days: int, tiers: Sequence[RankTier] = RANK_TABLE
) -> RankTier | None:
    """Tier with the largest threshold <= connected_days, or None."""
    current: RankTier | None = None
    for tier in tiers:
        if tier.threshold <= connected_days:
            current = tier
        else:
            break
    return current


def next_rank(
    connected_days: int, tiers: Sequence[RankTier] = RANK_TABLE
) -> RankTier | None:
    """Tier with the smallest threshold > connected_days, or None if all are met."""
    for tier in tiers:
        if tier.threshold > connected_days:
            return tier
    return None


def get_rank(key: str) -> RankTier | None:
    for tier in RANK_TABLE:
        if tier.key == key:
            return tier
    return None
