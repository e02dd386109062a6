from dataclasses import dataclass
from typing import Optional, Union

from .catalog import RANK_LADDER, RANK_ORDER, RANK_REQUIREMENTS, GuardianRank
from .errors import InvalidStatsError, require_count


@dataclass(frozen=True)
class RankProgress:
    next_rank: Optional[GuardianRank]
    verified_progress: float
    points_progress: float

    def to_dict(self):
        return {
            "next_rank": self.next_rank.value if self.next_rank else None,
            "verified_progress": self.verified_progress,
            "points_progress": self.points_progress,
        }


def _parse_rank(rank: Union[GuardianRank, str]) -> GuardianRank:
    try:
        return GuardianRank(rank)
    except ValueError:
        raise InvalidStatsError(f"Unknown guardian rank: {rank!r}")


def resolve_rank(verified_reports: int, points: int) -> GuardianRank:
    """
    Highest rank whose thresholds are both met.

    Thresholds are conjunctive: plenty of points with no verified reports
    still resolves to observer. Observer has zero thresholds, so the walk
    always ends there at worst.
    """
    verified_reports = require_count("verified_reports", verified_reports)
    points = require_count("points", points)

    for requirement in reversed(RANK_LADDER):
        if (verified_reports >= requirement.min_verified_reports
                and points >= requirement.min_points):
            return requirement.rank
    return GuardianRank.OBSERVER


def next_rank(rank: Union[GuardianRank, str]) -> Optional[GuardianRank]:
    """Rank directly above, None at the top of the ladder."""
    rank = _parse_rank(rank)
    index = RANK_ORDER.index(rank)
    if index == len(RANK_ORDER) - 1:
        return None
    return RANK_ORDER[index + 1]


def rank_progress(
    rank: Union[GuardianRank, str],
    verified_reports: int,
    points: int,
) -> RankProgress:
    """
    Progress toward the rank directly above the given one, in percent.

    Diamond is terminal: no next rank and both progress values are 100.
    """
    verified_reports = require_count("verified_reports", verified_reports)
    points = require_count("points", points)

    upcoming = next_rank(rank)
    if upcoming is None:
        return RankProgress(next_rank=None, verified_progress=100.0, points_progress=100.0)

    requirement = RANK_REQUIREMENTS[upcoming]
    verified_progress = min(100.0, (verified_reports / requirement.min_verified_reports) * 100)
    points_progress = min(100.0, (points / requirement.min_points) * 100)

    return RankProgress(
        next_rank=upcoming,
        verified_progress=verified_progress,
        points_progress=points_progress,
    )


def is_promotion(
    previous: Union[GuardianRank, str],
    current: Union[GuardianRank, str],
) -> bool:
    """True if current sits strictly higher on the ladder than previous."""
    return _parse_rank(current).level > _parse_rank(previous).level
