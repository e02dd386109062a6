"""
Leaderboard ranking and activity-log aggregation.

Ordering is score descending, then user id ascending, so equal scores
always come out in the same order and pages stay stable between requests.
Positions are 1-based and positional: two users on 100 points are #1 and #2.
"""
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, List, Optional, Union

from .catalog import ActivityType, GuardianRank
from .errors import InvalidStatsError


class LeaderboardPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class LeaderboardCategory(str, Enum):
    POINTS = "points"
    REPORTS = "reports"
    VERIFIED = "verified"
    ENFORCEMENT = "enforcement"


PERIOD_WINDOWS: Dict[LeaderboardPeriod, Optional[timedelta]] = {
    LeaderboardPeriod.WEEKLY: timedelta(days=7),
    LeaderboardPeriod.MONTHLY: timedelta(days=30),
    LeaderboardPeriod.ALL_TIME: None,
}

# Activity counted per category; points sums points_earned over every activity
CATEGORY_ACTIVITIES: Dict[LeaderboardCategory, Optional[ActivityType]] = {
    LeaderboardCategory.POINTS: None,
    LeaderboardCategory.REPORTS: ActivityType.REPORT_SUBMITTED,
    LeaderboardCategory.VERIFIED: ActivityType.REPORT_VERIFIED,
    LeaderboardCategory.ENFORCEMENT: ActivityType.ENFORCEMENT_TRIGGERED,
}

# Cumulative profile counter holding the same quantity
CATEGORY_COUNTERS: Dict[LeaderboardCategory, str] = {
    LeaderboardCategory.POINTS: "points",
    LeaderboardCategory.REPORTS: "reports_submitted",
    LeaderboardCategory.VERIFIED: "reports_verified",
    LeaderboardCategory.ENFORCEMENT: "enforcement_actions",
}


@dataclass(frozen=True)
class LeaderboardCandidate:
    user_id: Hashable
    display_name: str
    score: Union[int, float]
    guardian_rank: GuardianRank = GuardianRank.OBSERVER
    region: Optional[str] = None
    show_on_leaderboard: bool = True


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: Hashable
    display_name: str
    guardian_rank: GuardianRank
    score: Union[int, float]
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "guardian_rank": GuardianRank(self.guardian_rank).value,
            "score": self.score,
            "region": self.region,
        }


def _check_score(candidate: LeaderboardCandidate):
    score = candidate.score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise InvalidStatsError(f"Score for {candidate.user_id} must be numeric, got {score!r}")
    if isinstance(score, float) and math.isnan(score):
        raise InvalidStatsError(f"Score for {candidate.user_id} is NaN")
    if score < 0:
        raise InvalidStatsError(f"Score for {candidate.user_id} must be >= 0, got {score}")


def rank_entries(
    candidates: Iterable[LeaderboardCandidate],
    limit: Optional[int] = None,
) -> List[LeaderboardEntry]:
    """
    Number an already filtered collection of candidates.

    Opted-out users and zero scores are dropped; the leaderboard only lists
    users who contributed in the selected category.
    """
    eligible = []
    for candidate in candidates:
        _check_score(candidate)
        if candidate.show_on_leaderboard and candidate.score > 0:
            eligible.append(candidate)

    eligible.sort(key=lambda c: (-c.score, c.user_id))
    if limit is not None:
        eligible = eligible[:limit]

    return [
        LeaderboardEntry(
            rank=position,
            user_id=candidate.user_id,
            display_name=candidate.display_name,
            guardian_rank=candidate.guardian_rank,
            score=candidate.score,
            region=candidate.region,
        )
        for position, candidate in enumerate(eligible, 1)
    ]


def window_start(
    period: Union[LeaderboardPeriod, str],
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """Start of the trailing window for a period, None for all time."""
    window = PERIOD_WINDOWS[LeaderboardPeriod(period)]
    if window is None:
        return None
    return (now or datetime.utcnow()) - window


def aggregate_scores(
    activities: Iterable[Any],
    category: Union[LeaderboardCategory, str],
    since: Optional[datetime] = None,
) -> Dict[Hashable, int]:
    """
    Per-user scores from activity records (user_id, activity_type,
    points_earned, created_at attributes).
    """
    category = LeaderboardCategory(category)
    counted_type = CATEGORY_ACTIVITIES[category]
    scores: Dict[Hashable, int] = defaultdict(int)

    for activity in activities:
        if since is not None and activity.created_at < since:
            continue
        if counted_type is None:
            scores[activity.user_id] += activity.points_earned or 0
        elif ActivityType(activity.activity_type) == counted_type:
            scores[activity.user_id] += 1

    return dict(scores)


def activity_streak(activity_dates: Iterable[Union[date, datetime]], today: date) -> int:
    """
    Consecutive days with activity, ending at the latest active day.

    The streak is already broken (0) when the latest active day is older
    than yesterday.
    """
    days = {d.date() if isinstance(d, datetime) else d for d in activity_dates}
    if not days:
        return 0

    latest = max(days)
    if (today - latest).days > 1:
        return 0

    streak = 0
    cursor = latest
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak
