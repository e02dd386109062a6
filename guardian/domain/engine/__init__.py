"""
Guardian reputation engine.

Pure functions over the static tables in catalog: point scoring, badge
evaluation, rank resolution, impact estimates and leaderboard ranking.
Nothing in this package touches the database; callers persist the results.
"""
from .catalog import (
    ACTIVITY_COUNTERS,
    ACTIVITY_POINTS,
    BADGES,
    ENFORCEMENT_OUTCOMES,
    OUTCOME_WEIGHTS,
    RANK_BENEFITS,
    RANK_LADDER,
    RANK_ORDER,
    RANK_REQUIREMENTS,
    ActivityType,
    Badge,
    GuardianRank,
    OutcomeType,
    RankRequirement,
    rank_benefits,
)
from .errors import (
    GuardianError,
    InvalidStatsError,
    UnknownActivityTypeError,
    UnknownBadgeError,
    UnknownOutcomeTypeError,
)
from .scoring import (
    ScoredActivity,
    activity_message,
    format_points,
    outcome_impact,
    parse_activity_type,
    parse_outcome_type,
    score,
    score_activity,
)
from .badges import UserStatsSnapshot, badge_progress, evaluate
from .ranks import RankProgress, is_promotion, next_rank, rank_progress, resolve_rank
from .impact import EnvironmentalImpact, OutcomeTally, aggregate_impact, tally_outcomes
from .leaderboard import (
    LeaderboardCandidate,
    LeaderboardCategory,
    LeaderboardEntry,
    LeaderboardPeriod,
    activity_streak,
    aggregate_scores,
    rank_entries,
    window_start,
)
