"""
Static tables for the Guardian reputation system.

These values are shown to users (rank badges, point totals, impact scores),
so changing any of them changes what existing guardians see. Treat them as
a compatibility contract.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

# ============================================================================
# GUARDIAN RANKS
# ============================================================================


class GuardianRank(str, Enum):
    OBSERVER = "observer"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    DIAMOND = "diamond"

    @property
    def level(self) -> int:
        """Position on the ladder, observer = 0."""
        return RANK_ORDER.index(self)


# Lowest to highest
RANK_ORDER: List[GuardianRank] = [
    GuardianRank.OBSERVER,
    GuardianRank.BRONZE,
    GuardianRank.SILVER,
    GuardianRank.GOLD,
    GuardianRank.DIAMOND,
]


@dataclass(frozen=True)
class RankRequirement:
    """Both thresholds must be met to hold the rank."""
    rank: GuardianRank
    min_verified_reports: int
    min_points: int


RANK_LADDER: Tuple[RankRequirement, ...] = (
    RankRequirement(GuardianRank.OBSERVER, 0, 0),
    RankRequirement(GuardianRank.BRONZE, 5, 50),
    RankRequirement(GuardianRank.SILVER, 20, 200),
    RankRequirement(GuardianRank.GOLD, 50, 500),
    RankRequirement(GuardianRank.DIAMOND, 100, 1000),
)

RANK_REQUIREMENTS: Dict[GuardianRank, RankRequirement] = {
    requirement.rank: requirement for requirement in RANK_LADDER
}

RANK_BENEFITS: Dict[GuardianRank, List[str]] = {
    GuardianRank.OBSERVER: ["Basic reporting"],
    GuardianRank.BRONZE: ["Priority support", "Bronze badge"],
    GuardianRank.SILVER: ["Monthly recognition", "Direct moderator contact"],
    GuardianRank.GOLD: ["EPA contact line", "Featured reporter status"],
    GuardianRank.DIAMOND: ["Official partnership", "Training opportunities", "Advisory role"],
}


def rank_benefits(rank: GuardianRank) -> List[str]:
    return list(RANK_BENEFITS[GuardianRank(rank)])


# ============================================================================
# ACTIVITY POINTS
# ============================================================================


class ActivityType(str, Enum):
    REPORT_SUBMITTED = "report_submitted"
    REPORT_VERIFIED = "report_verified"
    REPORT_REJECTED = "report_rejected"
    ENFORCEMENT_TRIGGERED = "enforcement_triggered"
    BADGE_EARNED = "badge_earned"
    RANK_PROMOTED = "rank_promoted"
    COMMENT_ADDED = "comment_added"
    EVIDENCE_UPLOADED = "evidence_uploaded"
    ALERT_SUBSCRIPTION = "alert_subscription"


ACTIVITY_POINTS: Dict[ActivityType, int] = {
    ActivityType.REPORT_SUBMITTED: 5,
    ActivityType.REPORT_VERIFIED: 15,
    ActivityType.REPORT_REJECTED: 0,  # not penalized, only unrewarded
    ActivityType.ENFORCEMENT_TRIGGERED: 50,
    ActivityType.BADGE_EARNED: 0,  # badge points are credited with the badge
    ActivityType.RANK_PROMOTED: 25,
    ActivityType.COMMENT_ADDED: 2,
    ActivityType.EVIDENCE_UPLOADED: 5,
    ActivityType.ALERT_SUBSCRIPTION: 3,
}

# Activities that bump one of the cumulative profile counters
ACTIVITY_COUNTERS: Dict[ActivityType, str] = {
    ActivityType.REPORT_SUBMITTED: "reports_submitted",
    ActivityType.REPORT_VERIFIED: "reports_verified",
    ActivityType.ENFORCEMENT_TRIGGERED: "enforcement_actions",
}


# ============================================================================
# OUTCOME WEIGHTS
# ============================================================================


class OutcomeType(str, Enum):
    INVESTIGATION_OPENED = "investigation_opened"
    SITE_VISIT_CONDUCTED = "site_visit_conducted"
    WARNING_ISSUED = "warning_issued"
    EQUIPMENT_SEIZED = "equipment_seized"
    SITE_CLOSED = "site_closed"
    ARRESTS_MADE = "arrests_made"
    REMEDIATION_STARTED = "remediation_started"
    REMEDIATION_COMPLETED = "remediation_completed"
    CASE_DISMISSED = "case_dismissed"


OUTCOME_WEIGHTS: Dict[OutcomeType, float] = {
    OutcomeType.INVESTIGATION_OPENED: 1.0,
    OutcomeType.SITE_VISIT_CONDUCTED: 2.0,
    OutcomeType.WARNING_ISSUED: 2.5,
    OutcomeType.EQUIPMENT_SEIZED: 4.0,
    OutcomeType.SITE_CLOSED: 5.0,
    OutcomeType.ARRESTS_MADE: 5.0,
    OutcomeType.REMEDIATION_STARTED: 6.0,
    OutcomeType.REMEDIATION_COMPLETED: 8.0,
    OutcomeType.CASE_DISMISSED: 0.0,
}

# Verified outcomes of these kinds credit the incident reporter
ENFORCEMENT_OUTCOMES: FrozenSet[OutcomeType] = frozenset({
    OutcomeType.SITE_CLOSED,
    OutcomeType.EQUIPMENT_SEIZED,
    OutcomeType.ARRESTS_MADE,
})


# ============================================================================
# BADGE CATALOG
# ============================================================================


@dataclass(frozen=True)
class Badge:
    """
    Badge definition.

    requirement_type names a UserStatsSnapshot field; the badge unlocks once
    that field reaches requirement_value. Badges without a requirement are
    awarded manually.
    """
    id: str
    name: str
    description: str
    icon: str
    points: int
    requirement_type: Optional[str] = None
    requirement_value: Optional[int] = None

    @property
    def is_manual(self) -> bool:
        return self.requirement_type is None


_BADGE_LIST: List[Badge] = [
    Badge("first_report", "First Report", "Submitted your first incident report",
          "flag", 10, "reports_submitted", 1),
    Badge("verified_5", "Trusted Reporter", "5 reports verified by moderators",
          "check-circle", 50, "reports_verified", 5),
    Badge("verified_20", "Community Guardian", "20 reports verified",
          "shield", 100, "reports_verified", 20),
    Badge("verified_50", "Environmental Champion", "50 verified reports",
          "award", 250, "reports_verified", 50),
    Badge("enforcement_1", "Justice Seeker", "Report led to enforcement action",
          "gavel", 100, "enforcement_actions", 1),
    Badge("enforcement_5", "Law Enforcer", "5 reports led to enforcement",
          "shield-check", 500, "enforcement_actions", 5),
    Badge("water_guardian", "Water Guardian", "Reported 10 water pollution incidents",
          "droplet", 75, "water_reports", 10),
    Badge("forest_protector", "Forest Protector", "Reported 10 deforestation incidents",
          "tree-pine", 75, "deforestation_reports", 10),
    Badge("early_bird", "Early Bird", "Submitted report within 24h of activity",
          "clock", 25),
    Badge("photo_evidence", "Photo Journalist", "Uploaded 50 pieces of evidence",
          "camera", 50, "evidence_count", 50),
    Badge("voice_reporter", "Voice Reporter", "Used voice input for 10 reports",
          "mic", 30, "voice_reports", 10),
    Badge("regional_expert", "Regional Expert", "Top reporter in your region for a month",
          "map-pin", 100, "is_regional_top", 1),
    Badge("streak_7", "Dedicated Watcher", "Reported incidents 7 days in a row",
          "flame", 50, "activity_streak", 7),
    Badge("streak_30", "Vigilant Guardian", "Active for 30 consecutive days",
          "flame", 150, "activity_streak", 30),
]

BADGES: Dict[str, Badge] = {badge.id: badge for badge in _BADGE_LIST}
