from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Hashable, Optional, Union

from .catalog import ACTIVITY_POINTS, OUTCOME_WEIGHTS, ActivityType, OutcomeType
from .errors import UnknownActivityTypeError, UnknownOutcomeTypeError

# ============================================================================
# LOOKUPS
# ============================================================================


def parse_activity_type(activity_type: Union[ActivityType, str]) -> ActivityType:
    try:
        return ActivityType(activity_type)
    except ValueError:
        raise UnknownActivityTypeError(f"Unknown activity type: {activity_type!r}")


def parse_outcome_type(outcome_type: Union[OutcomeType, str]) -> OutcomeType:
    try:
        return OutcomeType(outcome_type)
    except ValueError:
        raise UnknownOutcomeTypeError(f"Unknown outcome type: {outcome_type!r}")


def score(activity_type: Union[ActivityType, str]) -> int:
    """
    Points earned for a single activity.

    Unknown types raise instead of scoring zero, so a missing table entry
    can never pass silently.
    """
    activity_type = parse_activity_type(activity_type)
    try:
        return ACTIVITY_POINTS[activity_type]
    except KeyError:
        raise UnknownActivityTypeError(f"No points configured for {activity_type.value}")


def outcome_impact(outcome_type: Union[OutcomeType, str]) -> float:
    """Impact weight recorded on an outcome at creation time."""
    outcome_type = parse_outcome_type(outcome_type)
    try:
        return OUTCOME_WEIGHTS[outcome_type]
    except KeyError:
        raise UnknownOutcomeTypeError(f"No impact weight configured for {outcome_type.value}")


# ============================================================================
# ACTIVITY RECORDS
# ============================================================================


@dataclass
class ScoredActivity:
    """An activity ready to be appended to the activity log."""
    user_id: Hashable
    activity_type: ActivityType
    points_earned: int
    incident_id: Optional[Hashable] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)


def score_activity(
    user_id: Hashable,
    activity_type: Union[ActivityType, str],
    incident_id: Optional[Hashable] = None,
    metadata: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> ScoredActivity:
    """Return the point delta for an activity together with its log record."""
    activity_type = parse_activity_type(activity_type)
    return ScoredActivity(
        user_id=user_id,
        activity_type=activity_type,
        points_earned=score(activity_type),
        incident_id=incident_id,
        metadata=dict(metadata or {}),
        created_at=created_at or datetime.utcnow(),
    )


# ============================================================================
# DISPLAY HELPERS
# ============================================================================

ACTIVITY_MESSAGES: Dict[ActivityType, str] = {
    ActivityType.REPORT_SUBMITTED: "Submitted a new incident report",
    ActivityType.REPORT_VERIFIED: "Report was verified by moderators",
    ActivityType.REPORT_REJECTED: "Report was not verified",
    ActivityType.ENFORCEMENT_TRIGGERED: "Report led to enforcement action!",
    ActivityType.BADGE_EARNED: "Earned a new badge",
    ActivityType.RANK_PROMOTED: "Promoted to a new Guardian rank!",
    ActivityType.COMMENT_ADDED: "Added a comment to an incident",
    ActivityType.EVIDENCE_UPLOADED: "Uploaded evidence to an incident",
    ActivityType.ALERT_SUBSCRIPTION: "Set up alert notifications",
}


def activity_message(
    activity_type: Union[ActivityType, str],
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    """Feed text for an activity log entry."""
    activity_type = parse_activity_type(activity_type)
    metadata = metadata or {}

    if activity_type == ActivityType.BADGE_EARNED and metadata.get("badge_name"):
        return f"Earned a new badge: {metadata['badge_name']}"
    if activity_type == ActivityType.RANK_PROMOTED and metadata.get("new_rank"):
        return f"Promoted to {str(metadata['new_rank']).title()} Guardian!"

    return ACTIVITY_MESSAGES.get(activity_type, "Activity recorded")


def format_points(points: int) -> str:
    """Format a point total with a K/M suffix."""
    if points >= 1_000_000:
        return f"{points / 1_000_000:.1f}M"
    if points >= 1_000:
        return f"{points / 1_000:.1f}K"
    return str(points)
