"""
Badge evaluation.

Every automatic badge is a single threshold on one snapshot field, so the
catalog is evaluated uniformly in one loop. Evaluation order never changes
the result; results come back in catalog order.
"""
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional

from .catalog import BADGES, Badge
from .errors import InvalidStatsError, require_count


@dataclass(frozen=True)
class UserStatsSnapshot:
    """Cumulative stats a badge predicate can look at."""
    reports_submitted: int = 0
    reports_verified: int = 0
    enforcement_actions: int = 0
    water_reports: int = 0
    deforestation_reports: int = 0
    evidence_count: int = 0
    voice_reports: int = 0
    activity_streak: int = 0
    is_regional_top: bool = False

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "is_regional_top":
                if not isinstance(value, bool):
                    raise InvalidStatsError(f"is_regional_top must be a bool, got {value!r}")
                continue
            require_count(f.name, value)

    def value_for(self, requirement_type: str) -> int:
        """Current value of the field a badge requirement points at."""
        try:
            return int(getattr(self, requirement_type))
        except AttributeError:
            raise InvalidStatsError(f"Unknown badge requirement field: {requirement_type}")


def qualifies(badge: Badge, stats: UserStatsSnapshot) -> bool:
    """Check whether the snapshot meets the badge threshold."""
    if badge.is_manual:
        return False
    return stats.value_for(badge.requirement_type) >= badge.requirement_value


def evaluate(stats: UserStatsSnapshot, already_earned: Iterable[str]) -> List[Badge]:
    """
    Return badges the user newly qualifies for.

    Badges already in already_earned are never returned again, so feeding
    the result back in yields an empty list.
    """
    earned = set(already_earned)
    return [
        badge
        for badge in BADGES.values()
        if badge.id not in earned and qualifies(badge, stats)
    ]


def badge_progress(
    stats: UserStatsSnapshot,
    already_earned: Iterable[str],
) -> List[Dict[str, Any]]:
    """
    Progress toward every badge in the catalog.

    Earned badges report 100%. Manually awarded badges have no measurable
    progress and report None for their values.
    """
    earned = set(already_earned)
    progress = []

    for badge in BADGES.values():
        current_value: Optional[int] = None
        required_value: Optional[int] = badge.requirement_value

        if not badge.is_manual:
            current_value = stats.value_for(badge.requirement_type)

        if badge.id in earned:
            percent: Optional[float] = 100.0
        elif badge.is_manual:
            percent = None
        else:
            percent = min(100.0, (current_value / required_value) * 100)

        progress.append({
            'badge': badge,
            'earned': badge.id in earned,
            'current_value': current_value,
            'required_value': required_value,
            'progress_percent': percent,
        })

    return progress
