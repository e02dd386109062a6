"""
Environmental impact estimates.

These are heuristic figures for display, not measurements. The formula is
fixed so the same counts always produce the same estimate:

    hectares     = verified * 0.5 + enforcement * 2 + sites_closed * 10
    water_bodies = floor(verified * 0.1) + sites_closed
"""
from dataclasses import dataclass
from typing import Any, Iterable

from .catalog import ENFORCEMENT_OUTCOMES, OutcomeType
from .errors import require_count
from .scoring import parse_outcome_type

HECTARES_PER_VERIFIED_REPORT = 0.5
HECTARES_PER_ENFORCEMENT_ACTION = 2
HECTARES_PER_SITE_CLOSED = 10
SITES_CLOSED_PER_WATER_BODY = 1


@dataclass(frozen=True)
class EnvironmentalImpact:
    hectares_protected: float
    water_bodies_saved: int

    def to_dict(self):
        return {
            "hectares_protected": self.hectares_protected,
            "water_bodies_saved": self.water_bodies_saved,
        }


@dataclass(frozen=True)
class OutcomeTally:
    """Counts over verified outcomes only."""
    verified_outcomes: int = 0
    total_impact_score: float = 0.0
    enforcement_actions: int = 0
    sites_closed: int = 0
    equipment_seized: int = 0
    arrests_made: int = 0

    def to_dict(self):
        return {
            "verified_outcomes": self.verified_outcomes,
            "total_impact_score": self.total_impact_score,
            "enforcement_actions": self.enforcement_actions,
            "sites_closed": self.sites_closed,
            "equipment_seized": self.equipment_seized,
            "arrests_made": self.arrests_made,
        }


def aggregate_impact(
    verified_reports: int,
    enforcement_actions: int,
    sites_closed: int,
) -> EnvironmentalImpact:
    verified_reports = require_count("verified_reports", verified_reports)
    enforcement_actions = require_count("enforcement_actions", enforcement_actions)
    sites_closed = require_count("sites_closed", sites_closed)

    hectares = (
        verified_reports * HECTARES_PER_VERIFIED_REPORT
        + enforcement_actions * HECTARES_PER_ENFORCEMENT_ACTION
        + sites_closed * HECTARES_PER_SITE_CLOSED
    )
    # floor(verified * 0.1) without float drift
    water_bodies = verified_reports // 10 + sites_closed * SITES_CLOSED_PER_WATER_BODY

    return EnvironmentalImpact(
        hectares_protected=round(hectares, 1),
        water_bodies_saved=water_bodies,
    )


def tally_outcomes(outcomes: Iterable[Any]) -> OutcomeTally:
    """
    Summarise outcome records (anything with outcome_type, verified and
    impact_score attributes).

    Unverified outcomes are skipped entirely. A dismissed case is verified
    but carries zero weight and is not an enforcement action.
    """
    verified_outcomes = 0
    total_impact = 0.0
    counts = {
        OutcomeType.SITE_CLOSED: 0,
        OutcomeType.EQUIPMENT_SEIZED: 0,
        OutcomeType.ARRESTS_MADE: 0,
    }

    for outcome in outcomes:
        if not outcome.verified:
            continue
        outcome_type = parse_outcome_type(outcome.outcome_type)
        verified_outcomes += 1
        total_impact += float(outcome.impact_score or 0.0)
        if outcome_type in counts:
            counts[outcome_type] += 1

    return OutcomeTally(
        verified_outcomes=verified_outcomes,
        total_impact_score=total_impact,
        enforcement_actions=sum(counts[t] for t in ENFORCEMENT_OUTCOMES),
        sites_closed=counts[OutcomeType.SITE_CLOSED],
        equipment_seized=counts[OutcomeType.EQUIPMENT_SEIZED],
        arrests_made=counts[OutcomeType.ARRESTS_MADE],
    )
