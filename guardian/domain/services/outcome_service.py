from sqlalchemy.orm import Session
from typing import Dict, Optional
from uuid import UUID
from datetime import date, datetime
import logging

from ...infrastructure import models
from ..engine import (
    ENFORCEMENT_OUTCOMES,
    ActivityType,
    GuardianError,
    OutcomeType,
    outcome_impact,
    parse_outcome_type,
    tally_outcomes,
)
from .guardian_service import GuardianService

logger = logging.getLogger(__name__)


class OutcomeNotFoundError(GuardianError, LookupError):
    pass


class OutcomeAlreadyVerifiedError(GuardianError):
    """Verification is one-way and happens once."""
    pass


class OutcomeService:
    """
    Records enforcement outcomes and credits the incident reporter once an
    enforcement outcome is verified.
    """

    def __init__(self, db: Session):
        self.db = db

    def record_outcome(
        self,
        incident_id: UUID,
        outcome_type,
        outcome_date: date,
        reported_by: Optional[UUID] = None,
        credited_user_id: Optional[UUID] = None,
        description: Optional[str] = None,
        evidence_url: Optional[str] = None,
        privileged: bool = False
    ) -> models.IncidentOutcome:
        """
        Create an outcome with its impact weight fixed from the weight table.
        Outcomes recorded by a privileged actor are verified immediately.
        The credited reporter gets an observer profile if they have none yet.
        """
        outcome_type = parse_outcome_type(outcome_type)

        try:
            # credited_user_id references guardian_profiles
            if credited_user_id:
                GuardianService(self.db).get_or_create_profile(credited_user_id)

            outcome = models.IncidentOutcome(
                incident_id=incident_id,
                outcome_type=outcome_type.value,
                outcome_date=outcome_date,
                description=description,
                evidence_url=evidence_url,
                reported_by=reported_by,
                credited_user_id=credited_user_id,
                verified=False,
                impact_score=outcome_impact(outcome_type),
            )
            self.db.add(outcome)
            self.db.flush()

            if privileged:
                self._mark_verified(outcome, reported_by)

            self.db.commit()
            self.db.refresh(outcome)

            logger.info(
                f"Outcome {outcome_type.value} recorded for incident {incident_id} "
                f"(verified: {outcome.verified})"
            )
            return outcome
        except Exception as e:
            logger.error(f"Error recording outcome for incident {incident_id}: {e}")
            self.db.rollback()
            raise

    def verify_outcome(self, outcome_id: UUID, verified_by: UUID) -> models.IncidentOutcome:
        try:
            outcome = self.db.query(models.IncidentOutcome).filter(
                models.IncidentOutcome.id == outcome_id
            ).with_for_update().first()

            if not outcome:
                raise OutcomeNotFoundError(f"Outcome {outcome_id} not found")
            if outcome.verified:
                raise OutcomeAlreadyVerifiedError(f"Outcome {outcome_id} is already verified")

            self._mark_verified(outcome, verified_by)
            self.db.commit()
            self.db.refresh(outcome)
            return outcome
        except Exception:
            self.db.rollback()
            raise

    def _mark_verified(self, outcome: models.IncidentOutcome, verified_by: Optional[UUID]):
        outcome.verified = True
        outcome.verified_by = verified_by
        outcome.verified_at = datetime.utcnow()

        outcome_type = OutcomeType(outcome.outcome_type)
        logger.info(f"Outcome {outcome.id} ({outcome_type.value}) verified by {verified_by}")

        if outcome_type in ENFORCEMENT_OUTCOMES and outcome.credited_user_id:
            GuardianService(self.db)._record_activity(
                outcome.credited_user_id,
                ActivityType.ENFORCEMENT_TRIGGERED,
                incident_id=outcome.incident_id,
                metadata={'outcome_type': outcome_type.value, 'outcome_id': str(outcome.id)},
            )

    def list_outcomes(self, incident_id: UUID) -> Dict:
        """Outcomes for an incident with the verified impact total"""
        outcomes = self.db.query(models.IncidentOutcome).filter(
            models.IncidentOutcome.incident_id == incident_id
        ).order_by(models.IncidentOutcome.outcome_date.desc()).all()

        tally = tally_outcomes(outcomes)

        return {
            'outcomes': outcomes,
            'total_impact_score': tally.total_impact_score,
            'verified_outcomes': tally.verified_outcomes,
        }
