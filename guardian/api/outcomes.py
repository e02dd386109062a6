from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from ..infrastructure.database import get_db
from ..domain.guardian_models import (
    IncidentOutcomesResponse,
    OutcomeCreate,
    OutcomeResponse,
    OutcomeVerifyRequest,
)
from ..domain.services.outcome_service import (
    OutcomeAlreadyVerifiedError,
    OutcomeNotFoundError,
    OutcomeService,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/incidents/{incident_id}/outcomes", response_model=IncidentOutcomesResponse)
def get_incident_outcomes(
    incident_id: UUID,
    db: Session = Depends(get_db)
):
    """Get outcomes for an incident with the total verified impact score."""
    try:
        service = OutcomeService(db)
        return service.list_outcomes(incident_id)
    except Exception as e:
        logger.error(f"Error fetching outcomes for incident {incident_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch outcomes")


@router.post("/incidents/{incident_id}/outcomes", response_model=OutcomeResponse)
def create_outcome(
    incident_id: UUID,
    outcome: OutcomeCreate,
    db: Session = Depends(get_db)
):
    """
    Record an outcome for an incident.

    The impact score is fixed from the outcome weight table. Outcomes from
    privileged actors (moderator/admin/authority) are verified immediately;
    a verified enforcement outcome credits the incident reporter.
    """
    try:
        service = OutcomeService(db)
        return service.record_outcome(
            incident_id,
            outcome.outcome_type,
            outcome.outcome_date,
            reported_by=outcome.reported_by,
            credited_user_id=outcome.credited_user_id,
            description=outcome.description,
            evidence_url=outcome.evidence_url,
            privileged=outcome.privileged
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating outcome for incident {incident_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create outcome")


@router.post("/outcomes/{outcome_id}/verify", response_model=OutcomeResponse)
def verify_outcome(
    outcome_id: UUID,
    request: OutcomeVerifyRequest,
    db: Session = Depends(get_db)
):
    """Verify an outcome. Verification is permanent and happens once."""
    try:
        service = OutcomeService(db)
        return service.verify_outcome(outcome_id, request.verified_by)
    except OutcomeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OutcomeAlreadyVerifiedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error verifying outcome {outcome_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to verify outcome")
