from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

from ..infrastructure.database import get_db
from ..domain.engine import RANK_LADDER, rank_benefits
from ..domain.guardian_models import (
    ActivityCreate,
    ActivityResponse,
    ActivityResultResponse,
    ProfileSettingsUpdate,
    ProfileSummaryResponse,
    RankResponse,
)
from ..domain.services.guardian_service import GuardianService, ProfileNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/profile/{user_id}", response_model=ProfileSummaryResponse)
def get_profile_summary(
    user_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Get a guardian's profile.

    Returns:
    - Rank, points and counters
    - Progress to the next rank and its benefits
    - Verified outcomes and estimated environmental impact
    - Badges, recent activity, streak and leaderboard standing
    """
    try:
        service = GuardianService(db)
        return service.get_profile_summary(user_id)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting guardian profile for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch guardian profile")


@router.patch("/profile/{user_id}")
def update_profile_settings(
    user_id: UUID,
    settings: ProfileSettingsUpdate,
    db: Session = Depends(get_db)
):
    """
    Update display and privacy settings.

    - display_name: Name shown on leaderboards (unique)
    - bio, region
    - show_on_leaderboard: Opt in/out of leaderboards
    """
    try:
        service = GuardianService(db)
        profile = service.update_profile_settings(
            user_id, **settings.model_dump(exclude_unset=True)
        )
        return {
            'message': 'Profile updated',
            'settings': {
                'display_name': profile.display_name,
                'bio': profile.bio,
                'region': profile.region,
                'show_on_leaderboard': profile.show_on_leaderboard
            }
        }
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating guardian profile {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.get("/profile/{user_id}/activities", response_model=List[ActivityResponse])
def get_activity_history(
    user_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Get a guardian's activity log with pagination, newest first."""
    try:
        service = GuardianService(db)
        return service.get_activity_history(user_id, limit, offset)
    except Exception as e:
        logger.error(f"Error getting activity history for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch activity history")


@router.post("/activities", response_model=ActivityResultResponse)
def record_activity(
    activity: ActivityCreate,
    db: Session = Depends(get_db)
):
    """
    Record a scored activity (report submitted/verified, comment, evidence...).

    Creates the guardian profile on first activity, awards newly earned
    badges and promotes the rank when thresholds are met.
    """
    try:
        service = GuardianService(db)
        return service.record_activity(
            activity.user_id,
            activity.activity_type,
            incident_id=activity.incident_id,
            metadata=activity.metadata,
            display_name=activity.display_name
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error recording activity for {activity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to record activity")


@router.get("/ranks", response_model=List[RankResponse])
def get_rank_ladder():
    """Rank ladder from observer to diamond with thresholds and benefits."""
    return [
        {
            'rank': requirement.rank,
            'min_verified_reports': requirement.min_verified_reports,
            'min_points': requirement.min_points,
            'benefits': rank_benefits(requirement.rank),
        }
        for requirement in RANK_LADDER
    ]
