from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

from ..infrastructure.database import get_db
from ..domain.engine import BADGES, UnknownBadgeError
from ..domain.guardian_models import BadgeResponse, BadgeWithProgressResponse
from ..domain.services.guardian_service import GuardianService, ProfileNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[BadgeResponse])
def get_all_badges():
    """Get the badge catalog in display order."""
    return list(BADGES.values())


@router.get("/user/{user_id}", response_model=List[BadgeWithProgressResponse])
def get_user_badges(
    user_id: UUID,
    db: Session = Depends(get_db)
):
    """
    Get every badge with the user's progress.

    Earned badges report 100%; manually awarded badges report no progress
    until granted.
    """
    try:
        service = GuardianService(db)
        return service.get_badges_with_progress(user_id)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error fetching user badges for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch user badges")


@router.post("/user/{user_id}/{badge_id}")
def award_badge(
    user_id: UUID,
    badge_id: str,
    db: Session = Depends(get_db)
):
    """
    Manually award a badge. Awarding a badge the user already holds is a
    no-op and reports awarded=false.
    """
    try:
        service = GuardianService(db)
        badge = service.award_badge(user_id, badge_id)
        return {
            'badge_id': badge_id,
            'awarded': badge is not None,
            'points_awarded': badge.points if badge else 0
        }
    except UnknownBadgeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error awarding badge {badge_id} to {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to award badge")


@router.get("/{badge_id}", response_model=BadgeResponse)
def get_badge(badge_id: str):
    """Get detailed information about a specific badge."""
    badge = BADGES.get(badge_id)
    if not badge:
        raise HTTPException(status_code=404, detail="Badge not found")
    return badge
