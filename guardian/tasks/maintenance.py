"""
Periodic guardian maintenance
Keeps profile caches in line with the activity log and awards regional badges
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..infrastructure.database import SessionLocal
from ..infrastructure import models
from ..domain.services.guardian_service import GuardianService
from ..domain.services.leaderboard_service import LeaderboardService

logger = logging.getLogger(__name__)


def reconcile_profiles(db: Optional[Session] = None):
    """
    Rebuild every profile from the activity log and repair drift
    Runs once per day (called by GuardianScheduler)
    """
    owns_session = db is None
    db = db or SessionLocal()
    try:
        service = GuardianService(db)
        user_ids = [user_id for (user_id,) in db.query(models.GuardianProfile.user_id).all()]

        repaired = 0
        for user_id in user_ids:
            if service.rebuild_profile(user_id):
                repaired += 1

        if repaired:
            logger.warning(f"Repaired {repaired} of {len(user_ids)} drifted guardian profiles")
        else:
            logger.info(f"Checked {len(user_ids)} guardian profiles, no drift")

        return {
            'status': 'success',
            'profiles_checked': len(user_ids),
            'profiles_repaired': repaired
        }

    except Exception as e:
        logger.error(f"Error reconciling profiles: {e}")
        db.rollback()
        return {
            'status': 'error',
            'error': str(e)
        }
    finally:
        if owns_session:
            db.close()


def award_regional_experts(db: Optional[Session] = None, now: Optional[datetime] = None):
    """
    Award regional_expert to the top reporter of each region over the last 30 days
    """
    owns_session = db is None
    db = db or SessionLocal()
    try:
        leaderboards = LeaderboardService(db)
        guardians = GuardianService(db)

        awarded = []
        for region in leaderboards.get_regions():
            top_user_id = leaderboards.get_regional_top_reporter(region, now)
            if top_user_id is None:
                continue

            new_badges = guardians.refresh_progression(top_user_id, is_regional_top=True)
            if any(badge.id == "regional_expert" for badge in new_badges):
                logger.info(f"User {top_user_id} is regional expert for {region}")
                awarded.append(top_user_id)

        return {
            'status': 'success',
            'awarded': awarded
        }

    except Exception as e:
        logger.error(f"Error awarding regional experts: {e}")
        db.rollback()
        return {
            'status': 'error',
            'error': str(e)
        }
    finally:
        if owns_session:
            db.close()
