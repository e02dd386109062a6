from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Any, Dict, Optional
from datetime import datetime
import logging

from ..core.config import settings
from ..infrastructure.database import get_db
from ..domain.engine.leaderboard import LeaderboardCategory, LeaderboardPeriod
from ..domain.guardian_models import LeaderboardResponse
from ..domain.services.leaderboard_service import LeaderboardService

router = APIRouter()
logger = logging.getLogger(__name__)

# Simple in-memory cache (in production, use Redis)
_leaderboard_cache: Dict[str, Dict[str, Any]] = {}


def _get_cache_key(period: str, category: str, region: Optional[str], limit: int) -> str:
    return f"{period}:{category}:{region or '*'}:{limit}"


def _is_cache_valid(cache_entry: Dict[str, Any]) -> bool:
    age = (datetime.now() - cache_entry["timestamp"]).total_seconds()
    return age < settings.LEADERBOARD_CACHE_TTL_SECONDS


def _cleanup_cache():
    """Remove expired cache entries."""
    expired_keys = [
        key for key, entry in _leaderboard_cache.items()
        if not _is_cache_valid(entry)
    ]
    for key in expired_keys:
        del _leaderboard_cache[key]


def clear_leaderboard_cache():
    _leaderboard_cache.clear()


@router.get("/", response_model=LeaderboardResponse)
def get_leaderboard(
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL_TIME),
    category: LeaderboardCategory = Query(LeaderboardCategory.POINTS),
    region: Optional[str] = Query(None),
    limit: int = Query(settings.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    user_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Get leaderboard rankings.

    Periods:
    - weekly / monthly: activity from the last 7 / 30 days
    - all_time: every recorded activity

    Categories: points, reports, verified, enforcement

    Only guardians who opted in and have a positive score are listed.
    Ties are ordered by user id.
    """
    cache_key = _get_cache_key(period.value, category.value, region, limit)

    try:
        if settings.LEADERBOARD_CACHE_TTL_SECONDS > 0 and not user_id:
            cache_entry = _leaderboard_cache.get(cache_key)
            if cache_entry and _is_cache_valid(cache_entry):
                logger.info(f"Cache hit for leaderboard: {cache_key}")
                return cache_entry["data"]

        service = LeaderboardService(db)
        leaderboard = service.get_leaderboard(
            period=period,
            category=category,
            region=region,
            limit=limit,
            current_user_id=user_id
        )

        if settings.LEADERBOARD_CACHE_TTL_SECONDS > 0 and not user_id:
            _leaderboard_cache[cache_key] = {
                "data": leaderboard,
                "timestamp": datetime.now(),
            }
            _cleanup_cache()

        return leaderboard
    except Exception as e:
        logger.error(f"Error fetching leaderboard ({period.value}/{category.value}): {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard")
