from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Dict, Optional
from uuid import UUID
from datetime import datetime
import logging

from ...infrastructure import models
from ..engine import GuardianRank
from ..engine.leaderboard import (
    CATEGORY_ACTIVITIES,
    LeaderboardCandidate,
    LeaderboardCategory,
    LeaderboardEntry,
    LeaderboardPeriod,
    rank_entries,
    window_start,
)

logger = logging.getLogger(__name__)


class LeaderboardService:
    """
    Leaderboards computed from the activity log.

    The log is the single source of truth for every period; all_time is
    just an unbounded window, so it can never disagree with weekly/monthly
    boards the way a separate counter-based path could.
    """

    def __init__(self, db: Session):
        self.db = db

    def compute_ranking(
        self,
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
        category: LeaderboardCategory = LeaderboardCategory.POINTS,
        region: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[LeaderboardEntry]:
        """Full ordered ranking of visible guardians with a positive score."""
        period = LeaderboardPeriod(period)
        category = LeaderboardCategory(category)

        counted_type = CATEGORY_ACTIVITIES[category]
        if counted_type is None:
            score_column = func.coalesce(func.sum(models.UserActivity.points_earned), 0)
        else:
            score_column = func.count(models.UserActivity.id)

        query = self.db.query(
            models.GuardianProfile,
            score_column.label("score")
        ).join(
            models.UserActivity,
            models.UserActivity.user_id == models.GuardianProfile.user_id
        ).filter(
            models.GuardianProfile.show_on_leaderboard == True
        )

        if region:
            query = query.filter(models.GuardianProfile.region == region)

        since = window_start(period, now)
        if since is not None:
            query = query.filter(models.UserActivity.created_at >= since)

        if counted_type is not None:
            query = query.filter(models.UserActivity.activity_type == counted_type.value)

        rows = query.group_by(models.GuardianProfile.user_id).all()

        candidates = [
            LeaderboardCandidate(
                user_id=profile.user_id,
                display_name=profile.public_name,
                score=int(score or 0),
                guardian_rank=GuardianRank(profile.rank),
                region=profile.region,
                show_on_leaderboard=profile.show_on_leaderboard,
            )
            for profile, score in rows
        ]
        return rank_entries(candidates)

    def get_leaderboard(
        self,
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
        category: LeaderboardCategory = LeaderboardCategory.POINTS,
        region: Optional[str] = None,
        limit: int = 25,
        current_user_id: Optional[UUID] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        Get leaderboard for a period/category/region.

        Periods: weekly (7 days), monthly (30 days), all_time
        Categories: points, reports, verified, enforcement
        """
        period = LeaderboardPeriod(period)
        category = LeaderboardCategory(category)

        ranking = self.compute_ranking(period, category, region, now)

        current_user_rank = None
        if current_user_id:
            current_user_rank = next(
                (entry.rank for entry in ranking if entry.user_id == current_user_id),
                None
            )

        return {
            'period': period,
            'category': category,
            'region': region,
            'entries': [entry.to_dict() for entry in ranking[:limit]],
            'updated_at': now or datetime.utcnow(),
            'current_user_rank': current_user_rank,
        }

    def get_user_rank(
        self,
        user_id: UUID,
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
        category: LeaderboardCategory = LeaderboardCategory.POINTS,
        region: Optional[str] = None
    ) -> Optional[int]:
        """Position of a user in the ranking, None if not listed"""
        for entry in self.compute_ranking(period, category, region):
            if entry.user_id == user_id:
                return entry.rank
        return None

    def get_regions(self) -> List[str]:
        rows = self.db.query(models.GuardianProfile.region).filter(
            models.GuardianProfile.region.isnot(None),
            models.GuardianProfile.show_on_leaderboard == True
        ).distinct().all()
        return sorted(region for (region,) in rows)

    def get_regional_top_reporter(
        self,
        region: str,
        now: Optional[datetime] = None
    ) -> Optional[UUID]:
        """User with the most reports submitted in the region over the last 30 days"""
        ranking = self.compute_ranking(
            LeaderboardPeriod.MONTHLY,
            LeaderboardCategory.REPORTS,
            region,
            now
        )
        if not ranking:
            return None
        return ranking[0].user_id
