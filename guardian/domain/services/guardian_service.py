from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from datetime import datetime
import json
import logging

from ...core.config import settings
from ...infrastructure import models
from ..engine import (
    ACTIVITY_COUNTERS,
    BADGES,
    ActivityType,
    Badge,
    GuardianError,
    GuardianRank,
    ScoredActivity,
    UnknownBadgeError,
    UserStatsSnapshot,
    activity_message,
    activity_streak,
    aggregate_impact,
    aggregate_scores,
    badge_progress,
    evaluate,
    format_points,
    is_promotion,
    parse_activity_type,
    rank_benefits,
    rank_progress,
    resolve_rank,
    score_activity,
    tally_outcomes,
)
from ..engine.leaderboard import CATEGORY_COUNTERS

logger = logging.getLogger(__name__)

# Emitted by the progression logic only, never recorded from outside
SYSTEM_ACTIVITIES = frozenset({ActivityType.BADGE_EARNED, ActivityType.RANK_PROMOTED})

WATER_CATEGORY = "water_pollution"
DEFORESTATION_CATEGORY = "deforestation"


class ProfileNotFoundError(GuardianError, LookupError):
    pass


class DisplayNameTakenError(GuardianError, ValueError):
    pass


class ReservedActivityError(GuardianError, ValueError):
    """Raised when a caller tries to record a system-emitted activity."""
    pass


class GuardianService:
    """
    Applies scored activities to guardian profiles.

    Every point change is written to user_activities first; the counters on
    guardian_profiles are a cache of that log. Each write path locks the
    profile row so concurrent events for one user cannot award the same
    badge twice or compute a promotion from a stale total.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, user_id: UUID, for_update: bool = False) -> models.GuardianProfile:
        query = self.db.query(models.GuardianProfile).filter(
            models.GuardianProfile.user_id == user_id
        )
        if for_update:
            query = query.with_for_update()
        profile = query.first()

        if not profile:
            raise ProfileNotFoundError(f"Guardian profile {user_id} not found")
        return profile

    def get_or_create_profile(
        self,
        user_id: UUID,
        display_name: Optional[str] = None
    ) -> models.GuardianProfile:
        """Load the profile with a row lock, creating an observer profile on first activity."""
        try:
            return self.get_profile(user_id, for_update=True)
        except ProfileNotFoundError:
            pass

        if display_name:
            self._check_display_name(user_id, display_name)

        profile = models.GuardianProfile(
            user_id=user_id,
            display_name=display_name,
            rank=GuardianRank.OBSERVER.value,
            points=0,
            reports_submitted=0,
            reports_verified=0,
            enforcement_actions=0,
            show_on_leaderboard=True,
        )
        self.db.add(profile)
        self.db.flush()

        logger.info(f"Created guardian profile for user {user_id}")
        return profile

    def update_profile_settings(
        self,
        user_id: UUID,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
        region: Optional[str] = None,
        show_on_leaderboard: Optional[bool] = None
    ) -> models.GuardianProfile:
        """Update display/privacy settings. None leaves a field unchanged."""
        try:
            profile = self.get_profile(user_id, for_update=True)

            if display_name is not None:
                self._check_display_name(user_id, display_name)
                profile.display_name = display_name
            if bio is not None:
                profile.bio = bio
            if region is not None:
                profile.region = region
            if show_on_leaderboard is not None:
                profile.show_on_leaderboard = show_on_leaderboard

            self.db.commit()
            self.db.refresh(profile)
            return profile
        except Exception:
            self.db.rollback()
            raise

    def _check_display_name(self, user_id: UUID, display_name: str):
        existing = self.db.query(models.GuardianProfile).filter(
            models.GuardianProfile.display_name == display_name,
            models.GuardianProfile.user_id != user_id
        ).first()

        if existing:
            raise DisplayNameTakenError(f"Display name '{display_name}' is already taken")

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def record_activity(
        self,
        user_id: UUID,
        activity_type,
        incident_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        display_name: Optional[str] = None
    ) -> Dict:
        """
        Main entry point for scored user activity.

        Appends the activity, bumps the matching counter, then awards any
        newly qualifying badges and promotes the rank if the new totals
        allow it.
        """
        activity_type = parse_activity_type(activity_type)
        if activity_type in SYSTEM_ACTIVITIES:
            raise ReservedActivityError(f"{activity_type.value} is recorded automatically")

        try:
            result = self._record_activity(
                user_id, activity_type, incident_id, metadata, display_name
            )
            self.db.commit()
            return result
        except Exception as e:
            logger.error(f"Error recording {activity_type.value} for user {user_id}: {e}")
            self.db.rollback()
            raise

    def _record_activity(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        incident_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        display_name: Optional[str] = None
    ) -> Dict:
        """record_activity without the commit, for callers owning the transaction."""
        profile = self.get_or_create_profile(user_id, display_name)
        previous_rank = GuardianRank(profile.rank)

        scored = score_activity(user_id, activity_type, incident_id, metadata)
        self._append_activity(profile, scored)

        counter = ACTIVITY_COUNTERS.get(activity_type)
        if counter:
            setattr(profile, counter, (getattr(profile, counter) or 0) + 1)

        new_badges = self._apply_progression(profile)
        rank = GuardianRank(profile.rank)

        return {
            'user_id': profile.user_id,
            'activity_type': activity_type,
            'points_earned': scored.points_earned,
            'points': profile.points,
            'rank': rank,
            'previous_rank': previous_rank,
            'promoted': is_promotion(previous_rank, rank),
            'new_badges': new_badges,
        }

    def _append_activity(self, profile: models.GuardianProfile, scored: ScoredActivity) -> models.UserActivity:
        activity = models.UserActivity(
            user_id=profile.user_id,
            activity_type=scored.activity_type.value,
            incident_id=scored.incident_id,
            points_earned=scored.points_earned,
            extra_metadata=json.dumps(scored.metadata, default=str) if scored.metadata else "{}",
            created_at=scored.created_at,
        )
        self.db.add(activity)
        profile.points = (profile.points or 0) + scored.points_earned
        return activity

    def get_activity_history(
        self,
        user_id: UUID,
        limit: int = 20,
        offset: int = 0
    ) -> List[Dict]:
        """Get user's activity log, newest first"""
        activities = self.db.query(models.UserActivity).filter(
            models.UserActivity.user_id == user_id
        ).order_by(
            models.UserActivity.created_at.desc()
        ).limit(limit).offset(offset).all()

        return [self._serialize_activity(a) for a in activities]

    def _serialize_activity(self, activity: models.UserActivity) -> Dict:
        metadata = activity.metadata_dict
        return {
            'id': activity.id,
            'activity_type': activity.activity_type,
            'incident_id': activity.incident_id,
            'points_earned': activity.points_earned,
            'metadata': metadata,
            'message': activity_message(activity.activity_type, metadata),
            'created_at': activity.created_at,
        }

    # ------------------------------------------------------------------
    # Badges and ranks
    # ------------------------------------------------------------------

    def build_stats_snapshot(
        self,
        profile: models.GuardianProfile,
        is_regional_top: bool = False
    ) -> UserStatsSnapshot:
        """
        Badge-relevant stats for a profile.

        Category, voice and evidence counts come from the activity log.
        Regional standing is decided by the caller (see
        tasks.maintenance.award_regional_experts).
        """
        self.db.flush()

        submitted = self.db.query(models.UserActivity.extra_metadata).filter(
            models.UserActivity.user_id == profile.user_id,
            models.UserActivity.activity_type == ActivityType.REPORT_SUBMITTED.value
        ).all()

        water_reports = 0
        deforestation_reports = 0
        voice_reports = 0
        for (raw,) in submitted:
            try:
                metadata = json.loads(raw or "{}")
            except json.JSONDecodeError:
                continue
            category = metadata.get('category')
            if category == WATER_CATEGORY:
                water_reports += 1
            elif category == DEFORESTATION_CATEGORY:
                deforestation_reports += 1
            if metadata.get('voice_input') is True:
                voice_reports += 1

        evidence_count = self.db.query(func.count(models.UserActivity.id)).filter(
            models.UserActivity.user_id == profile.user_id,
            models.UserActivity.activity_type == ActivityType.EVIDENCE_UPLOADED.value
        ).scalar() or 0

        return UserStatsSnapshot(
            reports_submitted=profile.reports_submitted or 0,
            reports_verified=profile.reports_verified or 0,
            enforcement_actions=profile.enforcement_actions or 0,
            water_reports=water_reports,
            deforestation_reports=deforestation_reports,
            evidence_count=evidence_count,
            voice_reports=voice_reports,
            activity_streak=self.get_activity_streak(profile.user_id),
            is_regional_top=is_regional_top,
        )

    def get_activity_streak(self, user_id: UUID) -> int:
        """Consecutive days with user-driven activity. Badge and promotion entries do not count."""
        rows = self.db.query(models.UserActivity.created_at).filter(
            models.UserActivity.user_id == user_id,
            models.UserActivity.activity_type.notin_([t.value for t in SYSTEM_ACTIVITIES])
        ).all()
        return activity_streak(
            [created_at for (created_at,) in rows if created_at],
            datetime.utcnow().date()
        )

    def _earned_badge_ids(self, user_id: UUID) -> set:
        rows = self.db.query(models.UserBadge.badge_id).filter(
            models.UserBadge.user_id == user_id
        ).all()
        return {badge_id for (badge_id,) in rows}

    def _apply_progression(
        self,
        profile: models.GuardianProfile,
        is_regional_top: bool = False
    ) -> List[Badge]:
        """Award qualifying badges, then bring the cached rank up to date."""
        stats = self.build_stats_snapshot(profile, is_regional_top)
        new_badges = evaluate(stats, self._earned_badge_ids(profile.user_id))

        for badge in new_badges:
            self._grant_badge(profile, badge)

        self._resolve_rank(profile)
        return new_badges

    def _grant_badge(self, profile: models.GuardianProfile, badge: Badge):
        self.db.add(models.UserBadge(
            user_id=profile.user_id,
            badge_id=badge.id,
            badge_name=badge.name,
            badge_description=badge.description,
            badge_icon=badge.icon,
            points_awarded=badge.points,
            earned_at=datetime.utcnow(),
        ))

        # Badge points ride on the badge_earned entry so the log sums to the total
        scored = score_activity(
            profile.user_id,
            ActivityType.BADGE_EARNED,
            metadata={'badge_id': badge.id, 'badge_name': badge.name},
        )
        scored.points_earned = badge.points
        self._append_activity(profile, scored)

        logger.info(f"User {profile.user_id} earned badge: {badge.name}")

    def _resolve_rank(self, profile: models.GuardianProfile):
        """
        Recompute rank from absolute totals. Each promotion logs a
        rank_promoted activity whose points may unlock the next rank, so
        resolve again until the rank is stable.
        """
        while True:
            current = GuardianRank(profile.rank)
            resolved = resolve_rank(profile.reports_verified or 0, profile.points or 0)
            if resolved == current:
                return

            profile.rank = resolved.value
            if not is_promotion(current, resolved):
                logger.warning(
                    f"Cached rank {current.value} for user {profile.user_id} "
                    f"was ahead of totals, reset to {resolved.value}"
                )
                return

            self._append_activity(profile, score_activity(
                profile.user_id,
                ActivityType.RANK_PROMOTED,
                metadata={'previous_rank': current.value, 'new_rank': resolved.value},
            ))
            logger.info(f"User {profile.user_id} promoted: {current.value} -> {resolved.value}")

    def refresh_progression(self, user_id: UUID, is_regional_top: bool = False) -> List[Badge]:
        """Re-evaluate badges and rank without a new activity."""
        try:
            profile = self.get_profile(user_id, for_update=True)
            new_badges = self._apply_progression(profile, is_regional_top)
            self.db.commit()
            return new_badges
        except Exception as e:
            logger.error(f"Error refreshing progression for user {user_id}: {e}")
            self.db.rollback()
            raise

    def award_badge(self, user_id: UUID, badge_id: str) -> Optional[Badge]:
        """
        Manually award a badge (e.g. early_bird, which has no automatic rule).
        Returns None when the user already holds it.
        """
        badge = BADGES.get(badge_id)
        if badge is None:
            raise UnknownBadgeError(f"Unknown badge: {badge_id!r}")

        try:
            profile = self.get_or_create_profile(user_id)
            if badge.id in self._earned_badge_ids(profile.user_id):
                return None

            self._grant_badge(profile, badge)
            self._resolve_rank(profile)
            self.db.commit()
            return badge
        except Exception as e:
            logger.error(f"Error awarding badge {badge_id} to user {user_id}: {e}")
            self.db.rollback()
            raise

    def get_badges_with_progress(self, user_id: UUID) -> List[Dict]:
        profile = self.get_profile(user_id)
        stats = self.build_stats_snapshot(profile)
        return badge_progress(stats, self._earned_badge_ids(user_id))

    def get_earned_badges(self, user_id: UUID) -> List[models.UserBadge]:
        return self.db.query(models.UserBadge).filter(
            models.UserBadge.user_id == user_id
        ).order_by(models.UserBadge.earned_at.desc()).all()

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def get_profile_summary(self, user_id: UUID) -> Dict:
        """Get complete guardian profile with progress, impact and standing"""
        profile = self.get_profile(user_id)

        badges = self.get_earned_badges(user_id)
        recent_activities = self.get_activity_history(
            user_id, limit=settings.RECENT_ACTIVITY_LIMIT
        )

        outcomes = self.db.query(models.IncidentOutcome).filter(
            models.IncidentOutcome.credited_user_id == user_id
        ).all()
        tally = tally_outcomes(outcomes)
        reports_rejected = self.db.query(func.count(models.UserActivity.id)).filter(
            models.UserActivity.user_id == user_id,
            models.UserActivity.activity_type == ActivityType.REPORT_REJECTED.value
        ).scalar() or 0

        impact = aggregate_impact(
            profile.reports_verified or 0,
            profile.enforcement_actions or 0,
            tally.sites_closed
        )
        progress = rank_progress(profile.rank, profile.reports_verified or 0, profile.points or 0)
        global_rank, regional_rank = self._points_standing(profile)

        return {
            'profile': {
                'user_id': profile.user_id,
                'display_name': profile.public_name,
                'bio': profile.bio,
                'region': profile.region,
                'rank': profile.rank,
                'points': profile.points,
                'formatted_points': format_points(profile.points or 0),
                'reports_submitted': profile.reports_submitted,
                'reports_verified': profile.reports_verified,
                'reports_rejected': reports_rejected,
                'enforcement_actions': profile.enforcement_actions,
                'show_on_leaderboard': profile.show_on_leaderboard,
                'created_at': profile.created_at,
            },
            'rank_progress': progress.to_dict(),
            'rank_benefits': rank_benefits(profile.rank),
            'outcomes': tally.to_dict(),
            'impact': impact.to_dict(),
            'badges': badges,
            'recent_badges': badges[:settings.RECENT_BADGE_LIMIT],
            'recent_activities': recent_activities,
            'activity_streak': self.get_activity_streak(user_id),
            'global_rank': global_rank,
            'regional_rank': regional_rank,
        }

    def _points_standing(self, profile: models.GuardianProfile) -> Tuple[int, Optional[int]]:
        """1 + number of visible guardians with strictly more points, globally and in-region."""
        ahead = self.db.query(func.count(models.GuardianProfile.user_id)).filter(
            models.GuardianProfile.show_on_leaderboard == True,
            models.GuardianProfile.points > (profile.points or 0)
        )
        global_rank = (ahead.scalar() or 0) + 1

        regional_rank = None
        if profile.region:
            regional_rank = (ahead.filter(
                models.GuardianProfile.region == profile.region
            ).scalar() or 0) + 1

        return global_rank, regional_rank

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def rebuild_profile(self, user_id: UUID) -> bool:
        """
        Recompute points and counters by replaying the activity log, then
        bring the rank up to date through the normal promotion path, so a
        rank regained here logs rank_promoted like any other promotion.
        Returns True if the cached values had drifted.
        """
        try:
            profile = self.get_profile(user_id, for_update=True)
            activities = self.db.query(models.UserActivity).filter(
                models.UserActivity.user_id == user_id
            ).all()

            replayed = {}
            for category, attribute in CATEGORY_COUNTERS.items():
                replayed[attribute] = aggregate_scores(activities, category).get(user_id, 0)

            drifted = False
            for attribute, value in replayed.items():
                if getattr(profile, attribute) != value:
                    logger.warning(
                        f"Profile {user_id} {attribute} drifted: "
                        f"cached={getattr(profile, attribute)} log={value}"
                    )
                    setattr(profile, attribute, value)
                    drifted = True

            cached_rank = profile.rank
            self._resolve_rank(profile)
            if profile.rank != cached_rank:
                logger.warning(f"Profile {user_id} rank drifted: cached={cached_rank} log={profile.rank}")
                drifted = True

            self.db.commit()
            return drifted
        except Exception as e:
            logger.error(f"Error rebuilding profile {user_id}: {e}")
            self.db.rollback()
            raise
