"""
Tests for GuardianService: activity recording, badge awards, rank
promotion and profile cache maintenance.
"""
import uuid
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import func

from guardian.domain.engine import (
    GuardianRank,
    UnknownActivityTypeError,
    UnknownBadgeError,
)
from guardian.domain.services.guardian_service import (
    DisplayNameTakenError,
    GuardianService,
    ProfileNotFoundError,
    ReservedActivityError,
)
from guardian.domain.services.outcome_service import OutcomeService
from guardian.infrastructure import models


def badge_ids(badges):
    return [badge.id for badge in badges]


def logged_points(db, user_id):
    return db.query(func.sum(models.UserActivity.points_earned)).filter(
        models.UserActivity.user_id == user_id
    ).scalar() or 0


def activity_count(db, user_id, activity_type):
    return db.query(models.UserActivity).filter(
        models.UserActivity.user_id == user_id,
        models.UserActivity.activity_type == activity_type
    ).count()


def seed_profile(db, user_id, **counters):
    """Profile with counters set directly, bypassing the activity log."""
    profile = GuardianService(db).get_or_create_profile(user_id)
    for name, value in counters.items():
        setattr(profile, name, value)
    db.commit()
    return profile


def seed_badge(db, user_id, badge_id, points):
    db.add(models.UserBadge(
        user_id=user_id, badge_id=badge_id, badge_name=badge_id, points_awarded=points
    ))
    db.commit()


class TestRecordActivity:

    def test_first_activity_creates_profile(self, test_db, user_id):
        """The first scored event creates an observer profile."""
        service = GuardianService(test_db)

        result = service.record_activity(user_id, "report_submitted")

        profile = service.get_profile(user_id)
        assert profile.reports_submitted == 1
        assert result['points_earned'] == 5
        assert badge_ids(result['new_badges']) == ["first_report"]
        assert result['points'] == 15
        assert result['rank'] == GuardianRank.OBSERVER
        assert result['promoted'] is False

    def test_log_sums_to_profile_points(self, test_db, user_id):
        service = GuardianService(test_db)
        for activity_type in ["report_submitted", "comment_added", "evidence_uploaded"]:
            service.record_activity(user_id, activity_type)

        profile = service.get_profile(user_id)
        assert profile.points == logged_points(test_db, user_id) == 22

    def test_badge_activity_carries_badge_points(self, test_db, user_id):
        GuardianService(test_db).record_activity(user_id, "report_submitted")

        badge_activity = test_db.query(models.UserActivity).filter(
            models.UserActivity.user_id == user_id,
            models.UserActivity.activity_type == "badge_earned"
        ).one()
        assert badge_activity.points_earned == 10
        assert badge_activity.metadata_dict["badge_id"] == "first_report"

    def test_counters_only_for_counted_activities(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_rejected")
        service.record_activity(user_id, "alert_subscription")

        profile = service.get_profile(user_id)
        assert profile.reports_submitted == 0
        assert profile.reports_verified == 0
        assert profile.points == 3

    def test_promotion_to_bronze(self, test_db, user_id):
        """Five verified reports earn verified_5, which carries the total past 50."""
        service = GuardianService(test_db)
        results = [service.record_activity(user_id, "report_verified") for _ in range(5)]

        assert [r['promoted'] for r in results] == [False, False, False, False, True]
        final = results[-1]
        assert badge_ids(final['new_badges']) == ["verified_5"]
        assert final['previous_rank'] == GuardianRank.OBSERVER
        assert final['rank'] == GuardianRank.BRONZE
        # 5 * 15 + 50 badge + 25 promotion
        assert final['points'] == 150
        assert activity_count(test_db, user_id, "rank_promoted") == 1

    def test_multi_rank_jump_logs_one_promotion(self, test_db, user_id):
        seed_profile(test_db, user_id, reports_verified=49, points=480)
        service = GuardianService(test_db)

        result = service.record_activity(user_id, "report_verified")

        assert badge_ids(result['new_badges']) == ["verified_5", "verified_20", "verified_50"]
        assert result['rank'] == GuardianRank.GOLD
        assert result['points'] == 480 + 15 + 50 + 100 + 250 + 25

        promotion = test_db.query(models.UserActivity).filter(
            models.UserActivity.user_id == user_id,
            models.UserActivity.activity_type == "rank_promoted"
        ).one()
        assert promotion.metadata_dict == {"previous_rank": "observer", "new_rank": "gold"}

    def test_promotion_points_can_unlock_next_rank(self, test_db, user_id):
        """Bronze promotion points push the total over the silver threshold."""
        seed_profile(test_db, user_id, reports_verified=20, points=180)
        seed_badge(test_db, user_id, "verified_5", 50)
        seed_badge(test_db, user_id, "verified_20", 100)

        result = GuardianService(test_db).record_activity(user_id, "comment_added")

        assert result['new_badges'] == []
        assert result['rank'] == GuardianRank.SILVER
        assert result['points'] == 232
        assert activity_count(test_db, user_id, "rank_promoted") == 2

    def test_category_badges_from_metadata(self, test_db, user_id):
        service = GuardianService(test_db)
        results = [
            service.record_activity(
                user_id, "report_submitted",
                metadata={'category': 'water_pollution', 'voice_input': True}
            )
            for _ in range(10)
        ]

        assert badge_ids(results[-1]['new_badges']) == ["water_guardian", "voice_reporter"]
        earned = {b.badge_id for b in service.get_earned_badges(user_id)}
        assert earned == {"first_report", "water_guardian", "voice_reporter"}

    def test_badges_awarded_once(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_submitted")
        second = service.record_activity(user_id, "report_submitted")

        assert second['new_badges'] == []
        assert test_db.query(models.UserBadge).filter(
            models.UserBadge.user_id == user_id
        ).count() == 1

    @pytest.mark.parametrize("activity_type", ["badge_earned", "rank_promoted"])
    def test_system_activities_rejected(self, test_db, user_id, activity_type):
        with pytest.raises(ReservedActivityError):
            GuardianService(test_db).record_activity(user_id, activity_type)

        assert test_db.query(models.GuardianProfile).count() == 0

    def test_unknown_activity_rejected(self, test_db, user_id):
        with pytest.raises(UnknownActivityTypeError):
            GuardianService(test_db).record_activity(user_id, "report_teleported")

    def test_display_name_must_be_unique(self, test_db, make_user_id):
        service = GuardianService(test_db)
        service.record_activity(make_user_id(1), "comment_added", display_name="riverwatch")

        with pytest.raises(DisplayNameTakenError):
            service.record_activity(make_user_id(2), "comment_added", display_name="riverwatch")

        assert test_db.query(models.GuardianProfile).count() == 1


class TestProfiles:

    def test_missing_profile(self, test_db, user_id):
        with pytest.raises(ProfileNotFoundError):
            GuardianService(test_db).get_profile(user_id)

    def test_update_settings(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "comment_added")

        profile = service.update_profile_settings(
            user_id, display_name="forestfriend", region="Delhi", show_on_leaderboard=False
        )

        assert profile.display_name == "forestfriend"
        assert profile.region == "Delhi"
        assert profile.show_on_leaderboard is False
        assert profile.bio is None

    def test_public_name_fallback(self, test_db, user_id):
        profile = seed_profile(test_db, user_id)

        assert profile.public_name == f"Guardian_{str(user_id)[:8]}"

    def test_activity_history(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_submitted")

        history = service.get_activity_history(user_id)

        assert {a['activity_type'] for a in history} == {"report_submitted", "badge_earned"}
        messages = {a['message'] for a in history}
        assert "Earned a new badge: First Report" in messages

    def test_activity_history_pagination(self, test_db, user_id):
        service = GuardianService(test_db)
        for _ in range(3):
            service.record_activity(user_id, "comment_added")

        assert len(service.get_activity_history(user_id, limit=2)) == 2
        assert len(service.get_activity_history(user_id, limit=2, offset=2)) == 1


class TestManualBadges:

    def test_award_on_idle_day_keeps_streak(self, test_db, user_id):
        """Badge and promotion entries written by the system are not user activity."""
        seed_profile(test_db, user_id)
        now = datetime.utcnow()
        for days_ago in range(1, 7):
            test_db.add(models.UserActivity(
                user_id=user_id,
                activity_type="comment_added",
                points_earned=2,
                created_at=now - timedelta(days=days_ago),
            ))
        test_db.commit()
        service = GuardianService(test_db)
        assert service.get_activity_streak(user_id) == 6

        service.award_badge(user_id, "early_bird")

        assert service.get_activity_streak(user_id) == 6

    def test_award_early_bird(self, test_db, user_id):
        service = GuardianService(test_db)

        badge = service.award_badge(user_id, "early_bird")

        assert badge.id == "early_bird"
        assert service.get_profile(user_id).points == 25
        assert logged_points(test_db, user_id) == 25

    def test_award_is_idempotent(self, test_db, user_id):
        service = GuardianService(test_db)
        service.award_badge(user_id, "early_bird")

        assert service.award_badge(user_id, "early_bird") is None
        assert service.get_profile(user_id).points == 25

    def test_unknown_badge(self, test_db, user_id):
        with pytest.raises(UnknownBadgeError):
            GuardianService(test_db).award_badge(user_id, "moon_walker")

    def test_regional_top_only_when_caller_says_so(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_submitted")

        assert service.refresh_progression(user_id) == []
        assert badge_ids(service.refresh_progression(user_id, is_regional_top=True)) == [
            "regional_expert"
        ]

    def test_badges_with_progress(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_verified")

        progress = {item['badge'].id: item for item in service.get_badges_with_progress(user_id)}

        assert len(progress) == 14
        assert progress["verified_5"]['current_value'] == 1
        assert progress["verified_5"]['progress_percent'] == pytest.approx(20.0)


class TestProfileSummary:

    def test_rejected_reports_counted(self, test_db, user_id):
        service = GuardianService(test_db)
        service.record_activity(user_id, "report_submitted")
        service.record_activity(user_id, "report_rejected")
        service.record_activity(user_id, "report_rejected")

        summary = service.get_profile_summary(user_id)

        assert summary['profile']['reports_rejected'] == 2
        assert summary['profile']['reports_submitted'] == 1

    def test_summary(self, test_db, make_user_id):
        service = GuardianService(test_db)
        leader, follower = make_user_id(1), make_user_id(2)
        service.record_activity(leader, "report_submitted")
        service.record_activity(follower, "comment_added")
        service.update_profile_settings(follower, region="Delhi")

        summary = service.get_profile_summary(follower)

        assert summary['profile']['points'] == 2
        assert summary['profile']['formatted_points'] == "2"
        assert summary['rank_progress']['next_rank'] == "bronze"
        assert summary['rank_benefits'] == ["Basic reporting"]
        assert summary['impact'] == {"hectares_protected": 0.0, "water_bodies_saved": 0}
        assert summary['activity_streak'] == 1
        assert summary['global_rank'] == 2
        assert summary['regional_rank'] == 1

    def test_summary_includes_credited_outcomes(self, test_db, user_id):
        OutcomeService(test_db).record_outcome(
            uuid.uuid4(), "site_closed", date(2026, 3, 1),
            credited_user_id=user_id, privileged=True
        )

        summary = GuardianService(test_db).get_profile_summary(user_id)

        assert summary['outcomes']['sites_closed'] == 1
        assert summary['profile']['enforcement_actions'] == 1
        # 1 enforcement * 2 ha + 1 site closed * 10 ha
        assert summary['impact'] == {"hectares_protected": 12.0, "water_bodies_saved": 1}


class TestRebuildProfile:

    def test_regained_rank_logs_promotion(self, test_db, user_id):
        service = GuardianService(test_db)
        for _ in range(5):
            service.record_activity(user_id, "report_verified")

        profile = service.get_profile(user_id)
        profile.rank = GuardianRank.OBSERVER.value
        test_db.commit()

        assert service.rebuild_profile(user_id) is True

        profile = service.get_profile(user_id)
        assert profile.rank == "bronze"
        assert activity_count(test_db, user_id, "rank_promoted") == 2
        assert profile.points == logged_points(test_db, user_id) == 175
        assert service.rebuild_profile(user_id) is False

    def test_no_drift(self, test_db, user_id):
        service = GuardianService(test_db)
        for _ in range(5):
            service.record_activity(user_id, "report_verified")

        assert service.rebuild_profile(user_id) is False

    def test_repairs_drift(self, test_db, user_id):
        service = GuardianService(test_db)
        for _ in range(5):
            service.record_activity(user_id, "report_verified")

        profile = service.get_profile(user_id)
        profile.points = 9999
        profile.reports_verified = 0
        profile.rank = GuardianRank.DIAMOND.value
        test_db.commit()

        assert service.rebuild_profile(user_id) is True

        profile = service.get_profile(user_id)
        assert profile.points == 150
        assert profile.reports_verified == 5
        assert profile.rank == "bronze"
        assert service.rebuild_profile(user_id) is False
