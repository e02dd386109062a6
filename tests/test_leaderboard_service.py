"""Tests for LeaderboardService rankings built from the activity log."""
from datetime import datetime, timedelta

import pytest

from guardian.domain.services.leaderboard_service import LeaderboardService
from guardian.infrastructure import models

NOW = datetime(2026, 3, 31, 12, 0)


def add_profile(db, user_id, region=None, show_on_leaderboard=True, rank="observer"):
    db.add(models.GuardianProfile(
        user_id=user_id,
        region=region,
        rank=rank,
        points=0,
        reports_submitted=0,
        reports_verified=0,
        enforcement_actions=0,
        show_on_leaderboard=show_on_leaderboard,
    ))
    db.commit()


def add_activity(db, user_id, activity_type, points, days_ago=1):
    db.add(models.UserActivity(
        user_id=user_id,
        activity_type=activity_type,
        points_earned=points,
        created_at=NOW - timedelta(days=days_ago),
    ))
    db.commit()


@pytest.fixture
def users(test_db, make_user_id):
    """Three guardians: u1 and u3 tie on points, u2 leads."""
    u1, u2, u3 = make_user_id(1), make_user_id(2), make_user_id(3)
    add_profile(test_db, u1, region="Delhi")
    add_profile(test_db, u2, region="Delhi", rank="bronze")
    add_profile(test_db, u3, region="Mumbai")

    add_activity(test_db, u1, "report_verified", 100)
    add_activity(test_db, u2, "report_submitted", 150, days_ago=20)
    add_activity(test_db, u3, "enforcement_triggered", 60)
    add_activity(test_db, u3, "report_submitted", 40, days_ago=3)
    return u1, u2, u3


class TestComputeRanking:

    def test_all_time_points_with_tie_break(self, test_db, users):
        u1, u2, u3 = users

        ranking = LeaderboardService(test_db).compute_ranking(now=NOW)

        assert [(e.rank, e.user_id, e.score) for e in ranking] == [
            (1, u2, 150),
            (2, u1, 100),
            (3, u3, 100),
        ]
        assert ranking[0].guardian_rank == "bronze"

    def test_weekly_window(self, test_db, users):
        u1, u2, u3 = users

        ranking = LeaderboardService(test_db).compute_ranking("weekly", now=NOW)

        assert [(e.user_id, e.score) for e in ranking] == [(u1, 100), (u3, 100)]

    def test_monthly_window(self, test_db, users):
        ranking = LeaderboardService(test_db).compute_ranking("monthly", now=NOW)

        assert len(ranking) == 3

    def test_reports_category(self, test_db, users):
        u1, u2, u3 = users

        ranking = LeaderboardService(test_db).compute_ranking(category="reports", now=NOW)

        assert [(e.user_id, e.score) for e in ranking] == [(u2, 1), (u3, 1)]

    def test_enforcement_category(self, test_db, users):
        u1, u2, u3 = users

        ranking = LeaderboardService(test_db).compute_ranking(category="enforcement", now=NOW)

        assert [(e.rank, e.user_id, e.score) for e in ranking] == [(1, u3, 1)]

    def test_region_filter(self, test_db, users):
        u1, u2, u3 = users

        ranking = LeaderboardService(test_db).compute_ranking(region="Delhi", now=NOW)

        assert [e.user_id for e in ranking] == [u2, u1]

    def test_opted_out_users_hidden(self, test_db, users, make_user_id):
        hidden = make_user_id(9)
        add_profile(test_db, hidden, show_on_leaderboard=False)
        add_activity(test_db, hidden, "report_verified", 500)

        ranking = LeaderboardService(test_db).compute_ranking(now=NOW)

        assert hidden not in [e.user_id for e in ranking]

    def test_zero_scores_hidden(self, test_db, make_user_id):
        idle = make_user_id(5)
        add_profile(test_db, idle)
        add_activity(test_db, idle, "report_rejected", 0)

        assert LeaderboardService(test_db).compute_ranking(now=NOW) == []


class TestGetLeaderboard:

    def test_response_shape(self, test_db, users):
        u1, u2, u3 = users

        board = LeaderboardService(test_db).get_leaderboard(
            limit=2, current_user_id=u3, now=NOW
        )

        assert board['period'] == "all_time"
        assert board['category'] == "points"
        assert board['updated_at'] == NOW
        assert [entry['user_id'] for entry in board['entries']] == [u2, u1]
        assert board['entries'][0]['display_name'] == f"Guardian_{str(u2)[:8]}"
        # Position is computed over the full ranking, not the page
        assert board['current_user_rank'] == 3

    def test_unlisted_user_has_no_rank(self, test_db, users, make_user_id):
        board = LeaderboardService(test_db).get_leaderboard(
            current_user_id=make_user_id(42), now=NOW
        )

        assert board['current_user_rank'] is None

    def test_get_user_rank(self, test_db, users):
        u1, u2, u3 = users

        assert LeaderboardService(test_db).get_user_rank(u1) == 2

    def test_invalid_period(self, test_db):
        with pytest.raises(ValueError):
            LeaderboardService(test_db).get_leaderboard(period="yearly")


class TestRegions:

    def test_get_regions(self, test_db, users):
        assert LeaderboardService(test_db).get_regions() == ["Delhi", "Mumbai"]

    def test_regional_top_reporter(self, test_db, users):
        u1, u2, u3 = users
        service = LeaderboardService(test_db)

        assert service.get_regional_top_reporter("Delhi", now=NOW) == u2
        assert service.get_regional_top_reporter("Mumbai", now=NOW) == u3
        assert service.get_regional_top_reporter("Chennai", now=NOW) is None
