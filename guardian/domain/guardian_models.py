from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from uuid import UUID

from .engine import ActivityType, GuardianRank, OutcomeType
from .engine.leaderboard import LeaderboardCategory, LeaderboardPeriod

# ============================================================================
# RESPONSE DTOs
# ============================================================================

class BadgeResponse(BaseModel):
    """Catalog badge"""
    id: str
    name: str
    description: str
    icon: str
    points: int
    requirement_type: Optional[str] = None
    requirement_value: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class EarnedBadgeResponse(BaseModel):
    """Badge a user has unlocked"""
    badge_id: str
    badge_name: str
    badge_description: Optional[str] = None
    badge_icon: Optional[str] = None
    points_awarded: int
    earned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BadgeWithProgressResponse(BaseModel):
    """Badge with user's progress toward earning it"""
    badge: BadgeResponse
    earned: bool
    current_value: Optional[int] = None
    required_value: Optional[int] = None
    progress_percent: Optional[float] = None


class RankProgressResponse(BaseModel):
    next_rank: Optional[GuardianRank] = None
    verified_progress: float
    points_progress: float


class RankResponse(BaseModel):
    """One rung of the rank ladder"""
    rank: GuardianRank
    min_verified_reports: int
    min_points: int
    benefits: List[str]


class ActivityResponse(BaseModel):
    """Activity log entry"""
    id: UUID
    activity_type: ActivityType
    incident_id: Optional[UUID] = None
    points_earned: int
    metadata: Dict[str, Any] = {}
    message: str
    created_at: datetime


class ImpactResponse(BaseModel):
    hectares_protected: float
    water_bodies_saved: int


class OutcomeTallyResponse(BaseModel):
    verified_outcomes: int
    total_impact_score: float
    enforcement_actions: int
    sites_closed: int
    equipment_seized: int
    arrests_made: int


class ProfileResponse(BaseModel):
    user_id: UUID
    display_name: str
    bio: Optional[str] = None
    region: Optional[str] = None
    rank: GuardianRank
    points: int
    formatted_points: str
    reports_submitted: int
    reports_verified: int
    reports_rejected: int = 0
    enforcement_actions: int
    show_on_leaderboard: bool
    created_at: Optional[datetime] = None


class ProfileSummaryResponse(BaseModel):
    """Complete guardian profile with derived figures"""
    profile: ProfileResponse
    rank_progress: RankProgressResponse
    rank_benefits: List[str]
    outcomes: OutcomeTallyResponse
    impact: ImpactResponse
    badges: List[EarnedBadgeResponse]
    recent_badges: List[EarnedBadgeResponse]
    recent_activities: List[ActivityResponse]
    activity_streak: int
    global_rank: Optional[int] = None
    regional_rank: Optional[int] = None


class ActivityResultResponse(BaseModel):
    """What happened after recording an activity"""
    user_id: UUID
    activity_type: ActivityType
    points_earned: int
    points: int
    rank: GuardianRank
    previous_rank: GuardianRank
    promoted: bool
    new_badges: List[BadgeResponse]


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: UUID
    display_name: str
    guardian_rank: GuardianRank
    score: int
    region: Optional[str] = None


class LeaderboardResponse(BaseModel):
    period: LeaderboardPeriod
    category: LeaderboardCategory
    region: Optional[str] = None
    entries: List[LeaderboardEntryResponse]
    updated_at: datetime
    current_user_rank: Optional[int] = None


class OutcomeResponse(BaseModel):
    id: UUID
    incident_id: UUID
    outcome_type: OutcomeType
    outcome_date: date
    description: Optional[str] = None
    evidence_url: Optional[str] = None
    reported_by: Optional[UUID] = None
    credited_user_id: Optional[UUID] = None
    verified: bool
    verified_by: Optional[UUID] = None
    verified_at: Optional[datetime] = None
    impact_score: float
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IncidentOutcomesResponse(BaseModel):
    outcomes: List[OutcomeResponse]
    total_impact_score: float
    verified_outcomes: int


# ============================================================================
# REQUEST DTOs
# ============================================================================

class ActivityCreate(BaseModel):
    """Request DTO for recording a scored activity"""
    user_id: UUID
    activity_type: ActivityType
    incident_id: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = None
    display_name: Optional[str] = Field(None, min_length=3, max_length=50)


class ProfileSettingsUpdate(BaseModel):
    """Request DTO for updating profile/privacy settings"""
    display_name: Optional[str] = Field(None, min_length=3, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    region: Optional[str] = Field(None, max_length=100)
    show_on_leaderboard: Optional[bool] = None


class OutcomeCreate(BaseModel):
    """Request DTO for recording an incident outcome"""
    outcome_type: OutcomeType
    outcome_date: date
    description: Optional[str] = None
    evidence_url: Optional[str] = None
    reported_by: Optional[UUID] = None
    credited_user_id: Optional[UUID] = None
    privileged: bool = False


class OutcomeVerifyRequest(BaseModel):
    verified_by: UUID
