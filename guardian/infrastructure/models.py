from sqlalchemy import Column, String, Float, Date, DateTime, Boolean, ForeignKey, Integer, Text, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from .database import Base
import json
import uuid
from datetime import datetime

class GuardianProfile(Base):
    """
    Per-user reputation aggregate.

    points, rank and the counters are a materialized cache of the
    user_activities log; GuardianService.rebuild_profile recomputes them.
    """
    __tablename__ = "guardian_profiles"
    user_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name = Column(String(50), unique=True, nullable=True, index=True)
    bio = Column(Text, nullable=True)
    region = Column(String, nullable=True, index=True)

    # Reputation (never decremented)
    rank = Column(String, default="observer", nullable=False)
    points = Column(Integer, default=0, nullable=False)
    reports_submitted = Column(Integer, default=0, nullable=False)
    reports_verified = Column(Integer, default=0, nullable=False)
    enforcement_actions = Column(Integer, default=0, nullable=False)

    # Privacy
    show_on_leaderboard = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    badges = relationship("UserBadge", back_populates="profile", cascade="all, delete-orphan")
    activities = relationship("UserActivity", back_populates="profile", cascade="all, delete-orphan")

    @property
    def public_name(self) -> str:
        """Name shown on leaderboards when no display name is set."""
        return self.display_name or f"Guardian_{str(self.user_id)[:8]}"


class UserBadge(Base):
    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("guardian_profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    badge_id = Column(String, nullable=False)
    badge_name = Column(String, nullable=False)
    badge_description = Column(String, nullable=True)
    badge_icon = Column(String, nullable=True)
    points_awarded = Column(Integer, default=0)
    earned_at = Column(DateTime, default=datetime.utcnow)

    profile = relationship("GuardianProfile", back_populates="badges")


class UserActivity(Base):
    """Append-only activity log. Rows are never updated or deleted."""
    __tablename__ = "user_activities"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("guardian_profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    activity_type = Column(String, nullable=False, index=True)
    incident_id = Column(Uuid, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)
    extra_metadata = Column(Text, default="{}")  # JSON string
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    profile = relationship("GuardianProfile", back_populates="activities")

    @property
    def metadata_dict(self) -> dict:
        try:
            return json.loads(self.extra_metadata or "{}")
        except json.JSONDecodeError:
            return {}


class IncidentOutcome(Base):
    """Real-world enforcement/remediation result tied to an incident."""
    __tablename__ = "incident_outcomes"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    incident_id = Column(Uuid, nullable=False, index=True)
    outcome_type = Column(String, nullable=False, index=True)
    outcome_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    evidence_url = Column(String, nullable=True)

    reported_by = Column(Uuid, nullable=True)  # who recorded the outcome
    credited_user_id = Column(Uuid, ForeignKey("guardian_profiles.user_id", ondelete="SET NULL"), nullable=True, index=True)  # incident reporter

    # One-way: False -> True, set once by a privileged actor
    verified = Column(Boolean, default=False, nullable=False)
    verified_by = Column(Uuid, nullable=True)
    verified_at = Column(DateTime, nullable=True)

    impact_score = Column(Float, default=0.0, nullable=False)  # fixed at creation
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


Index("ix_user_activities_user_created", UserActivity.user_id, UserActivity.created_at)
