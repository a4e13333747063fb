import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, TypeDecorator,
)
from sqlalchemy.orm import declarative_base, relationship

from screening.filters import ShortlistState

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JSONType(TypeDecorator):
    """Custom JSON type that works reliably with SQLite."""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Convert Python object to JSON string for storage."""
        if value is None:
            return None
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        """Convert JSON string back to Python object."""
        if value is None:
            return None
        return json.loads(value)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, nullable=False)
    role = Column(String, nullable=False)  # "hr" | "job_seeker"
    api_token = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        CheckConstraint(
            "min_score_threshold >= 0 AND min_score_threshold <= 100",
            name="ck_jobs_min_score_threshold",
        ),
    )
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=True)
    required_skills = Column(JSONType, nullable=True)
    min_experience_years = Column(Integer, nullable=True)
    education_level = Column(String, nullable=True)
    min_score_threshold = Column(Integer, nullable=False, default=60)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now, nullable=False)

    candidates = relationship(
        "Candidate", back_populates="job", cascade="all, delete-orphan",
    )


class Candidate(Base):
    __tablename__ = "candidates"
    id = Column(String(36), primary_key=True, default=_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    skills = Column(JSONType, nullable=True)
    education = Column(Text, nullable=True)
    experience = Column(Text, nullable=True)
    match_score = Column(Integer, nullable=True)
    key_matches = Column(JSONType, nullable=True)
    missing_skills = Column(JSONType, nullable=True)
    analysis_summary = Column(Text, nullable=True)
    is_shortlisted = Column(Boolean, nullable=True)
    shortlisted_at = Column(DateTime(timezone=True), nullable=True)
    shortlisted_by = Column(String(36), nullable=True)
    resume_path = Column(String, nullable=True)
    resume_text = Column(Text, nullable=True)
    status = Column(String, nullable=True)  # "analyzed" | "pending"
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    job = relationship("Job", back_populates="candidates")

    @property
    def shortlist_state(self) -> ShortlistState:
        return ShortlistState.from_flag(self.is_shortlisted)

    def apply_decision(self, state: ShortlistState, actor_id: str) -> None:
        """Move the tri-state flag; only shortlisting is stamped with time and actor."""
        self.is_shortlisted = state.to_flag()
        if state is ShortlistState.SHORTLISTED:
            self.shortlisted_at = _now()
            self.shortlisted_by = actor_id
        else:
            self.shortlisted_at = None
            self.shortlisted_by = None
