import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from screening.filters import ShortlistState


class Role(str, Enum):
    HR = "hr"
    JOB_SEEKER = "job_seeker"


class EducationLevel(str, Enum):
    HIGH_SCHOOL = "high_school"
    ASSOCIATE = "associate"
    BACHELOR = "bachelor"
    MASTER = "master"
    PHD = "phd"


# Identities
class UserIn(BaseModel):
    email: str = Field(..., min_length=3)
    role: Role


class UserOut(BaseModel):
    id: str
    email: str
    role: Role
    token: str


# Job posting model
class JobIn(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    requirements: Optional[str] = None
    required_skills: List[str] = []
    min_experience_years: Optional[int] = Field(None, ge=0)
    education_level: Optional[EducationLevel] = None
    min_score_threshold: int = Field(60, ge=0, le=100)


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    requirements: Optional[str] = None
    required_skills: Optional[List[str]] = None
    min_experience_years: Optional[int] = Field(None, ge=0)
    education_level: Optional[EducationLevel] = None
    min_score_threshold: Optional[int] = Field(None, ge=0, le=100)


class JobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str
    requirements: Optional[str] = None
    required_skills: Optional[List[str]] = None
    min_experience_years: Optional[int] = None
    education_level: Optional[EducationLevel] = None
    min_score_threshold: int = 60
    created_at: datetime
    updated_at: datetime


class JobSummary(JobOut):
    candidate_count: int = 0


# Candidates
class CandidateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: Optional[List[str]] = None
    education: Optional[str] = None
    experience: Optional[str] = None
    match_score: Optional[int] = None
    key_matches: Optional[List[str]] = None
    missing_skills: Optional[List[str]] = None
    analysis_summary: Optional[str] = None
    is_shortlisted: Optional[bool] = None
    shortlist_state: ShortlistState = ShortlistState.UNDECIDED
    shortlisted_at: Optional[datetime] = None
    shortlisted_by: Optional[str] = None
    resume_path: Optional[str] = None
    status: Optional[str] = None
    created_at: datetime
    auto_qualified: bool = False


class CandidateStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    shortlisted: int
    rejected: int
    pending: int
    auto_qualified: int


class CandidateListOut(BaseModel):
    candidates: List[CandidateOut]
    stats: CandidateStatsOut
    active_filter_count: int
    min_score_threshold: int


class ShortlistIn(BaseModel):
    decision: ShortlistState


# Resume analysis gateway
class AnalyzeRequest(BaseModel):
    """Either an inline document (base64 + media type) or extracted resume text."""
    model_config = ConfigDict(populate_by_name=True)

    file_base64: Optional[str] = Field(None, alias="fileBase64")
    file_name: Optional[str] = Field(None, alias="fileName")
    mime_type: Optional[str] = Field(None, alias="mimeType")
    resume_text: Optional[str] = Field(None, alias="resumeText")
    job_description: str = Field(..., alias="jobDescription", min_length=1)
    job_requirements: Optional[str] = Field(None, alias="jobRequirements")
    job_id: Optional[str] = Field(None, alias="jobId")

    @model_validator(mode="after")
    def _check_payload(self):
        if self.file_base64:
            if not self.mime_type:
                raise ValueError("mimeType is required with fileBase64")
        elif not self.resume_text:
            raise ValueError("Either fileBase64 or resumeText must be provided")
        return self

    @property
    def has_document(self) -> bool:
        return bool(self.file_base64)


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value if v is not None)
    return value


class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = []
    education: str = ""
    experience: str = ""
    match_score: int = Field(0, alias="matchScore", ge=0, le=100)
    key_matches: List[str] = Field(default_factory=list, alias="keyMatches")
    missing_skills: List[str] = Field(default_factory=list, alias="missingSkills")
    summary: str = ""

    @field_validator("name", "education", "experience", "summary", mode="before")
    @classmethod
    def _text(cls, value):
        return _as_text(value)

    @field_validator("skills", "key_matches", "missing_skills", mode="before")
    @classmethod
    def _list(cls, value):
        return [] if value is None else value

    @field_validator("match_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        if value is None:
            return 0
        if isinstance(value, str):
            value = float(value.strip().rstrip("%"))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if not math.isfinite(value):
                raise ValueError("matchScore must be a finite number")
            return max(0, min(100, int(round(value))))
        return value


# Batch screening
class BatchItemOut(BaseModel):
    file_name: str
    status: str
    error: Optional[str] = None
    candidate_id: Optional[str] = None


class BatchReportOut(BaseModel):
    total: int
    succeeded: int
    failed: int
    progress: float
    outcome: str
    message: str
    items: List[BatchItemOut]
