"""
Sequential batch screening of uploaded resumes for one job.

Each file walks pending -> uploading -> analyzing -> complete | error.
A failing file never stops the rest of the batch, unless the failure is
fatal (missing AI configuration), in which case the remaining files fail
with the same error without being stored or analyzed.
"""
import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import InvalidRequest, PersistenceError, ScreeningError
from models import Candidate, Job, User
from parsers.extract import SUPPORTED_TYPES, TXT, ResumeTextExtractor, guess_mime_type
from schemas import AnalyzeRequest
from storage import ResumeStore

logger = logging.getLogger(__name__)


class ItemStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (ItemStatus.COMPLETE, ItemStatus.ERROR)


_TRANSITIONS = {
    ItemStatus.PENDING: {ItemStatus.UPLOADING, ItemStatus.ERROR},
    ItemStatus.UPLOADING: {ItemStatus.ANALYZING, ItemStatus.ERROR},
    ItemStatus.ANALYZING: {ItemStatus.COMPLETE, ItemStatus.ERROR},
    ItemStatus.COMPLETE: set(),
    ItemStatus.ERROR: set(),
}


@dataclass
class ResumeItem:
    file_name: str
    content: bytes
    mime_type: Optional[str] = None
    status: ItemStatus = ItemStatus.PENDING
    error: Optional[str] = None
    candidate_id: Optional[str] = None

    def advance(self, status: ItemStatus, error: Optional[str] = None) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Illegal transition {self.status.value} -> {status.value} for {self.file_name}")
        self.status = status
        self.error = error


@dataclass
class BatchReport:
    items: List[ResumeItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def processed(self) -> int:
        return sum(1 for i in self.items if i.status.terminal)

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.status is ItemStatus.COMPLETE)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if i.status is ItemStatus.ERROR)

    @property
    def progress(self) -> float:
        return (self.processed / self.total) * 100 if self.total else 0.0

    @property
    def outcome(self) -> str:
        if self.total and self.succeeded == self.total:
            return "success"
        return "partial" if self.succeeded else "failed"

    @property
    def message(self) -> str:
        if self.succeeded:
            return f"Successfully processed {self.succeeded} of {self.total} resumes."
        return "No resumes could be processed. Please try again."


ProgressCallback = Callable[[int, int], None]


class ResumeBatch:
    def __init__(
        self,
        session: Session,
        gateway,
        store: ResumeStore,
        user: User,
        job: Job,
        extractor: Optional[ResumeTextExtractor] = None,
        resume_text_limit: int = 10_000,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.store = store
        self.user = user
        self.job = job
        self.extractor = extractor or ResumeTextExtractor()
        self.resume_text_limit = resume_text_limit
        self.on_progress = on_progress

    def run(self, items: List[ResumeItem]) -> BatchReport:
        report = BatchReport(items=items)
        fatal: Optional[ScreeningError] = None
        for processed, item in enumerate(items, start=1):
            try:
                if fatal is not None:
                    raise fatal
                self._process(item)
            except ScreeningError as e:
                logger.warning("Screening failed for %s: %s", item.file_name, e.message)
                item.advance(ItemStatus.ERROR, e.message)
                # Every later item would fail the same way.
                if e.fatal:
                    fatal = e
            except Exception:
                logger.exception("Unexpected error processing %s", item.file_name)
                item.advance(ItemStatus.ERROR, "Unknown error")
            if self.on_progress:
                self.on_progress(processed, len(items))
        logger.info("Batch for job %s finished: %s", self.job.id, report.message)
        return report

    def _process(self, item: ResumeItem) -> None:
        item.mime_type = guess_mime_type(item.file_name, item.mime_type)
        if item.mime_type not in SUPPORTED_TYPES:
            raise InvalidRequest(f"Unsupported file type: {item.mime_type or 'unknown'}")
        self.gateway.ensure_configured()

        item.advance(ItemStatus.UPLOADING)
        resume_path = None
        try:
            resume_path = self.store.save(self.user.id, self.job.id, item.file_name, item.content)
        except OSError as e:
            logger.error("Upload error for %s: %s", item.file_name, e)

        item.advance(ItemStatus.ANALYZING)
        resume_text = self.extractor.extract_text(item.content, item.mime_type)
        result = self.gateway.analyze_for(self.session, self.user, self._request(item, resume_text))

        candidate = Candidate(
            job_id=self.job.id,
            name=result.name or Path(item.file_name).stem,
            email=result.email,
            phone=result.phone,
            skills=result.skills,
            education=result.education,
            experience=result.experience,
            match_score=result.match_score,
            key_matches=result.key_matches,
            missing_skills=result.missing_skills,
            analysis_summary=result.summary,
            resume_text=resume_text[: self.resume_text_limit],
            resume_path=resume_path,
            status="analyzed",
        )
        try:
            self.session.add(candidate)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to save candidate from %s: %s", item.file_name, e)
            raise PersistenceError() from e

        item.candidate_id = candidate.id
        item.advance(ItemStatus.COMPLETE)

    def _request(self, item: ResumeItem, resume_text: str) -> AnalyzeRequest:
        common = dict(
            file_name=item.file_name,
            job_description=self.job.description,
            job_requirements=self.job.requirements,
            job_id=self.job.id,
        )
        # Plain text goes in verbatim; documents travel inline.
        if item.mime_type == TXT and resume_text:
            return AnalyzeRequest(resume_text=resume_text, mime_type=TXT, **common)
        return AnalyzeRequest(
            file_base64=base64.b64encode(item.content).decode("ascii"),
            mime_type=item.mime_type,
            **common,
        )
