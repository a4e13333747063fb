from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, File, Form, Header, Query, Request, UploadFile
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import create_engine, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import authenticate, issue_token, require_job_owner, require_role
from config import load_settings
from errors import ConfigurationError, InvalidRequest, NotFound, PersistenceError, ScreeningError
from matching.analyzer import ResumeAnalysisGateway
from matching.llm_client import CompletionClient
from models import Base, Candidate, Job, User
from parsers.extract import DOC, DOCX, PDF, guess_mime_type
from schemas import (
    AnalysisResult, BatchItemOut, BatchReportOut, CandidateListOut, CandidateOut, CandidateStatsOut,
    JobIn, JobOut, JobSummary, JobUpdate, Role, ShortlistIn, UserIn, UserOut,
)
from screening.batch import ResumeBatch, ResumeItem
from screening.filters import (
    FilterSpec, StatusFilter, active_filter_count, compute_stats, filter_candidates, is_auto_qualified,
    rank_candidates,
)
from storage import ResumeStore

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
APPLICATION_TYPES = {PDF, DOC, DOCX}

settings = None
engine = None
Session = sessionmaker(autoflush=False, future=True)
gateway: Optional[ResumeAnalysisGateway] = None
store: Optional[ResumeStore] = None


def _engine_for(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)
    return create_engine(url, future=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings, bind the database and build the analysis gateway."""
    global settings, engine, gateway, store

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    settings.resume_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Using base directory: %s", settings.base_dir)
    engine = _engine_for(settings.database_url)
    Session.configure(bind=engine)
    Base.metadata.create_all(engine)

    try:
        client = CompletionClient.from_settings(settings)
    except ConfigurationError as e:
        logger.critical("%s; resume analysis is disabled", e.message)
        client = None
    gateway = ResumeAnalysisGateway(client)
    store = ResumeStore(settings.resume_dir)

    yield
    engine.dispose()
    logger.info("Application shutting down.")


app = FastAPI(title="TalentScreen API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(ScreeningError)
async def screening_error_handler(request: Request, exc: ScreeningError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=CORS_HEADERS)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=CORS_HEADERS)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "validation failed") if errors else "validation failed"
    return JSONResponse({"error": f"Invalid request: {message}"}, status_code=400, headers=CORS_HEADERS)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Unknown error occurred"}, status_code=500, headers=CORS_HEADERS)


def _candidate_out(c: Candidate, threshold: Optional[int]) -> CandidateOut:
    out = CandidateOut.model_validate(c)
    return out.model_copy(update={"auto_qualified": is_auto_qualified(c, threshold)})


def _owned_candidate(s, user: User, candidate_id: str) -> Candidate:
    candidate = s.get(Candidate, candidate_id)
    if candidate is None:
        raise NotFound(f"Candidate {candidate_id} not found")
    require_job_owner(s, user, candidate.job_id)
    return candidate


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------
@app.get("/")
def root():
    return {
        "name": "TalentScreen API",
        "version": "1.0.0",
        "status": "running",
        "analysis_enabled": gateway is not None and gateway.client is not None,
    }


@app.post("/users", response_model=UserOut, status_code=201)
def create_user(payload: UserIn):
    """Register an identity and hand back its bearer token."""
    with Session() as s:
        user = User(email=payload.email.strip().lower(), role=payload.role.value, api_token=issue_token())
        s.add(user)
        try:
            s.commit()
        except IntegrityError:
            s.rollback()
            raise HTTPException(status_code=409, detail="Email already registered.")
        return UserOut(id=user.id, email=user.email, role=user.role, token=user.api_token)


@app.options("/analyze-resume")
def analyze_resume_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post("/analyze-resume", response_model=AnalysisResult)
async def analyze_resume(request: Request, authorization: Optional[str] = Header(None)):
    body = await request.body()

    def run() -> AnalysisResult:
        with Session() as s:
            return gateway.handle(s, authorization, body)

    result = await run_in_threadpool(run)
    return JSONResponse(result.model_dump(by_alias=True), headers=CORS_HEADERS)


@app.post("/jobs", response_model=JobOut, status_code=201)
def create_job(job: JobIn, authorization: Optional[str] = Header(None)):
    with Session() as s:
        user = authenticate(s, authorization)
        require_role(user, Role.HR.value)
        j = Job(
            user_id=user.id,
            title=job.title.strip(),
            description=job.description,
            requirements=job.requirements or None,
            required_skills=job.required_skills or [],
            min_experience_years=job.min_experience_years,
            education_level=job.education_level.value if job.education_level else None,
            min_score_threshold=job.min_score_threshold,
        )
        s.add(j)
        s.commit()
        s.refresh(j)
        return JobOut.model_validate(j)


@app.get("/jobs", response_model=List[JobOut])
def list_jobs(q: str = ""):
    """Public job board, newest first."""
    with Session() as s:
        stmt = select(Job).order_by(Job.created_at.desc())
        if q.strip():
            pattern = f"%{q.strip().lower()}%"
            stmt = stmt.where(or_(func.lower(Job.title).like(pattern), func.lower(Job.description).like(pattern)))
        return [JobOut.model_validate(j) for j in s.scalars(stmt)]


@app.get("/jobs/mine", response_model=List[JobSummary])
def list_my_jobs(authorization: Optional[str] = Header(None)):
    with Session() as s:
        user = authenticate(s, authorization)
        counts = (
            select(Candidate.job_id, func.count(Candidate.id).label("n"))
            .group_by(Candidate.job_id)
            .subquery()
        )
        rows = s.execute(
            select(Job, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.job_id == Job.id)
            .where(Job.user_id == user.id)
            .order_by(Job.created_at.desc())
        ).all()
        return [
            JobSummary.model_validate(j).model_copy(update={"candidate_count": n})
            for j, n in rows
        ]


@app.get("/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: str):
    with Session() as s:
        j = s.get(Job, job_id)
        if not j:
            raise NotFound(f"Job {job_id} not found")
        return JobOut.model_validate(j)


@app.patch("/jobs/{job_id}", response_model=JobOut)
def update_job(job_id: str, changes: JobUpdate, authorization: Optional[str] = Header(None)):
    with Session() as s:
        user = authenticate(s, authorization)
        j = require_job_owner(s, user, job_id)
        for key, value in changes.model_dump(mode="json", exclude_unset=True).items():
            if key in ("title", "description", "min_score_threshold") and value is None:
                raise InvalidRequest(f"{key} cannot be null")
            setattr(j, key, value)
        s.commit()
        s.refresh(j)
        return JobOut.model_validate(j)


@app.delete("/jobs/{job_id}", status_code=204)
def delete_job(job_id: str, authorization: Optional[str] = Header(None)):
    with Session() as s:
        user = authenticate(s, authorization)
        j = require_job_owner(s, user, job_id)
        s.delete(j)
        s.commit()
    return Response(status_code=204)


@app.get("/jobs/{job_id}/candidates", response_model=CandidateListOut)
def list_candidates(
    job_id: str,
    min_score: int = Query(0, ge=0, le=100),
    max_score: int = Query(100, ge=0, le=100),
    skills: str = "",
    experience: str = "",
    status: StatusFilter = StatusFilter.ALL,
    authorization: Optional[str] = Header(None),
):
    """Ranked, filtered candidates plus stats over the whole job."""
    try:
        spec = FilterSpec((min_score, max_score), skills, experience, status)
    except ValueError as e:
        raise InvalidRequest(str(e))

    with Session() as s:
        user = authenticate(s, authorization)
        job = require_job_owner(s, user, job_id)
        rows = s.scalars(
            select(Candidate).where(Candidate.job_id == job.id).order_by(Candidate.created_at)
        ).all()
        ranked = rank_candidates(rows)
        threshold = job.min_score_threshold
        stats = compute_stats(ranked, threshold)
        return CandidateListOut(
            candidates=[_candidate_out(c, threshold) for c in filter_candidates(ranked, spec)],
            stats=CandidateStatsOut.model_validate(stats),
            active_filter_count=active_filter_count(spec),
            min_score_threshold=threshold,
        )


@app.post("/jobs/{job_id}/screenings", response_model=BatchReportOut)
async def screen_resumes(
    job_id: str,
    files: List[UploadFile] = File(...),
    authorization: Optional[str] = Header(None),
):
    """Analyze a batch of resumes one after another and save each as a candidate."""
    items = [
        ResumeItem(file_name=f.filename or "resume", content=await f.read(), mime_type=f.content_type)
        for f in files
    ]

    def run() -> BatchReportOut:
        with Session() as s:
            user = authenticate(s, authorization)
            job = require_job_owner(s, user, job_id)
            batch = ResumeBatch(
                s, gateway, store, user, job,
                resume_text_limit=settings.resume_text_limit,
                on_progress=lambda done, total: logger.info("Screening progress %d/%d", done, total),
            )
            report = batch.run(items)
            return BatchReportOut(
                total=report.total,
                succeeded=report.succeeded,
                failed=report.failed,
                progress=report.progress,
                outcome=report.outcome,
                message=report.message,
                items=[
                    BatchItemOut(
                        file_name=i.file_name, status=i.status.value, error=i.error, candidate_id=i.candidate_id,
                    )
                    for i in report.items
                ],
            )

    return await run_in_threadpool(run)


@app.post("/jobs/{job_id}/applications", response_model=CandidateOut, status_code=201)
async def apply_to_job(
    job_id: str,
    name: str = Form(...),
    email: str = Form(...),
    phone: Optional[str] = Form(None),
    resume: UploadFile = File(...),
    authorization: Optional[str] = Header(None),
):
    """Job-seeker application: stored as a pending, unanalyzed candidate."""
    content = await resume.read()
    mime_type = guess_mime_type(resume.filename or "", resume.content_type)

    def run():
        with Session() as s:
            user = authenticate(s, authorization)
            require_role(user, Role.JOB_SEEKER.value)
            job = s.get(Job, job_id)
            if job is None:
                raise NotFound(f"Job {job_id} not found")
            if mime_type not in APPLICATION_TYPES:
                raise InvalidRequest("Please upload a PDF or Word document.")
            if len(content) > settings.max_application_bytes:
                raise InvalidRequest("Please upload a file smaller than 5MB.")
            if not name.strip():
                raise InvalidRequest("Name is required.")

            key = store.save(user.id, job.id, resume.filename or "resume", content)
            candidate = Candidate(
                job_id=job.id,
                name=name.strip(),
                email=email.strip(),
                phone=(phone or "").strip() or None,
                resume_path=key,
                status="pending",
            )
            s.add(candidate)
            try:
                s.commit()
            except IntegrityError as e:
                s.rollback()
                raise PersistenceError("Failed to submit application. Please try again.") from e
            s.refresh(candidate)
            return _candidate_out(candidate, job.min_score_threshold)

    return await run_in_threadpool(run)


@app.patch("/candidates/{candidate_id}/shortlist", response_model=CandidateOut)
def update_shortlist(candidate_id: str, payload: ShortlistIn, authorization: Optional[str] = Header(None)):
    """Shortlist, reject, or undo back to undecided."""
    with Session() as s:
        user = authenticate(s, authorization)
        candidate = _owned_candidate(s, user, candidate_id)
        candidate.apply_decision(payload.decision, user.id)
        s.commit()
        s.refresh(candidate)
        return _candidate_out(candidate, candidate.job.min_score_threshold)


@app.delete("/candidates/{candidate_id}", status_code=204)
def delete_candidate(candidate_id: str, authorization: Optional[str] = Header(None)):
    with Session() as s:
        user = authenticate(s, authorization)
        candidate = _owned_candidate(s, user, candidate_id)
        s.delete(candidate)
        s.commit()
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
