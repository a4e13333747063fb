"""Bearer-token identities and job ownership checks."""
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from errors import Forbidden, NotFound, Unauthorized
from models import Job, User


def issue_token() -> str:
    return secrets.token_urlsafe(32)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(session: Session, authorization: Optional[str]) -> User:
    token = bearer_token(authorization)
    if token is None:
        raise Unauthorized("Missing authorization header")
    user = session.scalar(select(User).where(User.api_token == token))
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return user


def require_role(user: User, role: str) -> None:
    if user.role != role:
        raise Forbidden(f"This action requires the '{role}' role")


def require_job_owner(session: Session, user: User, job_id: str) -> Job:
    job = session.get(Job, job_id)
    if job is None:
        raise NotFound(f"Job {job_id} not found")
    if job.user_id != user.id:
        raise Forbidden("You do not own this job")
    return job
