"""
Resume analysis gateway.

Authenticates the caller, checks job ownership, sends the resume and job
description to the completion service and normalizes the JSON it returns
into an ``AnalysisResult``. Stateless: no retries, caching or dedup.
"""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from auth import authenticate, require_job_owner
from errors import ConfigurationError, InvalidRequest, ResponseParseError
from matching.llm_client import CompletionClient
from matching.prompts import REQUIREMENTS_TEMPLATE, SYSTEM_PROMPT, USER_TEMPLATE, USER_TEXT_TEMPLATE
from models import User
from schemas import AnalysisResult, AnalyzeRequest

logger = logging.getLogger(__name__)


def strip_code_fences(content: str) -> str:
    """Drop a leading ```json / ``` and a trailing ``` around a model reply."""
    text = content.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_analysis(content: str) -> AnalysisResult:
    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse AI response: %s; raw content: %s", e, content[:300])
        raise ResponseParseError() from e
    if not isinstance(data, dict):
        logger.error("AI response is not a JSON object: %s", content[:300])
        raise ResponseParseError()
    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.error("AI response does not match the analysis schema: %s", e)
        raise ResponseParseError() from e


def parse_analyze_request(body: bytes) -> AnalyzeRequest:
    try:
        return AnalyzeRequest.model_validate_json(body or b"{}")
    except ValidationError as e:
        first = e.errors()[0]
        raise InvalidRequest(f"Invalid request body: {first.get('msg', 'validation failed')}") from e


def build_messages(request: AnalyzeRequest) -> List[dict]:
    requirements = ""
    if request.job_requirements:
        requirements = REQUIREMENTS_TEMPLATE.format(requirements=request.job_requirements)

    if request.has_document:
        user_content = [
            {"type": "text", "text": USER_TEMPLATE.format(jd=request.job_description, requirements=requirements)},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{request.mime_type};base64,{request.file_base64}"},
            },
        ]
    else:
        user_content = USER_TEXT_TEMPLATE.format(
            jd=request.job_description, requirements=requirements, resume=request.resume_text,
        )

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


class ResumeAnalysisGateway:
    def __init__(self, client: Optional[CompletionClient]):
        self.client = client

    def handle(self, session: Session, authorization: Optional[str], body: bytes) -> AnalysisResult:
        """Full request path: credential first, then body, ownership and analysis."""
        user = authenticate(session, authorization)
        request = parse_analyze_request(body)
        return self.analyze_for(session, user, request)

    def analyze_for(self, session: Session, user: User, request: AnalyzeRequest) -> AnalysisResult:
        if request.job_id:
            require_job_owner(session, user, request.job_id)
        return self.analyze(request)

    def ensure_configured(self) -> None:
        if self.client is None:
            raise ConfigurationError("AI_API_KEY is not configured")

    def analyze(self, request: AnalyzeRequest) -> AnalysisResult:
        self.ensure_configured()

        logger.info(
            "Processing resume: %s (%s)",
            request.file_name or "<text>", request.mime_type or "text/plain",
        )
        content = self.client.complete(build_messages(request))
        logger.info("AI response received: %s", content[:300])
        return parse_analysis(content)
