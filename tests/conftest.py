import json

import pytest
from fastapi.testclient import TestClient

import app as app_module
import matching.llm_client as llm_client

ANALYSIS = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "phone": None,
    "skills": ["Python", "Machine Learning", "SQL"],
    "education": "BSc Mathematics, University of London, 1835",
    "experience": "Senior analyst at Analytical Engines Ltd, 5 years",
    "matchScore": 82,
    "keyMatches": ["Python", "SQL"],
    "missingSkills": ["Kubernetes"],
    "summary": "Strong analytical background with most of the required stack.",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def completion(content, status_code=200):
    return FakeResponse(status_code, {"choices": [{"message": {"content": content}}]})


class FakeUpstream:
    """Stands in for requests.post and records every call."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def reply(self, *responses):
        self.responses.extend(responses)

    def __call__(self, url, **kwargs):
        self.calls.append(dict(kwargs, url=url))
        if self.responses:
            return self.responses.pop(0)
        return completion(json.dumps(ANALYSIS))


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(llm_client.requests, "post", fake)
    return fake


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("BASE_DIR", str(tmp_path))
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("AI_API_KEY", "test-key")
    monkeypatch.setenv("AI_API_URL", "https://ai.example.test/v1/chat/completions")
    monkeypatch.setenv("AI_MODEL", "test-model")
    monkeypatch.delenv("AI_TIMEOUT", raising=False)
    return tmp_path


@pytest.fixture
def client(env, upstream):
    with TestClient(app_module.app) as c:
        yield c


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def hr(client):
    r = client.post("/users", json={"email": "hr@example.com", "role": "hr"})
    assert r.status_code == 201
    return r.json()


@pytest.fixture
def other_hr(client):
    r = client.post("/users", json={"email": "other@example.com", "role": "hr"})
    return r.json()


@pytest.fixture
def seeker(client):
    r = client.post("/users", json={"email": "seeker@example.com", "role": "job_seeker"})
    return r.json()


@pytest.fixture
def job(client, hr):
    r = client.post(
        "/jobs",
        json={
            "title": "Data Engineer",
            "description": "Build data pipelines in Python and SQL.",
            "requirements": "3+ years of ETL work",
            "required_skills": ["Python", "SQL"],
            "min_score_threshold": 70,
        },
        headers=auth(hr["token"]),
    )
    assert r.status_code == 201
    return r.json()
