# Backend Test Configuration
# This file contains shared pytest fixtures and configuration

import os
import sys
import json
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest
import jwt
from multidict import CIMultiDict, CIMultiDictProxy

# Environment must be in place before any app module is imported
TEST_JWT_SECRET = "test-secret-" + "x" * 32
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("AUDIT_LOG_FILE", os.path.join(tempfile.gettempdir(), "webguard-audit-test.log"))
os.environ.pop("AI_GATEWAY_API_KEY", None)
os.environ.pop("BLOCK_PRIVATE_TARGETS", None)

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import SSLResult, HeadersResult, VulnerabilityResult, DNSResult, WhoisResult, ScanRecord


# ============================================================================
# Fake aiohttp client
# ============================================================================

class FakeStreamReader:
    def __init__(self, chunks: List[bytes]):
        self._chunks = chunks

    async def iter_any(self):
        for chunk in self._chunks:
            yield chunk


class FakeResponse:
    """Stands in for aiohttp.ClientResponse inside `async with`."""

    def __init__(self, status: int = 200, headers: Optional[dict] = None, body: str = "",
                 chunks: Optional[List[bytes]] = None):
        self.status = status
        self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))
        self._body = body
        self.content = FakeStreamReader(chunks or [])

    async def text(self, errors: str = "strict") -> str:
        return self._body

    async def json(self, content_type: Optional[str] = "application/json"):
        return json.loads(self._body)


class _FakeRequestContext:
    def __init__(self, outcome):
        self._outcome = outcome

    async def __aenter__(self):
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    Minimal aiohttp.ClientSession replacement.

    `handler(method, url, kwargs)` returns a FakeResponse or raises; raised
    exceptions surface when the request context is entered, like aiohttp.
    """

    def __init__(self, handler: Callable, calls: list):
        self.handler = handler
        self.calls = calls

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def close(self):
        pass

    def _request(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        try:
            outcome = self.handler(method, url, kwargs)
        except Exception as e:
            outcome = e
        return _FakeRequestContext(outcome)

    def head(self, url, **kwargs):
        return self._request("HEAD", url, **kwargs)

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)


class FakeHTTP:
    """Controller returned by the fake_http fixture."""

    def __init__(self):
        self.calls = []
        self.handler = lambda method, url, kwargs: FakeResponse()

    def session(self, *args, **kwargs) -> FakeSession:
        return FakeSession(lambda m, u, k: self.handler(m, u, k), self.calls)


@pytest.fixture
def fake_http(monkeypatch):
    """Route every probe request through an in-memory handler."""
    controller = FakeHTTP()
    monkeypatch.setattr("probes._new_session", controller.session)
    return controller


# ============================================================================
# Sample Data Fixtures
# ============================================================================

ALL_HEADERS = [
    "strict-transport-security",
    "content-security-policy",
    "x-frame-options",
    "x-content-type-options",
    "x-xss-protection",
    "referrer-policy",
    "permissions-policy",
]


@pytest.fixture
def secure_ssl():
    return SSLResult(valid=True, protocol="https:", expires="90 days", issuer="Unknown", status="active")


@pytest.fixture
def insecure_ssl():
    return SSLResult(valid=False, protocol="http:", expires="90 days", issuer="Unknown", status="active")


@pytest.fixture
def all_headers_present():
    return HeadersResult(present=list(ALL_HEADERS), missing=[])


@pytest.fixture
def clean_vulnerabilities():
    return VulnerabilityResult(xss=False, sqli=False, csrf=False)


@pytest.fixture
def sample_scan_record():
    return ScanRecord(
        id="123e4567-e89b-12d3-a456-426614174000",
        url="https://example.com",
        score=75,
        ssl=SSLResult(valid=True, protocol="https:", expires="90 days", issuer="Unknown", status="active"),
        headers=HeadersResult(present=["x-frame-options"], missing=[h for h in ALL_HEADERS if h != "x-frame-options"]),
        vulnerabilities=VulnerabilityResult(),
        dns=DNSResult(records=["A: 93.184.216.34"], hostname="example.com"),
        whois=WhoisResult(domain="example.com"),
        recommendations=["Add missing security headers: strict-transport-security, content-security-policy, x-content-type-options"],
        owner="user-123",
    )


# ============================================================================
# Auth helpers
# ============================================================================

def make_token(sub: Optional[str] = "user-123", secret: str = TEST_JWT_SECRET,
               expires_in: int = 3600, **claims) -> str:
    payload = {
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "email": "owner@example.com",
        **claims,
    }
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def token_factory():
    return make_token
