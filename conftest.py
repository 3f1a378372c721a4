"""Shared pytest fixtures: schedule record builders and fake HTTP sessions."""

import pytest
import requests

from pdf_parser import ExtractedPool
from schedule import PoolSchedule, ProgramEntry


def program(category, day, start, end, original=None):
    return ProgramEntry(
        category=category,
        categoryOriginal=original or category,
        dayOfWeek=day,
        startTime=start,
        endTime=end,
    )


def pool(pool_id, programs=(), name=None, **fields):
    name = name or (pool_id or "Unknown").title()
    return PoolSchedule(
        id=pool_id,
        name=name,
        shortName=name,
        displayName=name,
        programs=list(programs),
        **fields,
    )


def extracted(pool_name, programs, **fields):
    return ExtractedPool(
        poolName=pool_name,
        programs=[
            {"programName": n, "dayOfWeek": d, "startTime": s, "endTime": e}
            for n, d, s, e in programs
        ],
        **fields,
    )


class FakeResponse:

    def __init__(self, text="", content=None, status_code=200):
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")
        self.status_code = status_code

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Serves canned responses by URL and records every request."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.requests = []

    def get(self, url, headers=None, timeout=None):
        self.requests.append(("GET", url, None))
        if self.error:
            raise self.error
        if url not in self.pages:
            return FakeResponse(status_code=404)
        page = self.pages[url]
        if isinstance(page, bytes):
            return FakeResponse(content=page)
        return FakeResponse(text=page)

    def post(self, url, data=None, timeout=None):
        self.requests.append(("POST", url, data))
        if self.error:
            raise self.error
        return self.pages.get(url, FakeResponse(text="{\"status\":1}"))


@pytest.fixture
def make_program():
    return program


@pytest.fixture
def make_pool():
    return pool


@pytest.fixture
def make_extracted():
    return extracted


@pytest.fixture
def fake_session():
    return FakeSession
