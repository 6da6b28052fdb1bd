"""Pytest fixtures for social-archiver tests."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest

from social_archiver.domain.entities import (
    Author,
    Engagement,
    MediaRef,
    MediaType,
    PageSnapshot,
    Platform,
    PostContent,
    PostFlags,
    PostRecord,
    PostTimestamp,
    PostType,
    SourceUrls,
)
from social_archiver.domain.exceptions import FetchFailure, FetchFailureKind
from social_archiver.domain.services.storage_root import PermissionState
from social_archiver.infrastructure.media.strategies import FetchedPayload
from social_archiver.infrastructure.storage.local_root import LocalStorageRoot

FIXTURES_DIR = Path(__file__).parent / "fixtures"

CAPTURED_AT = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeStrategy:
    """Fetch strategy that replays scripted outcomes.

    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, name: str, outcomes: list):
        self.name = name
        self._outcomes = list(outcomes)
        self.calls: list[str] = []

    async def fetch(self, url: str, timeout: float) -> FetchedPayload:
        self.calls.append(url)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if callable(outcome):
            outcome = outcome(url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeStorageRoot(LocalStorageRoot):
    """Local root whose permission answers are scripted."""

    def __init__(self, base_dir, query: PermissionState, request: Optional[PermissionState] = None):
        super().__init__(base_dir)
        self._query = query
        self._request = request or query
        self.requests = 0

    async def query_permission(self) -> PermissionState:
        return self._query

    async def request_permission(self) -> PermissionState:
        self.requests += 1
        return self._request


def network_failure(url: str = "https://cdn.example.com/a.jpg") -> FetchFailure:
    return FetchFailure(FetchFailureKind.NETWORK, url, "connection reset")


def cors_blocked(url: str = "https://cdn.example.com/a.jpg") -> FetchFailure:
    return FetchFailure(FetchFailureKind.CORS_BLOCKED, url, "blocked")


def make_record(
    post_id: str = "facebook_1001",
    text: str = "Hello #world\nSecond line.",
    media: tuple[MediaRef, ...] = (),
    parsed: Optional[datetime] = datetime(2025, 10, 15, 8, 30, tzinfo=timezone.utc),
    engagement: Optional[Engagement] = None,
    sponsored: Optional[bool] = False,
    platform: Platform = Platform.FACEBOOK,
) -> PostRecord:
    return PostRecord(
        id=post_id,
        platform=platform,
        author=Author(name="Alice Kim", profile_url="https://www.facebook.com/alice.kim"),
        content=PostContent(text=text),
        timestamp=PostTimestamp(raw="October 15", parsed_instant=parsed),
        source_urls=SourceUrls(
            post="https://www.facebook.com/alice.kim/posts/1001",
            canonical="https://facebook.com/alice.kim/posts/1001",
        ),
        media_items=media,
        engagement=engagement or Engagement(likes=1200, comments=34),
        flags=PostFlags(
            post_type=PostType.IMAGE if media else PostType.TEXT,
            sponsored=sponsored,
        ),
    )


@pytest.fixture
def fixture_html() -> Callable[[str], str]:
    """Loader for HTML fixtures under tests/fixtures."""
    return load_fixture


@pytest.fixture
def facebook_snapshot() -> PageSnapshot:
    return PageSnapshot(
        html=load_fixture("facebook_feed.html"),
        url="https://www.facebook.com/",
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def instagram_snapshot() -> PageSnapshot:
    return PageSnapshot(
        html=load_fixture("instagram_feed.html"),
        url="https://www.instagram.com/",
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def linkedin_snapshot() -> PageSnapshot:
    return PageSnapshot(
        html=load_fixture("linkedin_feed.html"),
        url="https://www.linkedin.com/feed/",
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def sample_record() -> PostRecord:
    """A Facebook post with two images."""
    return make_record(
        media=(
            MediaRef(MediaType.IMAGE, "https://cdn.example.com/photos/one.jpg", caption="Sunset"),
            MediaRef(MediaType.IMAGE, "https://cdn.example.com/photos/two.png"),
        ),
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
