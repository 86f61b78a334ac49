# Copyright 2025 podmirror
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Pytest fixtures for podmirror tests.

Provides FakeSession, an in-memory stand-in for requests.Session, so the
download scheduler can be exercised without network access. It records how
many requests were open at the same time.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from podmirror.models.episode import Episode, RawFeedItem


class FakeResponse:
    """Streaming response with a fixed status and body chunks."""

    def __init__(
        self,
        session: "FakeSession",
        status_code: int,
        chunks: List[bytes],
        error_after: Optional[Exception] = None,
    ):
        self._session = session
        self.status_code = status_code
        self._chunks = chunks
        self._error_after = error_after
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for chunk in self._chunks:
            yield chunk
        if self._error_after is not None:
            raise self._error_after

    @property
    def content(self) -> bytes:
        return b"".join(self._chunks)

    def raise_for_status(self) -> None:
        import requests

        if not 200 <= self.status_code < 300:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._session._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeSession:
    """
    Route table of URL → canned response.

    Usage:
        session = FakeSession()
        session.route("https://example.com/a.mp3", chunks=[b"abc"])
        session.route("https://example.com/b.mp3", status=404)
        session.route("https://example.com/c.mp3", error=requests.exceptions.ConnectTimeout())
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.headers: Dict[str, str] = {}
        self.requests: List[dict] = []
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._routes: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def route(
        self,
        url: str,
        status: int = 200,
        chunks: Optional[List[bytes]] = None,
        error: Optional[Exception] = None,
        error_after: Optional[Exception] = None,
    ) -> None:
        self._routes[url] = {
            "status": status,
            "chunks": chunks if chunks is not None else [b"audio-bytes"],
            "error": error,
            "error_after": error_after,
        }

    def get(self, url: str, **kwargs) -> FakeResponse:
        with self._lock:
            self.requests.append({"url": url, **kwargs})
            self.active += 1
            self.max_active = max(self.max_active, self.active)

        if self.delay:
            time.sleep(self.delay)

        canned = self._routes.get(url, {"status": 404, "chunks": [], "error": None, "error_after": None})
        if canned["error"] is not None:
            self._release()
            raise canned["error"]
        return FakeResponse(self, canned["status"], canned["chunks"], canned["error_after"])

    def close(self) -> None:
        self.closed = True

    def _release(self) -> None:
        with self._lock:
            self.active -= 1


@pytest.fixture
def fake_session():
    """In-memory HTTP session."""
    return FakeSession()


@pytest.fixture
def slow_session():
    """In-memory HTTP session where every request takes a little while."""
    return FakeSession(delay=0.05)


@pytest.fixture
def raw_item_factory():
    """Build RawFeedItem values with sensible defaults."""

    def _make(title="Episode", published_at=None, enclosure_url=None, **kwargs) -> RawFeedItem:
        slug = title.lower().replace(" ", "-") if title else "untitled"
        return RawFeedItem(
            title=title,
            description=kwargs.pop("description", "<p>About this episode</p>"),
            enclosure_url=enclosure_url or f"https://cdn.example.com/audio/{slug}.mp3",
            duration=kwargs.pop("duration", "00:42:00"),
            published_at=published_at or datetime(2021, 1, 1, tzinfo=timezone.utc),
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_episode():
    """A valid, numbered episode."""
    return Episode(
        sequence_number=7,
        title="Hello, World! Ep.#5",
        description_html="<p>The <strong>fifth</strong> one.</p>",
        audio_url="https://cdn.example.com/shows/42/episode-5.mp3?token=abc",
        duration="01:02:03",
        published_at=datetime(2021, 3, 4, 5, 6, tzinfo=timezone.utc),
    )
