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
Unit tests for MirrorService.

The feed client is mocked; downloads run through a real Scheduler on top of FakeSession.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from podmirror.core.feed_client import FeedClient
from podmirror.core.fetch_scheduler import BatchResult, Scheduler
from podmirror.models.episode import RawFeedItem
from podmirror.services.mirror_service import MirrorService
from podmirror.utils.config import Config
from podmirror.utils.console import ConsoleOutput
from podmirror.utils.exceptions import FeedFetchError, FilesystemError


def utc(month, day):
    return datetime(2021, month, day, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path):
    return Config(target_directory=tmp_path / "episodes", concurrency_limit=2)


@pytest.fixture
def feed_items():
    # Feed order is newest first
    return [
        RawFeedItem(
            title="Third",
            enclosure_url="https://cdn.example.com/third.mp3",
            published_at=utc(3, 1),
        ),
        RawFeedItem(
            title="Second",
            enclosure_url="https://cdn.example.com/second.m4a",
            published_at=utc(2, 1),
            duration="10:00",
        ),
        RawFeedItem(
            title="First",
            description="<p>Hi&nbsp;there</p>",
            enclosure_url="https://cdn.example.com/first.mp3",
            published_at=utc(1, 1),
        ),
    ]


@pytest.fixture
def feed_client(feed_items):
    client = Mock(spec=FeedClient)
    client.fetch_items.return_value = feed_items
    return client


@pytest.fixture
def console():
    return Mock(spec=ConsoleOutput)


def scheduler_on(session):
    def factory(config, on_complete):
        return Scheduler(concurrency_limit=config.concurrency_limit, session=session, on_complete=on_complete)

    return factory


class TestRun:
    def test_mirrors_every_episode(self, config, feed_client, console, fake_session):
        fake_session.route("https://cdn.example.com/first.mp3", chunks=[b"1"])
        fake_session.route("https://cdn.example.com/second.m4a", chunks=[b"22"])
        fake_session.route("https://cdn.example.com/third.mp3", chunks=[b"333"])
        service = MirrorService(config, feed_client=feed_client, scheduler_factory=scheduler_on(fake_session), console=console)

        report = service.run()

        target = config.target_directory
        assert sorted(p.name for p in target.iterdir()) == [
            "1-first.mp3",
            "1-first.txt",
            "2-second.m4a",
            "2-second.txt",
            "3-third.mp3",
            "3-third.txt",
        ]
        assert (target / "2-second.m4a").read_bytes() == b"22"
        assert (target / "1-first.txt").read_text(encoding="utf-8") == "First\n\n2021-01-01 00:00 - \n\nHi there\n"
        assert report.downloaded_count == 3
        assert report.failed_count == 0
        assert [m.name for m in report.manifests] == ["1-first.txt", "2-second.txt", "3-third.txt"]

    def test_prints_stage_messages_in_order(self, config, feed_client, console, fake_session):
        service = MirrorService(config, feed_client=feed_client, scheduler_factory=scheduler_on(fake_session), console=console)

        service.run()

        messages = [c.args[0] for c in console.info.call_args_list]
        assert messages == ["Preparing…", "Episodes information read, downloading."]

    def test_failed_download_does_not_abort(self, config, feed_client, console, fake_session):
        fake_session.route("https://cdn.example.com/first.mp3", chunks=[b"1"])
        fake_session.route("https://cdn.example.com/second.m4a", status=404)
        fake_session.route("https://cdn.example.com/third.mp3", chunks=[b"3"])
        service = MirrorService(config, feed_client=feed_client, scheduler_factory=scheduler_on(fake_session), console=console)

        report = service.run()

        target = config.target_directory
        assert report.downloaded_count == 2
        assert report.failed_count == 1
        assert not (target / "2-second.m4a").exists()
        assert (target / "2-second.txt").exists()
        warning = console.warning.call_args_list[-1].args[0]
        assert "2-second" in warning
        assert "https://cdn.example.com/second.m4a" in warning

    def test_progress_display_gets_one_signal_per_job(self, config, feed_client, console, fake_session):
        display = Mock()
        display_factory = Mock(return_value=display)
        service = MirrorService(
            config,
            feed_client=feed_client,
            scheduler_factory=scheduler_on(fake_session),
            progress_display_factory=display_factory,
            console=console,
        )

        service.run()

        display_factory.assert_called_once_with(3)
        assert display.update.call_count == 3
        assert sorted(c.args[0] for c in display.update.call_args_list) == [1, 2, 3]
        display.close.assert_called_once()

    def test_progress_display_created_after_download_message(self, config, feed_client, console, fake_session):
        events = []
        console.info.side_effect = events.append

        def display_factory(total):
            events.append("display")
            return Mock()

        def scheduler_factory(config, on_complete):
            scheduler = scheduler_on(fake_session)(config, on_complete)
            original_run = scheduler.run

            def run():
                events.append("run")
                return original_run()

            scheduler.run = run
            return scheduler

        service = MirrorService(
            config,
            feed_client=feed_client,
            scheduler_factory=scheduler_factory,
            progress_display_factory=display_factory,
            console=console,
        )

        service.run()

        assert events == ["Preparing…", "Episodes information read, downloading.", "display", "run"]

    def test_skipped_items_are_reported(self, config, feed_client, feed_items, console, fake_session):
        feed_items.append(RawFeedItem(title="No date", enclosure_url="https://cdn.example.com/nodate.mp3"))
        service = MirrorService(config, feed_client=feed_client, scheduler_factory=scheduler_on(fake_session), console=console)

        report = service.run()

        assert len(report.episodes) == 3
        assert len(report.rejected) == 1
        assert "no publish timestamp" in console.warning.call_args_list[0].args[0]

    def test_default_scheduler_uses_config(self, config, feed_client, console, monkeypatch):
        created = {}

        class RecordingScheduler(Scheduler):
            def __init__(self, **kwargs):
                created.update(kwargs)
                super().__init__(**kwargs)

            def run(self):
                created["queued"] = self.pending
                return BatchResult()

        monkeypatch.setattr("podmirror.services.mirror_service.Scheduler", RecordingScheduler)

        MirrorService(config, feed_client=feed_client, console=console).run()

        assert created["concurrency_limit"] == 2
        assert created["timeout"] == config.timeout
        assert created["chunk_size"] == config.chunk_size
        assert created["queued"] == 3


class TestFatalErrors:
    def test_feed_error_writes_nothing(self, config, console):
        client = Mock(spec=FeedClient)
        client.fetch_items.side_effect = FeedFetchError("Could not fetch feed", url="https://feeds.example.com")
        service = MirrorService(config, feed_client=client, console=console)

        with pytest.raises(FeedFetchError):
            service.run()

        assert list(config.target_directory.iterdir()) == []

    def test_uncreatable_target_directory(self, tmp_path, feed_client, console):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        config = Config(target_directory=blocker / "episodes")
        service = MirrorService(config, feed_client=feed_client, console=console)

        with pytest.raises(FilesystemError):
            service.run()

        feed_client.fetch_items.assert_not_called()
