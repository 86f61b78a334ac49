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
Mirror service - drives one run from feed to files on disk
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..core.episode_normalizer import normalize_episodes
from ..core.feed_client import FeedClient
from ..core.fetch_scheduler import DEFAULT_USER_AGENT, BatchResult, CompletionCallback, Scheduler
from ..core.manifest_writer import ManifestWriter
from ..core.progress import ProgressDisplay, ProgressReporter
from ..logging import get_logger
from ..models.episode import Episode
from ..utils.config import Config
from ..utils.console import ConsoleOutput
from ..utils.exceptions import EpisodeDataError, FilesystemError

logger = get_logger(__name__)

SchedulerFactory = Callable[[Config, CompletionCallback], Scheduler]
ProgressDisplayFactory = Callable[[int], ProgressDisplay]


def default_scheduler_factory(config: Config, on_complete: CompletionCallback) -> Scheduler:
    return Scheduler(
        concurrency_limit=config.concurrency_limit,
        timeout=config.timeout,
        chunk_size=config.chunk_size,
        on_complete=on_complete,
    )


@dataclass
class MirrorReport:
    """What a mirror run produced."""

    episodes: Tuple[Episode, ...] = ()
    rejected: List[EpisodeDataError] = field(default_factory=list)
    manifests: List[Path] = field(default_factory=list)
    batch: BatchResult = field(default_factory=BatchResult)

    @property
    def downloaded_count(self) -> int:
        return self.batch.succeeded_count

    @property
    def failed_count(self) -> int:
        return self.batch.failed_count


class MirrorService:
    """
    Mirrors a feed into the target directory.

    For each episode, in sequence order: write its text summary, then queue
    its audio download. Once every episode is queued the scheduler drains
    the downloads concurrently.
    """

    def __init__(
        self,
        config: Config,
        feed_client: Optional[FeedClient] = None,
        scheduler_factory: Optional[SchedulerFactory] = None,
        progress_display_factory: Optional[ProgressDisplayFactory] = None,
        console: Optional[ConsoleOutput] = None,
    ):
        """
        Initialize mirror service.

        Args:
            config: Run configuration
            feed_client: Feed client (default: one for config.feed_url)
            scheduler_factory: Builds the download scheduler (tests inject fakes here)
            progress_display_factory: Builds a display for N downloads; None shows nothing
            console: User-facing output (default: stdout)
        """
        self.config = config
        self.feed_client = feed_client or FeedClient(
            config.feed_url,
            timeout=config.timeout,
            user_agent=DEFAULT_USER_AGENT,
        )
        self.scheduler_factory = scheduler_factory or default_scheduler_factory
        self.progress_display_factory = progress_display_factory
        self.console = console or ConsoleOutput()

    def run(self) -> MirrorReport:
        """
        Mirror the feed once.

        Returns:
            MirrorReport with the episodes, rejected items and download outcomes

        Raises:
            FeedFetchError: If the feed cannot be fetched or parsed
            FilesystemError: If the target directory or a summary cannot be written
        """
        self.console.info("Preparing…")
        target_directory = self._prepare_target_directory()

        items = self.feed_client.fetch_items()
        normalized = normalize_episodes(items)
        for error in normalized.rejected:
            self.console.warning(f"Skipped feed item: {error}")

        report = MirrorReport(episodes=normalized.episodes, rejected=normalized.rejected)

        with ProgressReporter(total=len(normalized.episodes)) as progress:
            scheduler = self.scheduler_factory(self.config, progress.on_outcome)
            writer = ManifestWriter(target_directory)

            for episode in normalized.episodes:
                report.manifests.append(writer.write(episode))
                scheduler.submit(
                    episode.audio_url,
                    target_directory / episode.audio_filename,
                    label=episode.identifier,
                )

            self.console.info("Episodes information read, downloading.")
            # Creating the display draws it
            if self.progress_display_factory is not None and normalized.episodes:
                progress.attach(self.progress_display_factory(len(normalized.episodes)))
            report.batch = scheduler.run()

        for failure in report.batch.failed:
            self.console.warning(f"Download failed for {failure.job.label}: {failure.reason} ({failure.job.source_url})")

        logger.info(
            "Mirror run complete",
            episodes=len(report.episodes),
            rejected=len(report.rejected),
            downloaded=report.downloaded_count,
            failed=report.failed_count,
        )
        return report

    def _prepare_target_directory(self) -> Path:
        target_directory = Path(self.config.target_directory)
        try:
            target_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Could not create target directory: {e}",
                path=str(target_directory),
            ) from e
        return target_directory
