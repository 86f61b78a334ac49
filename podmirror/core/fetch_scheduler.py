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
Bounded-concurrency download scheduler.

Jobs (one URL → one destination file) are queued with submit() and drained
by run(). At most ``concurrency_limit`` transfers are in flight at any
instant; when one reaches a terminal state the next queued job takes its
slot. Each response body is streamed to its destination file chunk by chunk.

Every job ends in exactly one terminal state:

    queued → in_flight → succeeded | failed

A failed job (non-2xx status, connection error, timeout, local write error)
has its partial file removed and is logged with its label; other jobs are not
affected and nothing is retried.

Usage:
    scheduler = Scheduler(concurrency_limit=10, on_complete=progress.on_outcome)
    for episode in episodes:
        scheduler.submit(episode.audio_url, target / episode.audio_filename, label=episode.identifier)
    batch = scheduler.run()
    print(batch.succeeded_count, batch.failed_count)
"""

import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple, Union

import requests
import structlog
from requests.adapters import HTTPAdapter

from .. import __version__
from ..logging import get_logger
from ..utils.exceptions import DownloadError, FilesystemError, PodmirrorError

logger = get_logger(__name__)

# Network Configuration Constants
DEFAULT_CONCURRENCY_LIMIT = 50
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_READ_TIMEOUT_SECONDS = 60.0  # Idle time allowed between body chunks
DEFAULT_CHUNK_SIZE_BYTES = 8192
MAX_REDIRECTS = 10

DEFAULT_USER_AGENT = f"podmirror/{__version__}"


class JobState(str, Enum):
    """Lifecycle of a fetch job."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = {JobState.SUCCEEDED, JobState.FAILED}


@dataclass(eq=False)
class FetchJob:
    """
    One download: source_url streamed into destination_path.

    Attributes:
        source_url: URL to GET
        destination_path: File receiving the response body
        label: Name used in log lines (the episode identifier)
        result: Fulfilled exactly once with the job's FetchOutcome
        state: Current lifecycle state
    """

    source_url: str
    destination_path: Path
    label: str
    result: "Future[FetchOutcome]" = field(default_factory=Future, repr=False)
    state: JobState = JobState.QUEUED

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class FetchSucceeded:
    job: FetchJob
    bytes_written: int

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class FetchFailed:
    job: FetchJob
    reason: str
    error: Optional[PodmirrorError] = None

    @property
    def succeeded(self) -> bool:
        return False


FetchOutcome = Union[FetchSucceeded, FetchFailed]

# Called once per job when it reaches a terminal state, from a worker thread
CompletionCallback = Callable[[FetchOutcome], None]


@dataclass
class BatchResult:
    """Outcomes of one run(), in completion order."""

    outcomes: List[FetchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> List[FetchSucceeded]:
        return [o for o in self.outcomes if isinstance(o, FetchSucceeded)]

    @property
    def failed(self) -> List[FetchFailed]:
        return [o for o in self.outcomes if isinstance(o, FetchFailed)]

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def bytes_written(self) -> int:
        return sum(o.bytes_written for o in self.succeeded)


def build_session(concurrency_limit: int, user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    """HTTP session whose connection pool can serve every concurrent transfer."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=concurrency_limit, pool_maxsize=concurrency_limit)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.max_redirects = MAX_REDIRECTS
    session.headers["User-Agent"] = user_agent
    return session


class Scheduler:
    """
    Runs download jobs with at most ``concurrency_limit`` in flight.

    One instance per run; all state lives on the instance. Slot accounting,
    the job queue and the collected outcomes are guarded by a single lock.

    Attributes:
        concurrency_limit: Maximum simultaneous transfers
        timeout: (connect, read) timeout for each request
        chunk_size: Bytes requested per body chunk
        session: HTTP session shared by the worker threads; closed after each run
            when the scheduler built it
        on_complete: Optional callback receiving each terminal outcome
    """

    def __init__(
        self,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        timeout: Tuple[float, float] = (DEFAULT_CONNECT_TIMEOUT_SECONDS, DEFAULT_READ_TIMEOUT_SECONDS),
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        session: Optional[requests.Session] = None,
        on_complete: Optional[CompletionCallback] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")

        self.concurrency_limit = concurrency_limit
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._owns_session = session is None
        self.session: requests.Session = session or build_session(concurrency_limit, user_agent)
        self.on_complete = on_complete

        self._lock = threading.Lock()
        self._all_terminal = threading.Condition(self._lock)
        self._queue: Deque[FetchJob] = deque()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._in_flight = 0
        self._max_in_flight = 0
        self._submitted = 0
        self._terminal = 0
        self._outcomes: List[FetchOutcome] = []

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def max_in_flight_observed(self) -> int:
        """Highest number of simultaneous transfers seen so far."""
        with self._lock:
            return self._max_in_flight

    @property
    def pending(self) -> int:
        """Jobs submitted but not yet terminal."""
        with self._lock:
            return self._submitted - self._terminal

    def submit(self, source_url: str, destination_path: Union[str, Path], label: Optional[str] = None) -> FetchJob:
        """
        Queue a download. Never blocks on network I/O.

        May be called before run() or from another thread while run() is
        draining; in the latter case the job is admitted as soon as a slot is free.

        Returns:
            The queued FetchJob; its ``result`` future resolves to the outcome
        """
        job = FetchJob(
            source_url=source_url,
            destination_path=Path(destination_path),
            label=label or source_url,
        )
        with self._lock:
            self._queue.append(job)
            self._submitted += 1
            if self._executor is not None:
                self._admit_locked()
        logger.debug("Job queued", job=job.label, url=source_url)
        return job

    def run(self) -> BatchResult:
        """
        Drain the queue and wait until every submitted job is terminal.

        Returns:
            BatchResult with one outcome per job finished during this run
        """
        with ThreadPoolExecutor(
            max_workers=self.concurrency_limit,
            thread_name_prefix="podmirror-fetch",
        ) as executor:
            with self._lock:
                logger.info(
                    "Starting downloads",
                    job_count=self._submitted - self._terminal,
                    concurrency_limit=self.concurrency_limit,
                )
                self._executor = executor
                self._admit_locked()
                while self._terminal < self._submitted:
                    self._all_terminal.wait()
                self._executor = None
                batch = BatchResult(outcomes=self._outcomes)
                self._outcomes = []

        # Pooled connections are released; a later run reopens them
        if self._owns_session:
            self.session.close()

        logger.info(
            "Downloads finished",
            succeeded=batch.succeeded_count,
            failed=batch.failed_count,
            bytes_written=batch.bytes_written,
        )
        return batch

    def _admit_locked(self) -> None:
        """Move queued jobs into free slots. Caller holds the lock."""
        while self._queue and self._in_flight < self.concurrency_limit:
            job = self._queue.popleft()
            job.state = JobState.IN_FLIGHT
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)
            self._executor.submit(self._run_job, job)

    def _run_job(self, job: FetchJob) -> None:
        # Every log line of this transfer, callback included, carries the job
        with structlog.contextvars.bound_contextvars(job=job.label, url=job.source_url):
            try:
                outcome = self._transfer(job)
            except Exception as e:
                # Unexpected failure still has to end the job
                logger.exception("Unexpected error in download")
                self._discard(job.destination_path)
                outcome = FetchFailed(job=job, reason=f"unexpected error: {e}")

            job.state = JobState.SUCCEEDED if outcome.succeeded else JobState.FAILED
            job.result.set_result(outcome)
            self._notify(outcome)

        with self._lock:
            self._in_flight -= 1
            self._terminal += 1
            self._outcomes.append(outcome)
            self._admit_locked()
            self._all_terminal.notify_all()

    def _transfer(self, job: FetchJob) -> FetchOutcome:
        """Stream one response body into the job's destination file."""
        bytes_written = 0
        try:
            with open(job.destination_path, "wb") as target_file:
                with self.session.get(
                    job.source_url,
                    stream=True,
                    timeout=self.timeout,
                    allow_redirects=True,
                ) as response:
                    if not 200 <= response.status_code < 300:
                        raise DownloadError(
                            f"HTTP {response.status_code}",
                            url=job.source_url,
                            status_code=response.status_code,
                        )
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            target_file.write(chunk)
                            bytes_written += len(chunk)
        except DownloadError as e:
            return self._fail(job, e.message, e)
        except requests.exceptions.Timeout as e:
            return self._fail(job, f"timed out: {e}", DownloadError(f"timed out: {e}", url=job.source_url))
        except requests.exceptions.RequestException as e:
            # Before OSError: RequestException derives from IOError
            return self._fail(job, f"request failed: {e}", DownloadError(f"request failed: {e}", url=job.source_url))
        except OSError as e:
            error = FilesystemError(f"write failed: {e}", path=str(job.destination_path))
            return self._fail(job, error.message, error)

        logger.debug("Download completed", bytes_written=bytes_written)
        return FetchSucceeded(job=job, bytes_written=bytes_written)

    def _fail(self, job: FetchJob, reason: str, error: PodmirrorError) -> FetchFailed:
        self._discard(job.destination_path)
        logger.warning("Download failed", reason=reason)
        return FetchFailed(job=job, reason=reason, error=error)

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Could not remove partial download", path=str(path), error=str(e))

    def _notify(self, outcome: FetchOutcome) -> None:
        if self.on_complete is None:
            return
        try:
            self.on_complete(outcome)
        except Exception:
            logger.exception("Completion callback failed")
