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
Progress reporting for the download batch.

The scheduler signals one completed unit per terminal job, from whichever
worker thread finished it. ProgressReporter serialises those signals and
forwards them to a display.
"""

import sys
import threading
from typing import Any, Optional, Protocol

import click


class ProgressDisplay(Protocol):
    """Anything that can show cumulative progress."""

    def update(self, completed: int, total: int) -> None: ...

    def close(self) -> None: ...


class ClickProgressDisplay:
    """Terminal progress bar backed by click.progressbar."""

    def __init__(self, total: int, label: str = "Downloading", file: Any = None) -> None:
        self._bar = click.progressbar(
            length=total,
            label=label,
            show_pos=True,  # "X/Y" counter
            show_eta=True,
            file=file or sys.stderr,
        )
        self._bar.__enter__()
        self._shown = 0

    def update(self, completed: int, total: int) -> None:
        self._bar.update(completed - self._shown)
        self._shown = completed

    def close(self) -> None:
        self._bar.__exit__(None, None, None)


class ProgressReporter:
    """
    Thread-safe counter of completed units.

    Attributes:
        total: Expected number of units
        display: Optional display refreshed on every advance
    """

    def __init__(self, total: int, display: Optional[ProgressDisplay] = None) -> None:
        self.total = total
        self.display = display
        self._completed = 0
        self._lock = threading.Lock()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def attach(self, display: ProgressDisplay) -> None:
        """Start showing progress on display, from the current count on."""
        with self._lock:
            self.display = display

    def advance(self) -> int:
        """Record one completed unit and return the new count."""
        with self._lock:
            self._completed += 1
            completed = self._completed
            if self.display is not None:
                self.display.update(completed, self.total)
        return completed

    def on_outcome(self, outcome: Any) -> None:
        """Scheduler completion callback: every outcome counts, failed or not."""
        self.advance()

    def close(self) -> None:
        if self.display is not None:
            self.display.close()

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
