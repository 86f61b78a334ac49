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

import sys


class ConsoleOutput:
    """User-facing console output for the mirror run.

    Outputs to stdout, can be suppressed with quiet mode. Separate from
    backend logging (structlog → stderr).
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def info(self, message: str) -> None:
        if not self.quiet:
            sys.stdout.write(f"{message}\n")
            sys.stdout.flush()

    def success(self, message: str) -> None:
        if not self.quiet:
            sys.stdout.write(f"✓ {message}\n")
            sys.stdout.flush()

    def warning(self, message: str) -> None:
        if not self.quiet:
            sys.stdout.write(f"⚠ {message}\n")
            sys.stdout.flush()

    def error(self, message: str) -> None:
        """Errors are always shown, on stderr."""
        sys.stderr.write(f"✗ {message}\n")
        sys.stderr.flush()
