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

import logging

import click

# This module can be executed in two ways:
# 1. Package mode: `podmirror` command (pyproject.toml entry point)
# 2. Module mode: `python -m podmirror.cli`
from .core.progress import ClickProgressDisplay
from .logging import configure_structlog
from .services.mirror_service import MirrorService
from .utils.config import load_config
from .utils.console import ConsoleOutput
from .utils.exceptions import PodmirrorError


@click.command()
@click.option("--feed-url", default=None, help="Feed to mirror (env: PODMIRROR_FEED_URL)")
@click.option(
    "--target-dir",
    "target_directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory receiving the files (env: PODMIRROR_TARGET_DIRECTORY)",
)
@click.option(
    "--concurrency",
    "concurrency_limit",
    type=int,
    default=None,
    help="Maximum simultaneous downloads (env: PODMIRROR_CONCURRENCY_LIMIT)",
)
@click.option(
    "--timeout",
    "read_timeout",
    type=float,
    default=None,
    help="Seconds a download may stall before it fails (env: PODMIRROR_READ_TIMEOUT)",
)
@click.option("--env-file", default=None, help="Path to a .env file")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors")
@click.pass_context
def main(ctx, feed_url, target_directory, concurrency_limit, read_timeout, env_file, quiet):
    """Mirror a podcast feed: a text summary and the audio file for every episode."""
    # Quiet runs only log problems
    configure_structlog(logging.WARNING if quiet else None)
    console = ConsoleOutput(quiet=quiet)

    try:
        config = load_config(
            env_file,
            feed_url=feed_url,
            target_directory=target_directory,
            concurrency_limit=concurrency_limit,
            read_timeout=read_timeout,
        )
        service = MirrorService(
            config,
            progress_display_factory=None if quiet else ClickProgressDisplay,
            console=console,
        )
        report = service.run()
    except PodmirrorError as e:
        console.error(str(e))
        ctx.exit(1)
        return

    # Individual download failures are reported, not fatal
    console.success(
        f"{report.downloaded_count} of {len(report.episodes)} episode(s) downloaded to {config.target_directory}"
    )
    if report.failed_count:
        console.warning(f"{report.failed_count} download(s) failed")


if __name__ == "__main__":
    main()
