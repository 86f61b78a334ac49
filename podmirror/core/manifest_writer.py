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

import os
import tempfile
from pathlib import Path

from ..logging import get_logger
from ..models.episode import Episode
from ..utils.exceptions import FilesystemError
from ..utils.html_utils import html_to_markdown

logger = get_logger(__name__)

PUBLISHED_AT_FORMAT = "%Y-%m-%d %H:%M"
MANIFEST_FILE_MODE = 0o644


def render_manifest(episode: Episode) -> str:
    """
    Render the text summary of an episode.

    Layout: title, blank line, "{published} - {duration}", blank line,
    description as markdown, trailing newline.
    """
    published = episode.published_at.strftime(PUBLISHED_AT_FORMAT)
    duration = episode.duration or ""
    description = html_to_markdown(episode.description_html)
    return f"{episode.title}\n\n{published} - {duration}\n\n{description}\n"


class ManifestWriter:
    """
    Writes episode text summaries into the target directory.

    Attributes:
        target_directory: Directory receiving the .txt files
    """

    def __init__(self, target_directory: Path) -> None:
        self.target_directory: Path = Path(target_directory)

    def write(self, episode: Episode) -> Path:
        """
        Write the episode's summary to {target_directory}/{text_filename}.

        The blob is written to a temp file in the same directory and moved over
        the destination, so an existing summary is replaced whole or not at all.

        Returns:
            Path of the written file

        Raises:
            FilesystemError: If the file cannot be written
        """
        destination = self.target_directory / episode.text_filename
        content = render_manifest(episode).encode("utf-8")

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=self.target_directory,
                prefix=f".{episode.identifier}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
            # NamedTemporaryFile creates 0600 files
            os.chmod(tmp_name, MANIFEST_FILE_MODE)
            os.replace(tmp_name, destination)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise FilesystemError(
                f"Could not write episode summary: {e}",
                path=str(destination),
                episode_id=episode.identifier,
            ) from e

        logger.debug("Wrote episode summary", episode_id=episode.identifier, path=str(destination))
        return destination
