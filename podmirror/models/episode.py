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

import posixpath
from datetime import datetime
from typing import Optional
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.exceptions import EpisodeDataError
from ..utils.slug import generate_slug

TEXT_EXTENSION = ".txt"


class RawFeedItem(BaseModel):
    """
    One item as the feed parser produced it.

    Every field is optional here; required-ness is enforced when the item
    is turned into an Episode.
    """

    title: Optional[str] = None
    description: Optional[str] = None  # HTML
    enclosure_url: Optional[str] = None
    duration: Optional[str] = None
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None


class Episode(BaseModel):
    """
    An episode of the mirrored feed. Immutable once constructed.

    Filenames are derived from sequence_number and title on demand, so an
    unchanged feed always maps to the same files.
    """

    model_config = ConfigDict(frozen=True)

    sequence_number: int = Field(ge=1)  # 1-based rank by published_at
    title: str = Field(min_length=1)
    description_html: str = ""
    audio_url: str
    duration: Optional[str] = None
    published_at: datetime
    image_url: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value

    @field_validator("audio_url")
    @classmethod
    def audio_url_is_absolute(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"audio_url must be an absolute http(s) URL: {value!r}")
        return value

    @classmethod
    def from_raw(cls, item: RawFeedItem, sequence_number: int) -> "Episode":
        """
        Build an Episode from a raw feed item, failing fast on missing fields.

        Raises:
            EpisodeDataError: If title, enclosure URL or publish timestamp is missing or invalid
        """
        title = (item.title or "").strip()
        if not title:
            raise EpisodeDataError("Feed item has no title", url=item.enclosure_url)
        if not item.enclosure_url:
            raise EpisodeDataError("Feed item has no enclosure URL", title=title)
        if item.published_at is None:
            raise EpisodeDataError("Feed item has no publish timestamp", title=title)

        try:
            return cls(
                sequence_number=sequence_number,
                title=title,
                description_html=item.description or "",
                audio_url=item.enclosure_url.strip(),
                duration=item.duration,
                published_at=item.published_at,
                image_url=item.image_url,
            )
        except ValidationError as e:
            raise EpisodeDataError(f"Feed item is invalid: {e.errors()[0]['msg']}", title=title) from e

    @property
    def slug(self) -> str:
        return generate_slug(self.title)

    @property
    def identifier(self) -> str:
        """Unique, filesystem-safe name: '{sequence_number}-{slug}'"""
        return f"{self.sequence_number}-{self.slug}"

    @property
    def audio_extension(self) -> str:
        """Extension of the audio URL path, verbatim ('' when the path has none)"""
        path = unquote(urlparse(self.audio_url).path)
        return posixpath.splitext(posixpath.basename(path))[1]

    def filename(self, extension: str) -> str:
        return f"{self.identifier}{extension}"

    @property
    def text_filename(self) -> str:
        return self.filename(TEXT_EXTENSION)

    @property
    def audio_filename(self) -> str:
        return self.filename(self.audio_extension)
