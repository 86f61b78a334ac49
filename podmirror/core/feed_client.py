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

from calendar import timegm
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, List, Optional, Tuple, Union

import feedparser
import requests

from ..logging import get_logger
from ..models.episode import RawFeedItem
from ..utils.exceptions import FeedFetchError

logger = get_logger(__name__)

DEFAULT_FEED_TIMEOUT_SECONDS = 30


class FeedClient:
    """
    Fetches a podcast feed and turns its entries into RawFeedItem records.

    Attributes:
        feed_url: URL of the RSS/Atom document
        timeout: Request timeout, seconds or a (connect, read) pair
        session: HTTP session used for the feed request
    """

    def __init__(
        self,
        feed_url: str,
        timeout: Union[float, Tuple[float, float]] = DEFAULT_FEED_TIMEOUT_SECONDS,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.feed_url = feed_url
        self.timeout = timeout
        self._owns_session = session is None
        self.session: requests.Session = session or requests.Session()
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    def fetch(self) -> bytes:
        """
        Download the raw feed document.

        Raises:
            FeedFetchError: If the feed is unreachable or answers with a non-success status
        """
        logger.info("Fetching feed", url=self.feed_url)
        try:
            response = self.session.get(self.feed_url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FeedFetchError(f"Could not fetch feed: {e}", url=self.feed_url) from e
        finally:
            if self._owns_session:
                self.session.close()
        return response.content

    def parse(self, content: bytes) -> List[RawFeedItem]:
        """
        Parse a feed document into raw items, in document order.

        Raises:
            FeedFetchError: If the document is malformed and yields no entries
        """
        parsed = feedparser.parse(content)

        if parsed.bozo:
            if not parsed.entries:
                raise FeedFetchError(
                    f"Could not parse feed: {parsed.get('bozo_exception')}",
                    url=self.feed_url,
                )
            logger.warning(
                "Feed is not well-formed, continuing with parsed entries",
                url=self.feed_url,
                error=str(parsed.get("bozo_exception")),
            )

        items = [self._to_raw_item(entry) for entry in parsed.entries]
        logger.info("Parsed feed", url=self.feed_url, item_count=len(items))
        return items

    def fetch_items(self) -> List[RawFeedItem]:
        return self.parse(self.fetch())

    def _to_raw_item(self, entry: Any) -> RawFeedItem:
        image = entry.get("image") or {}
        return RawFeedItem(
            title=entry.get("title"),
            description=entry.get("description") or entry.get("summary"),
            enclosure_url=self._extract_enclosure_url(entry),
            duration=entry.get("itunes_duration"),
            published_at=self._parse_date(entry.get("published"), entry.get("published_parsed")),
            image_url=image.get("href") if hasattr(image, "get") else None,
        )

    def _parse_date(self, date_string: Optional[str], date_tuple: Any) -> Optional[datetime]:
        """
        Convert an entry's publish date to an aware datetime.

        An RFC 2822 pubDate keeps the feed's own UTC offset, so summaries show
        the publisher's wall-clock time. Anything else comes from feedparser's
        UTC struct_time. Returns None when the entry has no usable date.
        """
        if date_string:
            try:
                published = parsedate_to_datetime(date_string)
            except (TypeError, ValueError, IndexError):
                published = None
            # "-0000" parses to a naive datetime; the UTC tuple covers it
            if published is not None and published.tzinfo is not None:
                return published

        if not date_tuple:
            return None
        try:
            return datetime.fromtimestamp(timegm(date_tuple), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None

    def _extract_enclosure_url(self, entry: Any) -> Optional[str]:
        """
        Find the media enclosure of a feed entry.

        Prefers an audio/* enclosure, then any enclosure, then an
        rel="enclosure" link.
        """
        enclosures = entry.get("enclosures", [])

        for enclosure in enclosures:
            if enclosure.get("type", "").startswith("audio/") and enclosure.get("href"):
                return str(enclosure["href"])

        for enclosure in enclosures:
            if enclosure.get("href"):
                return str(enclosure["href"])

        for link in entry.get("links", []):
            if link.get("rel") == "enclosure" and link.get("href"):
                return str(link["href"])

        return None
