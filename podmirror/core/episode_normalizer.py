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
Turns raw feed items into the ordered episode manifest.

Episodes are numbered by publish time, oldest first, regardless of the order
the feed lists them in. Items published at the same instant keep their feed
order, so numbering is deterministic between runs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from ..logging import get_logger
from ..models.episode import Episode, RawFeedItem
from ..utils.exceptions import EpisodeDataError

logger = get_logger(__name__)

# Placeholder rank used only to run field validation before numbering
_UNNUMBERED = 1


@dataclass
class NormalizationResult:
    """Ordered episodes plus the items that were rejected."""

    episodes: Tuple[Episode, ...] = ()
    rejected: List[EpisodeDataError] = field(default_factory=list)

    @property
    def episode_count(self) -> int:
        return len(self.episodes)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


def _sort_key(published_at: datetime) -> datetime:
    # Naive timestamps are read as UTC so they compare with aware ones
    if published_at.tzinfo is None:
        return published_at.replace(tzinfo=timezone.utc)
    return published_at


def normalize_episodes(items: Iterable[RawFeedItem]) -> NormalizationResult:
    """
    Validate, order and number raw feed items.

    Args:
        items: Raw items in feed order

    Returns:
        NormalizationResult whose episodes are sorted ascending by published_at
        with sequence_number 1..n. Rejected items do not consume a number.
    """
    result = NormalizationResult()
    valid: List[Episode] = []

    for item in items:
        try:
            valid.append(Episode.from_raw(item, sequence_number=_UNNUMBERED))
        except EpisodeDataError as e:
            logger.warning(
                "Skipping feed item",
                reason=e.message,
                title=item.title,
                url=item.enclosure_url,
            )
            result.rejected.append(e)

    # sorted() is stable: equal timestamps keep feed order
    ordered = sorted(valid, key=lambda episode: _sort_key(episode.published_at))

    result.episodes = tuple(
        episode.model_copy(update={"sequence_number": rank}) for rank, episode in enumerate(ordered, start=1)
    )

    logger.info(
        "Normalized feed items",
        episode_count=result.episode_count,
        rejected_count=result.rejected_count,
    )
    return result
