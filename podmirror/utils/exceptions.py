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
Custom exception classes for podmirror.

Fatal errors (configuration, feed retrieval, target directory) stop a run
before any download is scheduled. Per-episode errors (bad feed items, failed
downloads) are isolated to that episode and reported, never propagated to
sibling jobs.

Example:
    try:
        service.run()
    except FeedFetchError as e:
        console.error(f"Could not read feed: {e}")
"""


class PodmirrorError(Exception):
    """
    Base exception for all podmirror errors.

    Attributes:
        message: Human-readable error message
        context: Optional dict of additional error context (url, path, episode_id, ...)

    Example:
        raise PodmirrorError("Failed to mirror feed", url="https://example.com/feed.xml")
    """

    def __init__(self, message: str, **context):
        """
        Initialize PodmirrorError.

        Args:
            message: Human-readable error message
            **context: Optional keyword arguments for error context
        """
        super().__init__(message)
        self.message = message
        self.context = context if context else {}

    def __str__(self):
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self):
        name = type(self).__name__
        if self.context:
            return f"{name}(message={self.message!r}, context={self.context!r})"
        return f"{name}(message={self.message!r})"


class ConfigurationError(PodmirrorError):
    """Raised when configuration values are missing or invalid."""


class FeedFetchError(PodmirrorError):
    """
    Raised when the feed document is unreachable or unparsable.

    Fatal: the run aborts before any file is written.
    """


class EpisodeDataError(PodmirrorError):
    """
    Raised when a feed item lacks a required field.

    Required fields are title, enclosure URL and publish timestamp. The item
    is skipped with a warning; the rest of the feed is still mirrored.
    """


class DownloadError(PodmirrorError):
    """
    Raised inside a fetch job on non-success status, connection failure or timeout.

    The job is marked failed and its partial destination file removed; the
    batch continues.
    """


class FilesystemError(PodmirrorError):
    """
    Raised when a local write fails (directory not creatable, disk full).

    Fatal for the manifest step. Inside a download it fails that job only.
    """


__all__ = [
    "PodmirrorError",
    "ConfigurationError",
    "FeedFetchError",
    "EpisodeDataError",
    "DownloadError",
    "FilesystemError",
]
