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

"""Tests for the exception hierarchy."""

from podmirror.utils.exceptions import DownloadError, FeedFetchError, PodmirrorError


def test_message_and_context():
    error = DownloadError("HTTP 404", url="https://cdn.example.com/a.mp3", status_code=404)

    assert isinstance(error, PodmirrorError)
    assert error.message == "HTTP 404"
    assert error.context == {"url": "https://cdn.example.com/a.mp3", "status_code": 404}
    assert "status_code=404" in str(error)


def test_str_without_context():
    assert str(FeedFetchError("Could not fetch feed")) == "Could not fetch feed"
