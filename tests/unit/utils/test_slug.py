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

"""Tests for slug generation."""

from podmirror.utils.slug import EMPTY_SLUG, generate_slug


class TestGenerateSlug:
    def test_punctuation_and_case(self):
        assert generate_slug("Hello, World! Ep.#5") == "hello-world-ep-5"

    def test_deterministic(self):
        assert generate_slug("Same Title") == generate_slug("Same Title")

    def test_unicode_transliterated(self):
        assert generate_slug("Café & Croissants") == "cafe-croissants"

    def test_empty_result_falls_back(self):
        assert generate_slug("") == EMPTY_SLUG
        assert generate_slug("!!!") == EMPTY_SLUG

    def test_respects_max_length(self):
        slug = generate_slug("word " * 100, max_length=20)

        assert len(slug) <= 20
        assert not slug.endswith("-")
