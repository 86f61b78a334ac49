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
Filesystem-safe slugs for episode titles.

Uses python-slugify for Unicode transliteration and punctuation handling.
"""

from slugify import slugify as python_slugify

# Leaves room for the sequence prefix and the file extension
MAX_SLUG_LENGTH = 120

EMPTY_SLUG = "unnamed"


def generate_slug(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Generate a lower-case, hyphen-joined slug from text.

    Args:
        text: Text to convert (an episode title)
        max_length: Maximum length of the generated slug

    Returns:
        Slug with punctuation stripped and words joined by hyphens.
        Returns "unnamed" if the text produces an empty slug.

    Examples:
        >>> generate_slug("Hello, World! Ep.#5")
        'hello-world-ep-5'
        >>> generate_slug("Café & Croissants")
        'cafe-croissants'
    """
    slug = python_slugify(text, max_length=max_length, word_boundary=True)
    return slug or EMPTY_SLUG
