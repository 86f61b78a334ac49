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

"""Convert episode description HTML into readable markdown-flavoured text."""

import html as html_module
import re
from typing import Optional
from urllib.parse import unquote

NBSP = "\xa0"

_LINK_PATTERN = re.compile(r'<a[^>]+href=["\']([^"\']*)["\'][^>]*>(.*?)</a>', flags=re.DOTALL | re.IGNORECASE)


def _replace_link(match: re.Match) -> str:
    href = unquote(match.group(1).strip())
    link_text = re.sub(r"<[^>]+>", "", match.group(2)).strip()

    if not href or href.startswith(("javascript:", "#")):
        return link_text
    if not link_text or link_text == href:
        return href
    return f"[{link_text}]({href})"


def html_to_markdown(html_text: Optional[str]) -> str:
    """
    Convert description HTML to markdown-flavoured plain text.

    Feed descriptions are mostly paragraphs, line breaks, links, emphasis and
    simple lists. Those map to blank-line paragraphs, newlines, ``[text](url)``,
    ``**bold**`` / ``_italic_`` and ``- item`` bullets. Any other tag is
    dropped, keeping its text. Entities are decoded and non-breaking spaces
    become regular spaces.

    Args:
        html_text: HTML string to convert, or None

    Returns:
        Converted text with surrounding whitespace stripped

    Example:
        >>> html_to_markdown('<p><strong>Guest:</strong> Jane&nbsp;Doe</p><p><a href="https://x.io">site</a></p>')
        '**Guest:** Jane Doe\\n\\n[site](https://x.io)'
    """
    if not html_text:
        return ""

    text = html_text

    # Paragraphs and line breaks
    text = re.sub(r"</p>\s*<p[^>]*>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<p[^>]*>|</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)

    # Lists
    text = re.sub(r"<li[^>]*>", "\n- ", text, flags=re.IGNORECASE)
    text = re.sub(r"</li>", "", text, flags=re.IGNORECASE)
    text = re.sub(r"</?[uo]l[^>]*>", "\n", text, flags=re.IGNORECASE)

    text = _LINK_PATTERN.sub(_replace_link, text)

    # Emphasis
    text = re.sub(r"</?(?:strong|b)(?:\s[^>]*)?>", "**", text, flags=re.IGNORECASE)
    text = re.sub(r"</?(?:em|i)(?:\s[^>]*)?>", "_", text, flags=re.IGNORECASE)

    # Headings and rules
    text = re.sub(r"<h([1-6])[^>]*>", lambda m: "\n\n" + "#" * int(m.group(1)) + " ", text, flags=re.IGNORECASE)
    text = re.sub(r"</h[1-6]>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<hr\s*/?>", "\n\n---\n\n", text, flags=re.IGNORECASE)

    # Anything left over
    text = re.sub(r"<[^>]+>", "", text)

    text = html_module.unescape(text)
    text = text.replace(NBSP, " ")

    text = re.sub(r"[ \t]+", " ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
