from __future__ import annotations

import html as _html
import re
import unicodedata
from typing import Iterable

from bs4 import BeautifulSoup

_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.S)
_TAG_HINT_RE = re.compile(r"<[a-zA-Z/!][^>]*>")

_BOILERPLATE_PATTERNS: Iterable[re.Pattern] = [
    re.compile(r"^\s*read more\s*$", re.I),
    re.compile(r"^\s*continue reading\s*$", re.I),
    re.compile(r"^\s*the post .* appeared first on .*", re.I),
]


def normalize_text(text: str) -> str:
    if not text:
        return ""
    text = _html.unescape(text)
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\x00", "").replace("\r", " ").replace("\n", " ")
    return " ".join(text.split()).strip()


def strip_cdata(text: str) -> str:
    """Unwrap ``<![CDATA[...]]>`` sections, keeping their payload."""
    if not text:
        return ""
    return _CDATA_RE.sub(lambda match: match.group(1), text)


def clean_html(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    for node in list(soup.find_all(string=True)):
        if any(pattern.search(normalize_text(str(node))) for pattern in _BOILERPLATE_PATTERNS):
            node.extract()
    return normalize_text(soup.get_text(" "))


def clean_feed_text(raw: str) -> str:
    """CDATA, tags and entities removed, whitespace collapsed."""
    text = strip_cdata(raw or "")
    # Entity-escaped markup ("&lt;p&gt;") is unescaped once before tag removal.
    if "&lt;" in text:
        text = _html.unescape(text)
    if _TAG_HINT_RE.search(text):
        return clean_html(text)
    return normalize_text(text)


def first_image_src(html: str) -> str | None:
    if not html or "<img" not in html.lower():
        return None
    img = BeautifulSoup(html, "html.parser").find("img", src=True)
    return img["src"] if img else None
