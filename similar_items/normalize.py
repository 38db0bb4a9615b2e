from __future__ import annotations

"""
Text normalisation helpers shared across the catalog adapter and feature
extraction.

Storefront copy arrives as HTML with curly quotes and stray whitespace. This
module turns it into plain text, and plain text into the keyword sets used by
the semantic similarity metric.

Public helpers:

* basic_clean(text) -> str
    Light-weight clean used when normalising catalog fields.

* tokenize_words(text) -> List[str]
    Lowercase word split (letters plus inner apostrophes / hyphens).

* extract_keywords(*texts, stop_words=..., min_length=...) -> FrozenSet[str]
    Distinct, stop-word-free keywords. A set, not a frequency bag.
"""

import re
import unicodedata
from typing import FrozenSet, Iterable, List, Optional

from bs4 import BeautifulSoup

from . import config

_WORD_RE = re.compile(r"[a-z]+(?:['-][a-z]+)*")
_TAG_HINT_RE = re.compile(r"<[a-zA-Z/!][^>]*>")

# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _strip_html(text: str) -> str:
    if not text:
        return ""
    # Avoid spinning up a parser for the common plain-text case.
    if not _TAG_HINT_RE.search(text):
        return text
    soup = BeautifulSoup(text, "html.parser")
    return soup.get_text(" ", strip=True)


def _normalise_unicode(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\u2018", "'").replace("\u2019", "'")
    text = text.replace("\u201c", '"').replace("\u201d", '"')
    text = text.replace("\u2013", "-").replace("\u2014", "-")
    return text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def basic_clean(text: Optional[str]) -> str:
    """Light-weight clean for catalog fields.

    * strips HTML
    * normalises unicode and whitespace
    * truncates excessively long inputs
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = _strip_html(text)
    text = _normalise_unicode(text)

    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")
    text = re.sub(r"\s+", " ", text).strip()

    # cap the visible text, not the markup
    if len(text) > config.MAX_INPUT_CHARS:
        text = text[: config.MAX_INPUT_CHARS].rstrip()
    return text


def tokenize_words(text: Optional[str]) -> List[str]:
    """Split cleaned text into lowercase words, in order, duplicates kept."""
    norm = basic_clean(text)
    if not norm:
        return []
    return _WORD_RE.findall(norm.lower())


def extract_keywords(
    *texts: Optional[str],
    stop_words: Iterable[str] = config.STOP_WORDS,
    min_length: int = config.MIN_KEYWORD_LENGTH,
) -> FrozenSet[str]:
    """Distinct keywords across ``texts``.

    Words in ``stop_words`` and words shorter than ``min_length`` are dropped.
    """
    stops = {w.lower() for w in stop_words}
    keywords = set()
    for text in texts:
        for tok in tokenize_words(text):
            if len(tok) < min_length or tok in stops:
                continue
            keywords.add(tok)
    return frozenset(keywords)
