"""
Evidence snippets from IAP text.

Keyword matching is a plain case-insensitive substring scan.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from firesight.iap.constants import FOCUS_KEYWORDS, SNIPPET_MAX_CHARS
from firesight.iap.records import Category, IAPRecord, IAPSection

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")

# Raw-text matches considered before the two-sentence cut
MAX_RAW_TEXT_SENTENCES = 3


def split_sentences(text: str) -> list[str]:
    """Sentences terminated by ., ! or ?; trailing unterminated text is dropped."""
    return [s.strip() for s in SENTENCE_PATTERN.findall(text or "")]


def contains_keyword(text: str, keywords: Iterable[str]) -> bool:
    lower = text.lower()
    return any(keyword in lower for keyword in keywords)


def filter_by_keywords(sentences: Iterable[str], keywords: Sequence[str]) -> list[str]:
    return [s for s in sentences if contains_keyword(s, keywords)]


def _join(sentences: Sequence[str]) -> str:
    snippet = " ".join(sentences[:2]).strip()
    if len(snippet) > SNIPPET_MAX_CHARS:
        return snippet[: SNIPPET_MAX_CHARS - 3] + "..."
    return snippet


def extract_tactical_snippet(section: IAPSection, category: Category, record: IAPRecord) -> str:
    """
    Up to two keyword-bearing sentences supporting an insight.

    Sources are tried in order: the chosen section, the record's tactical
    lessons, then its raw text (the section content when there is none).
    When nothing matches, the section's first two sentences are used.
    Snippets longer than 300 characters are cut to 297 plus an ellipsis.
    """
    keywords = FOCUS_KEYWORDS[Category(category)]
    sentences = split_sentences(section.content)

    relevant = filter_by_keywords(sentences, keywords)

    if not relevant and record.tactical_lessons:
        relevant = filter_by_keywords((lesson.strip() for lesson in record.tactical_lessons), keywords)

    if not relevant:
        raw_text = record.raw_text or section.content
        relevant = filter_by_keywords(split_sentences(raw_text), keywords)[:MAX_RAW_TEXT_SENTENCES]

    if relevant:
        return _join(relevant)
    return _join(sentences)
