"""
Text normalisation shared by the question store, search strategies and importer.
"""
import re
from typing import Iterable, List, Mapping, Optional

MAX_KEYWORD_LENGTH = 200

# Checked in order; the first suffix that qualifies wins
STEM_SUFFIXES = ("ure", "ural", "al", "ion", "ment", "ly")

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_TOKEN = re.compile(r"\w+")


def normalize_search_text(value: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    value = _NON_WORD.sub(" ", value.lower())
    return _WHITESPACE.sub(" ", value).strip()


def build_searchable_text(
    question_text: Optional[str],
    explanation: Optional[str] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    sub_topic: Optional[str] = None,
    exam_name: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    keywords: Optional[Iterable[str]] = None,
    options: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Build the derived search column for a question.

    Field order is fixed: question text, explanation, classification, tags,
    keywords and finally option values in label order. Blank parts are skipped.
    """
    parts = [question_text, explanation, subject, topic, sub_topic, exam_name]
    parts.extend(tags or [])
    parts.extend(keywords or [])
    parts.extend((options or {}).values())
    return normalize_search_text(" ".join(str(part) for part in parts if part))


def normalize_term_list(values: Optional[Iterable[str]]) -> List[str]:
    """Lowercase, strip and de-duplicate tags or keywords, keeping first-seen order."""
    seen = []
    for value in values or []:
        term = str(value).strip().lower()
        if term and term not in seen:
            seen.append(term)
    return seen


def split_terms(value: Optional[str]) -> List[str]:
    """Split a comma separated spreadsheet cell into normalised terms."""
    if not value:
        return []
    return normalize_term_list(value.split(","))


def sanitize_keyword(keyword: Optional[str]) -> Optional[str]:
    """Trim and cap a user keyword. Returns None when nothing is left."""
    if keyword is None:
        return None
    keyword = keyword.strip()[:MAX_KEYWORD_LENGTH].strip()
    return keyword or None


def stem_keyword(keyword: str) -> str:
    """
    Strip one common English suffix so substring matching catches variants.

    A suffix is removed only when the word is longer than the suffix plus three
    characters, e.g. "agriculture" -> "agricult" and "constitutional" -> "constitution".
    Short words such as "rural" are returned unchanged.
    """
    lowered = keyword.lower()
    for suffix in STEM_SUFFIXES:
        if lowered.endswith(suffix) and len(keyword) > len(suffix) + 3:
            return keyword[: -len(suffix)]
    return keyword


def tokenize(keyword: str) -> List[str]:
    return _TOKEN.findall(keyword.lower())


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )
