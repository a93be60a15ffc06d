"""CV text helpers: candidate name detection, job-relevant excerpts, hashing."""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from collections import Counter

from cv_screener_core.constants import (
    EXCERPT_FALLBACK_CHARS,
    EXCERPT_MAX_CHARS,
    EXCERPT_MIN_CHARS,
    EXCERPT_TARGET_CHARS,
    KEYWORD_MIN_LENGTH,
    MAX_CV_SCAN_CHARS,
    MAX_NAME_CHARS,
    NAME_SCAN_LINES,
    TOP_JOB_KEYWORDS,
)
from cv_screener_core.exceptions import CacheKeyError

_NAME_LABEL = re.compile(r"(?:navn|name)\s*[:\-]\s*([A-ZÆØÅ][^\n]{2,80})", re.IGNORECASE)
_NAME_WORD = re.compile(r"[A-ZÆØÅ][a-zæøåA-ZÆØÅ'\-]+")
_LINE_SPLIT = re.compile(r"\r?\n")
_WHITESPACE = re.compile(r"\s+")
_MULTI_SPACE = re.compile(r"\s{2,}")

# Letters and digits, plus inner hyphens and apostrophes
_REQUIREMENT_SEPARATOR = re.compile(r"(?:[^\w\-']|_)+")
_JOB_WORD = re.compile(r"[^\W_](?:[^\W_]|[\-']){%d,}" % (KEYWORD_MIN_LENGTH - 1))


def extract_candidate_name(cv_text: str, file_name: str) -> str:
    """Guess the candidate name from the top of the CV.

    A ``Name:``/``Navn:`` label wins, then the first line made of 2-4
    capitalized words. Falls back to the file name without ``.pdf``.
    """
    head = "\n".join(_LINE_SPLIT.split(cv_text or "")[:NAME_SCAN_LINES])

    label = _NAME_LABEL.search(head)
    if label:
        name = _MULTI_SPACE.sub(" ", label.group(1).strip())
        return name[:MAX_NAME_CHARS]

    for raw_line in _LINE_SPLIT.split(head):
        line = raw_line.strip()
        if not line:
            continue
        words = line.split()
        if 2 <= len(words) <= 4 and all(_NAME_WORD.fullmatch(w) for w in words):
            return line[:MAX_NAME_CHARS]

    return _strip_pdf_suffix(file_name)


def _strip_pdf_suffix(file_name: str) -> str:
    return re.sub(r"\.pdf$", "", file_name, flags=re.IGNORECASE)


def _fold(text: str) -> str:
    """Lowercase and NFKD-normalize for keyword matching."""
    return unicodedata.normalize("NFKD", (text or "").lower())


def _requirement_keywords(requirements: list[str]) -> set[str]:
    words: set[str] = set()
    for requirement in requirements:
        for word in _REQUIREMENT_SEPARATOR.split(requirement):
            folded = _fold(word)
            if len(folded) >= KEYWORD_MIN_LENGTH:
                words.add(folded)
    return words


def _job_keywords(job_text: str) -> set[str]:
    counts = Counter(_JOB_WORD.findall(_fold(job_text)))
    return {word for word, _ in counts.most_common(TOP_JOB_KEYWORDS)}


def build_job_relevant_excerpt(cv_text: str, requirements: list[str], job_text: str) -> str:
    """Select the CV lines that mention requirement or job keywords.

    Lines are collected until the excerpt exceeds the target length. A short
    excerpt means the keywords found little, so the head of the CV is used
    instead.
    """
    cv = (cv_text or "")[:MAX_CV_SCAN_CHARS]
    keywords = _requirement_keywords(requirements) | _job_keywords(job_text)

    selected: list[str] = []
    length = 0
    for line in _LINE_SPLIT.split(cv):
        low = _fold(line)
        if any(word in low for word in keywords):
            length += len(line) + (1 if selected else 0)
            selected.append(line)
        if length > EXCERPT_TARGET_CHARS:
            break

    excerpt = "\n".join(selected).strip()
    if len(excerpt) >= EXCERPT_MIN_CHARS:
        return excerpt[:EXCERPT_MAX_CHARS]
    return cv[:EXCERPT_FALLBACK_CHARS]


def normalize_text(text: str) -> str:
    """Collapse whitespace, strip and lowercase."""
    return _WHITESPACE.sub(" ", text or "").strip().lower()


def build_cache_key(excerpt: str, requirements: list[str], job_text: str) -> str:
    """SHA-256 over the normalized excerpt, sorted requirements and job text.

    Raises:
        CacheKeyError: If there is nothing to hash.
    """
    reqs = sorted(r for r in requirements if isinstance(r, str) and r.strip())
    normalized_excerpt = normalize_text(excerpt)
    normalized_job = normalize_text(job_text)
    if not normalized_excerpt and not reqs and not normalized_job:
        msg = "No valid content to hash"
        raise CacheKeyError(msg)

    payload = "|".join(
        [
            normalized_excerpt,
            json.dumps(reqs, ensure_ascii=False, separators=(",", ":")),
            normalized_job,
        ]
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def hash_text(text: str) -> str:
    """SHA-256 hex digest of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
