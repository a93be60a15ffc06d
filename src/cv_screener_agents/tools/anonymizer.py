"""Regex-based CV anonymization.

Removes contact details, address, age, gender markers and other bias-prone
personal data from extracted CV text before it is sent to the language
model. Professional content (titles, skills, education, work history dates)
is left untouched. Danish and English CVs are both covered.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from pydantic import BaseModel

Replacement = str | Callable[[re.Match[str]], str]

_EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_CPR = re.compile(r"\b\d{6}-?\d{4}\b")
_PHONE_DK = re.compile(r"(?<![\w+])(?:\+45[ \t]?)?(?:\d{2}[ \t]?){3}\d{2}\b")
_PHONE_INTL = re.compile(r"(?<!\w)\+\d{1,3}[ \t]?\(?\d{1,4}\)?(?:[ \t\-]?\d{2,4}){2,4}\b")
_SOCIAL_DOMAINS = re.compile(r"\b(?:linkedin|facebook|twitter|instagram)\.com", re.IGNORECASE)

_DANISH_PRONOUNS = re.compile(r"\b(?:han|hun|hans|hendes)\b", re.IGNORECASE)
_ENGLISH_PRONOUNS: dict[str, str] = {
    "he": "they",
    "she": "they",
    "him": "them",
    "her": "their",
    "his": "their",
    "hers": "theirs",
}
_ENGLISH_PRONOUN = re.compile(r"\b(?:he|she|him|her|his|hers)\b", re.IGNORECASE)

_PLACEHOLDER = re.compile(r"\[([A-Z_]+)\]")


def _match_case(word: str, replacement: str) -> str:
    return replacement.capitalize() if word[:1].isupper() else replacement


def _neutral_pronoun(match: re.Match[str]) -> str:
    word = match.group(0)
    return _match_case(word, _ENGLISH_PRONOUNS[word.lower()])


def _danish_neutral(match: re.Match[str]) -> str:
    return _match_case(match.group(0), "vedkommende")


# Applied in order: e-mails before websites, CPR numbers before phone numbers.
_PASSES: list[tuple[re.Pattern[str], Replacement]] = [
    # Contact information
    (_EMAIL, "[EMAIL]"),
    (_CPR, "[CPR]"),
    (_PHONE_INTL, "[PHONE]"),
    (_PHONE_DK, "[PHONE]"),
    # Address and location
    (
        re.compile(
            r"\b[A-ZÆØÅ][a-zæøå]*(?:vej|gade|allé|alle|vænget|parken|stræde|torv|plads)"
            r"[ \t]+\d+[A-Za-z]?\b",
            re.IGNORECASE,
        ),
        "[ADDRESS]",
    ),
    (
        re.compile(
            r"\b\d+[A-Za-z]?[ \t]+(?:[A-Z][a-z]+[ \t]+){1,3}"
            r"(?:Street|St\.|Road|Rd\.|Avenue|Ave\.|Lane|Drive|Boulevard)(?!\w)"
        ),
        "[ADDRESS]",
    ),
    (
        re.compile(
            r"\b\d{4}[ \t]+[A-ZÆØÅ][A-Za-zÆØÅæøå\-]+(?:[ \t]+[A-ZÆØÅ][A-Za-zÆØÅæøå\-]*)?[ \t]*$",
            re.MULTILINE,
        ),
        "[POSTAL_CODE]",
    ),
    # Age and date of birth
    (
        re.compile(r"\b(?:alder|age|years?[ \t]+old)[:\s]*\d{1,2}(?:[ \t]*år)?\b", re.IGNORECASE),
        "[AGE]",
    ),
    (re.compile(r"\(\s*\d{1,2}\s*(?:år|years?)\s*\)", re.IGNORECASE), "[AGE]"),
    (re.compile(r"\b\d{1,2}[ \t]+years?[ \t]+old\b", re.IGNORECASE), "[AGE]"),
    (
        re.compile(
            r"\b(?:født|born|fødselsdato|date of birth|dob)[:\s]*\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}\b",
            re.IGNORECASE,
        ),
        "[BIRTHDATE]",
    ),
    (
        re.compile(r"\b(?:født|born)[ \t]+(?:i[ \t]+|in[ \t]+)?(?:19|20)\d{2}\b", re.IGNORECASE),
        "[BIRTH_YEAR]",
    ),
    (re.compile(r"\b(?:19|20)\d{2}-\d{2}-\d{2}\b"), "[DATE]"),
    # Gender indicators
    (_DANISH_PRONOUNS, _danish_neutral),
    (_ENGLISH_PRONOUN, _neutral_pronoun),
    (re.compile(r"\b(?:Hr\.|Fru|Frk\.)[ \t]+", re.IGNORECASE), ""),
    (re.compile(r"\b(?:Mr|Mrs|Ms|Miss)\.?[ \t]+(?=[A-Z])"), ""),
    # Social media and web profiles
    (
        re.compile(r"\b(?:https?://)?(?:www\.)?linkedin\.com/(?:in/)?[\w\-]+/?", re.IGNORECASE),
        "[LINKEDIN]",
    ),
    (
        re.compile(
            r"\b(?:https?://)?(?:www\.)?(?:facebook|twitter|instagram|github|x)\.com/[\w\-]+/?",
            re.IGNORECASE,
        ),
        "[SOCIAL_MEDIA]",
    ),
    (
        re.compile(r"\b(?:https?://)?(?:www\.)?[\w\-]+\.(?:dk|com|net|org|io|dev)(?:/[\w\-]+)*\b"),
        "[WEBSITE]",
    ),
    # Photo references
    (re.compile(r"\b(?:foto|billede|picture|photo|portræt|portrait)\b", re.IGNORECASE), "[PHOTO]"),
    # Marital status and family
    (
        re.compile(r"\b(?:gift|ugift|skilt|samlevende|married|divorced|widowed)(?!\w)", re.IGNORECASE),
        "[MARITAL_STATUS]",
    ),
    (
        re.compile(r"\b(?:\d+[ \t]+)?(?:barn|børn|child|children|kids)(?!\w)", re.IGNORECASE),
        "[FAMILY]",
    ),
    # Nationality
    (
        re.compile(
            r"\b(?:nationalitet|nationality|statsborgerskab|citizenship)[:\s]*[A-ZÆØÅ][a-zæøå]+\b",
            re.IGNORECASE,
        ),
        "[NATIONALITY]",
    ),
    # Driver's licence
    (
        re.compile(r"\b(?:kørekort|driver'?s?[ \t]*licen[cs]e|kategori[ \t]+[ABC])\b", re.IGNORECASE),
        "[DRIVERS_LICENSE]",
    ),
]

_HORIZONTAL_SPACE = re.compile(r"[ \t]{2,}")
_TRAILING_SPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_LINES = re.compile(r"\n{3,}")


class SensitiveInfoReport(BaseModel):
    """Which kinds of personal data a text appears to contain."""

    has_cpr: bool
    has_phone: bool
    has_email: bool
    has_address: bool
    has_age: bool
    has_social_media: bool


class AnonymizationStats(BaseModel):
    """Size and placeholder statistics of an anonymization pass."""

    original_length: int
    anonymized_length: int
    reduction_percent: int
    placeholders_count: int


def anonymize_cv_text(cv_text: str) -> str:
    """Redact personal and bias-prone information from CV text.

    Lines are preserved so that line-based excerpting still works on the
    result; runs of spaces and blank lines are collapsed.
    """
    if not cv_text:
        return ""

    text = cv_text.replace("\r\n", "\n")
    for pattern, replacement in _PASSES:
        text = pattern.sub(replacement, text)

    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _TRAILING_SPACE.sub("", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


def detect_sensitive_info(text: str) -> SensitiveInfoReport:
    """Report which kinds of personal data are present in text."""
    return SensitiveInfoReport(
        has_cpr=bool(_CPR.search(text)),
        has_phone=bool(_PHONE_DK.search(text) or _PHONE_INTL.search(text)),
        has_email=bool(_EMAIL.search(text)),
        has_address=bool(re.search(r"\b\d{4}[ \t]+[A-ZÆØÅa-zæøå]", text)),
        has_age=bool(re.search(r"\b(?:alder|age|years?\s+old)[:\s]*\d{1,2}", text, re.IGNORECASE)),
        has_social_media=bool(_SOCIAL_DOMAINS.search(text)),
    )


def anonymization_stats(original: str, anonymized: str) -> AnonymizationStats:
    """Compute length reduction and placeholder count."""
    reduction = 0
    if original:
        reduction = round((len(original) - len(anonymized)) / len(original) * 100)
    return AnonymizationStats(
        original_length=len(original),
        anonymized_length=len(anonymized),
        reduction_percent=reduction,
        placeholders_count=len(_PLACEHOLDER.findall(anonymized)),
    )
