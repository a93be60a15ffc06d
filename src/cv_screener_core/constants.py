"""Shared constants for cv-screener."""

from __future__ import annotations

# LLM token pricing (USD per 1M tokens)
TOKEN_PRICES: dict[str, dict[str, float]] = {
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
    "claude-sonnet-4-5-20250514": {"input": 3.00, "output": 15.00},
}

# Score ranges
MAX_OVERALL_SCORE = 10.0
MAX_REQUIREMENT_SCORE = 100
REQUIREMENT_MET_THRESHOLD = 60  # compare view marks a requirement as met at this score
MAX_STRENGTHS = 3
MAX_CONCERNS = 3

FAILED_ANALYSIS_CONCERN = "Analysis failed for this CV"

# CV text handling
PDF_SIGNATURE = b"%PDF-"
MIN_PDF_TEXT_CHARS = 50
NAME_SCAN_LINES = 30
MAX_NAME_CHARS = 120
MAX_CV_SCAN_CHARS = 120_000
EXCERPT_TARGET_CHARS = 4_000
EXCERPT_MIN_CHARS = 400
EXCERPT_MAX_CHARS = 6_000
EXCERPT_FALLBACK_CHARS = 1_500
KEYWORD_MIN_LENGTH = 4
TOP_JOB_KEYWORDS = 50

# Requirements
MIN_JOB_TEXT_CHARS = 50
MAX_EXTRACTED_REQUIREMENTS = 7
MIN_TEMPLATE_REQUIREMENTS = 2
MAX_TEMPLATE_REQUIREMENTS = 5
FALLBACK_REQUIREMENTS: list[str] = [
    "Documented experience in a similar role",
    "Strong communication skills",
    "Structured and independent way of working",
    "Documented experience with relevant tools",
    "Ability to collaborate across disciplines",
]

# Candidate summaries
MIN_SUMMARY_TEXT_CHARS = 100
SUMMARY_WORD_TARGET = 200
SUMMARY_BATCH_CONCURRENCY = 5

# Comparison
MIN_COMPARE_ANALYSES = 2
MAX_COMPARE_ANALYSES = 5

# Cache key namespaces
ANALYSIS_CACHE_PREFIX = "analysis:"
SUMMARY_CACHE_PREFIX = "summary:"
