"""Cache of CV scoring results keyed by content hash."""

from __future__ import annotations

import json
from numbers import Real

import structlog
from pydantic import ValidationError

from cv_screener_core.constants import ANALYSIS_CACHE_PREFIX, MAX_OVERALL_SCORE
from cv_screener_core.interfaces.cache import CacheClient
from cv_screener_core.models.analysis import CandidateResult

logger = structlog.get_logger()


def parse_cached_result(raw: str) -> CandidateResult | None:
    """Rebuild a result from its cached JSON, or None if the entry is unusable."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    overall = data.get("overall")
    if isinstance(overall, bool) or not isinstance(overall, Real):
        return None
    if not 0 <= overall <= MAX_OVERALL_SCORE:
        return None
    if not isinstance(data.get("scores"), dict):
        return None
    if not isinstance(data.get("strengths"), list) or not isinstance(data.get("concerns"), list):
        return None

    try:
        return CandidateResult(
            name=str(data.get("name") or ""),
            overall=float(overall),
            scores={str(k): int(v) for k, v in data["scores"].items()},
            strengths=[str(s) for s in data["strengths"]],
            concerns=[str(c) for c in data["concerns"]],
        )
    except (TypeError, ValueError, ValidationError):
        return None


class AnalysisCache:
    """Stores scoring results without candidate names.

    The same CV uploaded under another file name must still hit, so names are
    blanked on write and re-attached by the caller on read.
    """

    def __init__(self, client: CacheClient, ttl_hours: int = 24) -> None:
        """Initialize with a cache backend and entry lifetime."""
        self._client = client
        self._ttl_seconds = ttl_hours * 3600

    @staticmethod
    def _key(key: str) -> str:
        return f"{ANALYSIS_CACHE_PREFIX}{key}"

    async def get(self, key: str) -> CandidateResult | None:
        """Return the cached result, deleting entries that fail validation."""
        raw = await self._client.get(self._key(key))
        if raw is None:
            return None

        result = parse_cached_result(raw)
        if result is None:
            logger.warning("analysis_cache_invalid_entry", key=key[:16])
            await self._client.delete(self._key(key))
            return None

        logger.debug("analysis_cache_hit", key=key[:16])
        return result

    async def put(self, key: str, result: CandidateResult) -> None:
        """Store a result; fallback results are never cached."""
        if result.failed:
            return
        payload = {
            "name": "",
            "overall": result.overall,
            "scores": result.scores,
            "strengths": result.strengths,
            "concerns": result.concerns,
        }
        await self._client.set(
            self._key(key),
            json.dumps(payload, ensure_ascii=False),
            ttl_seconds=self._ttl_seconds,
        )
