"""
Retry/backoff and rate-limit-aware HTTP helper shared by the GitHub and ADO clients.
Retries live here, at the collaborator boundary; scoring and merging never retry anything.
"""

import os
import time
import random
import logging
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterable
import requests
from exceptions import UpstreamFetchError

logger = logging.getLogger(__name__)

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("SYNC_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("SYNC_BACKOFF_BASE", "0.5"))
_env_jitter = os.getenv("SYNC_BACKOFF_JITTER")
DEFAULT_BACKOFF_JITTER = float(_env_jitter) if _env_jitter is not None and _env_jitter != "" else None
DEFAULT_MAX_BACKOFF = float(os.getenv("SYNC_MAX_BACKOFF", "120.0"))
MAX_WAIT_SECONDS = 300.0
DEFAULT_TIMEOUT = 30.0

# runtime-overrides
_runtime_max_retries: Optional[int] = None
_runtime_backoff_base: Optional[float] = None
_runtime_backoff_jitter: Optional[float] = None
_runtime_max_backoff: Optional[float] = None


def configure_retry(
    max_retries: Optional[int] = None, backoff_base: Optional[float] = None, backoff_jitter: Optional[float] = None, max_backoff: Optional[float] = None
):
    """Configure retry/backoff defaults at runtime (e.g. from CLI)."""
    global _runtime_max_retries, _runtime_backoff_base, _runtime_backoff_jitter, _runtime_max_backoff
    if max_retries is not None:
        _runtime_max_retries = int(max_retries)
    if backoff_base is not None:
        _runtime_backoff_base = float(backoff_base)
    if backoff_jitter is not None:
        _runtime_backoff_jitter = float(backoff_jitter)
    if max_backoff is not None:
        _runtime_max_backoff = float(max_backoff)


def reset_retry():
    """Drop runtime overrides (used by tests)."""
    global _runtime_max_retries, _runtime_backoff_base, _runtime_backoff_jitter, _runtime_max_backoff
    _runtime_max_retries = _runtime_backoff_base = _runtime_backoff_jitter = _runtime_max_backoff = None


def _resolve_backoff_params():
    base = _runtime_backoff_base if _runtime_backoff_base is not None else DEFAULT_BACKOFF_BASE
    if _runtime_backoff_jitter is not None:
        jitter = _runtime_backoff_jitter
    elif DEFAULT_BACKOFF_JITTER is not None:
        jitter = DEFAULT_BACKOFF_JITTER
    else:
        jitter = base
    max_backoff = _runtime_max_backoff if _runtime_max_backoff is not None else DEFAULT_MAX_BACKOFF
    max_retries = _runtime_max_retries if _runtime_max_retries is not None else DEFAULT_MAX_RETRIES
    return float(base), float(jitter), float(max_backoff), max(1, int(max_retries))


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return float(raw_ra)
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw_ra)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _header_number(headers, key: str, cast):
    val = headers.get(key)
    if val is None:
        return None
    try:
        return cast(val)
    except (TypeError, ValueError):
        return None


def _parse_rate_headers(resp):
    headers = getattr(resp, 'headers', None) or {}
    ra = _parse_retry_after(headers.get('Retry-After'))
    rl_remaining = _header_number(headers, 'X-RateLimit-Remaining', int)
    rl_reset = _header_number(headers, 'X-RateLimit-Reset', float)
    return ra, rl_remaining, rl_reset


def _should_retry_response(status_code: int, ra: Optional[float], rl_remaining: Optional[int]) -> bool:
    if status_code in (429, 502, 503, 504):
        return True
    if status_code >= 400 and ra is not None:
        return True
    if status_code == 403 and rl_remaining is not None and rl_remaining <= 0:
        return True
    return False


def _compute_wait_seconds(ra: Optional[float], rl_reset: Optional[float], backoff: float, jitter: float) -> float:
    if ra is not None:
        return min(ra + random.uniform(0, jitter), MAX_WAIT_SECONDS)
    if rl_reset:
        wait = max(0.0, rl_reset - time.time())
        return min(wait + random.uniform(0, jitter), MAX_WAIT_SECONDS)
    return min(backoff + random.uniform(0, jitter), MAX_WAIT_SECONDS)


def _error_text(resp) -> str:
    text = getattr(resp, 'text', '') or ''
    return text[:300]


def request_with_retries(
    session,
    method: str,
    url: str,
    source: str = '',
    allow_status: Iterable[int] = (),
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
):
    """
    Perform an HTTP request, retrying connection errors, 429/5xx gateway errors and exhausted rate limits.

    Returns the response for 2xx statuses and for any status listed in allow_status.
    Raises UpstreamFetchError once retries are exhausted or on any other error status.
    """
    base, jitter, max_backoff, max_retries = _resolve_backoff_params()
    allowed = set(allow_status)
    backoff = base
    last_error = ''
    last_status: Optional[int] = None

    for attempt in range(1, max_retries + 1):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as ex:
            last_error, last_status = str(ex), None
            logger.warning("%s %s failed (attempt %d/%d): %s", method, url, attempt, max_retries, ex)
            if attempt < max_retries:
                time.sleep(min(backoff + random.uniform(0, jitter), max_backoff))
                backoff = min(backoff * 2, max_backoff)
            continue

        status = resp.status_code
        if 200 <= status < 300 or status in allowed:
            return resp

        ra, rl_remaining, rl_reset = _parse_rate_headers(resp)
        last_error, last_status = _error_text(resp), status
        if not _should_retry_response(status, ra, rl_remaining):
            break
        logger.warning("%s %s returned %d (attempt %d/%d)", method, url, status, attempt, max_retries)
        if attempt < max_retries:
            time.sleep(_compute_wait_seconds(ra, rl_reset, backoff, jitter))
            backoff = min(backoff * 2, max_backoff)

    raise UpstreamFetchError(f"{method} {url} failed with status {last_status}: {last_error}", source=source, status=last_status)


__all__ = ["configure_retry", "request_with_retries"]
