import asyncio
import random
from typing import List, Optional, Sequence

import aiohttp
import structlog
from prometheus_client import Counter

from ..config.settings import settings
from ..models.contract_models import FetchResult
from .errors import (
    NoApiKeysError,
    ScanError,
    SourceFetchError,
    SourceNotVerifiedError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from .normalizer import extract_token_metadata, parse_source_code
from .patterns import CHAIN_CONFIGS
from .validator import validate_chain

logger = structlog.get_logger()

FETCH_ATTEMPT_FAILURES = Counter(
    'source_fetch_attempt_failures_total',
    'Failed explorer source fetch attempts',
    ['chain', 'reason']
)

_RATE_LIMIT_HINTS = ("rate limit", "max calls", "too many")


def shuffle_keys(keys: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """Return a new, uniformly shuffled list of ``keys`` (Fisher-Yates)"""
    rng = rng or random
    shuffled = list(keys)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _classify_api_message(message: str) -> ScanError:
    lowered = message.lower()
    if any(hint in lowered for hint in _RATE_LIMIT_HINTS):
        return UpstreamRateLimitError(cause=message)
    if "not verified" in lowered or "not found" in lowered:
        return SourceNotVerifiedError(cause=message)
    return SourceFetchError(cause=message)


async def _fetch_once(
    session: aiohttp.ClientSession,
    address: str,
    chain_id: int,
    api_key: str,
    timeout: float,
) -> FetchResult:
    params = {
        "chainid": str(chain_id),
        "module": "contract",
        "action": "getsourcecode",
        "address": address,
        "apikey": api_key,
    }
    try:
        async with session.get(settings.EXPLORER_API_URL, params=params,
                               timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            if resp.status == 429:
                raise UpstreamRateLimitError(cause="HTTP 429")
            if resp.status != 200:
                raise SourceFetchError(cause=f"HTTP {resp.status}")
            data = await resp.json(content_type=None)
    except asyncio.TimeoutError as e:
        raise UpstreamTimeoutError(cause=f"request timeout after {timeout}s") from e
    except aiohttp.ClientError as e:
        raise SourceFetchError(cause=str(e) or type(e).__name__) from e
    except ValueError as e:
        raise SourceFetchError(cause="malformed JSON response") from e

    if not isinstance(data, dict):
        raise SourceFetchError(cause="malformed response")

    if data.get("status") != "1":
        message = data.get("result") if isinstance(data.get("result"), str) else None
        raise _classify_api_message(message or data.get("message") or "Unknown error")

    result = data.get("result")
    if not isinstance(result, list) or not result:
        raise SourceFetchError(cause="No result in API response")

    entry = result[0] if isinstance(result[0], dict) else {}
    source_code = entry.get("SourceCode")
    if not source_code:
        raise SourceNotVerifiedError(cause="Source code not found")

    return FetchResult(
        source_code=parse_source_code(source_code),
        metadata=extract_token_metadata(entry),
    )


async def fetch_contract_source(
    address: str,
    chain: str,
    api_keys: Sequence[str],
    session: aiohttp.ClientSession,
    timeout: float = None,
    backoff: float = None,
    rng: Optional[random.Random] = None,
) -> FetchResult:
    """
    Fetch verified source for ``address`` on ``chain``.

    Keys are tried one at a time in a freshly shuffled order, with a short
    backoff between attempts. Only when every key has failed is the last
    failure raised.
    """
    validation = validate_chain(chain)
    if not validation:
        raise SourceFetchError(cause=validation.error)
    chain = chain.lower()
    config = CHAIN_CONFIGS[chain]
    if not api_keys:
        raise NoApiKeysError(cause="No API keys configured")

    timeout = timeout or settings.FETCH_TIMEOUT
    backoff = settings.FETCH_BACKOFF if backoff is None else backoff
    keys = shuffle_keys(api_keys, rng=rng)

    last_error: Optional[ScanError] = None
    for attempt, api_key in enumerate(keys):
        if attempt > 0:
            await asyncio.sleep(backoff)
        try:
            result = await _fetch_once(session, address, config.chain_id, api_key, timeout)
        except ScanError as e:
            last_error = e
            FETCH_ATTEMPT_FAILURES.labels(chain=chain, reason=e.code).inc()
            logger.warning("source_fetch_attempt_failed",
                           chain=chain,
                           address=address,
                           attempt=attempt + 1,
                           of=len(keys),
                           error=str(e))
            continue

        logger.info("source_fetched",
                    chain=chain,
                    address=address,
                    attempt=attempt + 1,
                    length=len(result.source_code))
        return result

    last_error.cause = f"All {len(keys)} API keys failed; last error: {last_error.cause}"
    raise last_error
