import ssl
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import aiohttp
import certifi
import structlog
from prometheus_client import Counter, Histogram

from ..config.settings import settings
from ..models.contract_models import DetectionVerdict
from .cache import MemoryVerdictCache, VerdictCache, cache_key
from .chain_resolver import resolve_chain
from .detector import build_verdict, find_patterns
from .errors import (
    BatchTooLargeError,
    ContractNotFoundError,
    InvalidAddressError,
    InvalidCodeError,
    ScanError,
    SourceNotAnalyzableError,
    SourceNotVerifiedError,
)
from .fetcher import fetch_contract_source, shuffle_keys
from .sanitizer import sanitize_contract_code
from .validator import normalize_address, validate_address

logger = structlog.get_logger()

SCAN_COUNTER = Counter(
    'honeypot_scans_total',
    'Total number of honeypot scans',
    ['kind', 'outcome']
)
SCAN_DURATION = Histogram(
    'honeypot_scan_duration_seconds',
    'Time spent scanning contracts'
)
CACHE_HITS = Counter(
    'honeypot_cache_hits_total',
    'Scan responses served from cache'
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class HoneypotScanner:
    """Runs the address -> chain -> source -> verdict pipeline"""

    def __init__(
        self,
        api_keys: Sequence[str] = None,
        cache: Optional[VerdictCache] = None,
        session: Optional[aiohttp.ClientSession] = None,
        min_patterns: Optional[int] = None,
    ):
        self.api_keys = list(api_keys) if api_keys is not None else settings.api_keys()
        self.cache = cache if cache is not None else MemoryVerdictCache()
        self.min_patterns = min_patterns or settings.MIN_PATTERNS_FOR_DETECTION
        self._session = session
        self._owns_session = session is None

    async def initialize(self):
        """Open the shared HTTP session"""
        if self._session is not None:
            return

        # Create SSL context with certifi
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=ssl_context),
            headers={"Accept": "application/json"},
        )
        if not self.api_keys:
            logger.warning("no_explorer_api_keys_configured")

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HoneypotScanner.initialize() has not been called")
        return self._session

    def _detect(self, source: str, line_map: Optional[List[int]] = None) -> DetectionVerdict:
        report = find_patterns(source, line_map=line_map)
        return build_verdict(report.findings, min_patterns=self.min_patterns, report=report)

    async def _cache_get(self, key: str) -> Optional[Dict]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.error("cache_read_error", key=key, error=str(e))
            return None

    async def _cache_put(self, key: str, value: Dict):
        try:
            await self.cache.put(key, value, ttl=settings.CACHE_TTL)
        except Exception as e:
            logger.error("cache_write_error", key=key, error=str(e))

    async def scan_address(self, address: str, skip_cache: bool = False) -> Dict:
        validation = validate_address(address)
        if not validation:
            raise InvalidAddressError(validation.error)

        normalized = normalize_address(address)
        logger.info("scan_started", address=normalized, skip_cache=skip_cache)

        with SCAN_DURATION.time():
            try:
                result = await self._scan_address(normalized, skip_cache)
            except ScanError as e:
                SCAN_COUNTER.labels(kind="address", outcome=e.code).inc()
                raise
            SCAN_COUNTER.labels(kind="address", outcome="ok").inc()
            return result

    async def _scan_address(self, address: str, skip_cache: bool) -> Dict:
        probe_key = shuffle_keys(self.api_keys)[0] if self.api_keys else None
        chain = await resolve_chain(address, self.session, api_key=probe_key)
        if chain is None:
            raise ContractNotFoundError()

        key = cache_key(settings.DETECTION_VERSION, chain, address)
        if not skip_cache:
            cached = await self._cache_get(key)
            if cached:
                CACHE_HITS.inc()
                logger.info("cache_hit", address=address, chain=chain)
                return {**cached, "cached": True}

        fetched = await fetch_contract_source(address, chain, self.api_keys, self.session)
        if not fetched.source_code or not fetched.source_code.strip():
            raise SourceNotVerifiedError(cause="empty source")

        # Verified source is analyzed, never rendered, so the HTML denylist is skipped
        sanitized = sanitize_contract_code(fetched.source_code,
                                           max_size=settings.MAX_FETCHED_SOURCE_SIZE,
                                           check_injection=False)
        if not sanitized.is_valid:
            raise SourceNotAnalyzableError(
                f"Verified source could not be analyzed: {sanitized.error}")

        verdict = self._detect(sanitized.sanitized, sanitized.line_map)
        logger.info("scan_completed",
                    address=address,
                    chain=chain,
                    is_honeypot=verdict.is_honeypot,
                    pattern_count=len(verdict.findings))

        result = {
            **verdict.to_dict(),
            "chain": chain,
            "tokenMetadata": fetched.metadata.to_dict(),
            "scannedAt": _now_iso(),
            "detectionVersion": settings.DETECTION_VERSION,
        }

        # Partial verdicts are served but never cached
        if verdict.complete:
            await self._cache_put(key, result)
        return result

    def scan_code(self, code: str) -> Dict:
        """Scan pasted source; no network involved"""
        sanitized = sanitize_contract_code(code)
        if not sanitized.is_valid:
            SCAN_COUNTER.labels(kind="code", outcome=InvalidCodeError.code).inc()
            raise InvalidCodeError(sanitized.error)

        verdict = self._detect(sanitized.sanitized, sanitized.line_map)
        SCAN_COUNTER.labels(kind="code", outcome="ok").inc()
        logger.info("code_scan_completed",
                    is_honeypot=verdict.is_honeypot,
                    pattern_count=len(verdict.findings),
                    complete=verdict.complete,
                    lines=sanitized.stats["lines"])
        return {
            **verdict.to_dict(),
            "stats": sanitized.stats,
            "scannedAt": _now_iso(),
            "detectionVersion": settings.DETECTION_VERSION,
        }

    async def scan_batch(self, addresses: List[str]) -> List[Dict]:
        """Scan up to MAX_BATCH_SIZE addresses one after another"""
        if len(addresses) > settings.MAX_BATCH_SIZE:
            raise BatchTooLargeError(
                f"Maximum {settings.MAX_BATCH_SIZE} contracts per batch scan")

        results = []
        for address in addresses:
            try:
                result = await self.scan_address(address)
                results.append({"address": address, **result})
            except ScanError as e:
                logger.warning("batch_item_failed", address=address, error=str(e))
                results.append({"address": address, **e.to_dict()})
        return results
