import json
from typing import Dict, Optional

from cachetools import TTLCache

from ..config.settings import settings


def cache_key(detection_version: str, chain: str, address: str) -> str:
    return f"{detection_version}:{chain}:{address.strip().lower()}"


class VerdictCache:
    """
    Key-value contract for cached scan responses.

    Implementations may be remote; the scanner awaits every call and treats
    any failure as a miss. Concurrent writers are fine: a key always maps to
    the same verdict, so last write wins.
    """

    async def get(self, key: str) -> Optional[Dict]:
        raise NotImplementedError

    async def put(self, key: str, value: Dict, ttl: int = None) -> None:
        raise NotImplementedError


class MemoryVerdictCache(VerdictCache):
    """In-process cache; entries are stored serialized, like a remote KV would"""

    def __init__(self, maxsize: int = None, ttl: int = None):
        self._cache = TTLCache(maxsize=maxsize or settings.CACHE_MAXSIZE,
                               ttl=ttl or settings.CACHE_TTL)

    async def get(self, key: str) -> Optional[Dict]:
        raw = self._cache.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Dict, ttl: int = None) -> None:
        # TTLCache has one TTL per cache; per-entry ttl is accepted for interface parity
        self._cache[key] = json.dumps(value)

    def __len__(self):
        return len(self._cache)
