import asyncio
from typing import Dict, Optional

import aiohttp
import structlog

from ..config.settings import settings
from ..models.contract_models import ChainConfig
from .errors import ChainDetectionError
from .patterns import CHAIN_CONFIGS

logger = structlog.get_logger()


class ProbeError(Exception):
    pass


async def probe_chain(
    session: aiohttp.ClientSession,
    address: str,
    chain: ChainConfig,
    api_key: Optional[str] = None,
    timeout: float = None,
) -> bool:
    """Return True when ``address`` has bytecode on ``chain``; raise ProbeError when the probe fails"""
    params = {
        "chainid": str(chain.chain_id),
        "module": "proxy",
        "action": "eth_getCode",
        "address": address,
        "tag": "latest",
    }
    if api_key:
        params["apikey"] = api_key

    client_timeout = aiohttp.ClientTimeout(total=timeout or settings.CHAIN_PROBE_TIMEOUT)
    try:
        async with session.get(settings.EXPLORER_API_URL, params=params, timeout=client_timeout) as resp:
            if resp.status != 200:
                raise ProbeError(f"HTTP {resp.status}")
            data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise ProbeError(str(e) or type(e).__name__) from e

    result = data.get("result") if isinstance(data, dict) else None
    if not isinstance(result, str) or not result.startswith("0x"):
        # Explorer errors come back as a plain message in "result"
        raise ProbeError(f"Unexpected response: {str(result)[:80]}")

    return result != "0x"


async def resolve_chain(
    address: str,
    session: aiohttp.ClientSession,
    chains: Dict[str, ChainConfig] = None,
    api_key: Optional[str] = None,
) -> Optional[str]:
    """
    Probe every configured chain concurrently and return the first one
    holding bytecode at ``address``.

    A failed probe only means "not found here". Returns None when no chain
    has code; raises ChainDetectionError only if every probe failed.
    """
    chains = chains or CHAIN_CONFIGS

    async def _check(name: str, chain: ChainConfig):
        try:
            found = await probe_chain(session, address, chain, api_key=api_key)
        except ProbeError as e:
            logger.warning("chain_probe_failed", chain=name, address=address, error=str(e))
            return name, None
        return name, found

    tasks = [asyncio.ensure_future(_check(name, chain)) for name, chain in chains.items()]
    failures = 0
    try:
        for next_done in asyncio.as_completed(tasks):
            name, found = await next_done
            if found is None:
                failures += 1
            elif found:
                logger.info("chain_detected", chain=name, address=address)
                return name
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if tasks and failures == len(tasks):
        raise ChainDetectionError(cause="all chain probes failed")
    return None
