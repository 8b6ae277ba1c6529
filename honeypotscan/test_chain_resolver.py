import asyncio

import aiohttp
import pytest

from .services.chain_resolver import ProbeError, probe_chain, resolve_chain
from .services.errors import ChainDetectionError
from .services.patterns import CHAIN_CONFIGS

ADDRESS = "0x" + "cd" * 20
BYTECODE = "0x6080604052"


@pytest.mark.asyncio
async def test_returns_chain_holding_bytecode(explorer):
    session = explorer(chains={137: BYTECODE})
    assert await resolve_chain(ADDRESS, session) == "polygon"


@pytest.mark.asyncio
async def test_probes_every_chain_with_get_code(explorer):
    session = explorer()
    await resolve_chain(ADDRESS, session, api_key="probe-key")

    assert sorted(call["chainid"] for call in session.calls) == ["1", "137", "42161"]
    for call in session.calls:
        assert call["action"] == "eth_getCode"
        assert call["address"] == ADDRESS
        assert call["apikey"] == "probe-key"


@pytest.mark.asyncio
async def test_no_bytecode_anywhere_returns_none(explorer):
    assert await resolve_chain(ADDRESS, explorer()) is None


@pytest.mark.asyncio
async def test_failed_probe_counts_as_not_found(make_session, make_response):
    def handler(params):
        if params["chainid"] == "1":
            return make_response(exc=aiohttp.ClientConnectionError("reset"))
        if params["chainid"] == "42161":
            return make_response(payload={"result": BYTECODE})
        return make_response(payload={"result": "0x"})

    assert await resolve_chain(ADDRESS, make_session(handler)) == "arbitrum"


@pytest.mark.asyncio
async def test_all_probes_failing_raises(make_session, make_response):
    session = make_session(lambda params: make_response(exc=aiohttp.ClientConnectionError("down")))
    with pytest.raises(ChainDetectionError) as exc_info:
        await resolve_chain(ADDRESS, session)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_first_hit_wins_and_slow_probes_are_cancelled(make_session, make_response):
    cancelled = []

    class SlowResponse:
        async def __aenter__(self):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        async def __aexit__(self, *exc):
            return False

    def handler(params):
        if params["chainid"] == "1":
            return make_response(payload={"result": BYTECODE})
        return SlowResponse()

    assert await asyncio.wait_for(resolve_chain(ADDRESS, make_session(handler)), timeout=2) == "ethereum"
    assert len(cancelled) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("response_kwargs", [
    {"status": 500},
    {"payload": {"status": "0", "result": "Invalid API Key"}},
    {"payload": "not json"},
    {"exc": asyncio.TimeoutError()},
])
async def test_probe_errors(make_session, make_response, response_kwargs):
    session = make_session(lambda params: make_response(**response_kwargs))
    with pytest.raises(ProbeError):
        await probe_chain(session, ADDRESS, CHAIN_CONFIGS["ethereum"])
