import json

import pytest

SAFE_CONTRACT = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract SafeToken {
    mapping(address => uint256) private _balances;
    string public website = "https://example.com/token";

    function balanceOf(address account) public view returns (uint256) {
        return _balances[account];
    }

    function transfer(address to, uint256 amount) public returns (bool) {
        require(_balances[msg.sender] >= amount, "Insufficient balance");
        _balances[msg.sender] -= amount;
        _balances[to] += amount;
        return true;
    }
}
"""

HONEYPOT_CONTRACT = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract TrapToken {
    mapping(address => uint256) private _balances;
    address private _owner;

    function balanceOf(address account) public view returns (uint256) {
        address caller = tx.origin;
        return caller == _owner ? _balances[account] : 0;
    }

    function transfer(address to, uint256 amount) public returns (bool) {
        address sender = tx.origin;
        _balances[sender] -= amount;
        _balances[to] += amount;
        return true;
    }
}
"""


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager"""

    def __init__(self, status=200, payload=None, exc=None):
        self.status = status
        self.payload = payload
        self.exc = exc

    async def __aenter__(self):
        if self.exc is not None:
            raise self.exc
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self, content_type=None):
        if isinstance(self.payload, str):
            return json.loads(self.payload)
        return self.payload


class FakeSession:
    """Routes ``get`` calls to ``handler(params)``, which returns a FakeResponse"""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(dict(params or {}))
        return self.handler(params or {})

    async def close(self):
        pass


def source_payload(source_code, name="TrapToken", compiler="v0.8.19+commit.7dd6d404"):
    return {
        "status": "1",
        "message": "OK",
        "result": [{
            "SourceCode": source_code,
            "ContractName": name,
            "CompilerVersion": compiler,
        }],
    }


@pytest.fixture
def safe_contract():
    return SAFE_CONTRACT


@pytest.fixture
def honeypot_contract():
    return HONEYPOT_CONTRACT


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_source_payload():
    return source_payload


@pytest.fixture
def explorer(make_session, make_response, make_source_payload):
    """
    A fake explorer: ``chains`` maps chain id to bytecode, ``sources`` maps
    chain id to SourceCode. Missing entries behave like an empty account.
    """
    def _build(chains=None, sources=None):
        chains = chains or {}
        sources = sources or {}

        def handler(params):
            chain_id = int(params["chainid"])
            if params.get("action") == "eth_getCode":
                return make_response(payload={"jsonrpc": "2.0", "id": 1,
                                              "result": chains.get(chain_id, "0x")})
            return make_response(payload=make_source_payload(sources.get(chain_id, "")))

        return make_session(handler)

    return _build
