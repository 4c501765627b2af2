from __future__ import annotations

import asyncio
import json
from typing import Callable, List

import httpx
import pytest

from sol_balance_fetcher.adapters.solana_rpc import SolanaRPCClient
from sol_balance_fetcher.core.errors import ParseError, ProtocolError
from sol_balance_fetcher.core.types import BalanceFailure, BalanceQuery, BalanceSuccess


ENDPOINT = "https://rpc.example.com"
ADDRESS = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def _fetch(handler: Callable[[httpx.Request], httpx.Response], address: str = ADDRESS, **kwargs):
    async def _run():
        transport = httpx.MockTransport(handler)
        async with SolanaRPCClient(ENDPOINT, transport=transport, **kwargs) as client:
            return await client.fetch_balance(address)

    return asyncio.run(_run())


def test_fetch_balance_success_with_plain_result() -> None:
    requests: List[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(status_code=200, json={"result": 1234567890})

    result = _fetch(handler)

    assert result == BalanceSuccess(address=ADDRESS, lamports=1234567890)
    assert len(requests) == 1
    body = requests[0]
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "getBalance"
    assert body["params"] == [ADDRESS]


def test_fetch_balance_accepts_solana_context_value_shape() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = {"jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 42}, "value": 500_000_000}}
        return httpx.Response(status_code=200, json=payload)

    result = _fetch(handler)

    assert isinstance(result, BalanceSuccess)
    assert result.lamports == 500_000_000


def test_request_shape_is_configurable() -> None:
    seen: List[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(status_code=200, json={"result": 1})

    query = BalanceQuery(method="getBalanceOf", params=[{"owner": "{address}"}], commitment="confirmed")
    _fetch(handler, address="W1", query=query)

    assert seen[0]["method"] == "getBalanceOf"
    assert seen[0]["params"] == [{"owner": "W1"}, {"commitment": "confirmed"}]


def test_http_error_status_is_reported_as_protocol_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=503, text="upstream unavailable")

    result = _fetch(handler, address="BadAddr")

    assert isinstance(result, BalanceFailure)
    assert result.address == "BadAddr"
    assert result.kind == "protocol"
    assert "503" in result.reason
    assert "upstream unavailable" in result.reason


def test_json_rpc_error_member_is_reported_with_code_and_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param: WrongSize"}}
        return httpx.Response(status_code=200, json=payload)

    result = _fetch(handler, address="short")

    assert isinstance(result, BalanceFailure)
    assert result.kind == "protocol"
    assert "-32602" in result.reason
    assert "Invalid param" in result.reason


def test_transport_error_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _fetch(handler)

    assert isinstance(result, BalanceFailure)
    assert result.kind == "transport"
    assert "ConnectError" in result.reason
    assert "connection refused" in result.reason


def test_timeout_is_captured_as_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = _fetch(handler)

    assert isinstance(result, BalanceFailure)
    assert result.kind == "transport"
    assert "ReadTimeout" in result.reason


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(status_code=200, text="<html>not json</html>"),
        httpx.Response(status_code=200, json=[1, 2, 3]),
        httpx.Response(status_code=200, json={"jsonrpc": "2.0", "id": 1}),
        httpx.Response(status_code=200, json={"result": "12"}),
        httpx.Response(status_code=200, json={"result": -5}),
        httpx.Response(status_code=200, json={"result": 2**64}),
        httpx.Response(status_code=200, json={"result": True}),
        httpx.Response(status_code=200, json={"result": {"context": {}}}),
    ],
)
def test_malformed_payload_is_reported_as_parse_failure(response: httpx.Response) -> None:
    result = _fetch(lambda request: response)

    assert isinstance(result, BalanceFailure)
    assert result.kind == "parse"


def test_get_balance_raises_taxonomy_errors() -> None:
    async def _run(handler):
        async with SolanaRPCClient(ENDPOINT, transport=httpx.MockTransport(handler)) as client:
            return await client.get_balance(ADDRESS)

    with pytest.raises(ProtocolError) as excinfo:
        asyncio.run(_run(lambda request: httpx.Response(status_code=429)))
    assert excinfo.value.status_code == 429

    with pytest.raises(ParseError):
        asyncio.run(_run(lambda request: httpx.Response(status_code=200, json={"result": None})))


def test_request_ids_increase_per_client() -> None:
    client = SolanaRPCClient(ENDPOINT, transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    try:
        first = client.build_request("W1")
        second = client.build_request("W1")
    finally:
        asyncio.run(client.aclose())

    assert second["id"] == first["id"] + 1


def test_http_error_body_preview_is_kept_on_one_line() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=502, text="<html>\n  <body>Bad\tGateway</body>\n</html>\n")

    result = _fetch(handler)

    assert isinstance(result, BalanceFailure)
    assert "\n" not in result.reason
    assert "\t" not in result.reason
    assert result.reason == "HTTP 502 Bad Gateway: <html> <body>Bad Gateway</body> </html>"


def test_connection_pool_follows_max_connections() -> None:
    bounded = SolanaRPCClient(ENDPOINT, max_connections=3)
    unbounded = SolanaRPCClient(ENDPOINT)
    large = SolanaRPCClient(ENDPOINT, max_connections=500)
    try:
        assert bounded.limits.max_connections == 3
        assert bounded.limits.max_keepalive_connections == 3
        assert unbounded.limits.max_connections is None
        assert large.limits.max_connections == 500
    finally:
        for client in (bounded, unbounded, large):
            asyncio.run(client.aclose())
