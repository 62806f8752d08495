"""
Testes para os clientes upstream (RPC de supply e cotações).
"""

import json
from decimal import Decimal

import httpx
import pytest
from structlog.testing import capture_logs

from ticker_service.models import MarketQuote
from ticker_service.services.quotes_client import QuotesClient
from ticker_service.services.supply_client import SupplyClient

RPC_URL = "https://rpc.example/rpc"
CMC_URL = "https://cmc.example"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _cmc_entry(symbol, price, volume=0, change=0):
    return {
        "symbol": symbol,
        "quote": {"USD": {"price": price, "volume_24h": volume, "percent_change_24h": change}},
    }


@pytest.mark.asyncio
class TestSupplyClient:
    """Testes para o cliente JSON-RPC de supply."""

    async def test_scales_total_by_1e9(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "result": {"value": {"total": 2184319077412900000}}})

        async with _client(handler) as http:
            supply = await SupplyClient(RPC_URL, client=http).fetch_total_supply()

        assert supply == Decimal("2184319077.4129")
        assert seen["body"]["method"] == "getSupply"
        assert seen["body"]["params"] == [{"commitment": "max"}]

    @pytest.mark.parametrize(
        "payload",
        [
            {"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}},
            {"result": {"value": {}}},
            {"result": {"value": {"total": 0}}},
            {"result": None},
            [],
        ],
    )
    async def test_invalid_payload_returns_zero(self, payload):
        async with _client(lambda request: httpx.Response(200, json=payload)) as http:
            assert await SupplyClient(RPC_URL, client=http).fetch_total_supply() == 0

    async def test_http_error_returns_zero(self):
        async with _client(lambda request: httpx.Response(502, text="bad gateway")) as http:
            assert await SupplyClient(RPC_URL, client=http).fetch_total_supply() == 0

    async def test_malformed_json_returns_zero(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as http:
            assert await SupplyClient(RPC_URL, client=http).fetch_total_supply() == 0

    async def test_transport_error_returns_zero(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as http:
            assert await SupplyClient(RPC_URL, client=http).fetch_total_supply() == 0


@pytest.mark.asyncio
class TestQuotesClient:
    """Testes para o cliente de cotações."""

    async def test_parses_symbol_map(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={
                "status": {"error_code": 0},
                "data": {
                    "VLX": _cmc_entry("VLX", 0.0123, 1523411.4, -2.5),
                    "BTC": _cmc_entry("BTC", 50000, 3.1e10, 1.2),
                },
            })

        async with _client(handler) as http:
            quotes = await QuotesClient("secret", CMC_URL, client=http).fetch_quotes(["vlx", "BTC", " "])

        assert quotes == {
            "vlx": MarketQuote(price_usd=0.0123, volume_24h_usd=1523411.4, percent_change_24h=-2.5),
            "btc": MarketQuote(price_usd=50000, volume_24h_usd=3.1e10, percent_change_24h=1.2),
        }
        request = seen["request"]
        assert request.headers["X-CMC_PRO_API_KEY"] == "secret"
        assert request.url.path == "/v1/cryptocurrency/quotes/latest"
        assert request.url.params["symbol"] == "VLX,BTC"

    async def test_parses_v2_lists_and_listing_shape(self):
        v2 = {"data": {"USDT": [_cmc_entry("USDT", 1.0001), _cmc_entry("USDT", 0.2)]}}
        listing = {"data": [_cmc_entry("ETH", 3000), _cmc_entry("DOGE", 0.1)]}

        async with _client(lambda request: httpx.Response(200, json=v2)) as http:
            assert (await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["USDT"]))["usdt"].price_usd == 1.0001
        async with _client(lambda request: httpx.Response(200, json=listing)) as http:
            quotes = await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["ETH"])
        assert list(quotes) == ["eth"]

    async def test_entry_without_usd_quote_is_skipped(self):
        payload = {"data": {"VLX": {"symbol": "VLX", "quote": {}}, "BTC": _cmc_entry("BTC", "50000.5")}}
        async with _client(lambda request: httpx.Response(200, json=payload)) as http:
            quotes = await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX", "BTC"])
        assert list(quotes) == ["btc"]
        assert quotes["btc"].price_usd == 50000.5

    async def test_api_error_status_returns_empty(self):
        payload = {"status": {"error_code": 1002, "error_message": "API key missing."}, "data": {}}
        async with _client(lambda request: httpx.Response(200, json=payload)) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX"]) == {}

    async def test_http_error_returns_empty(self):
        async with _client(lambda request: httpx.Response(401, json={"status": {"error_code": 1001}})) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX"]) == {}

    async def test_malformed_payload_returns_empty(self):
        async with _client(lambda request: httpx.Response(200, text="not json")) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX"]) == {}
        async with _client(lambda request: httpx.Response(200, json=["unexpected"])) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX"]) == {}

    async def test_timeout_returns_empty(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX"]) == {}

    async def test_no_symbols_skips_request(self):
        calls = []
        async with _client(lambda request: calls.append(request) or httpx.Response(200, json={})) as http:
            assert await QuotesClient("k", CMC_URL, client=http).fetch_quotes([]) == {}
        assert calls == []


@pytest.mark.asyncio
class TestVerboseClients:
    """Testes para os logs de sucesso no modo verbose."""

    async def test_supply_logged_only_when_verbose(self):
        payload = {"result": {"value": {"total": 5000000000}}}

        async with _client(lambda request: httpx.Response(200, json=payload)) as http:
            with capture_logs() as quiet:
                await SupplyClient(RPC_URL, client=http).fetch_total_supply()
            with capture_logs() as verbose:
                await SupplyClient(RPC_URL, client=http, verbose=True).fetch_total_supply()

        assert not [e for e in quiet if e["event"] == "supply_fetched"]
        assert [e["total"] for e in verbose if e["event"] == "supply_fetched"] == ["5000000000"]

    async def test_quotes_logged_only_when_verbose(self):
        payload = {"data": {"VLX": _cmc_entry("VLX", 0.01), "BTC": _cmc_entry("BTC", 50000)}}

        async with _client(lambda request: httpx.Response(200, json=payload)) as http:
            with capture_logs() as quiet:
                await QuotesClient("k", CMC_URL, client=http).fetch_quotes(["VLX", "BTC"])
            with capture_logs() as verbose:
                await QuotesClient("k", CMC_URL, client=http, verbose=True).fetch_quotes(["VLX", "BTC"])

        assert not [e for e in quiet if e["event"] == "quotes_fetched"]
        assert [e["symbols"] for e in verbose if e["event"] == "quotes_fetched"] == [["btc", "vlx"]]
