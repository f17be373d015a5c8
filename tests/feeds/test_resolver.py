# tests/feeds/test_resolver.py
import httpx
import pytest
import respx
from httpx import Response

from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.feeds.polynance_api import PolynanceApi
from polynance.feeds.resolver import InstrumentResolver, is_slug

from conftest import API, NO_TOKEN, YES_TOKEN, exchange_payload


@pytest.fixture
def mock_api():
    with respx.mock:
        yield respx


@pytest.fixture
def resolver():
    return InstrumentResolver(PolynanceApi(base_url=API, timeout=5))


def test_is_slug():
    assert is_slug("will-it-rain-tomorrow")
    assert not is_slug("506729")
    assert not is_slug("0xabc123")


class TestResolve:
    @pytest.mark.asyncio
    async def test_slug_uses_aggregated_lookup(self, mock_api, resolver):
        by_slug = mock_api.get(f"{API}/v1/agg/market", params={"slug": "abc-def"}).mock(
            return_value=Response(200, json=[exchange_payload()])
        )

        exchange = await resolver.resolve("abc-def")

        assert by_slug.called
        assert exchange.slug == "abc-def"
        assert [t.name for t in exchange.position_tokens] == ["Yes", "No"]
        assert exchange.is_binary

    @pytest.mark.asyncio
    async def test_slug_with_many_rows_takes_first(self, mock_api, resolver):
        mock_api.get(f"{API}/v1/agg/market").mock(
            return_value=Response(200, json=[exchange_payload(), exchange_payload(id="other")])
        )

        exchange = await resolver.resolve("abc-def")

        assert exchange.id == "506729"

    @pytest.mark.asyncio
    async def test_id_uses_market_lookup_with_protocol(self, mock_api, resolver):
        route = mock_api.get(f"{API}/v1/markets/506729", params={"protocol": "polymarket"}).mock(
            return_value=Response(200, json=exchange_payload())
        )

        exchange = await resolver.resolve("506729")

        assert route.called
        assert exchange.find_token("yes").token_id == YES_TOKEN
        assert exchange.find_token(NO_TOKEN).name == "No"

    @pytest.mark.asyncio
    async def test_simple_market_shape(self, mock_api, resolver):
        payload = {
            "id": "506729",
            "question": "Will it rain tomorrow?",
            "slug": "will-it-rain-tomorrow",
            "outcomes": '["Yes", "No"]',
            "outcome_prices": '["0.62", "0.38"]',
            "clob_token_ids": f'["{YES_TOKEN}", "{NO_TOKEN}"]',
        }
        mock_api.get(f"{API}/v1/markets/506729").mock(return_value=Response(200, json=payload))

        exchange = await resolver.resolve("506729")

        assert exchange.name == "Will it rain tomorrow?"
        assert exchange.find_token("YES").price == "0.62"
        assert exchange.find_token("NO").token_id == NO_TOKEN

    @pytest.mark.asyncio
    async def test_unknown_slug_is_not_found(self, mock_api, resolver):
        mock_api.get(f"{API}/v1/agg/market", params={"slug": "does-not-exist-xyz"}).mock(
            return_value=Response(200, json=[])
        )

        with pytest.raises(PolynanceApiError) as exc_info:
            await resolver.resolve("does-not-exist-xyz")

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_id_is_not_found(self, mock_api, resolver):
        mock_api.get(f"{API}/v1/markets/999").mock(return_value=Response(404))

        with pytest.raises(PolynanceApiError) as exc_info:
            await resolver.resolve("999")

        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert exc_info.value.status_code == 404
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ref", ["", "   ", None])
    async def test_empty_identifier(self, resolver, ref):
        with pytest.raises(PolynanceApiError) as exc_info:
            await resolver.resolve(ref)

        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER
        assert exc_info.value.method_name == "resolve_exchange"

    @pytest.mark.asyncio
    async def test_payload_without_tokens_fails_validation(self, mock_api, resolver):
        mock_api.get(f"{API}/v1/markets/506729").mock(
            return_value=Response(200, json=exchange_payload(position_tokens=[]))
        )

        with pytest.raises(PolynanceApiError) as exc_info:
            await resolver.resolve("506729")

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_network_failure(self, mock_api, resolver):
        mock_api.get(f"{API}/v1/markets/506729").mock(side_effect=httpx.ConnectError)

        with pytest.raises(PolynanceApiError) as exc_info:
            await resolver.resolve("506729")

        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_every_call_hits_the_api(self, mock_api, resolver):
        route = mock_api.get(f"{API}/v1/markets/506729").mock(return_value=Response(200, json=exchange_payload()))

        await resolver.resolve("506729")
        await resolver.resolve("506729")

        assert route.call_count == 2
