# tests/execution/test_order_tracker.py
from unittest.mock import AsyncMock, MagicMock

import pytest
from py_clob_client.exceptions import PolyApiException

from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.backend import BackendRegistry
from polynance.execution.models import OrderRequest
from polynance.execution.order_tracker import OrderExecutor, PendingOrderRegistry, order_status

from conftest import YES_TOKEN, FakeBackend, FakeSignedOrder, FakeSigner, make_web3

SIGNED = FakeSignedOrder(OrderRequest(token_id=YES_TOKEN, side="BUY", price=0.5, size=100))


def _allowances(calls, balance=25_000_000, error=None):
    manager = MagicMock()

    async def ensure(signer):
        calls.append("ensure_allowances")
        if error is not None:
            raise error
        return balance

    manager.ensure_allowances = ensure
    return manager


def _executor(backend, calls=None, error=None, api=None, signer="default", web3="default"):
    calls = calls if calls is not None else backend.calls
    manager = _allowances(calls, error=error)
    api = api or MagicMock(propose_price=AsyncMock(return_value={"accepted": True}))
    return OrderExecutor(
        BackendRegistry(backend),
        api,
        registry=PendingOrderRegistry(),
        web3=make_web3() if web3 == "default" else web3,
        signer=FakeSigner() if signer == "default" else signer,
        allowance_factory=lambda w3, contracts: manager,
    )


class TestPendingOrderRegistry:
    def test_add_and_discard(self):
        registry = PendingOrderRegistry()
        registry.add("a")
        registry.add("b", status="unmatched")
        registry.add("a", status="delayed")

        assert registry.ids() == ["a", "b"]
        assert registry.get("a").status == "delayed"
        assert len(registry) == 2

        registry.discard("a")
        assert "a" not in registry
        assert registry.discard("missing") is None

    def test_ids_is_a_snapshot(self):
        registry = PendingOrderRegistry()
        registry.add("a")
        ids = registry.ids()
        ids.append("b")
        assert registry.ids() == ["a"]


def test_order_status():
    assert order_status({"status": "MATCHED"}) == "matched"
    assert order_status({"status": None}) == ""
    assert order_status(None) == ""


class TestExecute:
    @pytest.mark.asyncio
    async def test_matched_order_is_not_tracked(self):
        backend = FakeBackend(orders={"0xorder1": {"id": "0xorder1", "status": "MATCHED"}})
        executor = _executor(backend)

        result = await executor.execute(SIGNED, "GTC")

        assert result.status == "matched"
        assert result.matched and result.ok
        assert result.order_id == "0xorder1"
        assert result.usdc_balance == 25_000_000
        assert executor.get_pending_order_ids() == []

    @pytest.mark.asyncio
    async def test_live_order_is_tracked(self):
        backend = FakeBackend(orders={"0xorder1": {"id": "0xorder1", "status": "LIVE"}})
        executor = _executor(backend)

        result = await executor.execute(SIGNED, "GTC")

        assert result.status == "pending"
        assert executor.get_pending_order_ids() == ["0xorder1"]
        assert executor.registry.get("0xorder1").status == "live"

    @pytest.mark.asyncio
    async def test_allowances_checked_before_submission(self):
        backend = FakeBackend(orders={"0xorder1": {"status": "LIVE"}})
        executor = _executor(backend)

        await executor.execute(SIGNED, "FOK")

        assert backend.calls == ["ensure_allowances", "post_order:FOK", "get_order:0xorder1"]

    @pytest.mark.asyncio
    async def test_no_order_id_proposes_price(self):
        backend = FakeBackend(post_response={"success": False, "errorMsg": ""})
        api = MagicMock(propose_price=AsyncMock(return_value={"accepted": True}))
        executor = _executor(backend, api=api)

        result = await executor.execute(SIGNED)

        assert result.status == "proposed"
        assert result.proposal == {"accepted": True}
        api.propose_price.assert_awaited_once()
        sent = api.propose_price.await_args.args[0]
        assert sent["tokenId"] == YES_TOKEN
        assert executor.get_pending_order_ids() == []

    @pytest.mark.asyncio
    async def test_missing_signer_is_environment_error(self):
        backend = FakeBackend()
        executor = _executor(backend, signer=None)

        result = await executor.execute(SIGNED)

        assert result.status == "error"
        assert not result.ok
        assert result.error.code == ErrorCode.ENVIRONMENT_ERROR
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_missing_web3_is_environment_error(self):
        backend = FakeBackend()
        executor = _executor(backend, web3=None)

        result = await executor.execute(SIGNED)

        assert result.error.code == ErrorCode.ENVIRONMENT_ERROR

    @pytest.mark.asyncio
    async def test_allowance_failure_skips_submission(self):
        backend = FakeBackend()
        failure = PolynanceApiError("rpc down", ErrorCode.NETWORK_ERROR, method_name="ensure_allowances")
        executor = _executor(backend, error=failure)

        result = await executor.execute(SIGNED)

        assert result.error is failure
        assert backend.calls == ["ensure_allowances"]

    @pytest.mark.asyncio
    async def test_unknown_order_type_rejected_before_approvals(self):
        backend = FakeBackend()
        executor = _executor(backend)

        result = await executor.execute(SIGNED, "IOC_PLUS")

        assert result.status == "error"
        assert result.error.code == ErrorCode.INVALID_PARAMETER
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_post_failure_is_classified(self):
        rejected = PolyApiException(error_msg="not enough balance")
        rejected.status_code = 400
        rejected.error_msg = {"error": "not enough balance / allowance"}
        backend = FakeBackend(post_response=rejected)
        executor = _executor(backend)

        result = await executor.execute(SIGNED)

        assert result.status == "error"
        assert result.error.code == ErrorCode.INVALID_PARAMETER
        assert result.error.status_code == 400
        assert executor.get_pending_order_ids() == []

    @pytest.mark.asyncio
    async def test_unknown_provider(self):
        executor = _executor(FakeBackend())

        result = await executor.execute(SIGNED, provider="kalshi")

        assert result.error.code == ErrorCode.UNSUPPORTED_PROVIDER


class TestWaitOrderMatched:
    @pytest.mark.asyncio
    async def test_matched_removes_pending(self):
        backend = FakeBackend(orders={"0xorder1": {"status": "LIVE"}})
        executor = _executor(backend)
        await executor.execute(SIGNED)
        assert executor.get_pending_order_ids() == ["0xorder1"]

        backend.orders["0xorder1"] = {"status": "MATCHED"}

        assert await executor.wait_order_matched("0xorder1") is True
        assert executor.get_pending_order_ids() == []

    @pytest.mark.asyncio
    async def test_still_live(self):
        backend = FakeBackend(orders={"0xorder1": {"status": "LIVE"}})
        executor = _executor(backend)
        await executor.execute(SIGNED)

        assert await executor.wait_order_matched("0xorder1") is False
        assert executor.get_pending_order_ids() == ["0xorder1"]

    @pytest.mark.asyncio
    async def test_unknown_order(self):
        executor = _executor(FakeBackend())
        assert await executor.wait_order_matched("nope") is False

    @pytest.mark.asyncio
    async def test_fetch_failure_returns_false(self):
        backend = FakeBackend(orders={"0xorder1": RuntimeError("clob down")})
        executor = _executor(backend)
        assert await executor.wait_order_matched("0xorder1") is False

    @pytest.mark.asyncio
    async def test_matched_but_never_tracked(self):
        backend = FakeBackend(orders={"0xorder9": {"status": "matched"}})
        executor = _executor(backend)
        assert await executor.wait_order_matched("0xorder9") is True
        assert executor.get_pending_order_ids() == []


@pytest.mark.asyncio
async def test_registries_are_per_executor():
    backend = FakeBackend(orders={"0xorder1": {"status": "LIVE"}})
    first = _executor(backend)
    second = _executor(backend)

    await first.execute(SIGNED)

    assert first.get_pending_order_ids() == ["0xorder1"]
    assert second.get_pending_order_ids() == []
