"""Shared fakes for the settlement backend and web3 contracts."""

from types import SimpleNamespace
from typing import Any, Optional

import pytest
from web3 import Web3

from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.models import OrderRequest, SettlementContracts

API = "https://api.polynance.ag"
ORDER_TYPES = ("GTC", "FOK", "GTD", "FAK")

USDC = Web3.to_checksum_address("0x2791bca1f2de4661ed88a30c99a7a9449aa84174")
CTF = Web3.to_checksum_address("0x4d97dcd97ec945f40cf65f87097ace5ea0476045")
ADAPTER = Web3.to_checksum_address("0xd91e80cf2e7be2e162c6513ced06f1dd0da35296")
NEG_RISK_EXCHANGE = Web3.to_checksum_address("0xc5d563a36ae78145c45a50134d48a1215220f80a")
WALLET = Web3.to_checksum_address("0x1111111111111111111111111111111111111111")

CONTRACTS = SettlementContracts(
    chain_id=137,
    collateral=USDC,
    conditional_tokens=CTF,
    spenders=(("neg_risk_adapter", ADAPTER), ("neg_risk_exchange", NEG_RISK_EXCHANGE)),
)

YES_TOKEN = "71321045679252212594626385532706912750332728571942532289631379312455583992563"
NO_TOKEN = "52114319501245915516055106046884209969926127482827954674443846427813813222426"


def exchange_payload(yes_price: str = "0.5", no_price: str = "0.5", **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": "506729",
        "slug": "abc-def",
        "name": "Will it rain tomorrow?",
        "question": "Will it rain tomorrow?",
        "active": True,
        "funded": True,
        "spread": 0.01,
        "rewardsMinSize": 50,
        "rewardsMaxSpread": 3.5,
        "position_tokens": [
            {"token_id": YES_TOKEN, "name": "Yes", "price": yes_price},
            {"token_id": NO_TOKEN, "name": "No", "price": no_price},
        ],
    }
    payload.update(overrides)
    return payload


class FakeSignedOrder:
    def __init__(self, request: OrderRequest) -> None:
        self.request = request

    def dict(self) -> dict[str, Any]:
        return {
            "salt": 123,
            "maker": WALLET,
            "signer": WALLET,
            "taker": "0x0000000000000000000000000000000000000000",
            "tokenId": self.request.token_id,
            "makerAmount": "50000000",
            "takerAmount": "100000000",
            "expiration": "0",
            "nonce": "0",
            "feeRateBps": 0,
            "side": "BUY",
            "signatureType": 0,
            "signature": "0xsig",
        }


class FakeBackend:
    """In-memory settlement backend recording every call."""

    name = "polymarket"

    def __init__(
        self,
        post_response: Optional[dict[str, Any]] = None,
        orders: Optional[dict[str, Any]] = None,
        calls: Optional[list[str]] = None,
    ) -> None:
        self.post_response = post_response if post_response is not None else {"orderID": "0xorder1", "success": True}
        self.orders = orders or {}
        self.calls = calls if calls is not None else []
        self.requests: list[OrderRequest] = []
        self.bound_signers: list[Any] = []

    async def init_creds(self) -> None:
        self.calls.append("init_creds")

    def bind_signer(self, signer: Any) -> None:
        self.bound_signers.append(signer)

    async def create_order(self, request: OrderRequest) -> FakeSignedOrder:
        self.calls.append("create_order")
        self.requests.append(request)
        return FakeSignedOrder(request)

    def resolve_order_type(self, order_type: str) -> str:
        if order_type.upper() not in ORDER_TYPES:
            raise PolynanceApiError(
                f"Unknown order type: {order_type}",
                ErrorCode.INVALID_PARAMETER,
                method_name="post_order",
            )
        return order_type.upper()

    async def post_order(self, order: Any, order_type: str = "GTC") -> dict[str, Any]:
        self.calls.append(f"post_order:{order_type}")
        if isinstance(self.post_response, Exception):
            raise self.post_response
        return self.post_response

    async def get_order(self, order_id: str) -> Optional[dict[str, Any]]:
        self.calls.append(f"get_order:{order_id}")
        order = self.orders.get(order_id)
        if isinstance(order, Exception):
            raise order
        return order

    def settlement_contracts(self) -> SettlementContracts:
        return CONTRACTS

    def serialize_order(self, order: Any) -> dict[str, Any]:
        return order.dict()


# --- web3 fakes ---


class FakeCall:
    def __init__(self, result: Any, name: str, args: tuple) -> None:
        self._result = result
        self.name = name
        self.args = args

    def call(self) -> Any:
        if isinstance(self._result, Exception):
            raise self._result
        return self._result

    def build_transaction(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"fn": self.name, "args": self.args, **params}


class FakeUsdc:
    def __init__(self, allowances: dict[str, Any], balance: Any) -> None:
        self.allowances = allowances
        self.balance = balance
        self.functions = self

    def allowance(self, owner: str, spender: str) -> FakeCall:
        return FakeCall(self.allowances.get(spender, 0), "allowance", (owner, spender))

    def balanceOf(self, owner: str) -> FakeCall:
        return FakeCall(self.balance, "balanceOf", (owner,))

    def approve(self, spender: str, amount: int) -> FakeCall:
        return FakeCall(True, "approve", (spender, amount))


class FakeCtf:
    def __init__(self, approvals: dict[str, Any], balances: Optional[dict[int, int]] = None) -> None:
        self.approvals = approvals
        self.balances = balances or {}
        self.functions = self

    def isApprovedForAll(self, owner: str, operator: str) -> FakeCall:
        return FakeCall(self.approvals.get(operator, False), "isApprovedForAll", (owner, operator))

    def setApprovalForAll(self, operator: str, approved: bool) -> FakeCall:
        return FakeCall(None, "setApprovalForAll", (operator, approved))

    def balanceOf(self, owner: str, token_id: int) -> FakeCall:
        return FakeCall(self.balances.get(token_id, 0), "balanceOf", (owner, token_id))


class FakeEth:
    def __init__(self, usdc: FakeUsdc, ctf: FakeCtf, nonce: int = 7) -> None:
        self._usdc = usdc
        self._ctf = ctf
        self._nonce = nonce
        self.sent: list[dict[str, Any]] = []

    def contract(self, address: str, abi: list) -> Any:
        return self._usdc if address == USDC else self._ctf

    def get_transaction_count(self, address: str, block: str) -> int:
        return self._nonce

    def send_raw_transaction(self, raw: dict[str, Any]) -> bytes:
        self.sent.append(raw)
        return bytes([len(self.sent)]) * 32


class FakeSigner:
    def __init__(self, address: str = WALLET) -> None:
        self.address = address

    def sign_transaction(self, tx: dict[str, Any]) -> SimpleNamespace:
        return SimpleNamespace(raw_transaction=tx)


def make_web3(
    allowances: Optional[dict[str, Any]] = None,
    approvals: Optional[dict[str, Any]] = None,
    balance: Any = 25_000_000,
    ctf_balances: Optional[dict[int, int]] = None,
) -> SimpleNamespace:
    usdc = FakeUsdc(allowances or {}, balance)
    ctf = FakeCtf(approvals or {}, ctf_balances)
    return SimpleNamespace(eth=FakeEth(usdc, ctf))


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()
