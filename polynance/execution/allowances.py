"""On-chain spend permissions required before a CLOB order can settle.

The quote token (USDC.e, ERC-20) needs a non-zero allowance and the outcome
token contract (CTF, ERC-1155) needs ``isApprovedForAll`` for every spender of
the settlement backend. Missing permissions are fixed one transaction at a
time so each has its own receipt; existing approvals are never lowered.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog
from eth_account.signers.local import LocalAccount
from web3 import Web3

from polynance.errors import classify, mask
from polynance.execution.models import AllowanceState, SettlementContracts

logger = structlog.get_logger()

MAX_UINT256 = 2**256 - 1
USDC_DECIMALS = 6

USDC_ABI: list[dict[str, Any]] = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

CTF_ABI: list[dict[str, Any]] = [
    {
        "name": "setApprovalForAll",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "operator", "type": "address"}, {"name": "approved", "type": "bool"}],
        "outputs": [],
    },
    {
        "name": "isApprovedForAll",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}, {"name": "operator", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}, {"name": "id", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class AllowanceManager:
    """Reads and repairs USDC / CTF permissions for one settlement backend."""

    def __init__(
        self,
        web3: Web3,
        contracts: SettlementContracts,
        gas_price_wei: int = 100_000_000_000,
        gas_limit: int = 200_000,
    ) -> None:
        self._web3 = web3
        self.contracts = contracts
        self.gas_price_wei = gas_price_wei
        self.gas_limit = gas_limit
        self._usdc = web3.eth.contract(address=Web3.to_checksum_address(contracts.collateral), abi=USDC_ABI)
        self._ctf = web3.eth.contract(address=Web3.to_checksum_address(contracts.conditional_tokens), abi=CTF_ABI)

    @property
    def spenders(self) -> list[str]:
        return [Web3.to_checksum_address(address) for _, address in self.contracts.spenders]

    async def read_state(self, owner: str) -> AllowanceState:
        """Issue every allowance/approval/balance read at once; first failure wins."""
        owner = Web3.to_checksum_address(owner)
        spenders = self.spenders

        reads = [self._call(self._usdc.functions.allowance(owner, s).call) for s in spenders]
        reads += [self._call(self._ctf.functions.isApprovedForAll(owner, s).call) for s in spenders]
        reads.append(self._call(self._usdc.functions.balanceOf(owner).call))
        results = await asyncio.gather(*reads)

        n = len(spenders)
        return AllowanceState(
            owner=owner,
            usdc_allowances={s: int(v) for s, v in zip(spenders, results[:n])},
            ctf_approvals={s: bool(v) for s, v in zip(spenders, results[n : 2 * n])},
            usdc_balance=int(results[-1]),
        )

    async def ensure_allowances(self, signer: LocalAccount) -> int:
        """Approve whatever is missing and return the USDC balance (raw units)."""
        try:
            state = await self.read_state(signer.address)
            missing_usdc = state.missing_usdc
            missing_ctf = state.missing_ctf
            if not missing_usdc and not missing_ctf:
                logger.info(
                    "allowances_already_set",
                    wallet=mask(state.owner),
                    usdc_balance=state.usdc_balance / 10**USDC_DECIMALS,
                )
                return state.usdc_balance

            nonce = await self._call(self._web3.eth.get_transaction_count, state.owner, "pending")
            for spender in missing_usdc:
                await self._send(
                    signer,
                    self._usdc.functions.approve(spender, MAX_UINT256),
                    nonce,
                    label="usdc",
                    spender=spender,
                )
                nonce += 1
            for spender in missing_ctf:
                await self._send(
                    signer,
                    self._ctf.functions.setApprovalForAll(spender, True),
                    nonce,
                    label="ctf",
                    spender=spender,
                )
                nonce += 1
            return state.usdc_balance
        except Exception as exc:
            raise classify(exc, "ensure_allowances", {"wallet": signer.address})

    async def usdc_balance(self, owner: str) -> int:
        return int(await self._call(self._usdc.functions.balanceOf(Web3.to_checksum_address(owner)).call))

    async def conditional_token_balance(self, owner: str, token_id: str) -> int:
        owner = Web3.to_checksum_address(owner)
        return int(await self._call(self._ctf.functions.balanceOf(owner, int(token_id)).call))

    async def _send(self, signer: LocalAccount, fn: Any, nonce: int, *, label: str, spender: str) -> str:
        tx = fn.build_transaction(
            {
                "from": signer.address,
                "nonce": nonce,
                "gas": self.gas_limit,
                "gasPrice": self.gas_price_wei,
                "chainId": self.contracts.chain_id,
            }
        )
        signed = signer.sign_transaction(tx)
        tx_hash = await self._call(self._web3.eth.send_raw_transaction, signed.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)
        logger.info("approval_sent", token=label, spender=mask(spender), nonce=nonce, tx_hash=tx_hex)
        return tx_hex

    @staticmethod
    async def _call(fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(fn, *args)
