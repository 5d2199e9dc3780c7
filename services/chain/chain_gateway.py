"""Read and write calls against the market contracts through web3.py.

Every call runs the blocking web3 client in a worker thread, is submitted to
the `ProviderFailoverExecutor` (and therefore the throttler), and has its
failures classified into `ChainError`s before they leave this module.

Contract handles are rebuilt whenever the executor rotates to another
endpoint; call closures read the handles at execution time so a retry always
uses the freshly bound endpoint.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.logs import DISCARD

from services.chain.contracts import (
    EPOCH_MANAGER_ABI,
    FACTORY_ABI,
    MARKET_ABI,
    USDC_ABI,
    USDC_DECIMALS,
)
from services.chain.error_classifier import classify_chain_error
from services.rpc.errors import ChainError, ChainErrorKind
from services.rpc.provider_failover import ProviderFailoverExecutor

logger = logging.getLogger(__name__)

ETH_TRANSFER_GAS = 21_000


def to_units(raw: int, decimals: int = USDC_DECIMALS) -> Decimal:
    """Convert an integer token amount into a decimal amount."""
    return Decimal(int(raw)) / (Decimal(10) ** decimals)


def from_units(amount: Decimal, decimals: int = USDC_DECIMALS) -> int:
    """Convert a decimal token amount into its integer on-chain value."""
    scaled = (Decimal(amount) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


@dataclass
class CreationReceipt:
    """Outcome of a `createMarket` transaction."""

    tx_hash: str
    market_id: Optional[str]
    market_address: Optional[str]


class ChainGateway:
    """web3.py-backed chain reader/writer bound to the executor's endpoint."""

    def __init__(
        self,
        executor: ProviderFailoverExecutor,
        *,
        chain_id: int,
        usdc_address: str,
        factory_address: str,
        epoch_manager_address: str,
        request_timeout: int = 10,
        receipt_timeout: int = 120,
        max_attempts: int = 2,
    ) -> None:
        self.executor = executor
        self.chain_id = chain_id
        self.usdc_address = Web3.to_checksum_address(usdc_address)
        self.factory_address = Web3.to_checksum_address(factory_address)
        self.epoch_manager_address = Web3.to_checksum_address(epoch_manager_address)
        self.request_timeout = request_timeout
        self.receipt_timeout = receipt_timeout
        self.max_attempts = max_attempts
        self.bind(executor.current_endpoint)
        executor.add_rebind_listener(self.bind)

    def bind(self, endpoint: str) -> None:
        """Rebuild the web3 client and every contract handle for `endpoint`."""
        w3 = Web3(Web3.HTTPProvider(endpoint, request_kwargs={"timeout": self.request_timeout}))
        self.w3 = w3
        self.usdc = w3.eth.contract(address=self.usdc_address, abi=USDC_ABI)
        self.factory = w3.eth.contract(address=self.factory_address, abi=FACTORY_ABI)
        self.epoch_manager = w3.eth.contract(address=self.epoch_manager_address, abi=EPOCH_MANAGER_ABI)
        self.endpoint = endpoint

    async def _call(self, fn: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(fn)
        except Exception as exc:
            raise classify_chain_error(exc) from exc

    async def run(self, fn: Callable[[], Any]) -> Any:
        """Execute a blocking web3 call with throttling and failover."""
        return await self.executor.execute(lambda: self._call(fn), self.max_attempts)

    # Reads

    async def usdc_balance(self, address: str) -> Decimal:
        owner = Web3.to_checksum_address(address)
        raw = await self.run(lambda: self.usdc.functions.balanceOf(owner).call())
        return to_units(raw)

    async def eth_balance(self, address: str) -> Decimal:
        owner = Web3.to_checksum_address(address)
        raw = await self.run(lambda: self.w3.eth.get_balance(owner))
        return Decimal(Web3.from_wei(raw, "ether"))

    async def creation_fee(self) -> Decimal:
        raw = await self.run(lambda: self.factory.functions.getMarketCreationFee().call())
        return to_units(raw)

    async def current_epoch_info(self) -> Tuple[int, ...]:
        return tuple(await self.run(lambda: self.epoch_manager.functions.getCurrentWeekInfo().call()))

    async def epoch_phase(self, epoch_id: int) -> int:
        return int(await self.run(lambda: self.epoch_manager.functions.weekStatus(epoch_id).call()))

    async def pending_epochs(self) -> Tuple[List[int], List[int]]:
        weeks, pools = await self.run(lambda: self.epoch_manager.functions.getPendingWeeks().call())
        return list(weeks), list(pools)

    # Writes

    async def approve_usdc(self, account: LocalAccount, spender: str, amount: Decimal) -> Optional[str]:
        """Approve `spender` for `amount` USDC unless the allowance already covers it."""
        spender = Web3.to_checksum_address(spender)
        needed = from_units(amount)
        allowance = await self.run(lambda: self.usdc.functions.allowance(account.address, spender).call())
        if int(allowance) >= needed:
            return None
        receipt = await self._transact(
            account, lambda: self.usdc.functions.approve(spender, needed).build_transaction(self._tx_params(account))
        )
        return Web3.to_hex(receipt["transactionHash"])

    async def create_market(
        self,
        account: LocalAccount,
        question: str,
        option_a: str,
        option_b: str,
        end_time: int,
    ) -> CreationReceipt:
        """Create a market and parse its `MarketCreated` event when present."""
        receipt = await self._transact(
            account,
            lambda: self.factory.functions.createMarket(question, option_a, option_b, int(end_time)).build_transaction(
                self._tx_params(account)
            ),
        )
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        events = self.factory.events.MarketCreated().process_receipt(receipt, errors=DISCARD)
        if not events:
            logger.warning("No MarketCreated event in receipt %s", tx_hash)
            return CreationReceipt(tx_hash=tx_hash, market_id=None, market_address=None)
        args = events[0]["args"]
        return CreationReceipt(
            tx_hash=tx_hash,
            market_id=Web3.to_hex(args["marketId"]),
            market_address=Web3.to_checksum_address(args["marketContract"]),
        )

    async def place_bet(self, account: LocalAccount, market_address: str, bet_on_a: bool, amount: Decimal) -> str:
        market = Web3.to_checksum_address(market_address)
        await self.approve_usdc(account, market, amount)
        value = from_units(amount)
        receipt = await self._transact(
            account,
            lambda: self.w3.eth.contract(address=market, abi=MARKET_ABI)
            .functions.placeBet(bet_on_a, value)
            .build_transaction(self._tx_params(account)),
        )
        return Web3.to_hex(receipt["transactionHash"])

    async def transfer_usdc(self, account: LocalAccount, destination: str, amount: Decimal) -> str:
        to = Web3.to_checksum_address(destination)
        value = from_units(amount)
        receipt = await self._transact(
            account, lambda: self.usdc.functions.transfer(to, value).build_transaction(self._tx_params(account))
        )
        return Web3.to_hex(receipt["transactionHash"])

    async def transfer_all_eth(self, account: LocalAccount, destination: str) -> str:
        """Send the whole ETH balance minus the fee of a plain transfer."""
        to = Web3.to_checksum_address(destination)

        def build() -> Dict[str, Any]:
            gas_price = self.w3.eth.gas_price
            balance = self.w3.eth.get_balance(account.address)
            value = balance - gas_price * ETH_TRANSFER_GAS
            if value <= 0:
                raise ChainError(ChainErrorKind.INSUFFICIENT_FUNDS, "Balance does not cover the gas fee")
            params = self._tx_params(account)
            params.update({"to": to, "value": value, "gas": ETH_TRANSFER_GAS, "gasPrice": gas_price})
            return params

        receipt = await self._transact(account, build)
        return Web3.to_hex(receipt["transactionHash"])

    def _tx_params(self, account: LocalAccount) -> Dict[str, Any]:
        return {
            "from": account.address,
            "nonce": self.w3.eth.get_transaction_count(account.address, "pending"),
            "chainId": self.chain_id,
        }

    def _send_raw(self, raw: bytes) -> Any:
        try:
            return self.w3.eth.send_raw_transaction(raw)
        except Exception as exc:
            # A retried send of the same signed payload is reported as a duplicate.
            if "already known" in str(exc).lower():
                return Web3.keccak(raw)
            raise

    async def _transact(self, account: LocalAccount, build: Callable[[], Dict[str, Any]]) -> Any:
        """Build, sign, send and wait for a transaction; raise on a failed status."""
        tx = await self.run(build)
        try:
            signed = account.sign_transaction(tx)
        except Exception as exc:
            raise classify_chain_error(exc) from exc
        tx_hash = await self.run(lambda: self._send_raw(signed.raw_transaction))
        receipt = await self.run(
            lambda: self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        )
        if receipt["status"] != 1:
            raise ChainError(
                ChainErrorKind.CONTRACT_REVERTED,
                f"Transaction {Web3.to_hex(tx_hash)} reverted",
                reason="transaction reverted",
            )
        return receipt
