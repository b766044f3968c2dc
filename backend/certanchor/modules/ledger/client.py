"""
Ledger client for the certificate registry smart contract.

The client owns its connection state::

    UNINITIALIZED -> CONNECTING -> CONNECTED | DEGRADED
    CONNECTED -> DEGRADED   (any failed transaction or query)

A degraded client stops talking to the node for the rest of the process,
unless a retry cooldown is configured or ``reset()`` is called. Every network
call is bounded by ``timeout`` seconds.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol, TypeVar

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from certanchor.core.config import Settings
from certanchor.core.errors import LedgerUnavailableError
from certanchor.core.logging import get_logger
from certanchor.modules.anchor_log.schemas import is_local_anchor_ref
from certanchor.modules.ledger.contract import (
    FN_CERTIFICATE_EXISTS,
    FN_STORE_CERTIFICATE,
    load_contract_abi,
)

logger = get_logger(__name__)

T = TypeVar("T")


class ConnectionState(str, Enum):
    """Connection state of a ledger client."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class LedgerClient(Protocol):
    """Adapter contract used by the anchoring and verification services."""

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""

    @property
    def is_connected(self) -> bool:
        """Whether the last known state is ``CONNECTED``."""

    async def connect(self) -> ConnectionState:
        """Probe the ledger if needed and return ``CONNECTED`` or ``DEGRADED``."""

    async def anchor(self, certificate_hash: str) -> str:
        """Store ``certificate_hash`` on the ledger and return the transaction hash."""

    async def check(self, certificate_hash: str) -> bool:
        """Whether ``certificate_hash`` is stored on the ledger."""

    async def get_transaction(self, anchor_ref: str) -> dict[str, Any] | None:
        """Details of a ledger transaction, ``None`` when unknown."""

    def reset(self) -> None:
        """Forget the connection so the next call probes again."""


def _default_web3_factory(rpc_url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


class Web3LedgerClient:
    """Certificate registry client built on web3.py's asyncio API."""

    def __init__(
        self,
        *,
        rpc_url: str | None,
        contract_address: str | None,
        abi: list[dict[str, Any]],
        private_key: str | None = None,
        account: str | None = None,
        chain_id: int | None = None,
        timeout: float = 3.0,
        gas_limit: int = 500_000,
        retry_cooldown: float | None = None,
        web3_factory: Callable[[str], AsyncWeb3] = _default_web3_factory,
    ) -> None:
        self._rpc_url = rpc_url or None
        self._contract_address = contract_address or None
        self._abi = abi
        self._signer = Account.from_key(private_key) if private_key else None
        self._account = account or None
        self._chain_id = chain_id
        self._timeout = timeout
        self._gas_limit = gas_limit
        self._retry_cooldown = retry_cooldown
        self._web3_factory = web3_factory

        self._state = ConnectionState.UNINITIALIZED
        self._degraded_at: float | None = None
        self._connect_lock = asyncio.Lock()
        self._nonce_lock = asyncio.Lock()
        self._next_nonce: int | None = None
        self._w3: AsyncWeb3 | None = None
        self._contract: Any = None
        self._sender: str | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def configured(self) -> bool:
        return bool(self._rpc_url and self._contract_address)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> ConnectionState:
        if self._state is ConnectionState.CONNECTED:
            return self._state
        if self._state is ConnectionState.DEGRADED and not self._cooldown_elapsed():
            return self._state

        async with self._connect_lock:
            # Another caller may have finished the probe while we waited
            if self._state is ConnectionState.CONNECTED:
                return self._state
            if self._state is ConnectionState.DEGRADED and not self._cooldown_elapsed():
                return self._state

            if not self.configured:
                self._mark_degraded("not_configured")
                return self._state

            self._state = ConnectionState.CONNECTING
            try:
                block_number = await asyncio.wait_for(self._open(), timeout=self._timeout)
            except Exception as exc:  # noqa: BLE001
                self._w3 = None
                self._contract = None
                self._mark_degraded("connect_failed", error=str(exc) or type(exc).__name__)
                return self._state

            self._state = ConnectionState.CONNECTED
            self._degraded_at = None
            logger.info(
                "ledger_connected",
                rpc_url=self._rpc_url,
                contract=self._contract_address,
                block_number=block_number,
                sender=self._sender,
            )
            return self._state

    def reset(self) -> None:
        self._state = ConnectionState.UNINITIALIZED
        self._degraded_at = None
        self._w3 = None
        self._contract = None
        self._sender = None
        self._next_nonce = None

    async def close(self) -> None:
        w3 = self._w3
        self.reset()
        if w3 is not None:
            disconnect = getattr(w3.provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()

    async def _open(self) -> int:
        w3 = self._web3_factory(str(self._rpc_url))
        block_number = await w3.eth.block_number
        contract = w3.eth.contract(
            address=Web3.to_checksum_address(str(self._contract_address)),
            abi=self._abi,
        )
        if self._signer is not None:
            sender: str | None = self._signer.address
        elif self._account:
            sender = Web3.to_checksum_address(self._account)
        else:
            accounts = await w3.eth.accounts
            sender = accounts[0] if accounts else None
        self._w3 = w3
        self._contract = contract
        self._sender = sender
        self._next_nonce = None
        return int(block_number)

    def _cooldown_elapsed(self) -> bool:
        if self._retry_cooldown is None or self._degraded_at is None:
            return False
        return time.monotonic() - self._degraded_at >= self._retry_cooldown

    def _mark_degraded(self, reason: str, **context: Any) -> None:
        previous = self._state
        self._state = ConnectionState.DEGRADED
        self._degraded_at = time.monotonic()
        logger.warning(
            "ledger_degraded",
            reason=reason,
            previous_state=previous.value,
            **context,
        )

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------

    async def anchor(self, certificate_hash: str) -> str:
        return await self._call("anchor", self._submit(certificate_hash))

    async def check(self, certificate_hash: str) -> bool:
        return await self._call("check", self._query_exists(certificate_hash))

    async def get_transaction(self, anchor_ref: str) -> dict[str, Any] | None:
        if is_local_anchor_ref(anchor_ref):
            return None
        return await self._call("get_transaction", self._fetch_transaction(anchor_ref))

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        if not self.is_connected:
            # Close the coroutine we will not await
            if asyncio.iscoroutine(call):
                call.close()
            raise LedgerUnavailableError(f"Ledger is {self._state.value}; cannot {operation}")
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except LedgerUnavailableError as exc:
            self._mark_degraded(f"{operation}_failed", error=str(exc))
            raise
        except Exception as exc:  # noqa: BLE001
            self._mark_degraded(f"{operation}_failed", error=str(exc) or type(exc).__name__)
            raise LedgerUnavailableError(f"Ledger {operation} failed: {exc}") from exc

    async def _submit(self, certificate_hash: str) -> str:
        w3 = self._require_w3()
        function = getattr(self._contract.functions, FN_STORE_CERTIFICATE)(certificate_hash)
        if self._signer is not None:
            tx_hash = await self._send_signed(w3, function, self._signer)
        elif self._sender is not None:
            tx_hash = await function.transact({"from": self._sender, "gas": self._gas_limit})
        else:
            raise LedgerUnavailableError("No Ethereum account available to send transactions")

        receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._timeout)
        if receipt["status"] != 1:
            raise LedgerUnavailableError(f"storeCertificate reverted in {Web3.to_hex(tx_hash)}")
        return Web3.to_hex(tx_hash)

    async def _send_signed(self, w3: AsyncWeb3, function: Any, signer: LocalAccount) -> bytes:
        """Sign and send one transaction with the next locally tracked nonce.

        Submissions are serialized so concurrent anchors never reuse a nonce.
        The counter is seeded from the pending transaction count and re-seeded
        after any failed submission.
        """
        address = signer.address
        chain_id = self._chain_id or await w3.eth.chain_id
        async with self._nonce_lock:
            try:
                if self._next_nonce is None:
                    self._next_nonce = await w3.eth.get_transaction_count(address, "pending")
                nonce = self._next_nonce
                tx = await function.build_transaction(
                    {
                        "from": address,
                        "nonce": nonce,
                        "chainId": chain_id,
                        "gas": self._gas_limit,
                    }
                )
                signed = signer.sign_transaction(tx)
                tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
            except (Exception, asyncio.CancelledError):
                self._next_nonce = None
                raise
            self._next_nonce = nonce + 1
        return tx_hash

    async def _query_exists(self, certificate_hash: str) -> bool:
        function = getattr(self._contract.functions, FN_CERTIFICATE_EXISTS)(certificate_hash)
        return bool(await function.call())

    async def _fetch_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        w3 = self._require_w3()
        try:
            tx = await w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        try:
            receipt = await w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            receipt = None
        status = "pending"
        if receipt is not None:
            status = "confirmed" if receipt["status"] == 1 else "failed"
        return {
            "tx_hash": tx_hash,
            "block_number": tx.get("blockNumber"),
            "from": tx.get("from"),
            "to": tx.get("to"),
            "status": status,
        }

    def _require_w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise LedgerUnavailableError("Ledger connection is not open")
        return self._w3


def create_ledger_client(settings: Settings) -> Web3LedgerClient:
    """Build the ledger client described by ``settings``.

    A disabled or incomplete configuration yields a client that degrades on
    its first ``connect()``.
    """
    return Web3LedgerClient(
        rpc_url=settings.ethereum_rpc_url if settings.ledger_enabled else None,
        contract_address=settings.contract_address if settings.ledger_enabled else None,
        abi=load_contract_abi(settings.contract_abi_path),
        private_key=settings.ledger_private_key or None,
        account=settings.ledger_account or None,
        chain_id=settings.ledger_chain_id,
        timeout=settings.ledger_timeout_seconds,
        gas_limit=settings.ledger_gas_limit,
        retry_cooldown=settings.ledger_retry_cooldown_seconds,
    )
