"""
BitcoinZ wallet service.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
import uuid
from contextlib import aclosing
from dataclasses import dataclass, field

from loguru import logger

from btczwallet.backends.base import ChainClient, ServerInfo
from btczwallet.config import WalletConfig
from btczwallet.constants import MAX_MEMO_BYTES
from btczwallet.errors import (
    InsufficientFundsError,
    InvalidInputError,
    NetworkError,
    SyncError,
    WalletNotFoundError,
)
from btczwallet.wallet.address import validate_address
from btczwallet.wallet.keys import (
    derive_private_key,
    derive_shielded_address,
    derive_transparent_address,
    mnemonic_to_seed,
    validate_mnemonic,
)
from btczwallet.wallet.models import (
    Address,
    Addresses,
    AddressKind,
    Balance,
    SyncResult,
    SyncStatus,
    TransactionRecord,
    TransactionResult,
    TxDirection,
    WalletInfo,
)
from btczwallet.wallet.transaction import compute_txid, parse_outputs_for_address

INITIAL_TRANSPARENT_ADDRESSES = 2
INITIAL_SHIELDED_ADDRESSES = 1


@dataclass
class _WalletState:
    """Everything a created or restored wallet owns. Replaced wholesale on create/restore."""

    wallet_id: str
    seed: bytes
    birthday_height: int
    transparent_addresses: list[Address] = field(default_factory=list)
    shielded_addresses: list[Address] = field(default_factory=list)
    balance: Balance = field(default_factory=Balance)
    transactions: list[TransactionRecord] = field(default_factory=list)
    sync_status: SyncStatus = field(default_factory=SyncStatus)
    # False until the first successful sync batch; current_block 0 is a real height
    synced: bool = False

    def known_txids(self, direction: TxDirection | None = None) -> set[str]:
        return {
            tx.txid
            for tx in self.transactions
            if direction is None or tx.direction == direction
        }


class WalletService:
    """
    BitcoinZ light wallet.

    Derivation path: m/44'/177'/0'/0/{index}
    - transparent addresses at indices 0, 1, ... in creation order
    - shielded slots are reserved by index but not derivable yet

    Every public operation runs under one lock, so concurrent callers on the
    same instance are serialized. create_wallet/restore_wallet discard any
    previous in-memory state.
    """

    def __init__(self, config: WalletConfig | None = None, client: ChainClient | None = None):
        self.config = config or WalletConfig()
        if client is None:
            from btczwallet.backends.lightwalletd import LightwalletdClient

            client = LightwalletdClient.from_config(self.config)
        self.client = client
        self._lock = asyncio.Lock()
        self._state: _WalletState | None = None
        self._send_counter = 0

    async def __aenter__(self) -> WalletService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def _require_state(self) -> _WalletState:
        if self._state is None:
            raise WalletNotFoundError("Wallet has not been created or restored")
        return self._state

    # -- Creation ------------------------------------------------------------

    def _init_state(self, seed_phrase: str, birthday_height: int) -> WalletInfo:
        phrase = validate_mnemonic(seed_phrase)
        seed = mnemonic_to_seed(phrase)
        network = self.config.network

        state = _WalletState(
            wallet_id=str(uuid.uuid4()),
            seed=seed,
            birthday_height=birthday_height,
            transparent_addresses=[
                derive_transparent_address(seed, i, network)
                for i in range(INITIAL_TRANSPARENT_ADDRESSES)
            ],
            shielded_addresses=[
                derive_shielded_address(seed, i, network)
                for i in range(INITIAL_SHIELDED_ADDRESSES)
            ],
        )
        self._state = state

        logger.info(
            f"Initialized wallet {state.wallet_id} with "
            f"{len(state.transparent_addresses)} transparent addresses "
            f"(birthday height {birthday_height})"
        )
        return WalletInfo(
            wallet_id=state.wallet_id,
            transparent_addresses=list(state.transparent_addresses),
            shielded_addresses=list(state.shielded_addresses),
        )

    async def create_wallet(self, seed_phrase: str) -> WalletInfo:
        """Create a new wallet from a 24-word seed phrase, scanning from genesis."""
        async with self._lock:
            return self._init_state(seed_phrase, birthday_height=0)

    async def restore_wallet(self, seed_phrase: str, birthday_height: int = 0) -> WalletInfo:
        """Restore a wallet; birthday_height 0 scans from genesis."""
        if (
            isinstance(birthday_height, bool)
            or not isinstance(birthday_height, int)
            or birthday_height < 0
        ):
            raise InvalidInputError(
                f"Birthday height must be a non-negative integer: {birthday_height!r}"
            )
        async with self._lock:
            return self._init_state(seed_phrase, birthday_height=birthday_height)

    # -- Addresses -------------------------------------------------------------

    async def get_addresses(self) -> Addresses:
        async with self._lock:
            state = self._require_state()
            return Addresses(
                transparent=list(state.transparent_addresses),
                shielded=list(state.shielded_addresses),
            )

    async def generate_new_address(self, kind: str) -> Address:
        """Append an address at the next unused index for ``kind`` ("t"/"z")."""
        async with self._lock:
            state = self._require_state()
            try:
                address_kind = AddressKind.parse(kind)
            except ValueError as e:
                raise InvalidInputError(f"Invalid address type: {kind!r}") from e

            if address_kind == AddressKind.TRANSPARENT:
                address = derive_transparent_address(
                    state.seed, len(state.transparent_addresses), self.config.network
                )
                state.transparent_addresses.append(address)
            else:
                address = derive_shielded_address(
                    state.seed, len(state.shielded_addresses), self.config.network
                )
                state.shielded_addresses.append(address)

            logger.debug(f"Generated {address_kind.value} address #{address.index}: {address}")
            return address

    async def get_private_key(self, index: int) -> str:
        """Export the transparent private key at ``index`` in WIF."""
        async with self._lock:
            state = self._require_state()
            return derive_private_key(state.seed, index, self.config.network).to_wif()

    # -- Balance -----------------------------------------------------------------

    async def _scan_address(
        self, address: str, start_height: int, end_height: int
    ) -> dict[str, tuple[int, int]]:
        """Return {txid: (height, value received)} for one address over a range."""
        found: dict[str, tuple[int, int]] = {}
        stream = self.client.get_address_transactions(address, start_height, end_height)
        async with aclosing(stream) as transactions:
            async for tx in transactions:
                value = parse_outputs_for_address(tx.data, address)
                found[compute_txid(tx.data)] = (tx.height, value)
        return found

    async def _transparent_balance(
        self, state: _WalletState
    ) -> tuple[dict[str, tuple[int, int]], dict[str, tuple[int, int]]]:
        """
        Scan every transparent address.

        Returns ({txid: (height, received)} for the confirmed range,
        {txid: (height, received)} for pending matches near the tip).
        """
        latest = await self.client.get_latest_height()
        addresses = [a.encoded for a in state.transparent_addresses if a.encoded]
        logger.info(f"Checking balance for {len(addresses)} addresses up to block {latest}")

        received: dict[str, tuple[int, int]] = {}
        for address in addresses:
            if latest < 1:
                break
            for txid, (height, value) in (await self._scan_address(address, 1, latest)).items():
                prior = received.get(txid, (height, 0))[1]
                received[txid] = (height, prior + value)

        # Recent window, including heights the server may report ahead of the tip
        recent_start = max(latest - self.config.pending_lookback, 0)
        recent_end = latest + self.config.pending_lookahead
        pending_floor = latest - self.config.pending_depth
        pending: dict[str, tuple[int, int]] = {}
        for address in addresses:
            try:
                recent = await self._scan_address(address, recent_start, recent_end)
            except NetworkError as e:
                logger.warning(f"Failed to check pending transactions for {address}: {e}")
                continue
            for txid, (height, value) in recent.items():
                if height >= pending_floor and txid not in received and value > 0:
                    logger.info(f"Found pending transaction {txid} at height {height}")
                    prior = pending.get(txid, (height, 0))[1]
                    pending[txid] = (height, prior + value)

        logger.info(
            f"Transparent balance: {sum(v for _, v in received.values())} zatoshis confirmed, "
            f"{sum(v for _, v in pending.values())} pending, from {len(received)} transactions"
        )
        return received, pending

    async def get_balance(self) -> Balance:
        """
        Recompute the balance from the chain.

        A network failure degrades the transparent figures to zero rather than
        failing the call. Shielded balance is not computed.
        """
        async with self._lock:
            state = self._require_state()

            try:
                received, pending = await self._transparent_balance(state)
            except NetworkError as e:
                logger.warning(f"Balance query failed, reporting zero transparent balance: {e}")
                received, pending = {}, {}

            self._record_incoming(state, received, pending)

            confirmed = sum(value for _, value in received.values())
            unconfirmed = sum(value for _, value in pending.values())
            shielded = 0
            balance = Balance(
                transparent=confirmed,
                shielded=shielded,
                total=confirmed + shielded + unconfirmed,
                unconfirmed=unconfirmed,
                shielded_supported=False,
            )
            state.balance = balance
            return balance

    def _record_incoming(
        self,
        state: _WalletState,
        received: dict[str, tuple[int, int]],
        pending: dict[str, tuple[int, int]],
    ) -> None:
        """
        Append history for newly seen incoming transactions.

        A pending match gets a ``pending`` record; once it confirms, a
        ``received`` record follows. Each txid gets at most one of each.
        """
        now = int(time.time())
        for direction, found in ((TxDirection.RECEIVED, received), (TxDirection.PENDING, pending)):
            if direction == TxDirection.RECEIVED:
                known = state.known_txids(TxDirection.RECEIVED)
            else:
                known = state.known_txids()
            for txid, (height, value) in sorted(found.items(), key=lambda item: item[1][0]):
                if value <= 0 or txid in known:
                    continue
                state.transactions.append(
                    TransactionRecord(
                        txid=txid,
                        amount=value,
                        block_height=height,
                        timestamp=now,
                        direction=direction,
                    )
                )
                logger.debug(f"Recorded {direction.value} transaction {txid}: {value} zatoshis")

    # -- Sync ----------------------------------------------------------------------

    def _simulated_sync(self, state: _WalletState) -> SyncResult:
        total = self.config.simulated_total_height
        current = min(state.birthday_height + self.config.simulated_blocks, total)
        progress = current / total * 100.0
        state.sync_status = SyncStatus(
            is_syncing=False,
            current_block=state.sync_status.current_block,
            total_blocks=state.sync_status.total_blocks,
            progress=state.sync_status.progress,
            simulated=True,
        )
        return SyncResult(
            blocks_synced=self.config.simulated_blocks,
            current_height=current,
            total_height=total,
            progress=progress,
            simulated=True,
        )

    async def sync(self) -> SyncResult:
        """
        Advance the chain cursor by at most ``sync_batch_size`` blocks.

        If the server cannot be reached, returns a result flagged
        ``simulated=True`` and leaves the real cursor untouched.
        """
        async with self._lock:
            state = self._require_state()
            status = state.sync_status
            status.is_syncing = True

            try:
                latest = await self.client.get_latest_height()
            except NetworkError as e:
                logger.warning(
                    f"Failed to connect to lightwalletd server: {e}. Using simulated progress."
                )
                return self._simulated_sync(state)

            safe_tip = max(latest - self.config.sync_safety_margin, 0)
            safe_birthday = min(state.birthday_height, safe_tip)
            start = status.current_block + 1 if state.synced else safe_birthday
            span = min(latest - start, self.config.sync_batch_size) if latest > start else 0

            logger.info(
                f"Sync range: start_height={start}, latest_height={latest}, "
                f"birthday_height={state.birthday_height}"
            )

            if span <= 0:
                current = max(status.current_block, latest)
                state.synced = True
                state.sync_status = SyncStatus(
                    is_syncing=False, current_block=current, total_blocks=latest, progress=100.0
                )
                return SyncResult(
                    blocks_synced=0, current_height=current, total_height=latest, progress=100.0
                )

            end = start + span - 1
            blocks = 0
            try:
                async with aclosing(self.client.get_block_range(start, end)) as stream:
                    async for block in stream:
                        blocks += 1
                        logger.debug(f"Processing block height: {block.height}")
                        if blocks % 5 == 0 or blocks == span:
                            logger.info(
                                f"Sync progress: {blocks}/{span} blocks - "
                                f"current height: {block.height}"
                            )
            except NetworkError as e:
                status.is_syncing = False
                raise SyncError(f"Sync failed for blocks {start}-{end}: {e.message}") from e

            progress = end / latest * 100.0 if latest else 100.0
            state.synced = True
            state.sync_status = SyncStatus(
                is_syncing=False, current_block=end, total_blocks=latest, progress=progress
            )
            return SyncResult(
                blocks_synced=blocks, current_height=end, total_height=latest, progress=progress
            )

    async def get_sync_status(self) -> SyncStatus:
        async with self._lock:
            return self._require_state().sync_status.model_copy()

    # -- Sending -------------------------------------------------------------------

    async def send_transaction(
        self, to_address: str, amount: int, memo: str | None = None
    ) -> TransactionResult:
        """
        Record a send against the cached balance.

        Building and broadcasting a signed transaction is not implemented; the
        returned txid is a local identifier. History and balance are updated
        together before returning.
        """
        async with self._lock:
            state = self._require_state()

            validate_address(to_address, self.config.network)
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidInputError(f"Amount must be a positive number of zatoshis: {amount!r}")
            if memo is not None and len(memo.encode("utf-8")) > MAX_MEMO_BYTES:
                raise InvalidInputError(f"Memo exceeds {MAX_MEMO_BYTES} bytes")
            if amount > state.balance.total:
                raise InsufficientFundsError(
                    f"Insufficient funds: need {amount}, have {state.balance.total}"
                )

            fee = self.config.default_fee
            now = int(time.time())
            self._send_counter += 1
            txid = hashlib.sha256(
                f"{state.wallet_id}:{to_address}:{amount}:{now}:{self._send_counter}".encode()
            ).hexdigest()

            record = TransactionRecord(
                txid=txid,
                amount=-amount,
                block_height=None,
                timestamp=now,
                memo=memo,
                direction=TxDirection.SENT,
            )
            spent = amount + fee
            balance = state.balance.model_copy(
                update={
                    "total": max(state.balance.total - spent, 0),
                    "transparent": max(state.balance.transparent - spent, 0),
                }
            )

            state.transactions.append(record)
            state.balance = balance
            logger.info(f"Recorded send of {amount} zatoshis to {to_address} (txid {txid})")
            return TransactionResult(txid=txid, fee=fee)

    async def get_transactions(self) -> list[TransactionRecord]:
        async with self._lock:
            return list(self._require_state().transactions)

    # -- Server ----------------------------------------------------------------------

    async def get_server_info(self) -> ServerInfo:
        async with self._lock:
            return await self.client.get_server_info()

    async def close(self) -> None:
        """Close chain client connection"""
        await self.client.close()
