"""
lightwalletd chain client.

Talks to a BitcoinZ lightwalletd server over gRPC (grpc.aio) using the
CompactTxStreamer service. The channel is opened lazily on first use and
reused for every later request; a transport failure drops the channel so the
next request reconnects. Nothing is retried here.

Reference: https://github.com/zcash/lightwalletd (service.proto)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlparse

import grpc
from loguru import logger

from btczwallet.backends import proto
from btczwallet.backends.base import (
    ChainClient,
    CompactBlock,
    ConnectionState,
    RawTransaction,
    ServerInfo,
    validate_block_range,
)
from btczwallet.config import WalletConfig
from btczwallet.constants import DEFAULT_SERVER_URL
from btczwallet.errors import NetworkError
from btczwallet.wallet.transaction import compute_txid

# Status codes after which the channel is considered dead
_TRANSPORT_FAILURES = frozenset({grpc.StatusCode.UNAVAILABLE})


def _status_code(error: grpc.RpcError) -> grpc.StatusCode | None:
    code = getattr(error, "code", None)
    return code() if callable(code) else None


def _describe(error: grpc.RpcError) -> str:
    code = _status_code(error)
    details_fn = getattr(error, "details", None)
    details = details_fn() if callable(details_fn) else str(error)
    if code is None:
        return str(details)
    return f"{code.name}: {details}"


class LightwalletdClient(ChainClient):
    """
    Chain client for a lightwalletd server.

    Connection states: DISCONNECTED -> CONNECTING -> CONNECTED, back to
    DISCONNECTED on close() or on a transport failure.
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        connect_timeout: float = 10.0,
        request_timeout: float = 120.0,
    ):
        """
        Initialize lightwalletd client.

        Args:
            server_url: https:// for TLS, http:// for a plaintext channel
            connect_timeout: Seconds to wait for the channel to become ready
            request_timeout: Deadline in seconds for each RPC
        """
        parsed = urlparse(server_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid server URL: {server_url}")

        self.server_url = server_url.rstrip("/")
        self.use_tls = parsed.scheme == "https"
        self.target = f"{parsed.hostname}:{parsed.port or (443 if self.use_tls else 80)}"
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout

        self._channel: grpc.aio.Channel | None = None
        self._state = ConnectionState.DISCONNECTED
        self._stubs: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: WalletConfig) -> LightwalletdClient:
        return cls(
            server_url=config.server_url,
            connect_timeout=config.connect_timeout,
            request_timeout=config.request_timeout,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        """Open the channel and wait until it is ready."""
        if self._state == ConnectionState.CONNECTED:
            return

        self._state = ConnectionState.CONNECTING
        logger.info(f"Connecting to lightwalletd at {self.target} (tls={self.use_tls})")

        if self.use_tls:
            channel = grpc.aio.secure_channel(self.target, grpc.ssl_channel_credentials())
        else:
            channel = grpc.aio.insecure_channel(self.target)

        try:
            await asyncio.wait_for(channel.channel_ready(), timeout=self.connect_timeout)
        except asyncio.TimeoutError as e:
            await self._discard(channel)
            raise NetworkError(
                f"Connection failed: {self.server_url} not ready after {self.connect_timeout}s"
            ) from e
        except grpc.RpcError as e:
            await self._discard(channel)
            raise NetworkError(f"Connection failed: {self.server_url}: {_describe(e)}") from e
        except asyncio.CancelledError:
            await self._discard(channel)
            raise

        self._channel = channel
        self._bind_stubs(channel)
        self._state = ConnectionState.CONNECTED
        logger.info(f"Connected to lightwalletd at {self.target}")

    async def _discard(self, channel: grpc.aio.Channel) -> None:
        self._state = ConnectionState.DISCONNECTED
        await channel.close()

    def _bind_stubs(self, channel: grpc.aio.Channel) -> None:
        self._stubs = {
            "GetLatestBlock": channel.unary_unary(
                proto.method("GetLatestBlock"),
                request_serializer=proto.ChainSpec.SerializeToString,
                response_deserializer=proto.BlockID.FromString,
            ),
            "GetLightdInfo": channel.unary_unary(
                proto.method("GetLightdInfo"),
                request_serializer=proto.Empty.SerializeToString,
                response_deserializer=proto.LightdInfo.FromString,
            ),
            "GetAddressTxids": channel.unary_stream(
                proto.method("GetAddressTxids"),
                request_serializer=proto.TransparentAddressBlockFilter.SerializeToString,
                response_deserializer=proto.RawTransaction.FromString,
            ),
            "GetBlockRange": channel.unary_stream(
                proto.method("GetBlockRange"),
                request_serializer=proto.BlockRange.SerializeToString,
                response_deserializer=proto.CompactBlock.FromString,
            ),
            "SendTransaction": channel.unary_unary(
                proto.method("SendTransaction"),
                request_serializer=proto.RawTransaction.SerializeToString,
                response_deserializer=proto.SendResponse.FromString,
            ),
        }

    async def _stub(self, name: str) -> Any:
        """Return the multicallable for an RPC, connecting first if needed."""
        if self._state != ConnectionState.CONNECTED:
            await self.connect()
        return self._stubs[name]

    async def _on_rpc_error(self, error: grpc.RpcError) -> None:
        if _status_code(error) in _TRANSPORT_FAILURES:
            logger.warning(f"lightwalletd transport failure, dropping channel: {_describe(error)}")
            await self.close()

    def _network_error(self, what: str, error: grpc.RpcError) -> NetworkError:
        code = _status_code(error)
        return NetworkError(f"{what}: {_describe(error)}", code=code.value[0] if code else None)

    @staticmethod
    def _block_range(start_height: int, end_height: int) -> Any:
        return proto.BlockRange(
            start=proto.BlockID(height=start_height),
            end=proto.BlockID(height=end_height),
        )

    async def get_latest_height(self) -> int:
        stub = await self._stub("GetLatestBlock")
        try:
            response = await stub(proto.ChainSpec(), timeout=self.request_timeout)
        except grpc.RpcError as e:
            logger.error(f"Failed to get latest block: {_describe(e)}")
            await self._on_rpc_error(e)
            raise self._network_error("Failed to get latest block", e) from e

        logger.debug(f"Latest block height: {response.height}")
        return int(response.height)

    async def get_server_info(self) -> ServerInfo:
        stub = await self._stub("GetLightdInfo")
        try:
            info = await stub(proto.Empty(), timeout=self.request_timeout)
        except grpc.RpcError as e:
            logger.error(f"Failed to get server info: {_describe(e)}")
            await self._on_rpc_error(e)
            raise self._network_error("Failed to get server info", e) from e

        return ServerInfo(
            version=info.version,
            vendor=info.vendor,
            chain_name=info.chainName,
            block_height=int(info.blockHeight),
            sapling_activation_height=int(info.saplingActivationHeight),
            consensus_branch_id=info.consensusBranchId,
            taddr_support=bool(info.taddrSupport),
        )

    async def get_address_transactions(
        self, address: str, start_height: int, end_height: int
    ) -> AsyncIterator[RawTransaction]:
        validate_block_range(start_height, end_height)
        stub = await self._stub("GetAddressTxids")

        request = proto.TransparentAddressBlockFilter(
            address=address, range=self._block_range(start_height, end_height)
        )
        call = stub(request, timeout=self.request_timeout)
        count = 0
        try:
            async for response in call:
                count += 1
                logger.debug(
                    f"Transaction #{count} for {address}: height={response.height}, "
                    f"{len(response.data)} bytes"
                )
                yield RawTransaction(height=int(response.height), data=bytes(response.data))
        except grpc.RpcError as e:
            logger.error(f"Error reading transaction stream for {address}: {_describe(e)}")
            await self._on_rpc_error(e)
            raise self._network_error(
                f"Failed to get address transactions for {address}", e
            ) from e
        finally:
            call.cancel()

        logger.debug(f"Address {address} has {count} transactions in {start_height}-{end_height}")

    async def get_block_range(
        self, start_height: int, end_height: int
    ) -> AsyncIterator[CompactBlock]:
        validate_block_range(start_height, end_height)
        stub = await self._stub("GetBlockRange")

        logger.info(f"Requesting blocks from {start_height} to {end_height}")
        call = stub(self._block_range(start_height, end_height), timeout=self.request_timeout)
        try:
            async for block in call:
                yield CompactBlock(
                    height=int(block.height),
                    hash=bytes(block.hash),
                    prev_hash=bytes(block.prevHash),
                    time=int(block.time),
                    tx_hashes=[bytes(tx.hash) for tx in block.vtx],
                )
        except grpc.RpcError as e:
            logger.error(f"Error reading block stream {start_height}-{end_height}: {_describe(e)}")
            await self._on_rpc_error(e)
            raise self._network_error(
                f"Failed to get block range {start_height}-{end_height}", e
            ) from e
        finally:
            call.cancel()

    async def submit_transaction(self, raw: bytes) -> str:
        stub = await self._stub("SendTransaction")
        try:
            response = await stub(
                proto.RawTransaction(data=raw, height=0), timeout=self.request_timeout
            )
        except grpc.RpcError as e:
            logger.error(f"Failed to send transaction: {_describe(e)}")
            await self._on_rpc_error(e)
            raise self._network_error("Failed to send transaction", e) from e

        if response.errorCode != 0:
            logger.error(
                f"Transaction rejected: {response.errorMessage} (code: {response.errorCode})"
            )
            raise NetworkError(
                f"Transaction rejected: {response.errorMessage} (code: {response.errorCode})",
                code=int(response.errorCode),
            )

        txid = compute_txid(raw)
        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def close(self) -> None:
        """Close the channel; the next request reconnects."""
        channel, self._channel = self._channel, None
        self._stubs = {}
        self._state = ConnectionState.DISCONNECTED
        if channel is not None:
            await channel.close()
