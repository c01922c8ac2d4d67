"""
Configuration for the BitcoinZ wallet core.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from btczwallet.constants import DEFAULT_SERVER_URL
from btczwallet.wallet.models import NetworkType


class WalletConfig(BaseModel):
    """Configuration for a wallet instance and its lightwalletd connection."""

    # Server settings
    server_url: str = DEFAULT_SERVER_URL
    network: NetworkType = NetworkType.MAINNET
    connect_timeout: float = Field(default=10.0, gt=0, description="Seconds to wait for channel")
    request_timeout: float = Field(
        default=120.0, gt=0, description="Deadline for a single RPC, including streams"
    )

    # Sync settings
    sync_batch_size: int = Field(default=10, ge=1, le=1000, description="Max blocks per sync()")
    sync_safety_margin: int = Field(
        default=1000, ge=0, description="Never start scanning closer than this to the tip"
    )

    # Pending detection window around the tip
    pending_lookback: int = Field(default=5, ge=0)
    pending_lookahead: int = Field(default=10, ge=0)
    pending_depth: int = Field(
        default=2, ge=0, description="Heights within this distance of the tip count as pending"
    )

    # Fees (zatoshis)
    default_fee: int = Field(default=10_000, ge=0)

    # Values reported when the server cannot be reached during sync
    simulated_total_height: int = Field(default=2_400_000, ge=1)
    simulated_blocks: int = Field(default=1000, ge=0)

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("server_url must use http:// or https://")
        if not parsed.hostname:
            raise ValueError("server_url must include a host")
        return v.rstrip("/")

