"""Runtime configuration read from the environment (and `.env`)."""

import os
from decimal import Decimal
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

from services.chain.contracts import (
    BASE_CHAIN_ID,
    DEFAULT_RPC_ENDPOINTS,
    EPOCH_MANAGER_ADDRESS,
    FACTORY_ADDRESS,
    USDC_ADDRESS,
)


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    database_dir: str
    rpc_endpoints: List[str]
    chain_id: int = BASE_CHAIN_ID
    usdc_address: str = USDC_ADDRESS
    factory_address: str = FACTORY_ADDRESS
    epoch_manager_address: str = EPOCH_MANAGER_ADDRESS
    wallet_encryption_key: str
    image_dir: str
    public_base_url: str = "http://localhost:8000"
    admin_ids: List[int] = []
    throttle_limit: int = 3
    failover_attempts: int = 2
    failover_backoff_seconds: float = 1.0
    session_ttl_seconds: int = 3600
    sweep_interval_seconds: int = 300
    market_cache_ceiling: int = 500
    ack_timeout_seconds: float = 5.0
    handler_timeout_seconds: float = 30.0
    min_gas_eth: Decimal = Decimal("0.001")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, loading `.env` first."""
        load_dotenv()  # Load environment variables from .env file if present

        database_dir = os.getenv("DATABASE_DIR")
        if not database_dir:
            raise RuntimeError("DATABASE_DIR environment variable is not set")
        wallet_key = os.getenv("WALLET_ENCRYPTION_KEY")
        if not wallet_key:
            raise RuntimeError("WALLET_ENCRYPTION_KEY environment variable is not set")

        endpoints = _csv(os.getenv("RPC_ENDPOINTS", "")) or list(DEFAULT_RPC_ENDPOINTS)
        return cls(
            database_dir=database_dir,
            rpc_endpoints=endpoints,
            chain_id=int(os.getenv("CHAIN_ID", str(BASE_CHAIN_ID))),
            usdc_address=os.getenv("USDC_ADDRESS", USDC_ADDRESS),
            factory_address=os.getenv("FACTORY_ADDRESS", FACTORY_ADDRESS),
            epoch_manager_address=os.getenv("EPOCH_MANAGER_ADDRESS", EPOCH_MANAGER_ADDRESS),
            wallet_encryption_key=wallet_key,
            image_dir=os.getenv("IMAGE_DIR", str(Path(database_dir) / "images")),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"),
            admin_ids=[int(item) for item in _csv(os.getenv("ADMIN_IDS", ""))],
            throttle_limit=int(os.getenv("THROTTLE_LIMIT", "3")),
            failover_attempts=int(os.getenv("FAILOVER_ATTEMPTS", "2")),
            failover_backoff_seconds=float(os.getenv("FAILOVER_BACKOFF_SECONDS", "1.0")),
            session_ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", "3600")),
            sweep_interval_seconds=int(os.getenv("SWEEP_INTERVAL_SECONDS", "300")),
            market_cache_ceiling=int(os.getenv("MARKET_CACHE_CEILING", "500")),
            ack_timeout_seconds=float(os.getenv("ACK_TIMEOUT_SECONDS", "5")),
            handler_timeout_seconds=float(os.getenv("HANDLER_TIMEOUT_SECONDS", "30")),
            min_gas_eth=Decimal(os.getenv("MIN_GAS_ETH", "0.001")),
        )
