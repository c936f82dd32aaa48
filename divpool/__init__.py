"""
divpool - pull-based proportional dividend accounting

Deposits are spread over every share outstanding at the moment of the deposit
without iterating holders; each holder later withdraws what it is owed.

Usage:
    from divpool import create_pool

    pool = create_pool()
    pool.ledger.mint("alice", 300)
    pool.ledger.mint("bob", 700)
    pool.deposit("treasury", 100)
    pool.tracker.withdraw("alice")  # 29 after floor rounding
"""

from .config import ConfigError, PoolConfig, config_from_mapping, load_config
from .core import (
    AccountInfo,
    AccountRecord,
    DividendError,
    Effect,
    Event,
    MAGNITUDE,
    PoolState,
)
from .integration import (
    DividendPool,
    DividendTracker,
    OwnerGate,
    Payout,
    ReservePayout,
    create_pool,
)
from .state import HolderSet, ShareLedger

__all__ = [
    "ConfigError",
    "PoolConfig",
    "config_from_mapping",
    "load_config",
    "AccountInfo",
    "AccountRecord",
    "DividendError",
    "Effect",
    "Event",
    "MAGNITUDE",
    "PoolState",
    "DividendPool",
    "DividendTracker",
    "OwnerGate",
    "Payout",
    "ReservePayout",
    "create_pool",
    "HolderSet",
    "ShareLedger",
]

__version__ = "0.1.0"
