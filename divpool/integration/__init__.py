"""
Stateful shell: tracker, collaborators, wiring.
"""

from .auth import OwnerGate
from .payouts import Payout, ReservePayout
from .pool import DividendPool, create_pool
from .tracker import DividendTracker, ShareSource

__all__ = [
    "OwnerGate",
    "Payout",
    "ReservePayout",
    "DividendPool",
    "create_pool",
    "DividendTracker",
    "ShareSource",
]
