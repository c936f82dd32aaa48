"""
State tables for the dividend pool
"""

from .accounts import AccountTable
from .holders import HolderSet
from .shares import BalanceListener, ShareLedger

__all__ = [
    "AccountTable",
    "HolderSet",
    "BalanceListener",
    "ShareLedger",
]
