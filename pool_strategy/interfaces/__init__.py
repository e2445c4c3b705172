"""Protocol interfaces for the pool strategy's external collaborators."""
from .compounding_vault import CompoundingVault
from .ledger import CapitalLedger
from .notifier import Notifier
from .pool import LiquidityPool, PoolRouter
from .token import Token

__all__ = [
    "CapitalLedger",
    "CompoundingVault",
    "LiquidityPool",
    "Notifier",
    "PoolRouter",
    "Token",
]
