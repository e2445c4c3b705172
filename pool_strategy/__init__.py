"""Capital allocation strategy for liquidity-pool positions."""

__version__ = "0.1.0"
