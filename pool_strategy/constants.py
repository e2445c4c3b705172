"""Fixed-point and bound constants shared across the package."""

WAD = 10**18
MAX_BPS = 10_000
MAX_INT256 = 2**255 - 1
