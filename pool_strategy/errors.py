"""Exception taxonomy for the pool strategy."""


class StrategyError(Exception):
    """Base class for every error raised by the strategy and its simulation."""


class ConfigurationError(StrategyError, ValueError):
    """Invalid construction data or operator setting."""


class SlippageError(StrategyError):
    """A realized amount fell below its minimum bound (raised by the router)."""


class WithdrawalShortfallError(StrategyError):
    """The compounding vault returned fewer pool shares than expected."""


class ArithmeticOverflowError(StrategyError):
    """A bound does not fit the signed limit representation."""


class InsufficientBalanceError(StrategyError):
    """A token transfer or burn exceeds the available balance."""


class DeadlineExpiredError(StrategyError):
    """A routed swap was executed after its deadline."""
