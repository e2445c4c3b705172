"""Wire a complete simulated environment and strategy from configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import SimulationConfig, StrategyConfig
from ..constants import MAX_BPS
from ..errors import ConfigurationError
from ..strategy.lifecycle import PoolStrategy
from .chain import SimulatedChain
from .compounding_vault import SimulatedCompoundingVault
from .ledger import SimulatedLedger
from .pool import SimulatedPool, SimulatedRouter
from .token import SimulatedToken

logger = logging.getLogger(__name__)

DEPOSITOR = "depositor"
STRATEGY_ACCOUNT = "strategy"


@dataclass
class Simulation:
    chain: SimulatedChain
    tokens: dict[str, SimulatedToken]
    pools: dict[str, SimulatedPool]
    router: SimulatedRouter
    vault: SimulatedCompoundingVault
    ledger: SimulatedLedger
    strategy: PoolStrategy
    config: SimulationConfig = field(default_factory=SimulationConfig)

    @property
    def want(self) -> SimulatedToken:
        return self.strategy.want  # type: ignore[return-value]

    def advance_cycle(self) -> int:
        """Move the clock one cycle and compound the configured vault yield."""
        self.chain.advance(self.config.cycle_seconds)
        gain = self.vault.underlying_balance() * self.config.yield_bps_per_cycle // MAX_BPS
        if gain > 0:
            self.vault.compound(gain)
        return gain


def build_simulation(
    sim_config: SimulationConfig, strategy_config: StrategyConfig
) -> Simulation:
    chain = SimulatedChain(sim_config.start_time)

    tokens: dict[str, SimulatedToken] = {}
    for spec in sim_config.tokens:
        tokens[spec.symbol] = chain.register(SimulatedToken(spec.symbol, spec.decimals))
    for spec in sim_config.pools:
        tokens[spec.share_symbol] = chain.register(SimulatedToken(spec.share_symbol, 18))

    router = chain.register(SimulatedRouter(chain))
    pools: dict[str, SimulatedPool] = {}
    for spec in sim_config.pools:
        pool = SimulatedPool(
            spec.pool_id,
            tokens[spec.share_symbol],
            [tokens[symbol] for symbol in spec.constituents],
            rate=spec.rate,
            fee_bps=spec.fee_bps,
            depth=spec.depth,
            supports_direct_entry=spec.supports_direct_entry,
        )
        for symbol, amount in spec.seed.items():
            pool.seed(symbol, amount)
        pools[spec.pool_id] = chain.register(router.register_pool(pool))

    if sim_config.strategy_pool not in pools:
        raise ConfigurationError(f"Unknown strategy pool '{sim_config.strategy_pool}'")
    pool = pools[sim_config.strategy_pool]
    want = tokens[sim_config.want]

    vault = chain.register(
        SimulatedCompoundingVault(
            pool.share_token,
            sim_config.vault.symbol,
            sim_config.vault.withdrawal_fee_bps,
        )
    )
    ledger = chain.register(SimulatedLedger(want, chain))

    strategy = PoolStrategy(
        STRATEGY_ACCOUNT, want, pool, router, vault, ledger, strategy_config, clock=chain.now
    )
    # The strategy's own bookkeeping (invest timestamp, emergency flag) reverts
    # with the balances.
    for part in (
        strategy,
        strategy.converter,
        strategy.positions,
        strategy.entry_exit,
        strategy.allocator,
    ):
        chain.register(part)
    ledger.add_strategy(strategy.account, sim_config.debt_ratio_bps)

    if sim_config.deposit > 0:
        want.mint(DEPOSITOR, sim_config.deposit)
        ledger.deposit(DEPOSITOR, sim_config.deposit)

    logger.info(
        "Simulation built: %d tokens, %d pools, strategy on %s",
        len(tokens), len(pools), pool.pool_id(),
    )
    return Simulation(
        chain=chain,
        tokens=tokens,
        pools=pools,
        router=router,
        vault=vault,
        ledger=ledger,
        strategy=strategy,
        config=sim_config,
    )
