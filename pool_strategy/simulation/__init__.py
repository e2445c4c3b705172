"""In-memory stand-ins for the ledger, pools, router and compounding vault."""
from .builder import Simulation, build_simulation
from .chain import SimulatedChain
from .compounding_vault import SimulatedCompoundingVault
from .ledger import SimulatedLedger
from .pool import SimulatedPool, SimulatedRouter
from .token import SimulatedToken

__all__ = [
    "Simulation",
    "SimulatedChain",
    "SimulatedCompoundingVault",
    "SimulatedLedger",
    "SimulatedPool",
    "SimulatedRouter",
    "SimulatedToken",
    "build_simulation",
]
