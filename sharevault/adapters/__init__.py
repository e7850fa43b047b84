from __future__ import annotations
"""
Collaborators of the vault core: capability protocols plus the in-process
implementations used by tests, simulations and the devnet CLI.
"""

from .base import BaseLedger, Journaled, Registry, ShareLedger, StakingAgent, StakingBackend
from .clock import ManualClock, now_ms
from .ledger import NativeLedger, ShareToken
from .pool import MockNominationPool
from .agent import NominationAgent
from .registry import AgentRegistry

__all__ = [
    "BaseLedger",
    "Journaled",
    "Registry",
    "ShareLedger",
    "StakingAgent",
    "StakingBackend",
    "ManualClock",
    "now_ms",
    "NativeLedger",
    "ShareToken",
    "MockNominationPool",
    "NominationAgent",
    "AgentRegistry",
]
