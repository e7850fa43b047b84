from __future__ import annotations

"""
Prometheus metrics for the staking vault.

Counters cover the public operations (stake, unlock request / cancel,
batch finalization, redemption, compound, fee withdrawal) and the agent
failures the delegation fan-out tolerates. Gauges mirror the pool totals
after each mutating call so a scrape shows the current exchange rate inputs.
"""


from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, generate_latest)

# Dedicated registry so embedding apps can merge or expose it directly.
REGISTRY = CollectorRegistry()

# Counters
STAKES = Counter(
    "sharevault_stakes_total",
    "Total stake operations executed.",
    registry=REGISTRY,
)

STAKED_BASE = Counter(
    "sharevault_staked_base_units_total",
    "Base-asset units deposited through stake().",
    registry=REGISTRY,
)

UNLOCK_REQUESTS = Counter(
    "sharevault_unlock_requests_total",
    "Unlock requests by outcome.",
    labelnames=("action",),  # action: "requested" | "canceled" | "redeemed"
    registry=REGISTRY,
)

BATCHES_FINALIZED = Counter(
    "sharevault_batches_finalized_total",
    "Unlock batches priced and sent for unbonding.",
    registry=REGISTRY,
)

COMPOUNDS = Counter(
    "sharevault_compounds_total",
    "Compound fan-outs executed.",
    registry=REGISTRY,
)

COMPOUNDED_BASE = Counter(
    "sharevault_compounded_base_units_total",
    "Base-asset units re-bonded by compounding.",
    registry=REGISTRY,
)

FEES_WITHDRAWN = Counter(
    "sharevault_fee_shares_withdrawn_total",
    "Virtual fee shares minted to the owner.",
    registry=REGISTRY,
)

AGENT_CALLS_TOLERATED = Counter(
    "sharevault_agent_calls_tolerated_total",
    "Agent failures swallowed by a fan-out, by operation.",
    labelnames=("op",),
    registry=REGISTRY,
)

# Gauges
TOTAL_POOLED = Gauge(
    "sharevault_total_pooled",
    "Base-asset units held on behalf of share holders.",
    registry=REGISTRY,
)

TOTAL_SHARES_MINTED = Gauge(
    "sharevault_total_shares_minted",
    "Receipt-token units in circulation.",
    registry=REGISTRY,
)

TOTAL_SHARES_VIRTUAL = Gauge(
    "sharevault_total_shares_virtual",
    "Accrued fee shares not yet minted.",
    registry=REGISTRY,
)


def observe_pool(total_pooled: int, minted: int, virtual: int) -> None:
    TOTAL_POOLED.set(total_pooled)
    TOTAL_SHARES_MINTED.set(minted)
    TOTAL_SHARES_VIRTUAL.set(virtual)


def render_latest() -> tuple[bytes, str]:
    """Return (payload, content_type) for an HTTP exposition endpoint."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


__all__ = [
    "REGISTRY",
    "STAKES",
    "STAKED_BASE",
    "UNLOCK_REQUESTS",
    "BATCHES_FINALIZED",
    "COMPOUNDS",
    "COMPOUNDED_BASE",
    "FEES_WITHDRAWN",
    "AGENT_CALLS_TOLERATED",
    "TOTAL_POOLED",
    "TOTAL_SHARES_MINTED",
    "TOTAL_SHARES_VIRTUAL",
    "observe_pool",
    "render_latest",
]
