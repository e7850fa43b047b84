from __future__ import annotations
"""Weight-based delegation of pooled funds across staking agents."""

from .rebalancer import ImbalanceReport, Rebalancer, compute_imbalances, plan_bonding, plan_unbonding

__all__ = ["ImbalanceReport", "Rebalancer", "compute_imbalances", "plan_bonding", "plan_unbonding"]
