from __future__ import annotations
"""
sharevault.config: configuration for the staking vault

Covers:
- Batch window length (era) and post-finalization cooldown, in milliseconds
- Protocol fee and compound incentive (basis points, 10_000 = 100%)
- Minimum stake (base-asset units)
- Receipt token metadata

Environment overrides (all optional; defaults shown):

  SHAREVAULT_ERA_MS=86400000
  SHAREVAULT_COOLDOWN_MS=1209600000
  SHAREVAULT_FEE_BPS=200
  SHAREVAULT_INCENTIVE_BPS=100
  SHAREVAULT_MINIMUM_STAKE=1000000000000
  SHAREVAULT_TOKEN_DECIMALS=12
  SHAREVAULT_SHARE_TOKEN_NAME=sAZERO
  SHAREVAULT_SHARE_TOKEN_SYMBOL=SAZ

A JSON or YAML file can be loaded via `SHAREVAULT_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
import json
import os
from pathlib import Path

import yaml

from sharevault.math import BIPS, DAY


# -------------------------- Data classes --------------------------


@dataclass
class BatchWindow:
    """Unlock batching: window length and payout delay after finalization."""
    era_ms: int = DAY
    cooldown_ms: int = 14 * DAY   # one unbonding period on the underlying chain

    def validate(self) -> None:
        if self.era_ms <= 0:
            raise ValueError("era_ms must be positive.")
        if self.cooldown_ms < 0:
            raise ValueError("cooldown_ms must be non-negative.")


@dataclass
class FeeSchedule:
    """Protocol fee (annualized dilution) and compound caller incentive, in bps."""
    fee_bps: int = 200          # 2% per year
    incentive_bps: int = 100    # 1% of compounded rewards

    def validate(self) -> None:
        for name, v in (("fee_bps", self.fee_bps), ("incentive_bps", self.incentive_bps)):
            if not (0 <= v < BIPS):
                raise ValueError(f"{name} must be between 0 and {BIPS - 1} (got {v}).")


@dataclass
class ShareTokenMeta:
    name: str = "sAZERO"
    symbol: str = "SAZ"


@dataclass
class VaultConfig:
    """Top-level configuration container."""
    window: BatchWindow = field(default_factory=BatchWindow)
    fees: FeeSchedule = field(default_factory=FeeSchedule)
    token: ShareTokenMeta = field(default_factory=ShareTokenMeta)

    minimum_stake: int = 1_000_000_000_000   # 1 token at 12 decimals
    token_decimals: int = 12                 # informational

    def validate(self) -> None:
        self.window.validate()
        self.fees.validate()
        if self.minimum_stake < 0:
            raise ValueError("minimum_stake must be non-negative.")
        if self.token_decimals <= 0:
            raise ValueError("token_decimals must be positive.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_bps(name: str, default: int) -> int:
    bps = _getenv_int(name, default)
    if not (0 <= bps < BIPS):
        raise ValueError(f"{name} must be between 0 and {BIPS - 1} bps (got {bps}).")
    return bps


def from_env(base: Optional[VaultConfig] = None, prefix: str = "SHAREVAULT_") -> VaultConfig:
    """
    Build a VaultConfig from environment variables, layered on top of `base`.
    """
    cfg = base or VaultConfig()

    new_cfg = VaultConfig(
        window=BatchWindow(
            era_ms=_getenv_int(f"{prefix}ERA_MS", cfg.window.era_ms),
            cooldown_ms=_getenv_int(f"{prefix}COOLDOWN_MS", cfg.window.cooldown_ms),
        ),
        fees=FeeSchedule(
            fee_bps=_getenv_bps(f"{prefix}FEE_BPS", cfg.fees.fee_bps),
            incentive_bps=_getenv_bps(f"{prefix}INCENTIVE_BPS", cfg.fees.incentive_bps),
        ),
        token=ShareTokenMeta(
            name=os.getenv(f"{prefix}SHARE_TOKEN_NAME") or cfg.token.name,
            symbol=os.getenv(f"{prefix}SHARE_TOKEN_SYMBOL") or cfg.token.symbol,
        ),
        minimum_stake=_getenv_int(f"{prefix}MINIMUM_STAKE", cfg.minimum_stake),
        token_decimals=_getenv_int(f"{prefix}TOKEN_DECIMALS", cfg.token_decimals),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> VaultConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    return from_mapping(data)


def from_mapping(data: Dict[str, Any]) -> VaultConfig:
    """
    Build a VaultConfig from a nested mapping shaped like `VaultConfig.to_dict()`.
    Missing keys keep their defaults.
    """
    window = data.get("window", {})
    fees = data.get("fees", {})
    token = data.get("token", {})

    cfg = VaultConfig(
        window=BatchWindow(
            era_ms=int(window.get("era_ms", BatchWindow().era_ms)),
            cooldown_ms=int(window.get("cooldown_ms", BatchWindow().cooldown_ms)),
        ),
        fees=FeeSchedule(
            fee_bps=int(fees.get("fee_bps", FeeSchedule().fee_bps)),
            incentive_bps=int(fees.get("incentive_bps", FeeSchedule().incentive_bps)),
        ),
        token=ShareTokenMeta(
            name=str(token.get("name", ShareTokenMeta().name)),
            symbol=str(token.get("symbol", ShareTokenMeta().symbol)),
        ),
        minimum_stake=int(data.get("minimum_stake", VaultConfig().minimum_stake)),
        token_decimals=int(data.get("token_decimals", VaultConfig().token_decimals)),
    )
    cfg.validate()
    return cfg


def load() -> VaultConfig:
    """
    Load configuration using the following precedence:
      1) File at $SHAREVAULT_CONFIG_FILE (JSON/YAML)
      2) Environment variables (SHAREVAULT_*), applied on top
    """
    file_path = os.getenv("SHAREVAULT_CONFIG_FILE")
    base = from_file(file_path) if file_path else VaultConfig()
    return from_env(base=base)


def pretty(cfg: Optional[VaultConfig] = None) -> str:
    """Return a human-readable JSON string of the config."""
    return json.dumps((cfg or load()).to_dict(), indent=2, sort_keys=True)


__all__ = [
    "BatchWindow",
    "FeeSchedule",
    "ShareTokenMeta",
    "VaultConfig",
    "from_env",
    "from_file",
    "from_mapping",
    "load",
    "pretty",
]
