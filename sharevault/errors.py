from __future__ import annotations
# sharevault/errors.py
"""
Error types for the staking vault. Every error carries a stable `code`, a
human message and a small `details` mapping so it can be surfaced in logs
and CLI output unchanged.

Taxonomy:
- Unauthorized                      caller lacks the required role
- PreconditionError and subclasses  request rejected, no state change
- CollaboratorError and subclasses  token / ledger / agent / registry failure
- ArithmeticOverflow                value left the u128 domain (fatal)
"""


import json
from typing import Any, Dict, Mapping, Optional


class VaultError(Exception):
    """Base class for vault domain errors."""

    code: str = "VAULT_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ────────────────────────────────────────────────────────────────────────────────
# Authorization
# ────────────────────────────────────────────────────────────────────────────────

class Unauthorized(VaultError):
    """Caller does not hold the role required by the operation."""
    code = "VAULT_UNAUTHORIZED"

    def __init__(
        self,
        *,
        caller: str,
        role: str,
        message: str = "caller lacks required role",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"caller": str(caller), "role": role})
        super().__init__(message, details=d)


# ────────────────────────────────────────────────────────────────────────────────
# Precondition violations
# ────────────────────────────────────────────────────────────────────────────────

class PreconditionError(VaultError):
    """A request was rejected before any state changed."""
    code = "VAULT_PRECONDITION"


class MinimumStake(PreconditionError):
    code = "VAULT_MINIMUM_STAKE"

    def __init__(self, *, required: int, actual: int, message: str = "stake below minimum") -> None:
        super().__init__(message, details={"required": int(required), "actual": int(actual)})


class InvalidPercent(PreconditionError):
    code = "VAULT_INVALID_PERCENT"


class NoChange(PreconditionError):
    code = "VAULT_NO_CHANGE"


class InvalidUserUnlockRequest(PreconditionError):
    """The user has no unlock request with the given id."""
    code = "VAULT_INVALID_USER_UNLOCK"


class InvalidBatchUnlockRequest(PreconditionError):
    """
    Batch is in the wrong lifecycle state for the operation: still open,
    already finalized, or outside the cancellation window.
    """
    code = "VAULT_INVALID_BATCH_UNLOCK"


class Duplication(PreconditionError):
    """Batch ids were repeated or not given in strictly ascending order."""
    code = "VAULT_DUPLICATION"


class CooldownPeriod(PreconditionError):
    code = "VAULT_COOLDOWN_PERIOD"

    def __init__(self, *, ready_at: int, now: int, message: str = "cooldown period not elapsed") -> None:
        super().__init__(message, details={"ready_at": int(ready_at), "now": int(now)})


class NoAgents(PreconditionError):
    code = "VAULT_NO_AGENTS"


class InsufficientLiquidity(PreconditionError):
    """Agents do not hold enough stake to source an unbonding request."""
    code = "VAULT_INSUFFICIENT_LIQUIDITY"

    def __init__(self, *, requested: int, available: int, message: str = "insufficient staked liquidity") -> None:
        super().__init__(message, details={"requested": int(requested), "available": int(available)})


# ────────────────────────────────────────────────────────────────────────────────
# Collaborator failures
# ────────────────────────────────────────────────────────────────────────────────

class CollaboratorError(VaultError):
    """An external collaborator (ledger, token, agent, registry) failed."""
    code = "VAULT_COLLABORATOR"


class TokenError(CollaboratorError):
    code = "VAULT_TOKEN_ERROR"


class InsufficientBalance(CollaboratorError):
    code = "VAULT_INSUFFICIENT_BALANCE"

    def __init__(self, *, account: str, have: int, need: int, message: str = "insufficient balance") -> None:
        super().__init__(message, details={"account": str(account), "have": int(have), "need": int(need)})


class AgentError(CollaboratorError):
    code = "VAULT_AGENT_ERROR"

    def __init__(
        self,
        message: str = "staking agent call failed",
        *,
        agent: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if agent is not None:
            d.setdefault("agent", str(agent))
        super().__init__(message, details=d)


class NothingToWithdraw(AgentError):
    """No unbonded funds have matured yet. Fan-out callers treat this as a no-op."""
    code = "VAULT_NOTHING_TO_WITHDRAW"


class RegistryError(CollaboratorError):
    code = "VAULT_REGISTRY_ERROR"


# ────────────────────────────────────────────────────────────────────────────────
# Arithmetic
# ────────────────────────────────────────────────────────────────────────────────

class ArithmeticOverflow(VaultError):
    """A value left the unsigned 128-bit domain. Never saturated, never retried."""
    code = "VAULT_ARITHMETIC_OVERFLOW"


__all__ = [
    "VaultError",
    "Unauthorized",
    "PreconditionError",
    "MinimumStake",
    "InvalidPercent",
    "NoChange",
    "InvalidUserUnlockRequest",
    "InvalidBatchUnlockRequest",
    "Duplication",
    "CooldownPeriod",
    "NoAgents",
    "InsufficientLiquidity",
    "CollaboratorError",
    "TokenError",
    "InsufficientBalance",
    "AgentError",
    "NothingToWithdraw",
    "RegistryError",
    "ArithmeticOverflow",
]
