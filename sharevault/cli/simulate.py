from __future__ import annotations

"""
sharevault.cli.simulate
-----------------------

Devnet driver for the vault. Builds an in-process world (native ledger,
share token, one mock nomination pool, a registry of nomination agents and
the vault itself on a manual clock) and replays a scripted list of steps
against it, printing every emitted event as one JSON line.

Script format (JSON or YAML)
----------------------------
    config:                  # optional, same shape as `config` output
      minimum_stake: 1
    start_ms: 0              # optional, initial clock value
    accounts:                # base-asset genesis balances
      alice: 10000
    agents:                  # registration order matters for tie-breaks
      - {name: v1, weight: 1}
      - {name: v2, weight: 2}
    steps:
      - {op: stake, user: alice, amount: 1000}
      - {op: request_unlock, user: alice, shares: 400}
      - {op: advance, ms: 86400000}
      - {op: finalize, batch_ids: [0]}
      - {op: advance, ms: 1209600000}
      - {op: redeem, user: alice, unlock_id: 0, withdraw: true}

Supported ops: advance, stake, request_unlock, cancel, finalize, redeem,
compound, reward, withdraw_unbonded, withdraw_fees, adjust_fee,
adjust_incentive, adjust_minimum_stake.
A step may carry `expect_error: <CODE>`; the matching VaultError is then
reported and the run continues.

Examples
--------
python -m sharevault.cli.simulate config
python -m sharevault.cli.simulate run scenario.yaml --log-level DEBUG
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import typer
import yaml

from sharevault import config as vconfig
from sharevault.adapters.clock import ManualClock
from sharevault.adapters.agent import NominationAgent
from sharevault.adapters.ledger import NativeLedger, ShareToken
from sharevault.adapters.pool import MockNominationPool
from sharevault.adapters.registry import AgentRegistry
from sharevault.errors import VaultError
from sharevault.vault import Vault
from sharevault.vtypes.agent import AccountId
from sharevault.vtypes.events import VaultEvent

log = logging.getLogger("sharevault.cli.simulate")

app = typer.Typer(
    name="simulate",
    add_completion=False,
    no_args_is_help=True,
    help="Replay scripted stake / unlock / redeem flows against an in-process vault (devnet tooling).",
)

VAULT = AccountId("vault")
OWNER = AccountId("owner")
POOL = AccountId("nomination-pool")


# -------------------- world --------------------

@dataclass
class World:
    clock: ManualClock
    ledger: NativeLedger
    shares: ShareToken
    pool: MockNominationPool
    registry: AgentRegistry
    vault: Vault
    agents: Dict[str, NominationAgent] = field(default_factory=dict)


def build_world(
    cfg: vconfig.VaultConfig,
    agents: List[Mapping[str, Any]],
    *,
    accounts: Optional[Mapping[str, int]] = None,
    start_ms: int = 0,
) -> World:
    clock = ManualClock(start_ms)
    ledger = NativeLedger()
    shares = ShareToken(minter=VAULT, name=cfg.token.name, symbol=cfg.token.symbol, decimals=cfg.token_decimals)
    pool = MockNominationPool(ledger=ledger, account=POOL, clock=clock, unbonding_period_ms=cfg.window.cooldown_ms)
    registry = AgentRegistry(admin=OWNER)

    world_agents: Dict[str, NominationAgent] = {}
    for entry in agents:
        name = str(entry["name"])
        agent = NominationAgent(
            account=AccountId(f"agent:{name}"),
            vault=VAULT,
            validator=AccountId(name),
            backend=pool,
            ledger=ledger,
        )
        registry.add_agent(OWNER, agent, int(entry.get("weight", 1)))
        world_agents[name] = agent

    for account, amount in (accounts or {}).items():
        ledger.credit(AccountId(account), int(amount))

    vault = Vault(
        account=VAULT,
        owner=OWNER,
        ledger=ledger,
        shares=shares,
        registry=registry,
        config=cfg,
        clock=clock,
    )
    return World(clock=clock, ledger=ledger, shares=shares, pool=pool, registry=registry, vault=vault, agents=world_agents)


# -------------------- steps --------------------

def _step_advance(w: World, s: Mapping[str, Any]) -> Any:
    return w.clock.advance(int(s["ms"]))


def _step_stake(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.stake(AccountId(s["user"]), int(s["amount"]))


def _step_request_unlock(w: World, s: Mapping[str, Any]) -> Any:
    user = AccountId(s["user"])
    amount = int(s["shares"])
    w.shares.approve(user, w.vault.account, amount)
    return w.vault.request_unlock(user, amount)


def _step_cancel(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.cancel_unlock_request(AccountId(s["user"]), int(s["unlock_id"]))


def _step_finalize(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.send_batch_unlock_requests([int(b) for b in s["batch_ids"]])


def _step_redeem(w: World, s: Mapping[str, Any]) -> Any:
    user = AccountId(s["user"])
    if s.get("withdraw", False):
        return w.vault.redeem_with_withdraw(user, int(s["unlock_id"]))
    return w.vault.redeem(user, int(s["unlock_id"]))


def _step_compound(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.compound(AccountId(s.get("user", OWNER)))


def _step_reward(w: World, s: Mapping[str, Any]) -> Any:
    agent = w.agents[str(s["agent"])]
    w.pool.add_rewards(agent.account, int(s["amount"]))


def _step_withdraw_unbonded(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.delegate_withdraw_unbonded()


def _step_withdraw_fees(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.withdraw_fees(AccountId(s.get("caller", OWNER)))


def _step_adjust_fee(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.adjust_fee(AccountId(s.get("caller", OWNER)), int(s["fee"]))


def _step_adjust_incentive(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.adjust_incentive(AccountId(s.get("caller", OWNER)), int(s["incentive"]))


def _step_adjust_minimum_stake(w: World, s: Mapping[str, Any]) -> Any:
    return w.vault.adjust_minimum_stake(AccountId(s.get("caller", OWNER)), int(s["amount"]))


STEPS: Dict[str, Callable[[World, Mapping[str, Any]], Any]] = {
    "advance": _step_advance,
    "stake": _step_stake,
    "request_unlock": _step_request_unlock,
    "cancel": _step_cancel,
    "finalize": _step_finalize,
    "redeem": _step_redeem,
    "compound": _step_compound,
    "reward": _step_reward,
    "withdraw_unbonded": _step_withdraw_unbonded,
    "withdraw_fees": _step_withdraw_fees,
    "adjust_fee": _step_adjust_fee,
    "adjust_incentive": _step_adjust_incentive,
    "adjust_minimum_stake": _step_adjust_minimum_stake,
}


# -------------------- utils --------------------

def _load_script(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise typer.BadParameter("script must be a mapping", param_hint="SCRIPT")
    return data


def _emit(obj: Dict[str, Any]) -> None:
    typer.echo(json.dumps(obj, sort_keys=True))


def _summary(w: World) -> Dict[str, Any]:
    report = w.vault.check_conservation()
    return {
        "kind": "summary",
        "now_ms": w.clock(),
        "total_pooled": w.vault.get_total_pooled(),
        "total_shares": w.vault.get_total_shares(),
        "share_supply": w.shares.total_supply(),
        "agents_staked": report.agents_staked,
        "agents_unbonding": report.agents_unbonding,
        "vault_balance": report.vault_balance,
        "outstanding_redemptions": report.outstanding_redemptions,
        "conservation_ok": report.ok,
    }


# -------------------- commands --------------------

@app.command("config")
def cmd_config() -> None:
    """Print the effective configuration (file + environment)."""
    typer.echo(vconfig.pretty(vconfig.load()))


@app.command("run")
def cmd_run(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or YAML scenario file."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Execute SCRIPT step by step and print events as JSON lines."""
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.WARNING))

    data = _load_script(script)
    cfg = vconfig.from_mapping(data["config"]) if data.get("config") else vconfig.load()
    world = build_world(
        cfg,
        list(data.get("agents") or []),
        accounts=data.get("accounts") or {},
        start_ms=int(data.get("start_ms", 0)),
    )

    def on_event(ev: VaultEvent) -> None:
        _emit({"kind": "event", **ev.to_dict()})

    world.vault.subscribe(on_event)

    for i, step in enumerate(data.get("steps") or []):
        op = str(step.get("op", ""))
        handler = STEPS.get(op)
        if handler is None:
            _emit({"kind": "error", "step": i, "code": "UNKNOWN_OP", "message": f"unknown op {op!r}"})
            raise typer.Exit(2)
        expected = step.get("expect_error")
        try:
            result = handler(world, step)
        except VaultError as e:
            _emit({"kind": "error", "step": i, "op": op, **e.to_dict()})
            if expected and expected == e.code:
                continue
            raise typer.Exit(1)
        if expected:
            _emit({"kind": "error", "step": i, "op": op, "code": "EXPECTED_ERROR_NOT_RAISED", "message": expected})
            raise typer.Exit(1)
        log.debug("step %d %s -> %r", i, op, result)
        if result is not None and op != "advance":
            _emit({"kind": "result", "step": i, "op": op, "value": result})

    _emit(_summary(world))


@app.callback(invoke_without_command=True)
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is not None:
        return
    typer.echo(ctx.get_help())


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
