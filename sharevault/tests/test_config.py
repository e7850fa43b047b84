import json

import pytest

from sharevault import config as vconfig
from sharevault.math import DAY


def test_defaults_validate():
    cfg = vconfig.VaultConfig()
    cfg.validate()
    assert cfg.window.era_ms == DAY
    assert cfg.window.cooldown_ms == 14 * DAY
    assert (cfg.fees.fee_bps, cfg.fees.incentive_bps) == (200, 100)
    assert cfg.minimum_stake == 1_000_000_000_000


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SHAREVAULT_FEE_BPS", "150")
    monkeypatch.setenv("SHAREVAULT_MINIMUM_STAKE", "1_000")
    monkeypatch.setenv("SHAREVAULT_SHARE_TOKEN_SYMBOL", "sTEST")
    cfg = vconfig.from_env()
    assert cfg.fees.fee_bps == 150
    assert cfg.minimum_stake == 1000
    assert cfg.token.symbol == "sTEST"


def test_env_rejects_out_of_range_bps(monkeypatch):
    monkeypatch.setenv("SHAREVAULT_INCENTIVE_BPS", "10000")
    with pytest.raises(ValueError):
        vconfig.from_env()


def test_yaml_file_then_env(tmp_path, monkeypatch):
    path = tmp_path / "vault.yaml"
    path.write_text("window:\n  era_ms: 1000\nfees:\n  fee_bps: 0\nminimum_stake: 5\n", encoding="utf-8")
    monkeypatch.setenv("SHAREVAULT_CONFIG_FILE", str(path))
    monkeypatch.setenv("SHAREVAULT_MINIMUM_STAKE", "7")

    cfg = vconfig.load()
    assert cfg.window.era_ms == 1000
    assert cfg.window.cooldown_ms == 14 * DAY
    assert cfg.fees.fee_bps == 0
    assert cfg.minimum_stake == 7


def test_json_file_and_pretty(tmp_path):
    path = tmp_path / "vault.json"
    path.write_text(json.dumps({"fees": {"incentive_bps": 0}}), encoding="utf-8")
    cfg = vconfig.from_file(path)
    assert cfg.fees.incentive_bps == 0
    assert json.loads(vconfig.pretty(cfg))["fees"]["incentive_bps"] == 0


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        vconfig.from_mapping({"window": {"era_ms": 0}})
