"""Tests for the command line front end, driven from a saved snapshot."""

import json
from decimal import Decimal

import pytest

import qidao_manager
from qibribes import fetch_votes

from conftest import V1, V2, V3


@pytest.fixture
def snapshot(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    choices = {1: "A (Ethereum)", 2: "WBTC (Arbitrum)", 3: "C (Optimism)"}
    raw = [
        {"id": "v1", "voter": V1, "vp": 100000, "created": 3, "choice": {"2": 1}},
        {"id": "v2", "voter": V2, "vp": 300000, "created": 2, "choice": {"2": 1}},
        {"id": "v3", "voter": V3, "vp": 50000, "created": 1, "choice": {"1": 1}},
    ]
    return fetch_votes.save_snapshot("0xabc", choices, raw, str(tmp_path / "votes.json"))


def test_bribes_json(snapshot, capsys) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", snapshot, "--json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["state"] == "done"
    assert Decimal(out["clawed_back"]).quantize(Decimal("0.01")) == Decimal("66666.67")
    assert Decimal(out["total_bribes"]).quantize(Decimal("0.01")) == Decimal("25555.56")


def test_bribes_table(snapshot, capsys) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", snapshot]) == 0
    assert "Bribes by voter" in capsys.readouterr().out


def test_flags_override_config(snapshot, capsys) -> None:
    code = qidao_manager.main([
        "bribes", "--snapshot", snapshot, "--json",
        "--whale-threshold", "1000000", "--rate", "10",
    ])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert Decimal(out["clawed_back"]) == 0
    assert Decimal(out["total_bribes"]).quantize(Decimal("0.01")) == Decimal("888.89")


def test_threshold_abort_exit_code(snapshot, capsys) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", snapshot, "--min-percent", "95"]) == 2
    out = capsys.readouterr().out
    assert "Vote totals by chain" in out
    assert "Our bribes" not in out


def test_unknown_choice_is_an_error(snapshot) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", snapshot, "--choice", "WETH (Base)"]) == 1


def test_missing_snapshot(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert qidao_manager.main(["bribes", "--snapshot", str(tmp_path / "missing.json")]) == 1


def test_bad_decimal_flag(snapshot) -> None:
    with pytest.raises(SystemExit):
        qidao_manager.main(["bribes", "--snapshot", snapshot, "--rate", "lots"])


def test_fetch_writes_snapshot(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(fetch_votes, "fetch_proposal_choices", lambda config: {1: "A (Ethereum)"})
    monkeypatch.setattr(fetch_votes, "fetch_raw_votes", lambda config: [
        {"id": "v1", "voter": V1, "vp": Decimal("5.5"), "created": 1, "choice": {"1": 1}},
    ])
    out_path = tmp_path / "snap.json"
    assert qidao_manager.main(["--proposal", "0xabc", "fetch", "--output", str(out_path)]) == 0
    saved = json.loads(out_path.read_text())
    assert saved["proposal_id"] == "0xabc"
    assert saved["votes"][0]["vp"] == "5.5"


def test_no_command_prints_help(capsys) -> None:
    assert qidao_manager.main([]) == 1
    assert "usage" in capsys.readouterr().out


@pytest.mark.parametrize("flag", ["--min-percent", "--whale-threshold", "--rate", "--redistribution"])
@pytest.mark.parametrize("value", ["NaN", "Infinity", "-1"])
def test_non_finite_or_negative_flag_is_an_error(snapshot, flag, value) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", snapshot, flag, value]) == 1


@pytest.fixture
def malformed_snapshot(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    choices = {1: "A Ethereum", 2: "WBTC (Arbitrum)"}
    raw = [
        {"id": "v1", "voter": V1, "vp": 100000, "created": 2, "choice": {"2": 1}},
        {"id": "v3", "voter": V3, "vp": 50000, "created": 1, "choice": {"1": 1}},
    ]
    return fetch_votes.save_snapshot("0xabc", choices, raw, str(tmp_path / "malformed.json"))


def test_label_error_still_shows_tally(malformed_snapshot, capsys) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", malformed_snapshot]) == 1
    out = capsys.readouterr().out
    assert "Current vote totals" in out
    assert "WBTC (Arbitrum)" in out
    assert "Vote totals by chain" not in out


def test_label_error_json_keeps_tally(malformed_snapshot, capsys) -> None:
    assert qidao_manager.main(["bribes", "--snapshot", malformed_snapshot, "--json"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["state"] == "aggregated"
    assert out["total_vote"] == "150000"
    assert "chain_totals" not in out
    assert "A Ethereum" in out["error"]


def test_negative_weight_in_snapshot_is_an_error(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    raw = [{"id": "neg", "voter": V1, "vp": 100, "created": 1, "choice": {"1": -1, "2": 2}}]
    path = fetch_votes.save_snapshot(
        "0xabc", {1: "A (Ethereum)", 2: "WBTC (Arbitrum)"}, raw, str(tmp_path / "neg.json"))
    assert qidao_manager.main(["bribes", "--snapshot", path]) == 1
    assert "Current vote totals" not in capsys.readouterr().out
