from __future__ import annotations

import json
from pathlib import Path

import pytest

SCENARIO = """\
pool:
  magnitude: 1000000000000000000
  owner: admin
steps:
  - mint: {account: alice, amount: 300}
  - mint: {account: bob, amount: 700}
  - deposit: {depositor: treasury, amount: 100}
  - withdraw: {account: alice}
  - block: {account: bob}
  - withdraw: {account: bob}
    expect_error: PayoutTransferError
  - exclude: {account: bob}
    expect_error: UnauthorizedError
  - exclude: {account: bob, caller: admin}
  - deposit: {depositor: treasury, amount: 50}
"""


def test_run_scenario_trace_and_report() -> None:
    import yaml

    from tools.replay_scenario import report, run_scenario

    pool, trace = run_scenario(yaml.safe_load(SCENARIO))

    assert trace[3] == {"step": 3, "op": "withdraw", "result": 30}
    assert trace[5] == {"step": 5, "op": "withdraw", "error": "PayoutTransferError"}
    out = report(pool)
    assert out["total_distributed"] == 150
    assert out["total_withdrawn"] == 30
    assert out["reserve"] == 120
    assert out["holders"] == ["alice"]
    # floor(50e18 / 300) per share leaves alice at 79 earned, 30 withdrawn.
    assert out["accounts"]["alice"]["withdrawable"] == 49
    assert out["accounts"]["bob"]["withdrawable"] == 70
    assert out["accounts"]["bob"]["excluded"] is True
    assert out["invariant_violations"] == []


@pytest.mark.parametrize(
    "scenario, message",
    [
        ({"steps": [{"deposit": {"depositor": "t", "amount": 1}}]}, "EmptyPoolError"),
        ({"steps": [{"mint": {"account": "a", "amount": 1}, "burn": {"account": "a", "amount": 1}}]}, "exactly one"),
        ({"steps": [{"explode": {}}]}, "unknown operation"),
        ({"steps": [{"mint": {"account": "a", "amount": "1"}}]}, "amount must be an int"),
        ({"steps": [{"mint": {"account": "a", "amount": 1}, "expect_error": "EmptyPoolError"}]}, "succeeded"),
        ({"pool": {"bogus": 1}}, "unknown pool config keys"),
        ({"steps": "mint"}, "steps must be a list"),
    ],
)
def test_run_scenario_rejects(scenario: dict, message: str) -> None:
    from tools.replay_scenario import ScenarioError, run_scenario

    with pytest.raises(ScenarioError, match=message):
        run_scenario(scenario)


def test_main_exit_codes(tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
    import tools.replay_scenario as tool

    # Keep the global divpool handler out of the captured streams.
    monkeypatch.setattr(tool, "configure_logging", lambda level: None)
    main = tool.main

    ok = tmp_path / "ok.yaml"
    ok.write_text(SCENARIO, encoding="utf-8")
    assert main(["--scenario", str(ok), "--trace"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["total_withdrawn"] == 30
    assert len(out["trace"]) == 9

    bad = tmp_path / "bad.yaml"
    bad.write_text("steps:\n  - deposit: {depositor: t, amount: 5}\n", encoding="utf-8")
    assert main(["--scenario", str(bad)]) == 1

    assert main(["--scenario", str(tmp_path / "missing.yaml")]) == 2

    broken = tmp_path / "broken.yaml"
    broken.write_text("steps: [unclosed\n", encoding="utf-8")
    assert main(["--scenario", str(broken)]) == 2
