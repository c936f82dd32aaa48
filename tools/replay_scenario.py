#!/usr/bin/env python3
"""
Replay a YAML scenario against a fresh dividend pool and print a JSON report.

Scenario format::

    pool:                     # optional, see divpool.config.PoolConfig
      eligibility_threshold: 100
      owner: admin
    steps:
      - mint: {account: alice, amount: 300}
      - mint: {account: bob, amount: 700}
      - deposit: {depositor: treasury, amount: 100}
      - transfer: {sender: alice, receiver: bob, amount: 50}
      - burn: {account: bob, amount: 10}
      - withdraw: {account: alice}
      - exclude: {account: bob, caller: admin}
      - include: {account: bob, caller: admin}
      - threshold: {value: 10, caller: admin}
      - block: {account: carol}       # payout refuses carol from now on
      - withdraw: {account: carol}
        expect_error: PayoutTransferError

A step with ``expect_error`` must fail with exactly that error class name.

Exit codes: 0 ok, 1 a step failed (or did not fail as expected), 2 unreadable input.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable

import yaml

from divpool import DividendError, DividendPool, config_from_mapping, create_pool
from divpool.config import ConfigError
from divpool.util.structured_logging import configure_logging


class ScenarioError(Exception):
    pass


def _require_mapping(obj: Any, *, name: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ScenarioError(f"{name} must be a mapping")
    return obj


def _require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj.strip():
        raise ScenarioError(f"{name} must be a non-empty string")
    return obj.strip()


def _require_int(obj: Any, *, name: str) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool):
        raise ScenarioError(f"{name} must be an int")
    return obj


def _op_mint(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.ledger.mint(_require_str(a.get("account"), name="account"), _require_int(a.get("amount"), name="amount"))


def _op_burn(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.ledger.burn(_require_str(a.get("account"), name="account"), _require_int(a.get("amount"), name="amount"))


def _op_transfer(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.ledger.transfer(
        _require_str(a.get("sender"), name="sender"),
        _require_str(a.get("receiver"), name="receiver"),
        _require_int(a.get("amount"), name="amount"),
    )


def _op_deposit(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.deposit(_require_str(a.get("depositor"), name="depositor"), _require_int(a.get("amount"), name="amount"))


def _op_withdraw(pool: DividendPool, a: dict[str, Any]) -> Any:
    return pool.tracker.withdraw(_require_str(a.get("account"), name="account"))


def _op_exclude(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.tracker.exclude(_require_str(a.get("account"), name="account"), caller=a.get("caller"))


def _op_include(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.tracker.include(_require_str(a.get("account"), name="account"), caller=a.get("caller"))


def _op_threshold(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.tracker.set_threshold(_require_int(a.get("value"), name="value"), caller=a.get("caller"))


def _op_block(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.payout.blocked.add(_require_str(a.get("account"), name="account"))


def _op_unblock(pool: DividendPool, a: dict[str, Any]) -> Any:
    pool.payout.blocked.discard(_require_str(a.get("account"), name="account"))


_OPS: dict[str, Callable[[DividendPool, dict[str, Any]], Any]] = {
    "mint": _op_mint,
    "burn": _op_burn,
    "transfer": _op_transfer,
    "deposit": _op_deposit,
    "withdraw": _op_withdraw,
    "exclude": _op_exclude,
    "include": _op_include,
    "threshold": _op_threshold,
    "block": _op_block,
    "unblock": _op_unblock,
}


def _split_step(idx: int, step: Any) -> tuple[str, dict[str, Any], str | None]:
    step = dict(_require_mapping(step, name=f"steps[{idx}]"))
    expect = step.pop("expect_error", None)
    if expect is not None:
        expect = _require_str(expect, name=f"steps[{idx}].expect_error")
    if len(step) != 1:
        raise ScenarioError(f"steps[{idx}] must name exactly one operation")
    (op, args), = step.items()
    if op not in _OPS:
        raise ScenarioError(f"steps[{idx}]: unknown operation {op!r}")
    return op, _require_mapping(args or {}, name=f"steps[{idx}].{op}"), expect


def report(pool: DividendPool) -> dict[str, Any]:
    tracker = pool.tracker
    accounts = sorted(set(pool.ledger.get_all_balances()) | set(pool.payout.paid) | set(tracker.holders()))
    return {
        "total_supply": pool.ledger.total_supply(),
        "total_shares": tracker.total_shares,
        "total_distributed": tracker.total_distributed,
        "total_withdrawn": tracker.total_withdrawn,
        "reserve": pool.payout.reserve,
        "eligibility_threshold": tracker.eligibility_threshold,
        "holders": tracker.holders(),
        "accounts": {
            a: {**asdict(tracker.account_info(a)), "balance": pool.ledger.balance_of(a), "paid": pool.payout.paid_to(a)}
            for a in accounts
        },
        "invariant_violations": tracker.check_invariants(),
    }


def run_scenario(scenario: Any) -> tuple[DividendPool, list[dict[str, Any]]]:
    """Replay *scenario*; return the pool and one log entry per step.

    Raises:
        ScenarioError: malformed scenario, or a step whose outcome did not match.
    """
    root = _require_mapping(scenario, name="scenario")
    try:
        config = config_from_mapping(root.get("pool"))
    except ConfigError as exc:
        raise ScenarioError(f"pool: {exc}") from exc
    steps = root.get("steps") or []
    if not isinstance(steps, list):
        raise ScenarioError("steps must be a list")

    pool = create_pool(config)
    trace: list[dict[str, Any]] = []
    for idx, raw in enumerate(steps):
        op, args, expect = _split_step(idx, raw)
        try:
            result = _OPS[op](pool, args)
        except DividendError as exc:
            if expect != type(exc).__name__:
                raise ScenarioError(f"steps[{idx}] {op} failed: {type(exc).__name__}: {exc}") from exc
            trace.append({"step": idx, "op": op, "error": type(exc).__name__})
            continue
        except (TypeError, ValueError) as exc:
            raise ScenarioError(f"steps[{idx}] {op}: invalid arguments: {exc}") from exc
        if expect is not None:
            raise ScenarioError(f"steps[{idx}] {op} succeeded but {expect} was expected")
        entry: dict[str, Any] = {"step": idx, "op": op}
        if result is not None:
            entry["result"] = result
        trace.append(entry)
    return pool, trace


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Replay a YAML dividend-pool scenario and print a JSON report.")
    p.add_argument("--scenario", required=True, type=Path, help="Path to the scenario YAML file")
    p.add_argument("--trace", action="store_true", help="Include the per-step trace in the report")
    p.add_argument("--log-level", default="WARNING", help="Log level for divpool loggers (default: WARNING)")
    args = p.parse_args(argv)

    configure_logging(args.log_level)
    try:
        scenario = yaml.safe_load(args.scenario.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        print(f"replay_scenario error: {exc}", file=sys.stderr)
        return 2

    try:
        pool, trace = run_scenario(scenario)
    except ScenarioError as exc:
        print(f"scenario failed: {exc}", file=sys.stderr)
        return 1

    out = report(pool)
    if args.trace:
        out["trace"] = trace
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
