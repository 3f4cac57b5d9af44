#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import requests
import yaml


@dataclass
class Scenario:
    id: str
    description: str
    user: Dict[str, str]
    events: List[Dict[str, Any]]
    sort_by: str | None
    expect: Dict[str, Any]
    path: Path


def _load_scenario(path: Path) -> Scenario:
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(raw)
    elif path.suffix.lower() == ".json":
        data = json.loads(raw)
    else:
        raise ValueError(
            f"Unsupported scenario extension: {path.suffix} (use .yaml/.yml/.json)"
        )

    for k in ("id", "user", "events", "expect"):
        if k not in data:
            raise ValueError(f"Scenario missing required field '{k}' in {path}")

    return Scenario(
        id=str(data["id"]),
        description=str(data.get("description", "")),
        user=dict(data["user"]),
        events=list(data["events"]),
        sort_by=(data.get("list") or {}).get("sortBy"),
        expect=dict(data["expect"]),
        path=path,
    )


def _login(base_url: str, user: Dict[str, str], timeout_s: int) -> Dict[str, str]:
    base = base_url.rstrip("/")
    # 400 on register means the user already exists; login decides.
    requests.post(f"{base}/register", json=user, timeout=timeout_s)
    r = requests.post(f"{base}/login", json=user, timeout=timeout_s)
    if r.status_code >= 400:
        raise RuntimeError(f"POST /login failed ({r.status_code}): {r.text}")
    return {"Authorization": f"Bearer {r.json()['token']}"}


def _post_event(
    base_url: str, headers: Dict[str, str], ev: Dict[str, Any], timeout_s: int
) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}/events"
    r = requests.post(url, json=ev, headers=headers, timeout=timeout_s)
    if r.status_code >= 400:
        raise RuntimeError(
            f"POST /events failed ({r.status_code}): {r.text}\nEvent: {json.dumps(ev, ensure_ascii=False)}"
        )
    return r.json()


def _get_events(
    base_url: str, headers: Dict[str, str], sort_by: str | None, timeout_s: int
) -> List[Dict[str, Any]]:
    url = f"{base_url.rstrip('/')}/events"
    params = {"sortBy": sort_by} if sort_by else {}
    r = requests.get(url, params=params, headers=headers, timeout=timeout_s)
    if r.status_code >= 400:
        raise RuntimeError(f"GET /events failed ({r.status_code}): {r.text}")
    return r.json()


def _is_subsequence(sub: List[str], sup: List[str]) -> bool:
    it = iter(sup)
    return all(x in it for x in sub)


def _evaluate_expectations(
    scenario: Scenario, created_ids: List[str], actual: List[Dict[str, Any]]
) -> Tuple[bool, List[str]]:
    exp_block = scenario.expect
    pass_condition = exp_block.get("pass_condition", "contains")
    expected_names = [str(x) for x in exp_block.get("names") or []]

    if pass_condition not in ("contains", "exact"):
        return False, [
            f"Invalid pass_condition={pass_condition!r} (use 'contains' or 'exact')"
        ]

    errors: List[str] = []

    # Earlier runs may have left events behind; only judge the ones created now.
    created = set(created_ids)
    mine = [e for e in actual if str(e.get("id")) in created]
    actual_names = [str(e.get("name")) for e in mine]

    if pass_condition == "exact" and actual_names != expected_names:
        errors.append(f"Order mismatch: expected {expected_names}, got {actual_names}")
    elif pass_condition == "contains" and not _is_subsequence(expected_names, actual_names):
        errors.append(f"Expected names {expected_names} not found in order in {actual_names}")

    owner = scenario.user.get("username")
    foreign = [e for e in actual if e.get("user") != owner]
    if foreign:
        errors.append(f"List returned events of other users: {json.dumps(foreign, ensure_ascii=False)}")

    return not errors, errors


def _fail_report(
    scenario: Scenario,
    base_url: str,
    actual: List[Dict[str, Any]],
    errors: List[str],
) -> str:
    lines = []
    lines.append(f"SCENARIO FAIL: {scenario.id}")
    if scenario.description:
        lines.append(f"Description: {scenario.description}")
    lines.append(f"File: {scenario.path}")
    lines.append("")
    lines.append("Reasons:")
    for e in errors:
        lines.append(f"- {e}")
    lines.append("")
    lines.append("Actual events:")
    lines.append(json.dumps(actual, indent=2, ensure_ascii=False))
    lines.append("")
    lines.append("Repro commands:")
    query = f"?sortBy={scenario.sort_by}" if scenario.sort_by else ""
    lines.append(
        f'curl -s -H "Authorization: Bearer $TOKEN" "{base_url.rstrip("/")}/events{query}" | jq'
    )
    lines.append("")
    return "\n".join(lines)


def main() -> int:
    ap = argparse.ArgumentParser(
        description="Eventminder scenario runner (posts events + verifies GET /events order)"
    )
    ap.add_argument("scenario", help="Path to scenario file (.yaml/.yml/.json)")
    ap.add_argument(
        "--base-url",
        default="http://localhost:3000",
        help="Backend base URL (default: http://localhost:3000)",
    )
    ap.add_argument(
        "--timeout", type=int, default=10, help="HTTP timeout seconds (default: 10)"
    )
    args = ap.parse_args()

    scenario = _load_scenario(Path(args.scenario))

    headers = _login(args.base_url, scenario.user, args.timeout)

    created_ids = [
        str(_post_event(args.base_url, headers, ev, args.timeout)["id"])
        for ev in scenario.events
    ]

    actual = _get_events(args.base_url, headers, scenario.sort_by, args.timeout)

    ok, errors = _evaluate_expectations(scenario, created_ids, actual)
    if not ok:
        print(_fail_report(scenario, args.base_url, actual, errors), file=sys.stderr)
        return 2

    print(f"SCENARIO PASS: {scenario.id}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        print(f"SCENARIO ERROR: {e}", file=sys.stderr)
        raise
