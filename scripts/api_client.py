"""Lightweight REST client for the fplsettle API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def _print_response(resp: httpx.Response) -> None:
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except json.JSONDecodeError:
            detail = resp.text
        raise SystemExit(f"HTTP {resp.status_code}: {json.dumps(detail)}")
    print(json.dumps(resp.json(), indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the fplsettle REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("round_id", type=int, help="Round to operate on")
    parser.add_argument("--status", action="store_true", help="Show the round status and exit")
    parser.add_argument("--score", metavar="ENTRANT", help="Calculate one entrant's score")
    parser.add_argument("--score-all", action="store_true", help="Calculate every outstanding score")
    parser.add_argument("--settle", action="store_true", help="Settle the round")
    parser.add_argument("--withdraw", metavar="RECIPIENT", help="Emergency-withdraw the pool to RECIPIENT")
    parser.add_argument("--sweep", metavar="RECIPIENT", help="Sweep the division remainder to RECIPIENT")
    parser.add_argument("--export-path", type=Path, help="Download standings CSV to this path")
    args = parser.parse_args()

    base = f"/rounds/{args.round_id}"
    with httpx.Client(base_url=args.base_url) as client:
        if args.status:
            _print_response(client.get(f"{base}/status"))
            return
        if args.withdraw:
            _print_response(client.post(f"{base}/withdraw", json={"recipient": args.withdraw}))
            return
        if args.score:
            _print_response(client.post(f"{base}/teams/{args.score}/score"))
        if args.score_all:
            _print_response(client.post(f"{base}/scores"))
        if args.settle:
            _print_response(client.post(f"{base}/settle"))
            _print_response(client.get(f"{base}/winners"))
        if args.sweep:
            _print_response(client.post(f"{base}/sweep", json={"recipient": args.sweep}))
        if args.export_path:
            resp = client.get(f"{base}/standings.csv")
            resp.raise_for_status()
            args.export_path.write_text(resp.text)
            print(f"CSV export saved to {args.export_path}")
        else:
            _print_response(client.get(f"{base}/standings"))


if __name__ == "__main__":
    main()
