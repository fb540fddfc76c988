"""Command-line interface for scoring and settling rounds."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from fplsettle.config import EngineSettings
from fplsettle.engine import SettlementEngine
from fplsettle.errors import InvalidInputError, SettlementError
from fplsettle.ingest import RoundSnapshot, load_performance_csv, load_snapshot
from fplsettle.reports import export_standings_to_csv


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score fantasy rounds and settle their prize pools")
    parser.add_argument("--snapshot", type=Path, default=None, help="JSON snapshot with roster, pools and teams")
    parser.add_argument("--db", default=None, help="SQLite ledger path (default from FPLSETTLE_DB_PATH)")
    parser.add_argument("--ruleset", default=None, help="Scoring rule set key (e.g., FPL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    score = subparsers.add_parser("score", help="Calculate team scores for a round")
    score.add_argument("--round", dest="round_id", type=int, required=True)
    score.add_argument("--entrant", default=None, help="Score one entrant instead of every participant")
    score.add_argument(
        "--performances",
        type=Path,
        default=None,
        help="CSV of attested player statistics for the round",
    )
    score.add_argument(
        "--column",
        action="append",
        default=[],
        help="Mapping for performance CSV columns (e.g., minutes_played=mins)",
    )
    score.add_argument(
        "--trust-unvalidated",
        action="store_true",
        help="Treat CSV rows without a validated column as validated",
    )

    settle = subparsers.add_parser("settle", help="Determine winners and pay out a round")
    settle.add_argument("--round", dest="round_id", type=int, required=True)

    winners = subparsers.add_parser("winners", help="Show the stored winners of a settled round")
    winners.add_argument("--round", dest="round_id", type=int, required=True)

    standings = subparsers.add_parser("standings", help="Rank every scored entrant of a round")
    standings.add_argument("--round", dest="round_id", type=int, required=True)
    standings.add_argument("--output", type=Path, default=None, help="Write standings CSV to this path")

    withdraw = subparsers.add_parser("withdraw", help="Emergency withdrawal of an unsettled pool")
    withdraw.add_argument("--round", dest="round_id", type=int, required=True)
    withdraw.add_argument("--recipient", required=True)

    sweep = subparsers.add_parser("sweep", help="Send a settled round's division remainder to a recipient")
    sweep.add_argument("--round", dest="round_id", type=int, required=True)
    sweep.add_argument("--recipient", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def _parse_mapping(entries: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for entry in entries:
        if "=" not in entry:
            raise InvalidInputError(f"Invalid mapping entry '{entry}', expected key=value")
        key, value = entry.split("=", 1)
        mapping[key.strip()] = value.strip()
    return mapping


def _settings(args: argparse.Namespace) -> EngineSettings:
    settings = EngineSettings.from_env()
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.ruleset:
        overrides["ruleset"] = args.ruleset.upper()
    if args.snapshot:
        overrides["snapshot_path"] = args.snapshot
    return replace(settings, **overrides) if overrides else settings


def _build_engine(args: argparse.Namespace, settings: EngineSettings) -> SettlementEngine:
    source = load_snapshot(settings.snapshot_path) if settings.snapshot_path else RoundSnapshot()
    performances = getattr(args, "performances", None)
    if performances is not None:
        source.add_performances(
            load_performance_csv(
                performances,
                round_id=args.round_id,
                mapping=_parse_mapping(args.column) or None,
                default_validated=args.trust_unvalidated,
            )
        )
    return SettlementEngine.from_settings(settings, source)


def _run(args: argparse.Namespace, engine: SettlementEngine) -> None:
    if args.command == "score":
        if args.entrant:
            scores = [engine.calculate_team_score(args.round_id, args.entrant)]
        else:
            scores = engine.calculate_round_scores(args.round_id)
        for score in scores:
            subs = ", ".join(f"{sub.player_out}->{sub.player_in}" for sub in score.substitutions) or "-"
            print(
                f"{score.entrant}: {score.total_points} pts "
                f"(captain +{score.captain_bonus}, bench {score.bench_points}, subs {subs})"
            )
        print(f"Calculated {len(scores)} score(s) for round {args.round_id}")
    elif args.command == "settle":
        record = engine.process_settlement(args.round_id)
        print(
            f"Round {record.round_id} settled: {', '.join(record.winners)} "
            f"receive {record.share} each (score {record.winning_score}, remainder {record.remainder})"
        )
    elif args.command == "winners":
        winners, share = engine.get_winners(args.round_id)
        print(json.dumps({"round_id": args.round_id, "winners": list(winners), "share": share}, indent=2))
    elif args.command == "standings":
        csv_text = export_standings_to_csv(
            engine.standings(args.round_id),
            engine.get_settlement(args.round_id),
            path=args.output,
        )
        if args.output:
            print(f"Wrote standings to {args.output}")
        else:
            print(csv_text, end="")
    elif args.command == "withdraw":
        record = engine.emergency_withdraw(args.round_id, args.recipient)
        print(f"Round {record.round_id} withdrawn: {record.amount} sent to {record.recipient}")
    elif args.command == "sweep":
        sweep = engine.sweep_remainder(args.round_id, args.recipient)
        print(f"Round {sweep.round_id} remainder {sweep.amount} sent to {sweep.recipient}")


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = _settings(args)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        engine = _build_engine(args, settings)
        if args.command == "serve":
            import uvicorn

            from fplsettle.api import create_app

            uvicorn.run(create_app(engine), host=args.host, port=args.port)
            return
        _run(args, engine)
    except SettlementError as exc:
        raise SystemExit(f"{exc.code}: {exc.message}") from exc


if __name__ == "__main__":
    main()
