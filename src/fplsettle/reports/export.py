"""CSV export helpers for round standings."""

from __future__ import annotations

import csv
from io import StringIO
from pathlib import Path
from typing import Iterable, Optional, Sequence

from fplsettle.models import SettlementRecord
from fplsettle.settlement.winners import Standing


STANDINGS_HEADERS: tuple[str, ...] = (
    "rank",
    "entrant",
    "total_points",
    "bench_points",
    "goals",
    "cards",
    "captain_bonus",
    "payout",
)


def _payouts(settlement: Optional[SettlementRecord]) -> dict[str, int]:
    if settlement is None:
        return {}
    return {winner: settlement.share for winner in settlement.winners}


def standings_to_rows(
    standings: Iterable[Standing],
    settlement: Optional[SettlementRecord] = None,
) -> list[list[object]]:
    payouts = _payouts(settlement)
    return [
        [
            standing.rank,
            standing.entrant,
            standing.total_points,
            standing.bench_points,
            standing.goals,
            standing.cards,
            standing.captain_bonus,
            payouts.get(standing.entrant, 0),
        ]
        for standing in standings
    ]


def export_standings_to_csv(
    standings: Sequence[Standing],
    settlement: Optional[SettlementRecord] = None,
    *,
    path: Optional[Path] = None,
) -> str:
    """Render standings as CSV, optionally writing them to ``path`` as well."""

    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(STANDINGS_HEADERS)
    writer.writerows(standings_to_rows(standings, settlement))
    text = buffer.getvalue()
    if path is not None:
        path.write_text(text, encoding="utf-8")
    return text
