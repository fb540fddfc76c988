"""Persistence layer for team scores, settlements and transfers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from fplsettle.errors import AlreadySettledError, LedgerUnavailableError, NotFoundError, RoundWithdrawnError
from fplsettle.models import (
    RemainderSweep,
    RoundStatus,
    SettlementRecord,
    TeamScore,
    WithdrawalRecord,
)


logger = logging.getLogger(__name__)


@dataclass
class TransferRecord:
    transfer_id: str
    round_id: int
    recipient: str
    amount: int
    kind: str
    created_at: datetime
    reversed_at: Optional[datetime]

    @property
    def reversed(self) -> bool:
        return self.reversed_at is not None


class LedgerStore:
    """SQLite-backed ledger keyed by round and entrant.

    Each record type is written at most once; a second write raises
    AlreadySettledError instead of replacing the stored row.
    """

    def __init__(self, db_path: Path | str):
        self._use_uri = False
        if isinstance(db_path, str) and db_path.startswith("file:"):
            self.db_path: Path | str = db_path
            self._use_uri = True
            # Keep one connection open so a shared in-memory database survives.
            self._keepalive: Optional[sqlite3.Connection] = sqlite3.connect(db_path, uri=True)
        else:
            self.db_path = Path(db_path)
            self._keepalive = None
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        """Open the configured ledger; never substitute another database."""

        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, isolation_level=None)
            else:
                conn = sqlite3.connect(self.db_path, uri=self._use_uri, isolation_level=None)
        except (sqlite3.OperationalError, OSError) as exc:
            logger.error("Cannot open ledger %s: %s", self.db_path, exc)
            raise LedgerUnavailableError(f"ledger {self.db_path} cannot be opened: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside ``BEGIN IMMEDIATE`` so check-then-insert is atomic."""

        with closing(self._connect()) as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as exc:
                raise LedgerUnavailableError(f"ledger {self.db_path} is busy: {exc}") from exc
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS team_scores (
                round_id INTEGER NOT NULL,
                entrant TEXT NOT NULL,
                total_points INTEGER NOT NULL,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (round_id, entrant)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS settlements (
                round_id INTEGER PRIMARY KEY,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS withdrawals (
                round_id INTEGER PRIMARY KEY,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS remainder_sweeps (
                round_id INTEGER PRIMARY KEY,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transfers (
                id TEXT PRIMARY KEY,
                round_id INTEGER NOT NULL,
                recipient TEXT NOT NULL,
                amount INTEGER NOT NULL,
                kind TEXT NOT NULL,
                created_at TEXT NOT NULL,
                reversed_at TEXT
            )
            """
        )

    # Team scores

    def save_team_score(self, score: TeamScore) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO team_scores (round_id, entrant, total_points, payload_json, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        score.round_id,
                        score.entrant,
                        score.total_points,
                        score.model_dump_json(),
                        score.calculated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise AlreadySettledError(
                f"score for {score.entrant!r} in round {score.round_id} is already calculated",
                round_id=score.round_id,
            ) from exc

    def get_team_score(self, round_id: int, entrant: str) -> Optional[TeamScore]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT payload_json FROM team_scores WHERE round_id = ? AND entrant = ?",
                (round_id, entrant),
            ).fetchone()
        if row is None:
            return None
        return TeamScore.model_validate_json(row["payload_json"])

    def list_team_scores(self, round_id: int) -> List[TeamScore]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT payload_json FROM team_scores WHERE round_id = ? ORDER BY entrant",
                (round_id,),
            ).fetchall()
        return [TeamScore.model_validate_json(row["payload_json"]) for row in rows]

    # Terminal round records

    def save_settlement(self, record: SettlementRecord) -> None:
        with self._transaction() as conn:
            self._assert_open(conn, record.round_id)
            conn.execute(
                "INSERT INTO settlements (round_id, payload_json, created_at) VALUES (?, ?, ?)",
                (record.round_id, record.model_dump_json(), record.settled_at.isoformat()),
            )

    def get_settlement(self, round_id: int) -> Optional[SettlementRecord]:
        row = self._fetch_payload("settlements", round_id)
        return SettlementRecord.model_validate_json(row) if row else None

    def save_withdrawal(self, record: WithdrawalRecord) -> None:
        with self._transaction() as conn:
            self._assert_open(conn, record.round_id)
            conn.execute(
                "INSERT INTO withdrawals (round_id, payload_json, created_at) VALUES (?, ?, ?)",
                (record.round_id, record.model_dump_json(), record.withdrawn_at.isoformat()),
            )

    def get_withdrawal(self, round_id: int) -> Optional[WithdrawalRecord]:
        row = self._fetch_payload("withdrawals", round_id)
        return WithdrawalRecord.model_validate_json(row) if row else None

    def save_sweep(self, sweep: RemainderSweep) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO remainder_sweeps (round_id, payload_json, created_at) VALUES (?, ?, ?)",
                    (sweep.round_id, sweep.model_dump_json(), sweep.swept_at.isoformat()),
                )
        except sqlite3.IntegrityError as exc:
            raise AlreadySettledError(
                f"remainder of round {sweep.round_id} was already swept",
                round_id=sweep.round_id,
            ) from exc

    def get_sweep(self, round_id: int) -> Optional[RemainderSweep]:
        row = self._fetch_payload("remainder_sweeps", round_id)
        return RemainderSweep.model_validate_json(row) if row else None

    def round_status(self, round_id: int) -> RoundStatus:
        with closing(self._connect()) as conn:
            return self._status(conn, round_id)

    def _status(self, conn: sqlite3.Connection, round_id: int) -> RoundStatus:
        if conn.execute("SELECT 1 FROM settlements WHERE round_id = ?", (round_id,)).fetchone():
            return RoundStatus.SETTLED
        if conn.execute("SELECT 1 FROM withdrawals WHERE round_id = ?", (round_id,)).fetchone():
            return RoundStatus.WITHDRAWN
        return RoundStatus.OPEN

    def _assert_open(self, conn: sqlite3.Connection, round_id: int) -> None:
        status = self._status(conn, round_id)
        if status is RoundStatus.SETTLED:
            raise AlreadySettledError(f"round {round_id} is already settled", round_id=round_id)
        if status is RoundStatus.WITHDRAWN:
            raise RoundWithdrawnError(f"round {round_id} was withdrawn", round_id=round_id)

    def _fetch_payload(self, table: str, round_id: int) -> Optional[str]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                f"SELECT payload_json FROM {table} WHERE round_id = ?",
                (round_id,),
            ).fetchone()
        return row["payload_json"] if row else None

    # Transfers

    def insert_transfer(
        self,
        *,
        transfer_id: str,
        round_id: int,
        recipient: str,
        amount: int,
        kind: str,
        created_at: Optional[datetime] = None,
    ) -> TransferRecord:
        created_at = created_at or datetime.now(timezone.utc)
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO transfers (id, round_id, recipient, amount, kind, created_at, reversed_at)
                VALUES (?, ?, ?, ?, ?, ?, NULL)
                """,
                (transfer_id, round_id, recipient, amount, kind, created_at.isoformat()),
            )
        return TransferRecord(
            transfer_id=transfer_id,
            round_id=round_id,
            recipient=recipient,
            amount=amount,
            kind=kind,
            created_at=created_at,
            reversed_at=None,
        )

    def mark_transfer_reversed(self, transfer_id: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE transfers SET reversed_at = ? WHERE id = ? AND reversed_at IS NULL",
                (now, transfer_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Transfer {transfer_id} not found or already reversed")

    def list_transfers(
        self,
        *,
        round_id: Optional[int] = None,
        recipient: Optional[str] = None,
        include_reversed: bool = False,
    ) -> List[TransferRecord]:
        query = "SELECT * FROM transfers"
        conditions: list[str] = []
        params: list[str | int] = []
        if round_id is not None:
            conditions.append("round_id = ?")
            params.append(round_id)
        if recipient is not None:
            conditions.append("recipient = ?")
            params.append(recipient)
        if not include_reversed:
            conditions.append("reversed_at IS NULL")
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at, id"
        with closing(self._connect()) as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_transfer(row) for row in rows]

    def total_disbursed(self, round_id: int) -> int:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(amount), 0) AS total FROM transfers WHERE round_id = ? AND reversed_at IS NULL",
                (round_id,),
            ).fetchone()
        return int(row["total"])

    def _row_to_transfer(self, row: sqlite3.Row) -> TransferRecord:
        return TransferRecord(
            transfer_id=row["id"],
            round_id=row["round_id"],
            recipient=row["recipient"],
            amount=row["amount"],
            kind=row["kind"],
            created_at=datetime.fromisoformat(row["created_at"]),
            reversed_at=datetime.fromisoformat(row["reversed_at"]) if row["reversed_at"] else None,
        )


__all__ = ["LedgerStore", "TransferRecord"]
