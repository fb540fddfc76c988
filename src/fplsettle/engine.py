"""Settlement engine: the operations callers and administrators invoke."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from fplsettle.collaborators import AttestationSource, PoolSource, RosterSource
from fplsettle.config import EngineSettings, ScoringRules, get_rules
from fplsettle.errors import (
    AlreadySettledError,
    InvalidInputError,
    NotFoundError,
    NotReadyError,
    RoundWithdrawnError,
)
from fplsettle.models import (
    PlayerPerformance,
    PoolState,
    Position,
    RemainderSweep,
    RoundStatus,
    SettlementRecord,
    TeamScore,
    WithdrawalRecord,
)
from fplsettle.persistence import LedgerStore
from fplsettle.scoring import aggregate_team_score, check_submitted_team, resolve_lineup
from fplsettle.settlement import (
    LedgerTreasury,
    PrizeDistributor,
    Standing,
    Treasury,
    determine_winners,
    plan_payout,
    rank_standings,
)


logger = logging.getLogger(__name__)


def _validate_round(round_id: int) -> int:
    if isinstance(round_id, bool) or not isinstance(round_id, int) or round_id < 1:
        raise InvalidInputError(f"round identifier must be a positive integer, got {round_id!r}")
    return round_id


def _validate_identity(value: str, label: str, round_id: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{label} must be a non-empty string", round_id=round_id)
    return value.strip()


class _RoundLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class _RoundLocks:
    """One lock per round; rounds share no state and proceed independently.

    A round's lock is dropped once no thread holds or waits for it, so the
    table only ever holds rounds with an operation in flight.
    """

    def __init__(self, timeout: float):
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[int, _RoundLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, round_id: int) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(round_id)
            if entry is None:
                entry = self._locks[round_id] = _RoundLock()
            entry.users += 1
        try:
            if not entry.lock.acquire(timeout=self._timeout):
                logger.warning("Round %s is busy; gave up after %.1fs", round_id, self._timeout)
                raise NotReadyError(f"another operation on round {round_id} is in progress", round_id=round_id)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[round_id]


class SettlementEngine:
    def __init__(
        self,
        *,
        rosters: RosterSource,
        pools: PoolSource,
        attestations: AttestationSource,
        store: LedgerStore,
        treasury: Optional[Treasury] = None,
        rules: Optional[ScoringRules] = None,
        lock_timeout: float = 30.0,
    ):
        self._rosters = rosters
        self._pools = pools
        self._attestations = attestations
        self._store = store
        self._treasury = treasury if treasury is not None else LedgerTreasury(store)
        self._rules = rules or get_rules()
        self._distributor = PrizeDistributor(store, self._treasury)
        self._locks = _RoundLocks(lock_timeout)

    @classmethod
    def from_settings(cls, settings: EngineSettings, source) -> "SettlementEngine":
        """Build an engine whose collaborators are all served by ``source``."""

        store = LedgerStore(settings.db_path)
        return cls(
            rosters=source,
            pools=source,
            attestations=source,
            store=store,
            rules=get_rules(settings.ruleset),
            lock_timeout=settings.lock_timeout,
        )

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def rules(self) -> ScoringRules:
        return self._rules

    # Scoring

    def calculate_team_score(self, round_id: int, entrant: str) -> TeamScore:
        round_id = _validate_round(round_id)
        entrant = _validate_identity(entrant, "entrant", round_id)
        with self._locks.hold(round_id):
            return self._calculate_locked(round_id, entrant)

    def calculate_round_scores(self, round_id: int) -> List[TeamScore]:
        """Score every participant who has not been scored yet."""

        round_id = _validate_round(round_id)
        with self._locks.hold(round_id):
            self._assert_open(round_id)
            calculated = {score.entrant for score in self._store.list_team_scores(round_id)}
            scores = []
            for entrant in self._pools.get_participants(round_id):
                if entrant in calculated:
                    continue
                scores.append(self._calculate_locked(round_id, entrant))
        logger.info("Round %s: calculated %s new team score(s)", round_id, len(scores))
        return scores

    def get_team_score(self, round_id: int, entrant: str) -> TeamScore:
        round_id = _validate_round(round_id)
        score = self._store.get_team_score(round_id, entrant)
        if score is None:
            raise NotFoundError(f"no score calculated for {entrant!r} in round {round_id}", round_id=round_id)
        return score

    def _calculate_locked(self, round_id: int, entrant: str) -> TeamScore:
        self._assert_open(round_id)
        if self._store.get_team_score(round_id, entrant) is not None:
            raise AlreadySettledError(
                f"score for {entrant!r} in round {round_id} is already calculated", round_id=round_id
            )
        team = self._rosters.get_submitted_team(round_id, entrant)
        if team is None:
            raise NotFoundError(f"{entrant!r} has not submitted a team for round {round_id}", round_id=round_id)
        if team.round_id != round_id or team.entrant != entrant:
            raise InvalidInputError(
                f"submitted team belongs to {team.entrant!r} round {team.round_id}", round_id=round_id
            )
        check_submitted_team(team, self._rules)

        positions = [self._position_of(player_id, round_id) for player_id in team.squad]
        performances = [self._performance_of(round_id, player_id) for player_id in team.squad]
        lineup = resolve_lineup(team, positions, performances)
        score = aggregate_team_score(team, lineup, positions, performances, self._rules)
        self._store.save_team_score(score)
        logger.info(
            "Round %s: scored %s - %s points (captain bonus %s, bench %s, %s substitution(s))",
            round_id,
            entrant,
            score.total_points,
            score.captain_bonus,
            score.bench_points,
            len(score.substitutions),
        )
        return score

    def _position_of(self, player_id: str, round_id: int) -> Position:
        entry = self._rosters.get_roster_entry(player_id)
        if entry is None:
            raise InvalidInputError(f"player {player_id!r} is not on the roster", round_id=round_id)
        return entry.position

    def _performance_of(self, round_id: int, player_id: str) -> Optional[PlayerPerformance]:
        performance = self._attestations.get_performance(round_id, player_id)
        if performance is not None and not performance.validated:
            logger.warning(
                "Round %s: performance for %s is not validated; treating as did not play",
                round_id,
                player_id,
            )
        return performance

    # Settlement

    def round_status(self, round_id: int) -> RoundStatus:
        return self._store.round_status(_validate_round(round_id))

    def is_ready_for_settlement(self, round_id: int, *, as_of: Optional[datetime] = None) -> bool:
        round_id = _validate_round(round_id)
        try:
            self._collect_ready(round_id, as_of)
        except (NotReadyError, AlreadySettledError, NotFoundError):
            return False
        return True

    def process_settlement(self, round_id: int, *, as_of: Optional[datetime] = None) -> SettlementRecord:
        round_id = _validate_round(round_id)
        with self._locks.hold(round_id):
            pool, scores = self._collect_ready(round_id, as_of)
            winners = determine_winners(scores)
            winning_score = next(score.total_points for score in scores if score.entrant == winners[0])
            plan = plan_payout(round_id, winners, pool.total_prize)
            record = self._distributor.distribute(plan, winning_score=winning_score)
            logger.info(
                "Round %s settled - winners=%s share=%s remainder=%s score=%s",
                round_id,
                ", ".join(record.winners),
                record.share,
                record.remainder,
                record.winning_score,
            )
            self._notify_pool(record)
        return record

    def get_winners(self, round_id: int) -> Tuple[Tuple[str, ...], int]:
        round_id = _validate_round(round_id)
        record = self._store.get_settlement(round_id)
        if record is None:
            raise NotReadyError(f"round {round_id} is not settled", round_id=round_id)
        return record.winners, record.share

    def get_settlement(self, round_id: int) -> Optional[SettlementRecord]:
        return self._store.get_settlement(_validate_round(round_id))

    def standings(self, round_id: int) -> List[Standing]:
        round_id = _validate_round(round_id)
        return rank_standings(self._store.list_team_scores(round_id))

    def _collect_ready(self, round_id: int, as_of: Optional[datetime]) -> Tuple[PoolState, List[TeamScore]]:
        self._assert_open(round_id)
        pool = self._pools.get_pool(round_id)
        if pool is None:
            raise NotFoundError(f"no pool exists for round {round_id}", round_id=round_id)
        if pool.finalized:
            raise AlreadySettledError(f"pool for round {round_id} is already finalized", round_id=round_id)
        if as_of is not None and pool.deadline is not None and _aware(as_of) < _aware(pool.deadline):
            raise NotReadyError(f"round {round_id} closes at {pool.deadline.isoformat()}", round_id=round_id)
        participants = _unique(self._pools.get_participants(round_id))
        if not participants:
            raise NotReadyError(f"round {round_id} has no participants", round_id=round_id)
        calculated = {score.entrant: score for score in self._store.list_team_scores(round_id)}
        missing = [entrant for entrant in participants if entrant not in calculated]
        if missing:
            raise NotReadyError(
                f"{len(missing)} of {len(participants)} participant score(s) not calculated",
                round_id=round_id,
            )
        return pool, [calculated[entrant] for entrant in participants]

    def _assert_open(self, round_id: int) -> None:
        status = self._store.round_status(round_id)
        if status is RoundStatus.SETTLED:
            raise AlreadySettledError(f"round {round_id} is already settled", round_id=round_id)
        if status is RoundStatus.WITHDRAWN:
            raise RoundWithdrawnError(f"round {round_id} was withdrawn", round_id=round_id)

    def _notify_pool(self, record: SettlementRecord) -> None:
        try:
            self._pools.finalize_pool(record.round_id, record.primary_winner, record.winning_score)
        except Exception:
            # Funds and the settlement record are committed; the pool's own
            # bookkeeping can be replayed from the stored record.
            logger.exception("Round %s settled but the pool could not be finalized", record.round_id)

    # Administration

    def emergency_withdraw(self, round_id: int, recipient: str) -> WithdrawalRecord:
        """Pull the whole pool out before settlement; the round can never settle afterwards."""

        round_id = _validate_round(round_id)
        recipient = _validate_identity(recipient, "recipient", round_id)
        with self._locks.hold(round_id):
            self._assert_open(round_id)
            pool = self._pools.get_pool(round_id)
            if pool is None:
                raise NotFoundError(f"no pool exists for round {round_id}", round_id=round_id)
            if pool.finalized:
                raise AlreadySettledError(f"pool for round {round_id} is already finalized", round_id=round_id)
            record = self._distributor.withdraw(round_id, recipient, pool.total_prize)
        logger.warning("Round %s withdrawn: %s sent to %s", round_id, record.amount, recipient)
        return record

    def sweep_remainder(self, round_id: int, recipient: str) -> RemainderSweep:
        """Send the undistributed division remainder of a settled round to ``recipient``, once."""

        round_id = _validate_round(round_id)
        recipient = _validate_identity(recipient, "recipient", round_id)
        with self._locks.hold(round_id):
            settlement = self._store.get_settlement(round_id)
            if settlement is None:
                raise NotReadyError(f"round {round_id} is not settled", round_id=round_id)
            if self._store.get_sweep(round_id) is not None:
                raise AlreadySettledError(f"remainder of round {round_id} was already swept", round_id=round_id)
            if settlement.remainder == 0:
                raise InvalidInputError(f"round {round_id} has no remainder to sweep", round_id=round_id)
            sweep = self._distributor.sweep(settlement, recipient)
        logger.info("Round %s remainder %s swept to %s", round_id, sweep.amount, recipient)
        return sweep


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _unique(values: Sequence[str]) -> List[str]:
    seen: set[str] = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


__all__ = ["SettlementEngine"]
