"""REST API for the fplsettle scoring and settlement engine."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from fplsettle.api.schemas import (
    RecipientRequest,
    RoundScoresResponse,
    RoundStatusResponse,
    SettleRequest,
    SettlementResponse,
    StandingResponse,
    SweepResponse,
    TeamScoreResponse,
    WinnersResponse,
    WithdrawalResponse,
)
from fplsettle.config import EngineSettings
from fplsettle.engine import SettlementEngine
from fplsettle.errors import SettlementError
from fplsettle.ingest import RoundSnapshot, load_snapshot
from fplsettle.reports import export_standings_to_csv


logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "ALREADY_SETTLED": 409,
    "ROUND_WITHDRAWN": 409,
    "NOT_READY": 425,
    "INVALID_INPUT": 400,
    "NOT_FOUND": 404,
    "TRANSFER_FAILURE": 502,
    "LEDGER_UNAVAILABLE": 503,
}


def _engine_from_env(settings: EngineSettings) -> SettlementEngine:
    if settings.snapshot_path is not None:
        source = load_snapshot(settings.snapshot_path)
    else:
        logger.warning("No snapshot configured; serving an empty round snapshot")
        source = RoundSnapshot()
    return SettlementEngine.from_settings(settings, source)


def create_app(engine: Optional[SettlementEngine] = None) -> FastAPI:
    app = FastAPI(title="fplsettle")
    if engine is None:
        engine = _engine_from_env(EngineSettings.from_env())
    app.state.engine = engine

    @app.exception_handler(SettlementError)
    async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
        status = ERROR_STATUS.get(exc.code, 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content={"detail": exc.to_dict()})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/rounds/{round_id}/status", response_model=RoundStatusResponse)
    def round_status(round_id: int) -> RoundStatusResponse:
        status = engine.round_status(round_id)
        return RoundStatusResponse(
            round_id=round_id,
            status=status,
            ready_for_settlement=engine.is_ready_for_settlement(round_id),
            scored_entrants=len(engine.store.list_team_scores(round_id)),
        )

    @app.get("/rounds/{round_id}/teams/{entrant}/score", response_model=TeamScoreResponse)
    def get_team_score(round_id: int, entrant: str) -> TeamScoreResponse:
        return TeamScoreResponse.from_score(engine.get_team_score(round_id, entrant))

    @app.post("/rounds/{round_id}/teams/{entrant}/score", response_model=TeamScoreResponse)
    def calculate_team_score(round_id: int, entrant: str) -> TeamScoreResponse:
        return TeamScoreResponse.from_score(engine.calculate_team_score(round_id, entrant))

    @app.post("/rounds/{round_id}/scores", response_model=RoundScoresResponse)
    def calculate_round_scores(round_id: int) -> RoundScoresResponse:
        scores = engine.calculate_round_scores(round_id)
        return RoundScoresResponse(
            round_id=round_id,
            calculated=[TeamScoreResponse.from_score(score) for score in scores],
        )

    @app.get("/rounds/{round_id}/standings", response_model=list[StandingResponse])
    def standings(round_id: int) -> list[StandingResponse]:
        return [StandingResponse.from_standing(item) for item in engine.standings(round_id)]

    @app.get("/rounds/{round_id}/standings.csv")
    def standings_csv(round_id: int) -> Response:
        csv_text = export_standings_to_csv(engine.standings(round_id), engine.get_settlement(round_id))
        return Response(
            content=csv_text,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=round-{round_id}-standings.csv"},
        )

    @app.post("/rounds/{round_id}/settle", response_model=SettlementResponse)
    def settle(round_id: int, payload: Optional[SettleRequest] = None) -> SettlementResponse:
        as_of = payload.as_of if payload is not None else None
        return SettlementResponse.from_record(engine.process_settlement(round_id, as_of=as_of))

    @app.get("/rounds/{round_id}/winners", response_model=WinnersResponse)
    def winners(round_id: int) -> WinnersResponse:
        entrants, share = engine.get_winners(round_id)
        return WinnersResponse(round_id=round_id, winners=list(entrants), share=share)

    @app.post("/rounds/{round_id}/withdraw", response_model=WithdrawalResponse)
    def withdraw(round_id: int, payload: RecipientRequest) -> WithdrawalResponse:
        return WithdrawalResponse.from_record(engine.emergency_withdraw(round_id, payload.recipient))

    @app.post("/rounds/{round_id}/sweep", response_model=SweepResponse)
    def sweep(round_id: int, payload: RecipientRequest) -> SweepResponse:
        return SweepResponse.from_record(engine.sweep_remainder(round_id, payload.recipient))

    return app


__all__ = ["ERROR_STATUS", "create_app"]
