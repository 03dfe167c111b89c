"""Scheduling endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Path, Query, status

from ...schemas.scheduling import ScheduleRunModel, SolveRequest, SolveResponse
from ...services.scheduling.service import list_schedule_runs, load_schedule_run, solve_schedule

router = APIRouter(prefix="/schedule", tags=["schedule"])

logger = logging.getLogger(__name__)


@router.post("/solve", response_model=SolveResponse, status_code=status.HTTP_200_OK)
def solve(payload: SolveRequest) -> SolveResponse:
    try:
        return solve_schedule(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error solving schedule: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to solve schedule: {str(exc)}"
        ) from exc


@router.get("/runs", response_model=list[ScheduleRunModel])
def get_schedule_runs(
    target_date: date | None = Query(default=None, description="Only runs planned for this date (YYYY-MM-DD)"),
    limit: int | None = Query(default=None, gt=0, description="Maximum number of runs to return"),
) -> list[ScheduleRunModel]:
    runs = list_schedule_runs(target_date=target_date, limit=limit)
    return [ScheduleRunModel.model_validate(item) for item in runs]


@router.get("/runs/{run_id}", status_code=status.HTTP_200_OK)
def get_schedule_run(run_id: str = Path(..., description="Run directory identifier")) -> dict:
    try:
        return load_schedule_run(run_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
