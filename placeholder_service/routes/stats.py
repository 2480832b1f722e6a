"""Cache and coordinator counters."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Request

from placeholder_service.errors import StorageError
from placeholder_service.schemas import CoordinatorStatsModel, StatsResponse, StoreStats

router = APIRouter()


@router.get("/v1/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    coordinator = request.app.state.coordinator
    store = coordinator.store
    try:
        store_stats = StoreStats(
            path=str(store.path),
            entries=store.count(),
            size_bytes=store.size_bytes(),
        )
    except StorageError as exc:
        store_stats = StoreStats(path=str(store.path), error=str(exc))
    return StatsResponse(
        store=store_stats,
        coordinator=CoordinatorStatsModel(**asdict(coordinator.stats())),
    )
