from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str


class StoreStats(BaseModel):
    path: str
    entries: int | None = None
    size_bytes: int | None = None
    error: str | None = None


class CoordinatorStatsModel(BaseModel):
    hits: int
    misses: int
    generations: int
    failures: int
    joined: int
    store_errors: int
    in_flight: int


class StatsResponse(BaseModel):
    store: StoreStats
    coordinator: CoordinatorStatsModel
