"""
Health endpoints.

Key behaviors:
- /health_check: Bare 200 with an empty body, for load balancers
- /health: Aggregated report of every registered check (503 if any fails)
- /health/ready: Readiness probe, same checks, compact body
- /health/live: Liveness probe, never consults dependencies
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.HEALTHY


class HealthCheck(Protocol):
    name: str

    def check(self) -> CheckResult: ...


# --- Uptime ---


class StartupTracker:
    """Process-wide record of when startup finished."""

    _start_time: float | None = None

    @classmethod
    def mark_started(cls) -> None:
        cls._start_time = time.monotonic()

    @classmethod
    def is_started(cls) -> bool:
        return cls._start_time is not None

    @classmethod
    def get_uptime_seconds(cls) -> float:
        return 0.0 if cls._start_time is None else time.monotonic() - cls._start_time


# --- Checks ---


class StartupCheck:
    """Fails until the application lifespan has completed startup."""

    name = "startup"

    def check(self) -> CheckResult:
        if not StartupTracker.is_started():
            return CheckResult(self.name, HealthStatus.UNHEALTHY, "Startup not complete")
        return CheckResult(self.name, HealthStatus.HEALTHY, "Startup complete")


class DatabaseCheck:
    """Runs a probe callable; any exception it raises marks the database unhealthy."""

    name = "database"

    def __init__(self, probe: Callable[[], None]) -> None:
        self._probe = probe

    def check(self) -> CheckResult:
        started = time.perf_counter()
        try:
            self._probe()
        except Exception as e:
            outcome, message = HealthStatus.UNHEALTHY, f"Database error: {e}"
        else:
            outcome, message = HealthStatus.HEALTHY, "Database connected"
        return CheckResult(
            self.name, outcome, message, latency_ms=(time.perf_counter() - started) * 1000
        )


class HealthCheckRegistry:
    """Ordered collection of checks consulted by /health and /health/ready."""

    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def clear(self) -> None:
        self._checks.clear()

    def run_all(self) -> list[CheckResult]:
        return [c.check() for c in self._checks]


# --- Response Models ---


class CheckReport(BaseModel):
    name: str
    status: HealthStatus
    message: str
    latency_ms: float


class HealthReport(BaseModel):
    status: HealthStatus
    version: str
    uptime_seconds: float
    checks: list[CheckReport]


class ReadinessReport(BaseModel):
    ready: bool
    checks: list[CheckReport]


class LivenessReport(BaseModel):
    alive: bool
    uptime_seconds: float


def _reports(results: list[CheckResult]) -> list[CheckReport]:
    return [
        CheckReport(name=r.name, status=r.status, message=r.message, latency_ms=r.latency_ms)
        for r in results
    ]


def _respond(report: BaseModel, healthy: bool) -> JSONResponse:
    return JSONResponse(
        content=report.model_dump(mode="json"),
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )


# --- Router ---


def create_health_router(registry: HealthCheckRegistry, version: str = "0.0.0") -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health_check")
    def health_check() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @router.get("/health", response_model=HealthReport)
    def health() -> JSONResponse:
        results = registry.run_all()
        healthy = all(r.ok for r in results)
        report = HealthReport(
            status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            version=version,
            uptime_seconds=StartupTracker.get_uptime_seconds(),
            checks=_reports(results),
        )
        return _respond(report, healthy)

    @router.get("/health/ready", response_model=ReadinessReport)
    def ready() -> JSONResponse:
        results = registry.run_all()
        healthy = all(r.ok for r in results)
        return _respond(ReadinessReport(ready=healthy, checks=_reports(results)), healthy)

    @router.get("/health/live", response_model=LivenessReport)
    def live() -> LivenessReport:
        return LivenessReport(alive=True, uptime_seconds=StartupTracker.get_uptime_seconds())

    return router
