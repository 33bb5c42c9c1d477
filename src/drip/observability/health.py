"""Readiness and metrics endpoints for the Drip faucet.

Endpoints:
- /ready: 200 when every check passes, 503 otherwise
- /metrics: Prometheus exposition

The faucet's own /health (sequence number) lives with the mint routes because
it shares the faucet account lock.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from aiohttp import web
from prometheus_client import REGISTRY, generate_latest

if TYPE_CHECKING:
    from drip.ledger.client import LedgerClient

logger = logging.getLogger(__name__)

DEFAULT_CHECK_TIMEOUT = 5.0


class HealthStatus(Enum):
    """Health check status values."""

    OK = "ok"
    ERROR = "error"
    NOT_READY = "not_ready"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str | None = None

    @property
    def summary(self) -> str:
        if self.status == HealthStatus.OK:
            return "ok"
        return self.message or self.status.value


@dataclass
class HealthResult:
    """Combined readiness result."""

    status: HealthStatus
    checks: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = {"status": self.status.value}
        if self.checks:
            result["checks"] = self.checks
        return result


class HealthCheck(ABC):
    """A named readiness condition."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Key the result is reported under."""
        ...

    @abstractmethod
    async def check(self) -> CheckResult:
        """Evaluate the condition. Raising counts as a failure."""
        ...


class LedgerHealthCheck(HealthCheck):
    """Ready when the ledger node answers and serves the expected chain.

    Parameters
    ----------
    ledger : LedgerClient
        Client for the node the faucet submits to.
    chain_id : int
        Chain id the faucet signs for.
    """

    def __init__(self, ledger: "LedgerClient", chain_id: int):
        self._ledger = ledger
        self._chain_id = chain_id

    @property
    def name(self) -> str:
        return "ledger"

    async def check(self) -> CheckResult:
        node_chain_id = await self._ledger.chain_id()
        if node_chain_id != self._chain_id:
            return CheckResult(
                name=self.name,
                status=HealthStatus.ERROR,
                message=f"chain id mismatch: node {node_chain_id}, faucet {self._chain_id}",
            )
        return CheckResult(name=self.name, status=HealthStatus.OK)


class ReadinessProbe:
    """Readiness checks and Prometheus exposition mounted on an aiohttp app.

    Parameters
    ----------
    check_timeout : float
        Seconds each check may take before it counts as failed.
    """

    def __init__(self, check_timeout: float = DEFAULT_CHECK_TIMEOUT):
        self._checks: list[HealthCheck] = []
        self._check_timeout = check_timeout

    def add_check(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def register(self, app: web.Application) -> None:
        """Mount /ready and /metrics on ``app``."""
        app.router.add_get("/ready", self._handle_ready)
        app.router.add_get("/metrics", self._handle_metrics)

    async def _handle_ready(self, _request: web.Request) -> web.Response:
        result = await self._check_readiness()
        status_code = 200 if result.status == HealthStatus.OK else 503
        return web.json_response(result.to_dict(), status=status_code)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(REGISTRY),
            content_type="text/plain",
            charset="utf-8",
        )

    async def _run_check(self, check: HealthCheck) -> CheckResult:
        try:
            return await asyncio.wait_for(check.check(), self._check_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Health check timed out",
                extra={"check": check.name, "timeout": self._check_timeout},
            )
            return CheckResult(
                name=check.name,
                status=HealthStatus.ERROR,
                message=f"error: timed out after {self._check_timeout}s",
            )
        except Exception as e:
            logger.exception("Health check failed", extra={"check": check.name})
            return CheckResult(
                name=check.name,
                status=HealthStatus.ERROR,
                message=f"error: {type(e).__name__}: {e}",
            )

    async def _check_readiness(self) -> HealthResult:
        """Run every check concurrently and combine the results."""
        if not self._checks:
            return HealthResult(status=HealthStatus.OK)

        results = await asyncio.gather(*(self._run_check(check) for check in self._checks))
        ready = all(result.status == HealthStatus.OK for result in results)
        return HealthResult(
            status=HealthStatus.OK if ready else HealthStatus.NOT_READY,
            checks={result.name: result.summary for result in results},
        )
