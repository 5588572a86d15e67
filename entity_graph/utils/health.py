"""Health checks for the knowledge graph and the knowledge base."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entity_graph.enrichment import KnowledgeBaseClient
    from entity_graph.service import EntityGraphService

logger = logging.getLogger(__name__)

CheckResult = tuple["HealthStatus", str, dict[str, Any]]


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


@dataclass
class ComponentHealth:
    """Outcome of one registered check."""

    name: str
    status: HealthStatus
    latency_ms: float | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemHealth:
    """Worst-of summary over every component."""

    status: HealthStatus
    components: list[ComponentHealth]
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        for component in payload["components"]:
            component["status"] = component["status"].value
        return payload


class HealthChecker:
    """Runs named async checks side by side, each under its own timeout."""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._checks: dict[str, Callable[[], Awaitable[CheckResult]]] = {}

    def register(self, name: str, check_fn: Callable[[], Awaitable[CheckResult]]) -> None:
        """Add or replace a check.

        Args:
            name: Component name reported in results
            check_fn: Coroutine function returning ``(status, message, details)``
        """
        self._checks[name] = check_fn

    async def check_component(self, name: str) -> ComponentHealth:
        """Run one check. Failures and timeouts become UNHEALTHY results."""
        check_fn = self._checks.get(name)
        if check_fn is None:
            return ComponentHealth(name, HealthStatus.UNHEALTHY, message=f"Unknown component: {name}")

        start = time.perf_counter()
        try:
            status, message, details = await asyncio.wait_for(check_fn(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Health check {name} exceeded {self.timeout_seconds}s")
            return ComponentHealth(
                name,
                HealthStatus.UNHEALTHY,
                latency_ms=_elapsed_ms(start),
                message="Health check timed out",
            )
        except Exception as e:
            logger.warning(f"Health check failed for {name}: {e}")
            return ComponentHealth(name, HealthStatus.UNHEALTHY, latency_ms=_elapsed_ms(start), message=str(e))

        return ComponentHealth(name, status, _elapsed_ms(start), message, details)

    async def check_all(self) -> SystemHealth:
        """Run every registered check; the worst status wins."""
        components = list(await asyncio.gather(*map(self.check_component, self._checks)))
        overall = max(
            (component.status for component in components),
            key=_SEVERITY.__getitem__,
            default=HealthStatus.HEALTHY,
        )
        return SystemHealth(status=overall, components=components)


async def check_knowledge_graph(service: "EntityGraphService") -> CheckResult:
    """Report the size of the current graph; an empty graph is degraded."""
    graph = service.graph
    details = {
        "entities": graph.entity_count,
        "relationships": graph.relationship_count,
        "documents": len(graph.document_ids),
    }
    if graph.entity_count == 0:
        return HealthStatus.DEGRADED, "Knowledge graph is empty", details
    return HealthStatus.HEALTHY, f"{graph.entity_count} entities", details


async def check_knowledge_base(client: "KnowledgeBaseClient | None") -> CheckResult:
    """Probe the knowledge base with a small search."""
    if client is None:
        return HealthStatus.HEALTHY, "Enrichment disabled", {}

    try:
        results = await client.search("Tokyo", limit=1)
        return HealthStatus.HEALTHY, "Reachable", {"results": len(results)}
    except Exception as e:
        return HealthStatus.DEGRADED, f"Knowledge base unavailable: {e}", {}


def build_health_checker(service: "EntityGraphService") -> HealthChecker:
    """Health checker with the graph and knowledge base checks registered."""
    checker = HealthChecker()
    checker.register("knowledge_graph", lambda: check_knowledge_graph(service))
    checker.register("knowledge_base", lambda: check_knowledge_base(service.knowledge_base))
    return checker
