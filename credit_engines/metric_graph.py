"""
credit_engines.metric_graph -- Dependency-ordered evaluation of registry metrics.

Responsibility:
    Evaluate a set of ``MetricDefinition`` formulas against a fact map in
    dependency order, so that a metric such as DSCR can reference
    CASH_FLOW_AVAILABLE and ANNUAL_DEBT_SERVICE by id.

Architecture position:
    Engines -- pure calculation layer.  Built on credit_engines.expression.

Invariants enforced:
    - Deterministic order: ties in the topological order break by metric id.
    - A metric whose dependency is unavailable is itself unavailable
      (MISSING_DEPENDENCY), never zero.
    - Cycles never hang evaluation: ``topological_sort`` raises, while
      ``evaluate_metric_graph`` reports CYCLE_DETECTED per affected metric
      and still evaluates the acyclic remainder.

Failure modes:
    - MetricCycleError from ``topological_sort`` ("Cycle detected: ...").
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Any

from credit_engines.expression import INVALID_OP, evaluate, referenced_keys
from credit_engines.tracer import traced_engine
from credit_kernel.domain.metrics import MetricDefinition
from credit_kernel.exceptions import MetricCycleError
from credit_kernel.logging_config import get_logger

logger = get_logger("engines.metric_graph")

MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
DIVIDE_BY_ZERO = "DIVIDE_BY_ZERO"
CYCLE_DETECTED = "CYCLE_DETECTED"


@dataclass(frozen=True)
class MetricDiagnostic:
    code: str
    metric_id: str
    detail: str


@dataclass(frozen=True)
class MetricGraphResult:
    values: Mapping[str, Decimal | None]
    diagnostics: tuple[MetricDiagnostic, ...]
    dependency_graph: Mapping[str, tuple[str, ...]] | None = None

    def diagnostics_for(self, metric_id: str) -> tuple[MetricDiagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.metric_id == metric_id)


def build_dependency_graph(
    definitions: Iterable[MetricDefinition],
) -> dict[str, tuple[str, ...]]:
    """
    Map each metric id to the metric ids its expression references.

    A metric naming its own id (``REVENUE = "REVENUE"``) reads the base
    fact of that name, so self-references are not edges.
    """
    by_id = {d.id: d for d in definitions}
    return {
        metric_id: tuple(
            sorted(
                k
                for k in referenced_keys(definition.expr)
                if k in by_id and k != metric_id
            )
        )
        for metric_id, definition in sorted(by_id.items())
    }


def _kahn(graph: Mapping[str, tuple[str, ...]]) -> tuple[list[str], list[str]]:
    """Return (ordered ids, ids left over because they sit on or behind a cycle)."""
    pending = {node: set(deps) for node, deps in graph.items()}
    order: list[str] = []
    while True:
        ready = sorted(node for node, deps in pending.items() if not deps)
        if not ready:
            break
        for node in ready:
            order.append(node)
            del pending[node]
        for deps in pending.values():
            deps.difference_update(ready)
    return order, sorted(pending)


def _find_cycle(graph: Mapping[str, tuple[str, ...]], candidates: list[str]) -> list[str]:
    """Walk dependencies from the first candidate until a node repeats."""
    remaining = set(candidates)
    path: list[str] = []
    node = candidates[0]
    while node not in path:
        path.append(node)
        node = next(dep for dep in graph[node] if dep in remaining)
    return path[path.index(node):] + [node]


def topological_sort(definitions: Iterable[MetricDefinition]) -> list[str]:
    """
    Order metric ids so that every metric follows its dependencies.

    Raises:
        MetricCycleError: if the definitions reference each other in a cycle.
    """
    graph = build_dependency_graph(definitions)
    order, leftover = _kahn(graph)
    if leftover:
        raise MetricCycleError(_find_cycle(graph, leftover))
    return order


def _quantize(value: Decimal | None, precision: int) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


@traced_engine("metric_graph", "1.0")
def evaluate_metric_graph(
    definitions: Iterable[MetricDefinition],
    facts: Mapping[str, Any],
    audit: bool = False,
) -> MetricGraphResult:
    """
    Evaluate every definition against ``facts`` in dependency order.

    Metric values are visible to later metrics by id.  Output values are
    rounded to each definition's precision; dependents see unrounded
    values.
    """
    definitions = list(definitions)
    by_id = {d.id: d for d in definitions}
    graph = build_dependency_graph(definitions)
    order, leftover = _kahn(graph)

    scope: dict[str, Any] = dict(facts)
    values: dict[str, Decimal | None] = {}
    diagnostics: list[MetricDiagnostic] = []

    for metric_id in order:
        definition = by_id[metric_id]
        result = evaluate(definition.expr, scope)
        scope[metric_id] = result.value
        values[metric_id] = _quantize(result.value, definition.precision)

        for key in result.missing_inputs:
            kind = "metric" if key in by_id else "fact"
            diagnostics.append(
                MetricDiagnostic(MISSING_DEPENDENCY, metric_id, f"{kind} '{key}' unavailable")
            )
        if result.divide_by_zero:
            diagnostics.append(
                MetricDiagnostic(DIVIDE_BY_ZERO, metric_id, "division by zero")
            )
        if result.error is not None:
            diagnostics.append(
                MetricDiagnostic(INVALID_OP, metric_id, f"invalid expression: {definition.expr!r}")
            )

    for metric_id in leftover:
        values[metric_id] = None
        diagnostics.append(
            MetricDiagnostic(CYCLE_DETECTED, metric_id, "metric depends on a cycle")
        )

    if leftover:
        logger.warning("metric_graph_cycle_detected", extra={"metric_ids": leftover})

    return MetricGraphResult(
        values=MappingProxyType(dict(sorted(values.items()))),
        diagnostics=tuple(diagnostics),
        dependency_graph=MappingProxyType(graph) if audit else None,
    )
