"""
Metric registry.

Built-in modules expose ``METRIC`` (one MetricSpec) or ``METRICS`` (several).
Plugins can add more through the ``repo_parity_guard.metrics`` entry point
group; a plugin cannot replace a built-in metric of the same name.
"""

import logging
from importlib import import_module
from importlib.metadata import entry_points

from repo_parity_guard.metrics.base import (
    MetricResult,
    MetricSpec,
    RepoSnapshot,
    error_result,
)

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "repo_parity_guard.metrics"

# Order here is the row order of the repository validation table
_BUILTIN_MODULES = [
    "repo_parity_guard.metrics.default_branch",
    "repo_parity_guard.metrics.counts",
    "repo_parity_guard.metrics.identity",
    "repo_parity_guard.metrics.codeowners",
]


def _module_specs(module) -> list[MetricSpec]:
    specs = []
    single = getattr(module, "METRIC", None)
    if isinstance(single, MetricSpec):
        specs.append(single)
    specs.extend(
        spec for spec in getattr(module, "METRICS", ()) if isinstance(spec, MetricSpec)
    )
    return specs


def _load_builtin_metric_specs() -> list[MetricSpec]:
    specs: list[MetricSpec] = []
    for module_path in _BUILTIN_MODULES:
        specs.extend(_module_specs(import_module(module_path)))
    return specs


def _load_entrypoint_metric_specs() -> list[MetricSpec]:
    specs = []
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        loaded = entry_point.load()
        if callable(loaded) and not isinstance(loaded, MetricSpec):
            loaded = loaded()
        if isinstance(loaded, MetricSpec):
            specs.append(loaded)
    return specs


def load_metric_specs() -> list[MetricSpec]:
    """Return built-in specs followed by plugin specs with new names."""
    specs = _load_builtin_metric_specs()
    seen = {spec.name for spec in specs}
    for spec in _load_entrypoint_metric_specs():
        if spec.name not in seen:
            seen.add(spec.name)
            specs.append(spec)
    return specs


def run_metrics(
    source: RepoSnapshot,
    dest: RepoSnapshot,
    specs: list[MetricSpec] | None = None,
) -> list[MetricResult]:
    """
    Evaluate every metric spec on the two snapshots, in order.

    A checker that raises produces its ``on_error`` row (or a generic "not
    applicable" row) instead of aborting the report.
    """
    results = []
    for spec in specs if specs is not None else load_metric_specs():
        try:
            results.append(spec.checker(source, dest))
        except Exception as e:
            logger.warning("Metric %s failed: %s", spec.name, e)
            if spec.on_error is not None:
                results.append(spec.on_error(e))
            else:
                results.append(error_result(spec.name, e))
    return results
