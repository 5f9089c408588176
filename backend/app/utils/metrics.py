"""Prometheus metrics for tenancy enforcement."""

from prometheus_client import Counter

tenancy_denials_total = Counter(
    "tenancy_denials_total",
    "Requests rejected by organization or role checks",
    ["reason"],
)

tenancy_cache_lookups_total = Counter(
    "tenancy_cache_lookups_total",
    "Namespaced cache lookups for tenant-scoped lists",
    ["resource", "outcome"],
)

tenancy_filtered_items_total = Counter(
    "tenancy_filtered_items_total",
    "Items dropped by the isolation guard before leaving a request",
    ["resource"],
)


class PrometheusTenancyMetrics:
    """Prometheus-based tenancy metrics implementation."""

    def inc_denial(self, reason: str) -> None:
        """Increment denial counter."""
        tenancy_denials_total.labels(reason=reason).inc()

    def record_cache_lookup(self, resource: str, hit: bool) -> None:
        tenancy_cache_lookups_total.labels(
            resource=resource, outcome="hit" if hit else "miss"
        ).inc()

    def inc_filtered(self, resource: str, count: int) -> None:
        """Count items removed by the guard; no-op for zero."""
        if count > 0:
            tenancy_filtered_items_total.labels(resource=resource).inc(count)
