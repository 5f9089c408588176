"""No-op metrics and logging interfaces for tenancy enforcement.

Concrete implementations live in ``backend.app.utils``; tests use these
defaults or record calls on their own stand-ins.
"""

from typing import Any


class TenancyMetrics:
    """Interface for tenancy metrics."""

    def inc_denial(self, reason: str) -> None:
        """Increment denial counter."""
        pass

    def record_cache_lookup(self, resource: str, hit: bool) -> None:
        pass

    def inc_filtered(self, resource: str, count: int) -> None:
        pass


class TenancyLogger:
    """Interface for structured tenancy logging."""

    def context_resolved(
        self, user_id: str, organization_id: str, role: str, source: str
    ) -> None:
        pass

    def access_denied(self, user_id: str | None, organization_id: str | None, reason: str) -> None:
        pass

    def cross_tenant_attempt(
        self,
        user_id: str,
        organization_id: str,
        resource: str,
        record_id: Any,
        owner_organization_id: str | None,
    ) -> None:
        pass

    def client_claim_discarded(
        self, user_id: str, organization_id: str, resource: str, claimed: str
    ) -> None:
        pass

    def cache_lookup(self, resource: str, key: str, hit: bool) -> None:
        pass
