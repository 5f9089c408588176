"""Structured logging for tenancy decisions."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class StructuredTenancyLogger:
    """Structured logger for context resolution and isolation checks."""

    def context_resolved(
        self, user_id: str, organization_id: str, role: str, source: str
    ) -> None:
        """Log a successful organization context resolution."""
        logger.debug(
            f"Organization context resolved: {organization_id}",
            extra={
                "structured": {
                    "user_id": user_id,
                    "organization_id": organization_id,
                    "role": role,
                    "source": source,
                }
            },
        )

    def access_denied(self, user_id: str | None, organization_id: str | None, reason: str) -> None:
        """Log a rejected organization context or role check."""
        logger.warning(
            f"Organization access denied: {reason}",
            extra={
                "structured": {
                    "user_id": user_id,
                    "organization_id": organization_id,
                    "reason": reason,
                }
            },
        )

    def cross_tenant_attempt(
        self,
        user_id: str,
        organization_id: str,
        resource: str,
        record_id: Any,
        owner_organization_id: str | None,
    ) -> None:
        """Log a point read or write against a record owned by another organization."""
        logger.warning(
            f"Security alert: cross-organization access to {resource} {record_id}",
            extra={
                "structured": {
                    "user_id": user_id,
                    "organization_id": organization_id,
                    "resource": resource,
                    "record_id": record_id,
                    "owner_organization_id": owner_organization_id,
                }
            },
        )

    def client_claim_discarded(
        self, user_id: str, organization_id: str, resource: str, claimed: str
    ) -> None:
        """Log a request body that named a different organization than the resolved one."""
        logger.info(
            f"Discarded client organization claim on {resource}",
            extra={
                "structured": {
                    "user_id": user_id,
                    "organization_id": organization_id,
                    "resource": resource,
                    "claimed_organization_id": claimed,
                }
            },
        )

    def cache_lookup(self, resource: str, key: str, hit: bool) -> None:
        logger.debug(
            f"Cache {'HIT' if hit else 'MISS'} for {resource}",
            extra={"structured": {"resource": resource, "key": key, "cache_hit": hit}},
        )
