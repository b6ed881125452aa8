"""
Per-request tenant scope.

A TenantScope is created for each inbound request and passed explicitly to every
repository and to the search filter builder. It is never stored at module level;
the logging context var only mirrors it so log lines carry the tenant.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import Token
from typing import Iterator, Optional

from marketplace_api.core.errors import TenantRequired
from marketplace_api.core.logging import tenant_id_var

logger = logging.getLogger(__name__)


class TenantScope:
    """Carrier of the current tenant identifier for one unit of work."""

    def __init__(self, tenant_id: Optional[str] = None) -> None:
        self._tenant_id: Optional[str] = None
        self._log_token: Optional[Token] = None
        if tenant_id:
            self.set_current(tenant_id)

    # PUBLIC_INTERFACE
    def set_current(self, tenant_id: str) -> None:
        """Establish the tenant for this unit of work. May be called once."""
        if not tenant_id:
            raise TenantRequired()
        if self._tenant_id is not None and self._tenant_id != tenant_id:
            raise RuntimeError("Tenant scope is already established for another tenant")
        self._tenant_id = tenant_id
        if self._log_token is None:
            self._log_token = tenant_id_var.set(tenant_id)

    # PUBLIC_INTERFACE
    def current(self) -> Optional[str]:
        """Return the current tenant id or None when unresolved."""
        return self._tenant_id

    # PUBLIC_INTERFACE
    def require(self) -> str:
        """Return the current tenant id; raise TenantRequired when absent."""
        if self._tenant_id is None:
            raise TenantRequired()
        return self._tenant_id

    # PUBLIC_INTERFACE
    def clear(self) -> None:
        """Drop the tenant and restore the logging context."""
        self._tenant_id = None
        if self._log_token is not None:
            try:
                tenant_id_var.reset(self._log_token)
            except ValueError:
                # Token created in a different context (e.g. a worker thread); just blank it.
                tenant_id_var.set(None)
            self._log_token = None

    @property
    def is_set(self) -> bool:
        return self._tenant_id is not None

    def __repr__(self) -> str:
        return f"TenantScope(tenant_id={self._tenant_id!r})"


# PUBLIC_INTERFACE
@contextmanager
def scoped(tenant_id: Optional[str]) -> Iterator[TenantScope]:
    """
    Context manager yielding a TenantScope that is cleared on every exit path.

    Usage:
        with scoped("acme") as scope:
            repo = PropertyRepository(session, scope)
            ...
    """
    scope = TenantScope()
    if tenant_id:
        scope.set_current(tenant_id)
    try:
        yield scope
    finally:
        scope.clear()
