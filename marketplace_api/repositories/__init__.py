"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. Tenant
partitioned tables are only reachable through TenantScopedRepository
subclasses, which take the request's TenantScope (see
marketplace_api.core.deps.require_tenant_scope) and add the tenant predicate to
every statement they build.
"""
