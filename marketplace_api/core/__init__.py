"""
Core application utilities shared by the API, services and repositories.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation and tenant context
- The domain error taxonomy
- TenantScope and the attribute schema validator
- Dependency helpers (caller resolution, tenant scope, admin guard)
"""
