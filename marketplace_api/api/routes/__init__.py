"""
API route modules.

This package contains subrouters for:
- Categories: category CRUD with attribute schemas
- Properties: listing CRUD, status changes and search
- Onboarding: tenant registration and activation

Routers are included from marketplace_api.api.main (under the /api/v1 prefix).
"""
