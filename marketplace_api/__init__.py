"""Multi-tenant property marketplace API."""
