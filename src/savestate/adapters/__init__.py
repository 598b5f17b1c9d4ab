"""Adapters connecting the catalog domain to storage and external services."""
