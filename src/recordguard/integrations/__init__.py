"""Integrations with persistence libraries."""
