"""Alembic scripts for the lighthouse_audits schema."""
