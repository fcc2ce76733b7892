"""Utility modules for spotbot."""
