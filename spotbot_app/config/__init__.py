"""Configuration management for spotbot."""
