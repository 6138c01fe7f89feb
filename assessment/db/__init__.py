"""Persistence: engine/session management and ORM models."""
