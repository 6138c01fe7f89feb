"""Declarative base and column helpers shared by all models."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    """Primary keys are uuid4 strings so the schema runs on PostgreSQL and SQLite."""
    return str(uuid4())
