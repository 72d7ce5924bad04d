"""Declarative base for blob ledger models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
