"""Declarative base and shared column types."""

from sqlalchemy import BigInteger, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# All monetary columns: fixed-point, two decimal places.
Money = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
