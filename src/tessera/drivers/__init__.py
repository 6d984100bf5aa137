"""Storage drivers.

Modules
-------
base          Driver ABC (the capability interface the executor uses)
relational    RelationalDriver: SQL over any Connection
sql           QuerySpec → SQL translation
connections   ConnectionManager, sqlite_connection
session       SQLAlchemy engine factory + SessionConnection bridge
"""

from tessera.drivers.base import Driver, Row
from tessera.drivers.connections import ConnectionHandle, ConnectionManager, sqlite_connection
from tessera.drivers.relational import RelationalDriver
from tessera.drivers.session import SessionConnection, create_engine

__all__ = [
    "Driver",
    "Row",
    "ConnectionHandle",
    "ConnectionManager",
    "sqlite_connection",
    "RelationalDriver",
    "SessionConnection",
    "create_engine",
]
