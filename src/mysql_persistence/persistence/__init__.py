"""
mysql_persistence.persistence

Persistence components.

Responsibilities:
- Generic table persistence (`MysqlPersistence`).
- Id-keyed CRUD on top of it (`IdentifiableMysqlPersistence`).
- JSON-document variant (`IdentifiableJsonMysqlPersistence`).
"""

from mysql_persistence.persistence.base import MysqlPersistence, quote_literal
from mysql_persistence.persistence.identifiable import IdentifiableMysqlPersistence
from mysql_persistence.persistence.identifiable_json import IdentifiableJsonMysqlPersistence

__all__ = [
    "IdentifiableJsonMysqlPersistence",
    "IdentifiableMysqlPersistence",
    "MysqlPersistence",
    "quote_literal",
]
