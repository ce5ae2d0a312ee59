"""
mysql_persistence.connect

Connection package.

Responsibilities:
- Resolve connection settings into a driver URL.
- Own the pooled async engine shared by persistence components.
"""

from mysql_persistence.connect.connection import MysqlConnection
from mysql_persistence.connect.resolver import MysqlConnectionResolver

__all__ = ["MysqlConnection", "MysqlConnectionResolver"]
