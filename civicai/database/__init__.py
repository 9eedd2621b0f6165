"""
CivicAI - Database Module
SQL-backed issue storage.
"""

from civicai.database.connection import DatabaseConnection
from civicai.database.models import Base, IssueRow
from civicai.database.issue_store import SqlIssueStore

__all__ = [
    "DatabaseConnection",
    "Base",
    "IssueRow",
    "SqlIssueStore",
]
