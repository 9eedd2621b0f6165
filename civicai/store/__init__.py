"""
CivicAI - Store Module
Issue and media storage collaborators and the change feed.
"""

from civicai.store.base import (
    IssueStore,
    BlobStore,
    ChangeEvent,
    ChangeType,
    Subscription,
)
from civicai.store.memory import InMemoryIssueStore, InMemoryBlobStore
from civicai.store.filesystem import FilesystemBlobStore
from civicai.store.polling_feed import PollingChangeFeed, diff_versions
from civicai.store.supabase_client import (
    SupabaseClient,
    SupabaseIssueStore,
    SupabaseBlobStore,
)
from civicai.store.factory import create_stores

__all__ = [
    # Contracts
    "IssueStore",
    "BlobStore",
    "ChangeEvent",
    "ChangeType",
    "Subscription",
    # In-memory
    "InMemoryIssueStore",
    "InMemoryBlobStore",
    # Filesystem
    "FilesystemBlobStore",
    # Change feed
    "PollingChangeFeed",
    "diff_versions",
    # Supabase
    "SupabaseClient",
    "SupabaseIssueStore",
    "SupabaseBlobStore",
    "create_stores",
]
