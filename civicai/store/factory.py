"""
Store selection
Picks the issue and blob store implementations from settings
"""

import logging
from typing import Optional, Tuple

from civicai.core.config import Settings, settings as default_settings
from civicai.core.errors import StoreUnreachable
from civicai.store.base import BlobStore, IssueStore
from civicai.store.filesystem import FilesystemBlobStore
from civicai.store.memory import InMemoryBlobStore, InMemoryIssueStore
from civicai.store.supabase_client import (
    SupabaseBlobStore,
    SupabaseClient,
    SupabaseIssueStore,
)

logger = logging.getLogger(__name__)


def create_stores(config: Optional[Settings] = None) -> Tuple[IssueStore, BlobStore]:
    """
    Build the issue store and blob store for the current configuration.

    Supabase when a project URL and key are set, otherwise a SQL database
    when DATABASE_URL is set with media written under MEDIA_DIR, otherwise
    in-memory stores.
    """
    config = config or default_settings

    if config.supabase_configured:
        client = SupabaseClient(config.supabase_url, config.supabase_anon_key)
        logger.info(f"Using Supabase stores at {client.url}")
        return (
            SupabaseIssueStore(client, feed_interval=config.feed_poll_interval_seconds),
            SupabaseBlobStore(client),
        )

    if config.database_url:
        from civicai.database import DatabaseConnection, SqlIssueStore

        db = DatabaseConnection(config.database_url)
        if not db.check_connection():
            raise StoreUnreachable("Database is not reachable")
        db.create_tables()
        logger.info(f"Using SQL issue store with media under {config.media_dir}")
        return (
            SqlIssueStore(db, feed_interval=config.feed_poll_interval_seconds),
            FilesystemBlobStore(config.media_dir, config.media_base_url),
        )

    if config.is_production:
        raise ValueError("No backend configured for production")

    logger.warning("No backend configured, using in-memory stores")
    return InMemoryIssueStore(), InMemoryBlobStore()
