"""
Supabase client for CivicAI

Talks to a Supabase project over plain HTTP:
- PostgREST (/rest/v1/issues) for the issue table
- Storage (/storage/v1/object) for media evidence

Supabase realtime is not used; the change feed polls the table instead.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from civicai.core.config import settings
from civicai.core.errors import RecordNotFound, StoreError, StoreUnreachable
from civicai.issues.models import Issue, IssueStatus, NewIssue, utcnow
from civicai.store.base import (
    BlobStore,
    ChangeCallback,
    ErrorCallback,
    IssueStore,
    Subscription,
)
from civicai.store.polling_feed import PollingChangeFeed

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful message out of a Supabase error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body.get("msg") or body)
    return str(body)


def _parse_issue(row: Any) -> Issue:
    """Build an Issue from a PostgREST row, treating a malformed row as a store error."""
    try:
        return Issue.from_row(row)
    except (KeyError, AttributeError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed issue row: {e}") from e


class SupabaseClient:
    """
    Shared HTTP session for a Supabase project.

    Usage:
        async with SupabaseClient(url, key) as client:
            store = SupabaseIssueStore(client)
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Supabase client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anon (or service) key
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not url or not api_key:
            raise ValueError("Supabase URL and API key are required")

        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        return self._client

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, translating transport and HTTP failures into store errors."""
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except (httpx.TransportError, httpx.TimeoutException) as e:
            raise StoreUnreachable(f"Supabase unreachable: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"Supabase {method} {path} failed ({response.status_code}): {message}")
            raise StoreError(message)
        return response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class SupabaseIssueStore(IssueStore):
    """Issue store backed by the `issues` table through PostgREST."""

    TABLE_PATH = "/rest/v1/issues"

    def __init__(
        self,
        client: SupabaseClient,
        feed_interval: Optional[float] = None
    ):
        self.client = client
        self.feed = PollingChangeFeed(self.versions, interval=feed_interval)

    async def create(self, record: NewIssue) -> Issue:
        response = await self.client.request(
            "POST",
            self.TABLE_PATH,
            json=[record.to_row()],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise StoreError("Insert returned no rows")
        issue = _parse_issue(rows[0])
        logger.info(f"Created issue {issue.id} ({issue.category})")
        return issue

    async def list_all(self) -> List[Issue]:
        response = await self.client.request(
            "GET",
            self.TABLE_PATH,
            params={"select": "*", "order": "created_at.desc"},
        )
        return [_parse_issue(row) for row in response.json()]

    async def update(
        self,
        issue_id: str,
        status: IssueStatus,
        assigned_to: Optional[str] = None
    ) -> Issue:
        updates: Dict[str, Any] = {
            "status": IssueStatus(status).value,
            "updated_at": utcnow().isoformat(),
        }
        if assigned_to:
            updates["assigned_to"] = assigned_to

        response = await self.client.request(
            "PATCH",
            self.TABLE_PATH,
            params={"id": f"eq.{issue_id}"},
            json=updates,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise RecordNotFound(f"Issue {issue_id} not found")
        return _parse_issue(rows[0])

    async def versions(self) -> Dict[str, str]:
        response = await self.client.request(
            "GET",
            self.TABLE_PATH,
            params={"select": "id,updated_at"},
        )
        try:
            return {str(row["id"]): str(row["updated_at"]) for row in response.json()}
        except (KeyError, TypeError) as e:
            raise StoreError(f"Malformed version row: {e}") from e

    def subscribe(
        self,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        return self.feed.subscribe(on_change, on_error)

    async def close(self) -> None:
        await self.client.aclose()


class SupabaseBlobStore(BlobStore):
    """Media storage in Supabase Storage buckets."""

    OBJECT_PATH = "/storage/v1/object"

    def __init__(self, client: SupabaseClient):
        self.client = client

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.client.url}{self.OBJECT_PATH}/public/{bucket}/{key}"

    async def put(self, data: bytes, mime_type: str, bucket: str, key: str) -> str:
        logger.info(f"Uploading {key} ({len(data)} bytes) to bucket {bucket}")
        await self.client.request(
            "POST",
            f"{self.OBJECT_PATH}/{bucket}/{key}",
            content=data,
            headers={"Content-Type": mime_type, "x-upsert": "false"},
        )
        return self.public_url(bucket, key)

    async def delete(self, bucket: str, key: str) -> None:
        await self.client.request("DELETE", f"{self.OBJECT_PATH}/{bucket}/{key}")
        logger.info(f"Deleted {bucket}/{key}")

    async def close(self) -> None:
        await self.client.aclose()
