"""
Supabase (PostgREST) data source.

Reads the ``users``, ``events`` and ``event_attendance`` tables over the
PostgREST HTTP interface with an async httpx client:
- Pagination through ``Range`` headers, totals via ``Prefer: count=exact``
- Server-side ordering and date/status filters
- Retries with exponential backoff on 5xx and transport errors, none on 4xx
- Rows failing validation are skipped with a warning instead of failing the page
"""

import asyncio
from typing import Any, Optional, Sequence, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from chapterpulse.config import Settings, get_settings
from chapterpulse.connectors.base import DataSource, FetchError
from chapterpulse.connectors.memory_source import MemorySource
from chapterpulse.models.records import AttendanceRecord, DateRange, Event, Member, Page

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

# 416 Range Not Satisfiable: requested page starts past the last row
RANGE_NOT_SATISFIABLE = 416


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """
    Extract the total row count from a PostgREST ``Content-Range`` header.

    Example:
        >>> parse_content_range("0-49/132")
        132
        >>> parse_content_range("*/0")
        0
        >>> parse_content_range("0-49/*") is None
        True
    """
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


class SupabaseDataSource(DataSource):
    """
    DataSource backed by a Supabase project's REST API.

    Attributes:
        base_url: PostgREST root, e.g. https://xyz.supabase.co/rest/v1
        approved_events_only: Add ``status=eq.approved`` to event queries
        retry_count: Attempts per request
        backoff_seconds: Base of the exponential backoff between attempts
    """

    MEMBERS_TABLE = "users"
    EVENTS_TABLE = "events"
    ATTENDANCE_TABLE = "event_attendance"

    # PostgREST caps responses at its max-rows setting; attendance is read in chunks
    ATTENDANCE_BATCH_SIZE = 1000

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        retry_count: int = 3,
        backoff_seconds: float = 1.0,
        approved_events_only: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.approved_events_only = approved_events_only
        self.retry_count = retry_count
        self.backoff_seconds = backoff_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

        logger.info(
            "supabase_source_initialized",
            base_url=self.base_url,
            approved_events_only=approved_events_only,
            has_credentials=bool(api_key),
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SupabaseDataSource":
        settings = settings or get_settings()
        return cls(
            base_url=settings.rest_base_url,
            api_key=settings.supabase_api_key,
            timeout=settings.http_timeout_seconds,
            retry_count=settings.fetch_retry_count,
            backoff_seconds=settings.fetch_retry_backoff_seconds,
            approved_events_only=settings.approved_events_only,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # DataSource contract
    # =========================================================================

    async def fetch_members(self, page: int, page_size: int) -> Page[Member]:
        params = [("select", "*"), ("order", "last_name.asc")]
        return await self._fetch_page(self.MEMBERS_TABLE, Member, params, page, page_size)

    async def fetch_events(self, page: int, page_size: int, date_range: DateRange) -> Page[Event]:
        params = [
            ("select", "*"),
            ("start_time", f"gte.{date_range.start.isoformat()}"),
            ("start_time", f"lte.{date_range.end.isoformat()}"),
            ("order", "start_time.desc"),
        ]
        if self.approved_events_only:
            params.append(("status", "eq.approved"))
        return await self._fetch_page(self.EVENTS_TABLE, Event, params, page, page_size)

    async def fetch_attendance(self, event_ids: Sequence[str]) -> list[AttendanceRecord]:
        if not event_ids:
            return []
        # Range batches need a deterministic row order
        params = [
            ("select", "*"),
            ("event_id", f"in.({','.join(event_ids)})"),
            ("order", "event_id.asc,user_id.asc"),
        ]

        records: list[AttendanceRecord] = []
        offset = 0
        while True:
            response = await self._request(
                self.ATTENDANCE_TABLE,
                params,
                headers=_range_headers(offset, self.ATTENDANCE_BATCH_SIZE, count=False),
            )
            rows = _json_rows(response)
            records.extend(self._validate_rows(self.ATTENDANCE_TABLE, AttendanceRecord, rows))
            if len(rows) < self.ATTENDANCE_BATCH_SIZE:
                break
            offset += self.ATTENDANCE_BATCH_SIZE

        logger.debug("attendance_fetched", events=len(event_ids), rows=len(records))
        return records

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _fetch_page(
        self,
        table: str,
        model: Type[ModelT],
        params: list[tuple[str, str]],
        page: int,
        page_size: int,
    ) -> Page[ModelT]:
        offset = page * page_size
        response = await self._request(table, params, headers=_range_headers(offset, page_size))
        rows = [] if response.status_code == RANGE_NOT_SATISFIABLE else _json_rows(response)

        total = parse_content_range(response.headers.get("content-range"))
        if total is None:
            total = offset + len(rows)

        valid = self._validate_rows(table, model, rows)
        logger.debug("page_fetched", table=table, page=page, rows=len(valid), total=total)
        return Page(rows=valid, total_count=total)

    def _validate_rows(self, table: str, model: Type[ModelT], rows: list[dict]) -> list[ModelT]:
        valid = []
        for row in rows:
            try:
                valid.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    "invalid_row_skipped",
                    table=table,
                    errors=e.error_count(),
                    detail=str(e).splitlines()[0],
                )
        return valid

    async def _request(
        self,
        table: str,
        params: list[tuple[str, str]],
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """
        GET a table with retry logic.

        Raises:
            FetchError: On 4xx, or when 5xx / transport errors outlast the retries
        """
        for attempt in range(self.retry_count):
            try:
                response = await self._client.get(f"/{table}", params=params, headers=headers)
                if response.status_code == RANGE_NOT_SATISFIABLE:
                    return response
                response.raise_for_status()

                logger.debug(
                    "supabase_request_success",
                    table=table,
                    status_code=response.status_code,
                    attempt=attempt + 1,
                )
                return response

            except httpx.HTTPStatusError as e:
                logger.error(
                    "supabase_request_failed",
                    table=table,
                    status_code=e.response.status_code,
                    error=e.response.text,
                    attempt=attempt + 1,
                )

                # Don't retry client errors (4xx)
                if 400 <= e.response.status_code < 500:
                    raise FetchError(
                        f"{table} request failed ({e.response.status_code}): {e.response.text}"
                    ) from e

                if attempt < self.retry_count - 1:
                    await self._backoff(attempt)
                else:
                    raise FetchError(
                        f"{table} request failed after {self.retry_count} attempts: {e.response.text}"
                    ) from e

            except httpx.HTTPError as e:
                logger.error(
                    "supabase_transport_error",
                    table=table,
                    error=str(e),
                    attempt=attempt + 1,
                )

                if attempt < self.retry_count - 1:
                    await self._backoff(attempt)
                else:
                    raise FetchError(f"{table} request failed: {e}") from e

        raise FetchError(f"{table} request failed: no attempts made")

    async def _backoff(self, attempt: int) -> None:
        wait_time = self.backoff_seconds * 2**attempt
        logger.info("retrying_request", wait_seconds=wait_time)
        await asyncio.sleep(wait_time)


def _range_headers(offset: int, limit: int, count: bool = True) -> dict[str, str]:
    headers = {"Range-Unit": "items", "Range": f"{offset}-{offset + limit - 1}"}
    if count:
        headers["Prefer"] = "count=exact"
    return headers


def _json_rows(response: httpx.Response) -> list[dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError as e:
        raise FetchError(f"Malformed response body: {e}") from e
    if not isinstance(payload, list):
        raise FetchError(f"Expected a JSON array, got {type(payload).__name__}")
    return [row for row in payload if isinstance(row, dict)]


def build_source_from_settings(settings: Optional[Settings] = None) -> DataSource:
    """
    Pick the data source for the running app.

    Returns a SupabaseDataSource when a project URL is configured, otherwise an
    empty MemorySource so the API still serves (empty) dashboards.
    """
    settings = settings or get_settings()
    if settings.uses_supabase:
        return SupabaseDataSource.from_settings(settings)
    logger.warning("supabase_not_configured", fallback="memory")
    return MemorySource(approved_events_only=settings.approved_events_only)
