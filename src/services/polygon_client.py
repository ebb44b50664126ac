from __future__ import annotations

from datetime import date, datetime, timezone
import time
from typing import Any, List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from loguru import logger
from pydantic import ValidationError

from src.config import get_settings
from src.errors import UpstreamError
from src.models.candidate import SnapshotEntry
from src.models.upstream import DailyBar, ReferenceInfo, SnapshotPage

settings = get_settings()


class PolygonClient:
    """Market data client for the Polygon REST API.

    Every failure, after retries, surfaces as ``UpstreamError`` so callers only
    deal with one exception type.
    """

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key or settings.POLYGON_API_KEY
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.base_url = settings.POLYGON_API_BASE_URL or "https://api.polygon.io"
        self.snapshot_path = settings.SNAPSHOT_PATH
        self.client = self._build_http_client()

    def _build_http_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=self.timeout, read=self.timeout),
        )

    def _with_api_key(self, url: str) -> str:
        """Re-attach apiKey to a continuation URL when the server dropped it."""
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        if any(key == "apiKey" for key, _ in query):
            return url
        query.append(("apiKey", self.api_key))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

    def _request(self, method: str, path: str, params: dict | None = None, *, symbol: str | None = None) -> Any:
        backoff = 1.0
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        if params is not None:
            params = {**params, "apiKey": self.api_key}
        retryable_status = {429, 500, 502, 503, 504}
        max_attempts = 3
        for attempt in range(max_attempts):
            start = time.perf_counter()
            try:
                response = self.client.request(method, url, params=params)
            except httpx.RequestError as exc:
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                logger.error(
                    "Polygon request error",
                    path=urlsplit(url).path,
                    symbol=symbol,
                    elapsed_ms=elapsed_ms,
                    error=str(exc),
                    attempt=attempt + 1,
                )
                if attempt < max_attempts - 1:
                    time.sleep(backoff)
                    backoff *= 2
                    continue
                raise UpstreamError(f"{method} {urlsplit(url).path} failed: {exc}", endpoint=urlsplit(url).path) from exc

            elapsed_ms = int((time.perf_counter() - start) * 1000)
            status_code = response.status_code
            snippet = (response.text or "")[:300]

            if status_code in retryable_status and attempt < max_attempts - 1:
                logger.warning(
                    "Polygon request retryable",
                    method=method,
                    path=response.request.url.path,
                    symbol=symbol,
                    status_code=status_code,
                    elapsed_ms=elapsed_ms,
                    response_snippet=snippet,
                    attempt=attempt + 1,
                )
                time.sleep(backoff)
                backoff *= 2
                continue

            if status_code != 200:
                logger.error(
                    "Polygon request non-200",
                    method=method,
                    path=response.request.url.path,
                    symbol=symbol,
                    status_code=status_code,
                    elapsed_ms=elapsed_ms,
                    response_snippet=snippet,
                )
                raise UpstreamError(
                    f"{method} {response.request.url.path} returned {status_code}",
                    status_code=status_code,
                    endpoint=response.request.url.path,
                )

            logger.debug(
                "Polygon request ok",
                path=response.request.url.path,
                symbol=symbol,
                status_code=status_code,
                elapsed_ms=elapsed_ms,
            )
            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamError(
                    f"{method} {response.request.url.path} returned invalid JSON",
                    status_code=status_code,
                    endpoint=response.request.url.path,
                ) from exc
        raise RuntimeError("Unreachable")

    def fetch_snapshot_page(self, cursor: str | None = None) -> Tuple[List[SnapshotEntry], str | None]:
        if cursor:
            data = self._request("GET", self._with_api_key(cursor))
        else:
            data = self._request("GET", self.snapshot_path, params={})
        try:
            page = SnapshotPage.model_validate(data if isinstance(data, dict) else {})
        except ValidationError as exc:
            raise UpstreamError(f"malformed snapshot page: {exc}", endpoint=self.snapshot_path) from exc
        return page.entries(), page.next_url or None

    def fetch_daily_bars(self, symbol: str, from_date: date, to_date: date) -> List[Tuple[date, float | None]]:
        path = f"/v2/aggs/ticker/{symbol}/range/1/day/{from_date.isoformat()}/{to_date.isoformat()}"
        data = self._request(
            "GET",
            path,
            params={"adjusted": "true", "sort": "asc", "limit": 5000},
            symbol=symbol,
        )
        raw_bars = data.get("results") if isinstance(data, dict) else None
        bars: List[Tuple[date, float | None]] = []
        for raw in raw_bars or []:
            bar = DailyBar.model_validate(raw)
            if bar.t is None:
                continue
            bar_date = datetime.fromtimestamp(bar.t / 1000, tz=timezone.utc).date()
            bars.append((bar_date, bar.v))
        return bars

    def fetch_reference_info(self, symbol: str) -> ReferenceInfo:
        data = self._request("GET", f"/v3/reference/tickers/{symbol}", params={}, symbol=symbol)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, dict):
            return ReferenceInfo(ticker=symbol)
        return ReferenceInfo.model_validate(results)

    def fetch_recent_news(self, symbol: str, since: datetime) -> int:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        data = self._request(
            "GET",
            "/v2/reference/news",
            params={
                "ticker": symbol,
                "published_utc.gte": since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "limit": 10,
                "order": "desc",
            },
            symbol=symbol,
        )
        results = data.get("results") if isinstance(data, dict) else None
        return len(results or [])

    def open(self) -> None:
        """Recreate the HTTP client after ``close`` so a restarted scanner can fetch again."""
        if self.client.is_closed:
            self.client = self._build_http_client()

    def close(self) -> None:
        self.client.close()
