"""
HTTP client for the PO ingestion API.

    client = POApiClient("http://localhost:8000")
    preview = client.preview(Path("zepto_po.csv").read_bytes(), "zepto_po.csv")
    client.import_po(preview["detectedVendor"], preview)

Network errors and 5xx responses are retried with exponential backoff
(tenacity); 4xx responses raise httpx.HTTPStatusError straight away.
"""
import logging
from typing import Optional

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from config import Config

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class POApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[Config] = None,
        transport: Optional[httpx.BaseTransport] = None,
        user: Optional[str] = None,
    ):
        self.config = config or Config()
        headers = {"X-User": user} if user else {}
        self._http = httpx.Client(
            base_url=(base_url or self.config.api_base_url).rstrip("/"),
            timeout=self.config.client_timeout_seconds,
            transport=transport,
            headers=headers,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "POApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        retrying = Retrying(
            stop=stop_after_attempt(self.config.client_max_retries + 1),
            wait=wait_exponential(multiplier=self.config.client_backoff_seconds),
            retry=retry_if_exception(_is_retryable),
            before_sleep=lambda state: logger.warning(
                "%s %s failed (attempt %d): %s",
                method, path, state.attempt_number, state.outcome.exception(),
            ),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                response = self._http.request(method, path, **kwargs)
                response.raise_for_status()
        return response.json()

    def preview(self, content: bytes, filename: str, platform: Optional[str] = None) -> dict:
        data = {"platform": platform} if platform else None
        return self._request(
            "POST", "/api/po/preview",
            files={"file": (filename, content)},
            data=data,
        )

    def import_po(self, vendor: str, payload: dict) -> dict:
        """Import a preview payload ({header, lines} or {poList})."""
        if "poList" in payload:
            body = {"poList": payload["poList"]}
        else:
            body = {"header": payload["header"], "lines": payload["lines"]}
        return self._request("POST", f"/api/po/import/{vendor}", json=body)

    def list_pos(self, **filters) -> dict:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/api/pos", params=params)
