"""HTTP client for a running docstore service."""

from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from docstore.constants import DEFAULT_HOST, DEFAULT_PORT, DOCUMENT_ROUTE


class ClientError(Exception):
    """Raised when the service can't be reached or returns a malformed reply."""


class DocumentClient:
    """Thin wrapper over the document routes.

    Every method returns the decoded JSON envelope; callers check ``ok``.

    Args:
        base_url: Service address, e.g. ``http://127.0.0.1:8000``
        http: Preconfigured httpx client (its base URL is used instead of
            base_url)

    Example:
        >>> with DocumentClient("http://127.0.0.1:8000") as client:
        ...     key = client.post(b'{"a": 1}', "application/json")["key"]
        ...     client.get(key)["document"]
        '{"a": 1}'
    """

    def __init__(
        self,
        base_url: str = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}",
        http: Optional[httpx.Client] = None,
        timeout: float = 90.0,
    ):
        self._owns_http = http is None
        self.http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "DocumentClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get(self, key: str) -> Dict[str, Any]:
        return self._request("GET", f"{DOCUMENT_ROUTE}/{key}")

    def post(
        self,
        content: bytes,
        content_type: str,
        key: str = "",
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Upload content, under key if given or a new random key otherwise.

        Args:
            content: Document bytes
            content_type: MIME type sent as the Content-Type header
            key: Optional document key
            params: Extra metadata (name, extractor, dc:title, ...)
        """
        url = f"{DOCUMENT_ROUTE}/{key}" if key else DOCUMENT_ROUTE
        return self._request(
            "POST",
            url,
            content=content,
            headers={"Content-Type": content_type},
            params=params or {},
        )

    def post_file(
        self,
        path: Path,
        content_type: str,
        key: str = "",
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return self.post(Path(path).read_bytes(), content_type, key=key, params=params)

    def delete(self, key: str) -> Dict[str, Any]:
        return self._request("DELETE", f"{DOCUMENT_ROUTE}/{key}")

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ClientError(f"{method} {url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ClientError(
                f"{method} {url} returned non-JSON response ({response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise ClientError(f"{method} {url} returned unexpected body: {body!r}")
        body.setdefault("ok", False)
        return body
