from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from carbonpick.constants import DEFAULT_RETRIES, DEFAULT_TIMEOUT

# ─── Errors ──────────────────────────────────────────────────────────


class HttpError(Exception):
    """Non-2xx response, or status 0 when no response was received."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")

    @property
    def transient(self) -> bool:
        return self.status == 0 or self.status >= 500


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.transient


# ─── Response ────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Response[T]:
    status: int
    data: T


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """Small JSON client over httpx with timeouts and retries.

    Transport errors and 5xx responses are retried with exponential backoff,
    up to `retries` attempts in total. Everything else fails immediately.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        backoff: float = 0.5,
        default_headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._retries = max(1, retries)
        self._backoff = backoff
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(default_headers or {})},
            transport=transport,
        )
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    def _send_once(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response[Any]:
        self._log.debug("{method} {path} params={params}", method=method, path=path, params=params)
        try:
            resp = self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise HttpError(status=0, body=f"timed out: {e}") from e
        except httpx.HTTPError as e:
            raise HttpError(status=0, body=str(e)) from e
        return self._parse(resp)

    def _parse(self, resp: httpx.Response) -> Response[Any]:
        if resp.status_code >= 400:
            self._log.warning(
                "HTTP {status} from {url}: {body}",
                status=resp.status_code, url=str(resp.url), body=resp.text[:500],
            )
            raise HttpError(status=resp.status_code, body=resp.text)
        if not resp.content:
            return Response(status=resp.status_code, data=None)
        try:
            return Response(status=resp.status_code, data=resp.json())
        except ValueError as e:
            raise HttpError(
                status=resp.status_code, body=f"invalid JSON: {resp.text[:200]}"
            ) from e

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response[Any]:
        attempts = 0

        @retry(
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=self._backoff, max=10),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        def _attempt() -> Response[Any]:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                self._log.debug(
                    "Retrying {method} {path} (attempt {n})", method=method, path=path, n=attempts
                )
            return self._send_once(method, path, json=json, params=params)

        return _attempt()

    # ─── Requests ────────────────────────────────────────────────────

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Response[Any]:
        return self._send("GET", path, params=params)

    def post(
        self,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response[Any]:
        return self._send("POST", path, json=json, params=params)

    # ─── Lifecycle ───────────────────────────────────────────────────

    def close(self) -> None:
        self._log.debug("Closing HTTP client")
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
