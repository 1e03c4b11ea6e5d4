"""
Directus REST helpers for the WordPress → Directus migration.

Files are brought into Directus with ``POST /files/import``, which makes
Directus download the source URL itself.  When that fails (the WordPress
host may block the Directus server, or require cookies) the client can
fall back to downloading the file locally and sending it to
``POST /files`` as a multipart upload.  A simple rate limiter keeps the
request rate polite and a generic retry wrapper handles transient network
errors and server-side rate limiting responses (429 or 5xx).

Usage example::

    client = DirectusClient.from_config(config)
    data = client.import_media(
        "https://example.com/wp-content/uploads/2020/01/a.jpg",
        folder="6b1c...",
        title="a.jpg",
    )
    asset_id = data["id"]
"""

from __future__ import annotations

import logging
import mimetypes
import os
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import requests

from wp_directus.utils.errors import MediaImportError

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)

###############################################################################
# Rate limiting and retry utilities
###############################################################################


class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.
    """

    def __init__(self, rpm: int = 300) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def _retry_after(response: Optional[requests.Response]) -> Optional[float]:
    if response is None:
        return None
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        # HTTP-date form is not worth parsing here
        return None


def with_retries(
    fn: Callable[[], requests.Response],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient errors.  Retries are attempted on status codes 429 and 5xx
    and on connection-level failures, with exponential backoff.  A
    numeric ``Retry-After`` header takes precedence over the backoff.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status not in RETRY_STATUSES or attempt >= max_attempts - 1:
                raise
            wait = _retry_after(e.response)
            if wait is None:
                wait = base_delay * (2 ** attempt)
            logger.debug("HTTP %s, retrying in %.1fs", status, wait)
            sleep_fn(wait)
            attempt += 1
        except requests.RequestException:
            if attempt >= max_attempts - 1:
                raise
            sleep_fn(base_delay * (2 ** attempt))
            attempt += 1


def error_message(exc: BaseException) -> str:
    """First Directus error message carried by ``exc``, else ``str(exc)``."""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return errors[0]["message"]
    return str(exc)


def filename_from_url(url: str) -> str:
    return os.path.basename(urlparse(url).path) or "file"


###############################################################################
# Client
###############################################################################


class DirectusClient:
    """Thin authenticated wrapper around the Directus files API."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 120,
        requests_per_minute: int = 300,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        upload_fallback: bool = True,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.upload_fallback = upload_fallback
        self._sleep = sleep_fn
        self._limiter = RateLimiter(requests_per_minute)

    @classmethod
    def from_config(cls, config: Dict[str, Any], *, session: Optional[requests.Session] = None) -> "DirectusClient":
        directus = config.get("directus", {})
        migration = config.get("migration", {})
        return cls(
            directus.get("url", ""),
            directus.get("token", ""),
            session=session,
            timeout=directus.get("timeout", 120),
            requests_per_minute=directus.get("requests_per_minute", 300),
            retry_attempts=migration.get("retry_attempts", 3),
            retry_delay=migration.get("retry_delay", 1.0),
            upload_fallback=directus.get("upload_fallback", True),
        )

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)

        def do_request() -> requests.Response:
            self._limiter.wait(sleep_fn=self._sleep)
            return self.session.request(method, url, **kwargs)

        return with_retries(
            do_request,
            max_attempts=self.retry_attempts,
            base_delay=self.retry_delay,
            sleep_fn=self._sleep,
        )

    def import_file(self, url: str, folder: Optional[str], title: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask Directus to download ``url`` into ``folder``.

        :return: The created file object (``id``, ``filename_disk``, ``type``...).
        :raises MediaImportError: on any failure.
        """
        payload = {"url": url, "data": {"folder": folder, "title": title or filename_from_url(url)}}
        try:
            resp = self._request(
                "POST",
                f"{self.base_url}/files/import",
                headers={**self.headers(), "Content-Type": "application/json"},
                json=payload,
            )
            return resp.json()["data"]
        except (requests.RequestException, ValueError, KeyError) as e:
            raise MediaImportError(f"Import failed: {error_message(e)} (url: {url})") from e

    def upload_file(self, url: str, folder: Optional[str], title: Optional[str] = None) -> Dict[str, Any]:
        """
        Download ``url`` locally and send the bytes to ``POST /files``.

        :raises MediaImportError: on any failure.
        """
        filename = filename_from_url(url)
        try:
            source = with_retries(
                lambda: self.session.get(url, timeout=self.timeout),
                max_attempts=self.retry_attempts,
                base_delay=self.retry_delay,
                sleep_fn=self._sleep,
            )
            content_type = (
                source.headers.get("Content-Type")
                or mimetypes.guess_type(filename)[0]
                or "application/octet-stream"
            )
            resp = self._request(
                "POST",
                f"{self.base_url}/files",
                headers=self.headers(),
                data={"folder": folder or "", "title": title or filename},
                files={"file": (filename, source.content, content_type)},
            )
            return resp.json()["data"]
        except (requests.RequestException, ValueError, KeyError) as e:
            raise MediaImportError(f"Upload failed: {error_message(e)} (url: {url})") from e

    def import_media(self, url: str, folder: Optional[str], title: Optional[str] = None) -> Dict[str, Any]:
        """Import ``url``, falling back to a binary upload when enabled."""
        try:
            return self.import_file(url, folder, title)
        except MediaImportError as import_error:
            if not self.upload_fallback:
                raise
            logger.warning("%s; trying direct upload", import_error)
            try:
                return self.upload_file(url, folder, title)
            except MediaImportError as upload_error:
                raise MediaImportError(f"{import_error}; {upload_error}") from upload_error
