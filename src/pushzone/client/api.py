"""HTTP client for the push zone REST API.

This module provides:
- PushZoneClient: pushes files and purges cached URLs or whole zones

Every operation returns a boolean. Configuration problems, rate limiting,
transport errors and non-200 responses are logged (redacted) and reported
as False; nothing is retried here.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import posixpath
from pathlib import Path

import httpx

from pushzone.client.ratelimit import RateLimiter
from pushzone.core.config import ApiConfig, CredentialResolver
from pushzone.core.redaction import redact

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class PushZoneClient:
    """HTTP client for the push zone API."""

    def __init__(
        self,
        credentials: CredentialResolver,
        rate_limiter: RateLimiter,
        config: ApiConfig | None = None,
        root: str | Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Resolver for the API key and push zone ID.
            rate_limiter: Limiter consulted before every request.
            config: Base URL and timeout.
            root: Installation root, rewritten in diagnostics.
            transport: Optional httpx transport (used by tests).
        """
        self._credentials = credentials
        self._rate_limiter = rate_limiter
        self._config = config or ApiConfig()
        self._root = root
        self._client = httpx.Client(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> PushZoneClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def is_configured(self) -> bool:
        """Check if API key and push zone ID are both set."""
        return self._credentials.is_configured()

    def _log_error(self, message: str, **context: object) -> None:
        """Log an error with credentials and local paths scrubbed."""
        details = " ".join(f"{key}={value}" for key, value in context.items())
        text = f"{message} {details}".strip()
        logger.error("%s", redact(text, self._root))

    def _auth_header(self) -> dict[str, str]:
        token = base64.b64encode(f"{self._credentials.api_key()}:".encode()).decode()
        return {"Authorization": f"Basic {token}"}

    def _preflight(self) -> bool:
        """Check credentials, then consume one rate-limit slot."""
        if not self.is_configured():
            self._log_error("API not configured")
            return False
        return self._rate_limiter.allow()

    def _send(self, label: str, method: str, url: str, **kwargs: object) -> bool:
        """Send a request and classify the outcome.

        Returns:
            True only for HTTP 200.
        """
        try:
            response = self._client.request(
                method, url, headers=self._auth_header(), **kwargs  # type: ignore[arg-type]
            )
        except httpx.HTTPError as e:
            self._log_error(f"{label} error", error=e)
            return False

        if response.status_code != 200:
            self._log_error(
                f"{label} error",
                code=response.status_code,
                response=response.text[:500],
            )
            return False
        return True

    # === Push ===

    def push_file(self, file_path: str | Path, relative_path: str) -> bool:
        """Upload a local file to the push zone.

        Args:
            file_path: Absolute path of the file on disk.
            relative_path: Path relative to the installation root; its
                directory becomes the upload destination.

        Returns:
            True if the API answered 200.
        """
        path = Path(file_path)
        if not path.is_file():
            self._log_error("File does not exist", path=path)
            return False

        if not self._preflight():
            return False

        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        destination = posixpath.dirname(relative_path.replace("\\", "/")) or "."
        zone_id = self._credentials.push_zone_id()

        try:
            with open(path, "rb") as f:
                return self._send(
                    "Push",
                    "POST",
                    f"/zones/pushfiles/{zone_id}.json",
                    files={"file": (path.name, f, content_type)},
                    data={"destination": destination},
                )
        except OSError as e:
            self._log_error("Could not read file", path=path, error=e)
            return False

    # === Purge ===

    def purge_urls(self, urls: list[str]) -> bool:
        """Purge cached URLs from the zone.

        An empty list succeeds without a request (after the preflight).
        """
        if not self._preflight():
            return False

        if not urls:
            return True

        zone_id = self._credentials.push_zone_id()
        return self._send(
            "Purge",
            "DELETE",
            f"/zones/purgeurl/{zone_id}.json",
            data={"urls[]": list(urls)},
        )

    def purge_url(self, url: str) -> bool:
        """Purge a single URL from the zone cache."""
        return self.purge_urls([url])

    def purge_zone_cache(self) -> bool:
        """Purge the entire zone cache."""
        if not self._preflight():
            return False

        zone_id = self._credentials.push_zone_id()
        return self._send("Purge zone", "GET", f"/zones/purge/{zone_id}.json")
