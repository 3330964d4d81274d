"""HTTP client for the Bitbucket Cloud REST API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

import requests
from requests.auth import AuthBase

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.bitbucket.org/"


class BearerAuth(AuthBase):
    """Attach an ``Authorization: Bearer`` header to every request."""

    def __init__(self, token: str) -> None:
        self._token = token

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self._token}"
        return r


class BitbucketClient:
    """Thin wrapper around a ``requests.Session`` bound to one API host.

    Paths are relative to ``base_url`` (e.g. ``2.0/repositories/...``).
    Absolute URLs, such as the ``next`` links of paginated listings, are
    requested as-is. Responses are returned unchecked: status handling
    belongs to the caller. Transport failures raise
    ``requests.RequestException``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        auth: AuthBase | tuple[str, str] | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._session = session or requests.Session()
        if auth is not None:
            self._session.auth = auth
        self._session.headers.setdefault("Accept", "application/json")

    def url(self, path: str) -> str:
        return urljoin(self.base_url, path)

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self.url(path)
        kwargs.setdefault("timeout", self._timeout)
        logger.debug("%s %s", method, url)
        response = self._session.request(method, url, **kwargs)
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    def get(self, path: str) -> requests.Response:
        return self._request("GET", path)

    def post(self, path: str, body: Any) -> requests.Response:
        return self._request("POST", path, json=body)

    def put(self, path: str, body: Any) -> requests.Response:
        return self._request("PUT", path, json=body)

    def delete(self, path: str) -> requests.Response:
        return self._request("DELETE", path)
