"""HTTP page reading, directly or through an authenticated proxy."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from sdc.errors import HttpServerError

logger = logging.getLogger(__name__)

_HTTP_OK = 200


def new_local_client() -> requests.Session:
    """A session that connects directly."""
    return requests.Session()


def new_proxy_client(proxy_record: str) -> requests.Session:
    """A session routed through a proxy given as ``host:port:user:password``."""
    parts = proxy_record.split(":")
    if len(parts) < 4:
        raise ValueError(f"invalid proxy record {proxy_record!r}")
    host, port, user, secret = parts[:4]
    proxy_url = f"http://{user}:{secret}@{host}:{port}"
    try:
        urlsplit(proxy_url).port
    except ValueError as exc:
        logger.warning("Failed to parse proxy URL: %s", exc)
        raise
    session = requests.Session()
    session.trust_env = False
    session.proxies = {"http": proxy_url, "https": proxy_url}
    return session


def _with_query(base_url: str, params: Mapping[str, str] | None) -> str:
    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise ValueError(f"failed to create request for {base_url}: {exc}") from exc
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    pairs.extend((params or {}).items())
    pairs.sort(key=lambda pair: pair[0])
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def _status_text(response: requests.Response) -> str:
    return f"{response.status_code} {response.reason or ''}".rstrip()


class HttpReader:
    """Fetches pages with a requests session."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session if session is not None else new_local_client()

    def _get(self, url: str) -> requests.Response:
        try:
            return self.session.get(url)
        except requests.RequestException as exc:
            raise ConnectionError(f"failed to perform request for {url}: {exc}") from exc

    def redirected_url(self, url: str) -> str:
        """Return the final URL reached from ``url`` after redirects."""
        with self._get(url) as response:
            logger.debug("resp.Request: %s, resp.StatusCode: %s", response.url, response.status_code)
            if response.status_code != _HTTP_OK:
                raise HttpServerError(
                    response.status_code, response.headers, _status_text(response)
                )
            return response.url

    def read(self, base_url: str, params: Mapping[str, str] | None = None) -> str:
        """Return the body of ``base_url`` with ``params`` added to its query."""
        url = _with_query(base_url, params)
        with self._get(url) as response:
            if response.status_code != _HTTP_OK:
                raise HttpServerError(
                    response.status_code,
                    response.headers,
                    f"Received non-succes status {_status_text(response)} when requesting {url}",
                )
            return response.text