"""Errors raised while fetching data from remote sources."""

from __future__ import annotations

from collections.abc import Mapping

WGET_ERROR_CODE_NETWORK = 4
WGET_ERROR_CODE_SERVER_ERROR = 8


class WgetError(Exception):
    """A download failure that carries the downloader's exit status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class HttpServerError(Exception):
    """A non-success HTTP response, with its status code and headers."""

    def __init__(
        self,
        status_code: int,
        headers: Mapping[str, str] | None,
        message: str,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.headers: dict[str, str] = dict(headers or {})

    def __str__(self) -> str:
        return self.message