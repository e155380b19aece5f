"""Validation of proxy servers and loading of the working ones into the cache."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

NUM_WORKERS = 20
PROBE_URL = "http://example.com"
PROBE_PAGE = "logs/proxy_test.html"
PROBE_LOG = "logs/proxy_test.log"


def _succeeds(command: Sequence[str], proxy_url: str) -> bool:
    try:
        completed = subprocess.run(
            list(command),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        logger.warning("Failed to ping %s. Error: %s", proxy_url, exc)
        return False
    if completed.returncode != 0:
        logger.info("Failed to ping %s. Exit status %d", proxy_url, completed.returncode)
        return False
    return True


def is_proxy_valid(proxy: str) -> bool:
    """Check a ``host:port:user:password`` proxy by connecting and fetching a page."""
    parts = proxy.split(":")
    if len(parts) < 4:
        logger.warning("Malformed proxy record %r", proxy)
        return False
    host, port, proxy_user, proxy_password = parts[:4]
    proxy_url = f"{host}:{port}"

    if not _succeeds(["nc", "-w", "5", "-zv", host, port], proxy_url):
        return False

    return _succeeds(
        [
            "wget",
            "--timeout", "2",
            "--tries", "1",
            "-e", "use_proxy=yes",
            "-e", f"http_proxy={proxy_url}",
            "--proxy-user", proxy_user,
            "--proxy-password", proxy_password,
            "-O", PROBE_PAGE,
            "-a", PROBE_LOG,
            PROBE_URL,
        ],
        proxy_url,
    )


def validate_proxies(proxies: Iterable[str]) -> list[str]:
    """Return the proxies that pass validation, checked concurrently."""
    candidates = list(proxies)
    with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
        verdicts = list(pool.map(is_proxy_valid, candidates))
    return [proxy for proxy, valid in zip(candidates, verdicts) if valid]


def load_proxies(cm: Any, key: str, proxy_file: str | Path) -> int:
    """Add the working proxies listed in ``proxy_file`` to the cache set ``key``.

    Returns the number of proxies added.
    """
    try:
        content = Path(proxy_file).read_text()
    except OSError as exc:
        logger.error("Failed to get proxies from file %s. Error: %s", proxy_file, exc)
        raise

    added = 0
    for proxy in validate_proxies(content.split("\n")):
        try:
            cm.add_to_set(key, proxy)
        except (RuntimeError, ConnectionError) as exc:
            logger.error("%s", exc)
        else:
            added += 1
    logger.info("%d proxy servers loaded into cache.", added)
    return added