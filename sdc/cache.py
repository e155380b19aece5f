"""A set-oriented cache backed by a Redis server."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

import redis

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], Any]


def _redis_client(host: str, port: str) -> redis.Redis:
    return redis.Redis(
        host=host or "localhost",
        port=int(port) if port else 6379,
        password=None,
        db=0,
        decode_responses=True,
    )


class CacheManager:
    """Named string sets stored in Redis.

    The server address is taken from the REDISHOST and REDISPORT
    environment variables when connecting.
    """

    def __init__(self, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory or _redis_client
        self.client: Any = None

    def __enter__(self) -> CacheManager:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def _require_client(self) -> Any:
        if self.client is None:
            raise RuntimeError("Not connected to the cache")
        return self.client

    def connect(self) -> None:
        host = os.environ.get("REDISHOST", "")
        port = os.environ.get("REDISPORT", "")
        address = f"{host}:{port}"
        self.client = self._client_factory(host, port)
        try:
            reply = self.client.ping()
        except redis.RedisError as exc:
            raise ConnectionError(f"Failed to connect to {address}. Error: {exc}") from exc
        logger.info("Connected to %s: %s", address, reply)

    def disconnect(self) -> None:
        if self.client is None:
            logger.info("No redis connection to close")
            return
        try:
            self.client.close()
        except redis.RedisError as exc:
            logger.warning("Failed to disconnect from redis. Error %s", exc)
        self.client = None

    def add_to_set(self, key: str, value: str) -> None:
        client = self._require_client()
        try:
            client.sadd(key, value)
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to add {value} to cache key {key}. Error: {exc}"
            ) from exc
        logger.debug("Add %s to cache key %s", value, key)

    def get_from_set(self, key: str) -> str | None:
        """Return a random member of the set, or None if it is empty."""
        if self.get_length(key) == 0:
            return None
        try:
            value = self._require_client().srandmember(key)
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to get a value from cache key {key}. Error: {exc}"
            ) from exc
        logger.debug("Get %s from cache key %s", value, key)
        return value

    def pop_from_set(self, key: str) -> str | None:
        """Remove and return a random member, or None if the set is empty."""
        if self.get_length(key) == 0:
            return None
        try:
            value = self._require_client().spop(key)
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to pop a value from cache key {key}. Error: {exc}"
            ) from exc
        logger.debug("Pop %s from cache key %s", value, key)
        return value

    def get_all_from_set(self, key: str) -> list[str]:
        client = self._require_client()
        try:
            members = list(client.smembers(key))
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to get the all members of set key {key} from cache. Error: {exc}"
            ) from exc
        logger.debug("Get %d members from cache key %s", len(members), key)
        return members

    def delete_from_set(self, key: str, value: str) -> None:
        client = self._require_client()
        try:
            client.srem(key, value)
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to remove {value} from cache key {key}. Error: {exc}"
            ) from exc
        logger.debug("Remove %s from cache key %s", value, key)

    def get_length(self, key: str) -> int:
        client = self._require_client()
        try:
            return int(client.scard(key))
        except redis.RedisError as exc:
            raise RuntimeError(
                f"Failed to get the length of set key {key} from cache. Error: {exc}"
            ) from exc

    def delete_set(self, key: str) -> None:
        client = self._require_client()
        try:
            client.delete(key)
        except redis.RedisError as exc:
            raise RuntimeError(f"Failed to delete {key} from cache. Error: {exc}") from exc
        logger.debug("Delete %s from cache", key)

    def move_set(self, from_key: str, to_key: str) -> None:
        """Pop every member of one set into another."""
        while (value := self.pop_from_set(from_key)):
            self.add_to_set(to_key, value)

    def copy_set(self, from_key: str, to_key: str) -> None:
        """Add every member of one set to another, keeping the source."""
        client = self._require_client()
        try:
            members = client.smembers(from_key)
        except redis.RedisError as exc:
            raise RuntimeError(
                f"failed to get all memebers from set {from_key}. Error: {exc}"
            ) from exc
        for member in members:
            self.add_to_set(to_key, member)