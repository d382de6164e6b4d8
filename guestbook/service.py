from __future__ import annotations

import logging

from .cache import CacheStatus, MessageCache
from .config import DEFAULT_CACHE_TTL
from .errors import ServiceError, StoreError, StoreUnavailableError, Unavailable, ValidationError
from .models import Message, dump_messages, load_messages
from .storage import SQLiteStore

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(
        self,
        store: SQLiteStore | None,
        cache: MessageCache | None = None,
        ttl_seconds: int = DEFAULT_CACHE_TTL,
    ) -> None:
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @property
    def cache_enabled(self) -> bool:
        return self.cache is not None

    def _require_store(self) -> SQLiteStore:
        if self.store is None:
            raise Unavailable()
        return self.store

    def _cached_messages(self) -> list[Message] | None:
        if self.cache is None:
            logger.debug("Cache not configured, skipping cache lookup.")
            return None
        result = self.cache.get()
        if result.status is CacheStatus.DEGRADED:
            logger.info("Cache degraded, falling back to the database.")
            return None
        if not result.hit:
            return None
        messages = load_messages(result.value)
        if messages is None:
            logger.warning("Discarding unreadable cache entry.")
        return messages

    def list_messages(self) -> list[Message]:
        cached = self._cached_messages()
        if cached is not None:
            logger.info("Serving messages from cache")
            return cached

        store = self._require_store()
        logger.info("Fetching messages from the database")
        try:
            messages = store.list_all()
        except StoreUnavailableError as exc:
            logger.error("Database unavailable while fetching messages: %s", exc)
            raise Unavailable() from exc
        except StoreError as exc:
            logger.exception("Error fetching messages")
            raise ServiceError("Failed to retrieve messages") from exc

        if self.cache is not None and self.cache.set(dump_messages(messages), self.ttl_seconds):
            logger.info("Messages cached for %s seconds", self.ttl_seconds)
        return messages

    def post_message(self, raw_content: object) -> Message:
        if not isinstance(raw_content, str) or not raw_content.strip():
            raise ValidationError()
        content = raw_content.strip()

        store = self._require_store()
        try:
            inserted = store.insert(content)
        except StoreUnavailableError as exc:
            logger.error("Database unavailable while posting message: %s", exc)
            raise Unavailable() from exc
        except StoreError as exc:
            logger.exception("Error posting message")
            raise ServiceError("Failed to post message") from exc

        if self.cache is not None and self.cache.invalidate():
            logger.info("Message cache invalidated.")

        try:
            message = store.get(inserted.id)
        except StoreError as exc:
            logger.exception("Error reading back message %s", inserted.id)
            raise ServiceError("Failed to post message") from exc
        if message is None:
            raise ServiceError("Failed to post message")
        return message
