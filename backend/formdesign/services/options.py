"""
Remote option list fetching.

Caches option lists per field id and tags every request with a
generation number, so a response that arrives after a newer request for
the same field was issued is discarded instead of overwriting fresher
data.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote

from formdesign.clients.http_client import RemoteClient
from formdesign.exceptions import RemoteFetchError, StaleOptionsError

logger = logging.getLogger(__name__)

PARENT_VALUE_PLACEHOLDER = "{parentValue}"


@dataclass
class _CacheEntry:
    url: str
    options: list[str]
    fetched_at: datetime = field(default_factory=datetime.now)


def expand_options_url(template: str, parent_value: str) -> str:
    """Substitute the URL-encoded parent value into a dependent options URL."""
    return template.replace(PARENT_VALUE_PLACEHOLDER, quote(parent_value, safe=""))


def _as_option_list(url: str, data: Any) -> list[str]:
    if not isinstance(data, list):
        raise RemoteFetchError(url, "Expected a JSON array of options")
    return [str(item) for item in data]


class OptionsFetcher:
    """
    Generation-tagged option cache.

    Features:
    - One committed option list per field id
    - Responses superseded by a newer request for another URL are dropped
    - Configurable TTL; failures leave the cache untouched
    """

    def __init__(self, remote: RemoteClient, ttl_seconds: int = 300):
        self.remote = remote
        self.ttl_seconds = ttl_seconds
        self._generations: dict[str, int] = {}
        self._cache: dict[str, _CacheEntry] = {}
        self._latest_urls: dict[str, str] = {}

    def _is_cache_valid(self, entry: _CacheEntry, url: str) -> bool:
        if entry.url != url:
            return False
        return datetime.now() - entry.fetched_at < timedelta(seconds=self.ttl_seconds)

    def generation(self, field_id: str) -> int:
        """Get the number of requests issued so far for a field."""
        return self._generations.get(field_id, 0)

    def cached(self, field_id: str) -> list[str]:
        """Get the last committed options for a field (empty when none)."""
        entry = self._cache.get(field_id)
        return list(entry.options) if entry else []

    async def fetch_options(self, field_id: str, url: str) -> list[str]:
        """
        Fetch a JSON array of options from ``url`` for a field.

        Returns:
            The fetched options.

        Raises:
            StaleOptionsError: A newer request for a different URL was
                issued for this field while this one was in flight.
        """
        return await self._fetch(field_id, url, lambda data: _as_option_list(url, data))

    async def fetch_dependent_options(
        self, field_id: str, url_template: str, parent_value: str
    ) -> list[str]:
        """
        Fetch dependent options for a chosen parent value.

        The endpoint answers ``{parentValue: [options...]}``; a missing
        key yields an empty list.
        """
        url = expand_options_url(url_template, parent_value)

        def extract(data: Any) -> list[str]:
            if not isinstance(data, dict):
                raise RemoteFetchError(url, "Expected a JSON object keyed by parent value")
            return [str(item) for item in data.get(parent_value) or []]

        return await self._fetch(field_id, url, extract)

    async def _fetch(self, field_id: str, url: str, extract) -> list[str]:
        # A cache hit still counts as a request so in-flight older fetches lose.
        generation = self._generations.get(field_id, 0) + 1
        self._generations[field_id] = generation
        self._latest_urls[field_id] = url

        entry = self._cache.get(field_id)
        if entry is not None and self._is_cache_valid(entry, url):
            logger.debug("Returning cached options for %s", field_id)
            return list(entry.options)

        logger.info(f"Fetching options for {field_id} from {url}")
        data = await self.remote.get_json(url)
        options = extract(data)

        if self._generations.get(field_id) != generation:
            if self._latest_urls.get(field_id) == url:
                # Superseded by a request for the same URL
                return list(options)
            logger.debug(
                "Discarding stale options for %s (generation %d superseded by %d)",
                field_id,
                generation,
                self._generations.get(field_id, 0),
            )
            raise StaleOptionsError(field_id, url)

        self._cache[field_id] = _CacheEntry(url=url, options=options)
        return list(options)

    def invalidate(self, field_id: str) -> bool:
        """Drop the cached options for a field."""
        return self._cache.pop(field_id, None) is not None

    def clear(self) -> int:
        """Clear every cached option list and return how many were dropped."""
        count = len(self._cache)
        self._cache.clear()
        logger.info(f"Cleared {count} cached option lists")
        return count
