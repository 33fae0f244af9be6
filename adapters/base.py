"""
Base class of capability source adapters.

An adapter wraps one external source (a REST API or an LLM endpoint) and
normalizes its answer to ``{"confidence": float, <fields>...}``. Adapters
raise ``SourceUnavailable`` for anything that should trigger failover.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import httpx

from app.exceptions import SourceUnavailable
from domain.enums import Capability

logger = logging.getLogger("labeliq.sources")


@dataclass(frozen=True)
class RateLimit:
    """At most ``max_per_window`` calls within ``window_ms`` milliseconds"""

    max_per_window: int
    window_ms: int


class SourceAdapter(ABC):
    """One prioritized source of a capability"""

    name: str = "source"
    capability: Capability = Capability.INGREDIENT_BASICS

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        priority: int = 1,
        timeout_ms: int = 5000,
        rate_limit: Optional[RateLimit] = None,
    ):
        self.client = client
        self.priority = priority
        self.timeout_ms = timeout_ms
        self.rate_limit = rate_limit

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0

    def is_configured(self) -> bool:
        """Whether credentials and URL needed by the source are present"""
        return self.client is not None

    @abstractmethod
    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Query the source.

        Args:
            query: Ingredient name
            options: Capability-specific options (e.g. product category)

        Returns:
            Normalized payload carrying a ``confidence`` key

        Raises:
            SourceUnavailable: If the source cannot answer
        """

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """Send a request and decode JSON, mapping transport failures to SourceUnavailable"""
        if self.client is None:
            raise SourceUnavailable(self.name, "No HTTP client configured")

        kwargs.setdefault("timeout", self.timeout_sec)
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise SourceUnavailable(self.name, f"{self.name} timed out", details={"timeout": True}) from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(self.name, f"{self.name} request failed: {e}") from e

        if response.status_code == 404:
            raise SourceUnavailable(self.name, f"{self.name}: not found", details={"status": 404})
        if response.status_code == 429:
            raise SourceUnavailable(
                self.name, f"{self.name}: rate limited", details={"status": 429, "rate_limited": True}
            )
        if response.status_code >= 400:
            raise SourceUnavailable(
                self.name, f"{self.name} API error: {response.status_code}", details={"status": response.status_code}
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailable(self.name, f"{self.name} returned invalid JSON") from e

    def __repr__(self):
        return f"<{self.__class__.__name__}(capability={self.capability.value}, priority={self.priority})>"
