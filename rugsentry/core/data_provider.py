"""
Data providers for RugSentry adapters

Adapters never talk to chains or APIs directly; they ask a DataProvider for
one named source of facts about a target. Retries live here, at the
transport layer, never in the orchestrator.
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx
import yaml

from .config import HTTPSettings
from .errors import AdapterError, AdapterTimeout, ConfigurationError, DataUnavailableError
from .model import Target
from .networks import cache_address


class DataProvider:
    """Contract consumed by adapters."""

    async def fetch(self, source: str, target: Target) -> Dict[str, Any]:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class StaticDataProvider(DataProvider):
    """Serves facts from an in-memory mapping or a YAML/JSON fixture file.

    Layout: ``{network: {address: {source: {...}}}}``. Addresses are matched
    in their canonical (cache-key) form. An optional per-source delay makes
    the provider usable for timeout drills.
    """

    def __init__(self,
                 data: Optional[Dict[str, Any]] = None,
                 delays: Optional[Dict[str, float]] = None):
        self.logger = logging.getLogger(__name__)
        self.delays = dict(delays or {})
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for network, entries in (data or {}).items():
            for address, sources in (entries or {}).items():
                self.add(network, str(address), sources or {})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticDataProvider":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    raw = json.load(f)
                else:
                    raw = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(f"Data file not found: {path}") from e
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Could not parse data file {path}: {e}") from e

        provider = cls(raw.get("targets", {}), delays=raw.get("delays"))
        provider.logger.info(f"Loaded static data for {provider.target_count} targets from {path}")
        return provider

    @property
    def target_count(self) -> int:
        return sum(len(entries) for entries in self._data.values())

    def add(self, network: str, address: str, sources: Dict[str, Any]) -> None:
        target = Target(network=network, address=address)
        self._data.setdefault(target.network, {})[cache_address(target)] = dict(sources)

    async def fetch(self, source: str, target: Target) -> Dict[str, Any]:
        delay = self.delays.get(source, 0.0)
        if delay:
            await asyncio.sleep(delay)

        entry = self._data.get(target.network, {}).get(cache_address(target))
        if entry is None or source not in entry:
            raise DataUnavailableError(f"No {source} data for {target.network}:{target.address}")
        return dict(entry[source] or {})


class HTTPDataProvider(DataProvider):
    """Fetches facts from an HTTP intelligence API using httpx.

    Endpoint paths are templates filled with ``network`` and ``address``.
    Timeouts, transport errors and 5xx responses are retried; 404 means the
    API has no data for the target. Cancellation is never swallowed so the
    orchestrator's deadlines abort in-flight requests.
    """

    def __init__(self, settings: HTTPSettings, client: Optional[httpx.AsyncClient] = None):
        if not settings.base_url:
            raise ConfigurationError("http.base_url must be set to use the HTTP data provider")
        self.settings = settings
        self.logger = logging.getLogger(__name__)
        self._session = client
        self.total_requests = 0

    async def _ensure_session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.settings.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None:
            await self._session.aclose()
            self._session = None

    def build_path(self, source: str, target: Target) -> str:
        template = self.settings.endpoints.get(source)
        if not template:
            raise DataUnavailableError(f"No endpoint configured for source {source!r}")
        return template.format(network=target.network, address=target.address)

    async def fetch(self, source: str, target: Target) -> Dict[str, Any]:
        session = await self._ensure_session()
        path = self.build_path(source, target)
        start_time = time.monotonic()

        for attempt in range(self.settings.max_retries + 1):
            last_attempt = attempt >= self.settings.max_retries
            try:
                self.total_requests += 1
                response = await session.get(path)

                if response.status_code == 404:
                    raise DataUnavailableError(f"No {source} data for {target.network}:{target.address}")
                if response.status_code >= 500 and not last_attempt:
                    self.logger.debug(f"{path} returned {response.status_code}, retrying (attempt {attempt + 1})")
                    await asyncio.sleep(self.settings.retry_delay * (attempt + 1))
                    continue
                response.raise_for_status()

                payload = response.json()
                if not isinstance(payload, dict):
                    raise AdapterError(f"Unexpected {source} payload type: {type(payload).__name__}")
                self.logger.debug(f"Fetched {source} for {target.address} in {time.monotonic() - start_time:.3f}s")
                return payload

            except httpx.TimeoutException as e:
                if last_attempt:
                    raise AdapterTimeout(f"Timed out fetching {source} data: {e}") from e
                self.logger.debug(f"Timeout for {path}, retrying in {self.settings.retry_delay}s (attempt {attempt + 1})")
                await asyncio.sleep(self.settings.retry_delay * (attempt + 1))

            except httpx.HTTPStatusError as e:
                raise AdapterError(f"{source} request failed with HTTP {e.response.status_code}") from e

            except (httpx.TransportError, ValueError) as e:
                if last_attempt:
                    raise AdapterError(f"Error fetching {source} data: {e}") from e
                self.logger.debug(f"Error for {path}: {e}, retrying (attempt {attempt + 1})")
                await asyncio.sleep(self.settings.retry_delay * (attempt + 1))

        raise AdapterError(f"Exhausted retries fetching {source} data")
