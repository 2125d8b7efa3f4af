"""Reading desired state from Consul's KV store.

A managed key ``K`` under prefix ``P`` is stored as two entries:
``P/K/data`` holds the file content and ``P/K/checksum`` its SHA-256.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, Self

import httpx

from kvexpress import engine, exceptions

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "http://localhost:8500"
DEFAULT_PREFIX = "kvexpress"
DEFAULT_TIMEOUT = 10.0


class KVFetcher(Protocol):
    """Anything that can read a raw value by key."""

    def fetch(self, key: str) -> bytes:
        """Return the raw value stored at key. Raises KVFetchError."""
        ...


def data_key(key: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix.strip('/')}/{key.strip('/')}/data"


def checksum_key(key: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix.strip('/')}/{key.strip('/')}/checksum"


class ConsulClient:
    """Minimal synchronous client for Consul's ``/v1/kv`` endpoint."""

    _client: httpx.Client

    def __init__(
        self,
        address: str = DEFAULT_ADDRESS,
        token: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if "://" not in address:
            address = f"http://{address}"
        headers = {"X-Consul-Token": token} if token else {}
        self._client = httpx.Client(
            base_url=address.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def fetch(self, key: str) -> bytes:
        url = f"/v1/kv/{key.lstrip('/')}"
        try:
            response = self._client.get(url, params={"raw": ""})
        except httpx.HTTPError as e:
            raise exceptions.KVFetchError(f"Could not reach Consul for key '{key}': {e}") from e
        if response.status_code == httpx.codes.NOT_FOUND:
            raise exceptions.KVFetchError(f"Key not found: '{key}'")
        if response.is_error:
            raise exceptions.KVFetchError(
                f"Consul returned {response.status_code} for key '{key}'"
            )
        logger.debug(f"key='{key}' bytes='{len(response.content)}'")
        return response.content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def fetch_desired_state(
    fetcher: KVFetcher,
    key: str,
    prefix: str = DEFAULT_PREFIX,
    min_length: int = engine.DEFAULT_MIN_LENGTH,
) -> engine.DesiredState:
    """Fetch data and checksum for key.

    A failed fetch yields empty content so the apply is rejected by the
    length check rather than failing the process.
    """
    try:
        content = fetcher.fetch(data_key(key, prefix))
        declared = fetcher.fetch(checksum_key(key, prefix)).decode("utf-8", errors="replace")
    except exceptions.KVFetchError as e:
        logger.warning(f"key='{key}' fetch='failed' error='{e}'")
        content, declared = b"", ""
    return engine.DesiredState(content=content, checksum=declared, min_length=min_length)
