"""Ordered pool of RPC endpoints with a single active cursor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Endpoint:
    url: str
    position: int


class EndpointPool:
    """
    Endpoints in preference order; index 0 is the primary.

    ``rotate`` moves the cursor cyclically to the next endpoint, ``reset``
    returns it to the primary.
    """

    def __init__(self, urls: Iterable[str]):
        seen = set()
        cleaned: List[str] = []
        for url in urls:
            url = (url or "").strip()
            if url and url not in seen:
                seen.add(url)
                cleaned.append(url)
        if not cleaned:
            raise ValueError("EndpointPool requires at least one URL")

        self._endpoints = tuple(Endpoint(url, i) for i, url in enumerate(cleaned))
        self._active = 0

        logger.info(
            "rpc.pool_initialized",
            endpoints=len(self._endpoints),
            primary=self._endpoints[0].url,
        )

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    @property
    def active(self) -> int:
        return self._active

    def current(self) -> Endpoint:
        return self._endpoints[self._active]

    def rotate(self) -> Endpoint:
        previous = self.current()
        self._active = (self._active + 1) % len(self._endpoints)
        endpoint = self.current()
        logger.warning(
            "rpc.endpoint_rotated",
            previous=previous.url,
            endpoint=endpoint.url,
            position=f"{endpoint.position + 1}/{len(self._endpoints)}",
        )
        return endpoint

    def reset(self) -> bool:
        """Point back at the primary. Returns True if the cursor moved."""
        if self._active == 0:
            return False
        self._active = 0
        return True
