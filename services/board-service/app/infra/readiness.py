# app/infra/readiness.py
from __future__ import annotations

import asyncio
from typing import Optional


class ReadinessState:
    """
    Whether the upstream messaging session is up. Owned by the app lifespan;
    /healthz only reads it.
    """
    def __init__(self) -> None:
        self._ready = asyncio.Event()
        self.reason: Optional[str] = "starting"

    def mark_ready(self) -> None:
        self.reason = None
        self._ready.set()

    def mark_unavailable(self, reason: str) -> None:
        self.reason = reason
        self._ready.clear()

    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait(self) -> None:
        await self._ready.wait()
