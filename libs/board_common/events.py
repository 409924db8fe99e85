# libs/board_common/events.py
from __future__ import annotations

from enum import Enum

EXCHANGE = "board.events"


class Service(str, Enum):
    BOARD = "board"


class Version(str, Enum):
    V1 = "v1"


def rk(*, org: str, service: Service | str, event: str, version: str = Version.V1.value) -> str:
    """
    Versioned routing key: <org>.<service>.<event>.<version>
    `event` may itself be dotted (e.g. "message.edited").
    """
    svc = service.value if isinstance(service, Service) else str(service)
    parts = [org, svc, event, version]
    if any(not p or not str(p).strip() for p in parts):
        raise ValueError(f"routing key parts must be non-empty: {parts}")
    return ".".join(str(p).strip() for p in parts)
