import asyncio
import json
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import pytest

from app.errors import RenderError
from app.infra.messenger import MessageHandle
from app.infra.workspace import TempWorkspace


class FakeMessenger:
    """Records every outbound call instead of publishing to RabbitMQ."""
    def __init__(self):
        self.calls: List[tuple] = []
        self._n = 0

    def _handle(self, **kw) -> MessageHandle:
        self._n += 1
        return MessageHandle(message_id=f"m{self._n}", **kw)

    async def reply(self, interaction_id, channel_id, content, *, ephemeral=False):
        h = self._handle(channel_id=channel_id, interaction_id=interaction_id, ephemeral=ephemeral)
        self.calls.append(("reply", h, content))
        return h

    async def send(self, channel_id, content, files: Sequence[Path] = ()):
        h = self._handle(channel_id=channel_id)
        self.calls.append(("send", h, content, list(files)))
        return h

    async def edit(self, handle, content, files: Sequence[Path] = ()):
        self.calls.append(("edit", handle, content, list(files)))
        return handle

    async def delete(self, handle):
        self.calls.append(("delete", handle))

    def of(self, kind: str) -> list:
        return [c for c in self.calls if c[0] == kind]


class FakeRenderer:
    output_format = "png"

    def __init__(self, fail: Optional[str] = None):
        self.fail = fail
        self.inputs: List[Path] = []

    async def render(self, input_path: Path, output_path: Optional[Path] = None) -> Path:
        self.inputs.append(input_path)
        if self.fail:
            raise RenderError("mmdc exited with 1", returncode=1, stderr=self.fail)
        out = output_path or input_path.with_suffix(".png")
        out.write_bytes(b"\x89PNG\r\n\x1a\n")
        return out


def make_graph(nodes: int = 5, edges: int = 4, **extra) -> dict:
    g = {
        "title": "Sample board",
        "nodes": [{"id": f"n{i}", "type": "input" if i == 0 else "invoke"} for i in range(nodes)],
        "edges": [{"from": f"n{i}", "to": f"n{i + 1}", "out": "text", "in": "text"} for i in range(edges)],
    }
    g.update(extra)
    return g


def json_transport(payload, status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"),
                              headers={"content-type": "application/json"})
    return httpx.MockTransport(handler)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def workspace_factory(tmp_path):
    return lambda: TempWorkspace(root=str(tmp_path), cleanup="never")
