import asyncio
import json
import logging
from pathlib import Path

import pytest

from app.errors import RenderError
from app.logging import BoardFormatter, setup_logging
from app.infra.messenger import RabbitMessenger, clip, describe_files
from app.infra.rabbit import RabbitPublisher
from app.infra.renderer import MermaidRenderer
from app.infra.workspace import TempWorkspace
from libs.board_common.events import Service, rk
from conftest import run


def test_routing_keys():
    assert rk(org="breadbot", service=Service.BOARD, event="message.edited") == "breadbot.board.message.edited.v1"
    with pytest.raises(ValueError):
        rk(org="", service="board", event="created")


def test_renderer_args(tmp_path):
    r = MermaidRenderer(binary="mmdc", output_format="png", headless="new")
    src = tmp_path / "g.mmd"
    src.write_text("graph TD;")
    cfg = run(r._puppeteer_config(src))
    assert json.loads(cfg.read_text()) == {"headless": "new"}
    args = r.build_args(src, tmp_path / "g.png", cfg)
    assert args == ["mmdc", "-i", str(src), "-o", str(tmp_path / "g.png"), "-e", "png", "-p", str(cfg)]
    assert r.output_path(src) == tmp_path / "g.png"


def test_renderer_rejects_unknown_format():
    with pytest.raises(ValueError):
        MermaidRenderer(output_format="gif")


def test_renderer_missing_binary(tmp_path):
    src = tmp_path / "g.mmd"
    src.write_text("graph TD;")
    r = MermaidRenderer(binary=str(tmp_path / "no-such-mmdc"))
    with pytest.raises(RenderError):
        run(r.render(src))


def test_renderer_nonzero_exit(tmp_path, monkeypatch):
    class Proc:
        returncode = 1

        async def communicate(self):
            return b"", b"Error: Parse error on line 2"

    async def fake_exec(*args, **kwargs):
        return Proc()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    src = tmp_path / "g.mmd"
    src.write_text("graph TD;")
    with pytest.raises(RenderError) as ei:
        run(MermaidRenderer(binary="mmdc").render(src))
    assert ei.value.returncode == 1
    assert "Parse error" in ei.value.stderr


def test_workspace_is_per_run(tmp_path):
    a = TempWorkspace(root=str(tmp_path), prefix="breadbot", cleanup="never")
    b = TempWorkspace(root=str(tmp_path), prefix="breadbot", cleanup="never")
    assert a.path != b.path
    assert a.path.name.startswith("breadbot")
    written = run(a.write_text("x/y.json", "{}"))
    assert written == a.path / "x_y.json"
    assert not a.close(succeeded=True)
    assert a.path.exists()


def test_clip_and_describe_files(tmp_path):
    assert clip("abc", 10) == "abc"
    assert clip("x" * 20, 10) == "x" * 9 + "…"
    f = tmp_path / "a.json"
    f.write_text("{}")
    assert describe_files([f]) == [{"name": "a.json", "path": str(f), "size": 2}]


def test_rabbit_messenger_publishes_message_events(tmp_path):
    class Publisher:
        def __init__(self):
            self.events = []

        async def publish_v1(self, *, org, event, payload, correlation_id=None, headers=None):
            self.events.append((org, event, payload, correlation_id))

    pub = Publisher()
    m = RabbitMessenger(publisher=pub, org="breadbot")
    f = tmp_path / "a.json"
    f.write_text("{}")

    async def go():
        h = await m.send("chan", "hello", [f])
        await m.edit(h, "hello again", [f])
        await m.delete(h)
        return h

    h = run(go())
    assert [e[1] for e in pub.events] == ["message.created", "message.edited", "message.deleted"]
    assert pub.events[1][2]["message_id"] == h.message_id
    assert pub.events[1][2]["files"][0]["name"] == "a.json"
    assert pub.events[1][2]["content"] == "hello again"
    assert {e[3] for e in pub.events} == {h.message_id}


def test_renderer_writes_puppeteer_config_off_the_loop(tmp_path, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(fn, *args, **kwargs):
        offloaded.append(fn)
        return await real_to_thread(fn, *args, **kwargs)

    class Proc:
        returncode = 0

        async def communicate(self):
            (tmp_path / "g.png").write_bytes(b"png")
            return b"", b""

    async def fake_exec(*args, **kwargs):
        return Proc()

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    src = tmp_path / "g.mmd"
    src.write_text("graph TD;")
    out = run(MermaidRenderer(binary="mmdc", output_format="png").render(src))
    assert out == tmp_path / "g.png"
    assert any(getattr(fn, "__name__", "") == "write_text" for fn in offloaded)
    assert json.loads((tmp_path / "puppeteer-config.json").read_text()) == {"headless": "new"}


def test_publisher_routes_and_tags_messages():
    class Exchange:
        def __init__(self):
            self.published = []

        async def publish(self, message, routing_key):
            self.published.append((message, routing_key))

    pub = RabbitPublisher(url="amqp://unused")
    pub._exchange = Exchange()

    key = run(pub.publish_v1(org="breadbot", event="message.edited",
                             payload={"message_id": "m1", "n": 2 ** 70}, correlation_id="m1"))
    assert key == "breadbot.board.message.edited.v1"
    [(message, routing_key)] = pub._exchange.published
    assert routing_key == key
    assert message.correlation_id == "m1"
    assert message.message_id
    assert message.content_type == "application/json"
    assert json.loads(message.body) == {"message_id": "m1", "n": 2 ** 70}


def test_log_lines_carry_extra_fields():
    fmt = BoardFormatter("%(levelname)s [%(name)s] %(message)s")
    record = logging.makeLogRecord({
        "name": "app.pipeline", "levelname": "INFO", "msg": "board.run.completed",
        "run_id": "r1", "duration_ms": 12,
    })
    assert fmt.format(record) == "INFO [app.pipeline] board.run.completed duration_ms=12 run_id='r1'"

    plain = logging.makeLogRecord({"name": "x", "levelname": "INFO", "msg": "hello"})
    assert fmt.format(plain) == "INFO [x] hello"


def test_setup_logging_installs_one_handler():
    root = setup_logging()
    setup_logging()
    assert sum(1 for h in root.handlers if getattr(h, "_board_handler", False)) == 1
