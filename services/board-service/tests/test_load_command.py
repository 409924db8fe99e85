import httpx

from app.commands.dispatch import dispatch
from app.commands.load import run_load_command
from app.models.interactions import (
    ChannelMessage,
    CommandInteraction,
    CommandOption,
    ComponentInteraction,
    Requester,
)
from conftest import FakeRenderer, json_transport, make_graph, run


def _cmd(url, channel_id="chan-1"):
    return CommandInteraction(
        id="i-1", command="load", options=[CommandOption(name="url", value=url)],
        user=Requester(id="u-1"), channel_id=channel_id,
    )


def test_rejects_non_json_url(messenger):
    out = run(run_load_command(_cmd("https://example.com/graph.txt"), messenger))
    assert out is None
    [(kind, _, content)] = messenger.calls
    assert kind == "reply"
    assert "does not end with .json" in content


def test_rejects_invalid_url(messenger):
    run(run_load_command(_cmd("not a url"), messenger))
    [(_, _, content)] = messenger.calls
    assert "Invalid URL" in content


def test_network_error_never_creates_progress_message(messenger):
    def boom(request):
        raise httpx.ConnectError("getaddrinfo failed " + "x" * 3000, request=request)

    run(run_load_command(_cmd("https://example.com/graph.json"), messenger,
                         transport=httpx.MockTransport(boom)))
    assert messenger.of("send") == []
    [(_, _, content)] = messenger.of("reply")
    assert content.startswith("I couldn't load that https://example.com/graph.json\n```json\n")
    assert "getaddrinfo failed" in content
    assert len(content) < 1200


def test_schema_error_reply(messenger):
    transport = json_transport({"nodes": "nope"})
    run(run_load_command(_cmd("https://example.com/graph.json"), messenger, transport=transport))
    assert messenger.of("send") == []
    [(_, _, content)] = messenger.of("reply")
    assert content.startswith("Uh oh, that doesn't look like a board:\nhttps://example.com/graph.json")
    assert '"path": "nodes"' in content


def test_full_run(messenger, workspace_factory):
    renderer = FakeRenderer()
    state = run(run_load_command(
        _cmd("https://example.com/boards/five.json"), messenger,
        renderer=renderer, transport=json_transport(make_graph(5, 4)),
        workspace_factory=workspace_factory, run_id="run-1",
    ))
    assert state["run_id"] == "run-1"
    kinds = [c[0] for c in messenger.calls]
    assert kinds == ["reply", "send", "delete", "edit", "edit", "edit"]
    assert messenger.calls[0][2] == "Loading https://example.com/boards/five.json"
    assert messenger.calls[0][1].ephemeral
    posted = messenger.of("send")[0][2]
    for line in ("<@u-1>", "nodes: 5", "edges: 4", "kits: 0", "graphs: 1"):
        assert line in posted.splitlines()
    final = messenger.of("edit")[-1]
    assert [f.name for f in final[3]] == ["five.json", "five.md", "five.png"]


def test_render_failure_replies_and_keeps_attachments(messenger, workspace_factory):
    run(run_load_command(
        _cmd("https://example.com/boards/five.json"), messenger,
        renderer=FakeRenderer(fail="Error: Failed to launch the browser process"),
        transport=json_transport(make_graph()), workspace_factory=workspace_factory,
    ))
    error_reply = messenger.of("reply")[-1][2]
    assert error_reply.startswith("I couldn't render https://example.com/boards/five.json")
    assert "Failed to launch the browser process" in error_reply
    last_edit = messenger.of("edit")[-1]
    assert [f.name for f in last_edit[3]] == ["five.json", "five.md"]


def test_missing_channel(messenger):
    run(run_load_command(_cmd("https://example.com/g.json", channel_id=None), messenger,
                         transport=json_transport(make_graph())))
    assert messenger.of("send") == []
    assert messenger.calls[-1][2] == "No channel to respond in"


def test_dispatch_routes_by_event_type(messenger):
    component = ComponentInteraction(id="c-1", component_type="button", custom_id="x", user=Requester(id="u"))
    run(dispatch(component, messenger))
    [(_, handle, content)] = messenger.calls
    assert handle.ephemeral
    assert content.startswith("```json")
    assert '"component_type": "button"' in content

    other = CommandInteraction(id="i-2", command="ping", user=Requester(id="u"))
    run(dispatch(other, messenger))
    assert '"command": "ping"' in messenger.calls[-1][2]

    n = len(messenger.calls)
    run(dispatch(ChannelMessage(id="m-1", content="hello", author=Requester(id="u")), messenger))
    assert len(messenger.calls) == n


def test_dispatch_runs_load(messenger):
    run(dispatch(_cmd("https://example.com/graph.txt"), messenger))
    assert "does not end with .json" in messenger.calls[-1][2]


def test_control_characters_are_an_invalid_url(messenger):
    run(run_load_command(_cmd("https://example.com/\x00.json"), messenger,
                         transport=json_transport(make_graph())))
    assert messenger.of("send") == []
    [(_, _, content)] = messenger.of("reply")
    assert content.startswith("Invalid URL")


def test_long_urls_are_bounded_in_replies(messenger):
    url = "https://example.com/" + "a" * 5000 + ".txt"
    run(run_load_command(_cmd(url), messenger))
    [(_, _, content)] = messenger.of("reply")
    assert content.startswith("That URL does not end with .json: `https://example.com/aaa")
    assert len(content) < 400


def test_long_urls_are_bounded_in_fetch_errors(messenger):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    url = "https://example.com/" + "a" * 5000 + ".json"
    run(run_load_command(_cmd(url), messenger, transport=httpx.MockTransport(boom)))
    [(_, _, content)] = messenger.of("reply")
    heading = content.splitlines()[0]
    assert heading.startswith("I couldn't load that https://example.com/aaa")
    assert len(heading) < 350
