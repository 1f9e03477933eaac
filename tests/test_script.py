"""Тесты для редактора и запуска скрипта."""

import asyncio
import json

import httpx

from console.api import DeviceApi
from console.bus import SCRIPT_DOCUMENT, SCRIPT_RUN, EventBus
from console.messages import RunState
from console.nodes.script import (
    RunRequested,
    ScriptEditor,
    ScriptRunner,
    StatusPolled,
    StopRequested,
    reduce_run_state,
)

DEBOUNCE = 0.05


def _api(device) -> DeviceApi:
    return DeviceApi(lambda: "http://robot.local:8080", device.client())


def _editor(device) -> ScriptEditor:
    return ScriptEditor(_api(device), EventBus(), debounce_s=DEBOUNCE, placeholder="// placeholder\n")


# --- Editor ---


def test_burst_of_edits_saves_once_with_final_text(device) -> None:
    """Серия правок внутри окна даёт ровно одно сохранение с последним текстом."""

    async def _run_test() -> None:
        editor = _editor(device)
        for i in range(8):
            editor.edit(f"line {i}")
            assert editor.dirty
            await asyncio.sleep(DEBOUNCE / 5)
        assert device.bodies("POST", "/api/script") == []

        await asyncio.sleep(DEBOUNCE * 3)
        assert not editor.dirty
        assert editor.in_sync

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "line 7"}]


def test_spaced_edits_save_once_each(device) -> None:
    async def _run_test() -> None:
        editor = _editor(device)
        for text in ("a", "ab", "abc"):
            editor.edit(text)
            await asyncio.sleep(DEBOUNCE * 3)

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "a"}, {"script": "ab"}, {"script": "abc"}]


def test_explicit_save_cancels_pending_autosave(device) -> None:
    async def _run_test() -> None:
        editor = _editor(device)
        editor.edit("draft")
        assert await editor.save()
        assert not editor.dirty
        await asyncio.sleep(DEBOUNCE * 3)

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "draft"}]


def test_explicit_save_without_edits_sends_current_text(device) -> None:
    async def _run_test() -> None:
        await _editor(device).save()

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "// placeholder\n"}]


def test_failed_save_leaves_document_out_of_sync(device) -> None:
    """Неудачное сохранение не повторяется, но документ помечен как несинхронный."""
    device.routes[("POST", "/api/script")] = httpx.Response(500)

    async def _run_test() -> None:
        editor = _editor(device)
        editor.edit("lost?")
        await asyncio.sleep(DEBOUNCE * 3)
        assert not editor.dirty
        assert not editor.in_sync
        assert editor.text == "lost?"

    asyncio.run(_run_test())

    assert len(device.bodies("POST", "/api/script")) == 1


def test_load_replaces_placeholder(device) -> None:
    async def _run_test() -> None:
        editor = _editor(device)
        assert await editor.load()
        assert editor.text == "robot.forward(1);"
        assert editor.in_sync

    asyncio.run(_run_test())


def test_load_failure_keeps_placeholder(device) -> None:
    async def _run_test() -> None:
        for failure in (httpx.ConnectError("down"), {"success": False}, httpx.Response(200, text="{")):
            device.routes[("GET", "/api/script")] = failure
            editor = _editor(device)
            assert await editor.load() is False
            assert editor.text == "// placeholder\n"

    asyncio.run(_run_test())


def test_load_does_not_clobber_local_edits(device) -> None:
    async def _run_test() -> None:
        editor = _editor(device)
        editor.edit("typed first")
        assert await editor.load() is False
        assert editor.text == "typed first"
        await editor.close()

    asyncio.run(_run_test())


def test_close_flushes_pending_edit(device) -> None:
    async def _run_test() -> None:
        editor = _editor(device)
        editor.edit("unsaved")
        await editor.close()
        assert not editor.dirty
        await asyncio.sleep(DEBOUNCE * 3)

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "unsaved"}]


def test_saves_are_sent_in_order(device) -> None:
    """Медленное первое сохранение не может прийти после второго."""
    order: list[str] = []

    async def _run_test() -> None:
        gate = asyncio.Event()

        async def slow_first(request: httpx.Request) -> httpx.Response:
            order.append(json.loads(request.content)["script"])
            if len(order) == 1:
                await gate.wait()
            return httpx.Response(200, json={"success": True})

        device.routes[("POST", "/api/script")] = slow_first
        editor = _editor(device)
        editor.text = "old"
        first = asyncio.create_task(editor.save())
        await asyncio.sleep(0.01)
        editor.text = "new"
        second = asyncio.create_task(editor.save())
        await asyncio.sleep(0.01)
        assert len(order) == 1
        gate.set()
        await asyncio.gather(first, second)
        assert editor.last_saved_text == "new"

    asyncio.run(_run_test())

    assert order == ["old", "new"]


# --- Run state reducer ---


def test_reducer_run_is_optimistic() -> None:
    state = RunState(running=False, output="previous", error="x")
    assert reduce_run_state(state, RunRequested()) == RunState(running=True, output="")


def test_reducer_stop_is_not_optimistic() -> None:
    state = RunState(running=True, output="tick")
    assert reduce_run_state(state, StopRequested()) == state


def test_reducer_poll_is_authoritative() -> None:
    state = RunState(running=True, output="")
    polled = StatusPolled(running=False, output="done", error=None)
    assert reduce_run_state(state, polled) == RunState(running=False, output="done")


# --- Runner ---


def _runner(device, bus: EventBus, text: str = "robot.forward(1);") -> ScriptRunner:
    return ScriptRunner(_api(device), bus, script_text=lambda: text, interval_s=1.0)


def test_run_then_poll_reconciles_state(device) -> None:
    """run() сразу выставляет running, следующий опрос его перезаписывает."""
    device.routes[("GET", "/api/script/status")] = {"running": False, "output": "done"}
    published: list[RunState] = []

    async def _run_test() -> None:
        bus = EventBus()

        async def on_run(state: RunState) -> None:
            published.append(state)

        await bus.subscribe(SCRIPT_RUN, on_run)
        runner = _runner(device, bus)

        assert await runner.run()
        assert runner.state.running is True
        assert runner.can_stop and not runner.can_run

        assert await runner.poll_once()
        assert runner.state == RunState(running=False, output="done")

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script/run") == [{"script": "robot.forward(1);"}]
    assert published == [RunState(running=True, output=""), RunState(running=False, output="done")]


def test_run_is_ignored_while_running(device) -> None:
    async def _run_test() -> None:
        runner = _runner(device, EventBus())
        assert await runner.run()
        assert await runner.run() is False

    asyncio.run(_run_test())

    assert len(device.bodies("POST", "/api/script/run")) == 1


def test_run_with_empty_script_is_not_sent(device) -> None:
    async def _run_test() -> None:
        runner = _runner(device, EventBus(), text="   \n")
        assert await runner.run() is False
        assert runner.state.running is False

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script/run") == []


def test_stop_does_not_flip_running(device) -> None:
    async def _run_test() -> None:
        runner = _runner(device, EventBus())
        await runner.run()
        assert await runner.stop()
        assert runner.state.running is True

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script/stop") == [{}]


def test_stop_tolerates_device_rejection(device) -> None:
    device.routes[("POST", "/api/script/stop")] = httpx.Response(400, json={"success": False})

    async def _run_test() -> None:
        runner = _runner(device, EventBus())
        assert await runner.stop() is False
        assert runner.state == RunState()

    asyncio.run(_run_test())


def test_failed_poll_keeps_run_state(device) -> None:
    device.routes[("GET", "/api/script/status")] = httpx.ReadTimeout("slow")

    async def _run_test() -> None:
        runner = _runner(device, EventBus())
        await runner.run()
        before = runner.state
        assert await runner.poll_once() is False
        assert runner.state == before

    asyncio.run(_run_test())


def test_poll_error_field_is_kept(device) -> None:
    device.routes[("GET", "/api/script/status")] = {
        "running": False,
        "output": "line 1\n",
        "error": "ReferenceError: foo is not defined",
    }

    async def _run_test() -> None:
        runner = _runner(device, EventBus())
        await runner.poll_once()
        assert runner.state.error == "ReferenceError: foo is not defined"
        assert runner.state.output == "line 1\n"

    asyncio.run(_run_test())


def test_poll_started_before_run_is_discarded(device) -> None:
    """Ответ опроса, запрошенного до run(), не откатывает оптимистичное состояние."""

    async def _run_test() -> None:
        gate = asyncio.Event()

        async def slow_status(request: httpx.Request) -> httpx.Response:
            await gate.wait()
            return httpx.Response(200, json={"running": False, "output": "stale"})

        device.routes[("GET", "/api/script/status")] = slow_status
        runner = _runner(device, EventBus())

        poll = asyncio.create_task(runner.poll_once())
        await asyncio.sleep(0.01)
        await runner.run()
        gate.set()

        assert await poll is False
        assert runner.state == RunState(running=True, output="")

    asyncio.run(_run_test())


def test_close_waits_for_autosave_in_flight(device) -> None:
    """close() дожидается автосохранения, которое уже отправляется."""
    documents: list = []

    async def _run_test() -> None:
        sending = asyncio.Event()

        async def slow_save(request: httpx.Request) -> httpx.Response:
            sending.set()
            await asyncio.sleep(0.1)
            return httpx.Response(200, json={"success": True})

        device.routes[("POST", "/api/script")] = slow_save
        bus = EventBus()

        async def on_document(doc) -> None:
            documents.append(doc)

        await bus.subscribe(SCRIPT_DOCUMENT, on_document)
        editor = ScriptEditor(_api(device), bus, debounce_s=DEBOUNCE)
        editor.edit("last words")
        await asyncio.wait_for(sending.wait(), timeout=1.0)
        assert not editor.dirty

        await editor.close()
        assert editor.last_saved_text == "last words"
        assert len(documents) == 1

    asyncio.run(_run_test())

    assert device.bodies("POST", "/api/script") == [{"script": "last words"}]
