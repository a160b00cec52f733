import asyncio
import sys
from pathlib import Path

web_server_dir = Path(__file__).parent.absolute()
if str(web_server_dir) not in sys.path:
    sys.path.insert(0, str(web_server_dir))

from services.playback import PlaybackContext, PlaybackHandle, PlaybackRegistry


def recorder():
    stopped = []

    async def on_stop(handle):
        stopped.append(handle.idea_id)

    return stopped, on_stop


def test_acquire_on_idle_context():
    ctx = PlaybackContext("u1")
    handle, previous = asyncio.run(ctx.acquire("idea-a"))
    assert previous is None
    assert ctx.current is handle
    assert not handle.stopped


def test_acquiring_another_idea_stops_the_first():
    ctx = PlaybackContext("u1")
    a, _ = asyncio.run(ctx.acquire("idea-a"))
    b, previous = asyncio.run(ctx.acquire("idea-b"))

    assert previous is a
    assert a.stopped
    assert not b.stopped
    assert ctx.current is b


def test_displaced_handle_fires_its_stop_callbacks():
    stopped, on_stop = recorder()
    ctx = PlaybackContext("u1")
    asyncio.run(ctx.acquire("idea-a", on_stop=on_stop))
    assert stopped == []

    asyncio.run(ctx.acquire("idea-b", on_stop=on_stop))
    assert stopped == ["idea-a"]


def test_stop_callbacks_run_once():
    stopped, on_stop = recorder()
    handle = PlaybackHandle("u1", "idea-a")
    handle.on_stop(on_stop)

    assert asyncio.run(handle.stop()) is True
    assert asyncio.run(handle.stop()) is False
    assert stopped == ["idea-a"]


def test_failing_callback_does_not_block_the_others():
    stopped, on_stop = recorder()

    async def broken(handle):
        raise RuntimeError("socket gone")

    handle = PlaybackHandle("u1", "idea-a")
    handle.on_stop(broken)
    handle.on_stop(on_stop)
    asyncio.run(handle.stop())

    assert handle.stopped
    assert stopped == ["idea-a"]


def test_ownership_moves_before_callbacks_run():
    ctx = PlaybackContext("u1")
    seen = []

    async def on_stop(handle):
        seen.append(ctx.current.idea_id)

    asyncio.run(ctx.acquire("idea-a", on_stop=on_stop))
    asyncio.run(ctx.acquire("idea-b"))
    assert seen == ["idea-b"]


def test_release_only_by_owner():
    ctx = PlaybackContext("u1")
    a, _ = asyncio.run(ctx.acquire("idea-a"))
    b, _ = asyncio.run(ctx.acquire("idea-b"))

    # a was displaced; releasing it must not touch b
    assert asyncio.run(ctx.release(a)) is False
    assert ctx.current is b
    assert not b.stopped

    assert asyncio.run(ctx.release(b)) is True
    assert ctx.current is None
    assert ctx.idle
    assert b.stopped


def test_stop_returns_what_was_playing():
    ctx = PlaybackContext("u1")
    assert asyncio.run(ctx.stop()) is None
    a, _ = asyncio.run(ctx.acquire("idea-a"))
    assert asyncio.run(ctx.stop()) is a
    assert a.stopped
    assert ctx.current is None


def test_reacquiring_same_idea_issues_fresh_handle():
    ctx = PlaybackContext("u1")
    first, _ = asyncio.run(ctx.acquire("idea-a"))
    second, previous = asyncio.run(ctx.acquire("idea-a"))
    assert previous is first
    assert first.stopped
    assert second is not first
    assert not second.stopped


def test_registry_keeps_users_independent():
    registry = PlaybackRegistry()
    u1 = registry.context_for("u1")
    u2 = registry.context_for("u2")
    assert registry.context_for("u1") is u1

    a, _ = asyncio.run(u1.acquire("idea-a"))
    b, previous = asyncio.run(u2.acquire("idea-b"))
    assert previous is None
    assert not a.stopped

    assert asyncio.run(registry.discard("u1")) is a
    assert a.stopped
    assert not b.stopped
    assert "u1" not in registry
    assert registry.context_for("u1") is not u1


def test_discard_notifies_and_forgets():
    stopped, on_stop = recorder()
    registry = PlaybackRegistry()
    asyncio.run(registry.context_for("u1").acquire("idea-a", on_stop=on_stop))

    asyncio.run(registry.discard("u1"))

    assert stopped == ["idea-a"]
    assert len(registry) == 0
    assert asyncio.run(registry.discard("u1")) is None


def test_registry_release_drops_idle_context():
    registry = PlaybackRegistry()
    handle, _ = asyncio.run(registry.context_for("u1").acquire("idea-a"))

    assert asyncio.run(registry.release("u1", handle)) is True
    assert handle.stopped
    assert "u1" not in registry


def test_registry_release_of_displaced_handle_keeps_owner():
    registry = PlaybackRegistry()
    ctx = registry.context_for("u1")
    a, _ = asyncio.run(ctx.acquire("idea-a"))
    b, _ = asyncio.run(ctx.acquire("idea-b"))

    assert asyncio.run(registry.release("u1", a)) is False
    assert registry.context_for("u1") is ctx
    assert ctx.current is b
