import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

StopCallback = Callable[["PlaybackHandle"], Awaitable[None]]


class PlaybackHandle:
    def __init__(self, uid: str, idea_id: str):
        self.uid = uid
        self.idea_id = idea_id
        self.started_at = datetime.now(timezone.utc)
        self.stopped_at: Optional[datetime] = None
        self.stop_callbacks: list[StopCallback] = []

    @property
    def stopped(self) -> bool:
        return self.stopped_at is not None

    def on_stop(self, callback: StopCallback) -> None:
        self.stop_callbacks.append(callback)

    async def stop(self) -> bool:
        """Mark the handle stopped and run its callbacks once. False if it was already stopped."""
        if self.stopped_at is not None:
            return False
        self.stopped_at = datetime.now(timezone.utc)
        callbacks, self.stop_callbacks = self.stop_callbacks, []
        for callback in callbacks:
            try:
                await callback(self)
            except Exception:
                logger.exception("Stop callback failed for %r", self)
        return True

    def __repr__(self) -> str:
        state = "stopped" if self.stopped else "playing"
        return f"<PlaybackHandle {self.uid}:{self.idea_id} {state}>"


class PlaybackContext:
    """Owns the one clip a user is currently hearing.

    Acquiring stops and releases whatever was playing before, so at most one
    idea is ever being narrated to a user.
    """

    def __init__(self, uid: str):
        self.uid = uid
        self._current: Optional[PlaybackHandle] = None

    @property
    def current(self) -> Optional[PlaybackHandle]:
        return self._current

    @property
    def idle(self) -> bool:
        return self._current is None

    async def acquire(
        self, idea_id: str, on_stop: Optional[StopCallback] = None
    ) -> tuple[PlaybackHandle, Optional[PlaybackHandle]]:
        """Take playback for `idea_id`.

        Returns the new handle and the handle it displaced (already stopped),
        if anything was playing.
        """
        handle = PlaybackHandle(self.uid, idea_id)
        if on_stop is not None:
            handle.on_stop(on_stop)
        # Ownership moves before any await
        previous, self._current = self._current, handle
        if previous is not None:
            await previous.stop()
        return handle, previous

    async def release(self, handle: PlaybackHandle) -> bool:
        """Stop `handle` and give up ownership. No-op if it no longer owns playback."""
        if self._current is not handle:
            return False
        self._current = None
        await handle.stop()
        return True

    async def stop(self) -> Optional[PlaybackHandle]:
        """Stop whatever is playing and return its handle."""
        handle = self._current
        if handle is not None:
            await self.release(handle)
        return handle


class PlaybackRegistry:
    """uid -> PlaybackContext for every user with something playing on this server."""

    def __init__(self):
        self._contexts: dict[str, PlaybackContext] = {}

    def __contains__(self, uid: str) -> bool:
        return uid in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    def context_for(self, uid: str) -> PlaybackContext:
        ctx = self._contexts.get(uid)
        if ctx is None:
            ctx = self._contexts[uid] = PlaybackContext(uid)
        return ctx

    async def release(self, uid: str, handle: PlaybackHandle) -> bool:
        """Release `handle` and forget the user's context once nothing is playing."""
        ctx = self._contexts.get(uid)
        if ctx is None:
            return False
        released = await ctx.release(handle)
        if ctx.idle and self._contexts.get(uid) is ctx:
            del self._contexts[uid]
        return released

    async def discard(self, uid: str) -> Optional[PlaybackHandle]:
        """Forget the user's context, stopping whatever it was playing."""
        ctx = self._contexts.pop(uid, None)
        if ctx is None:
            return None
        return await ctx.stop()
