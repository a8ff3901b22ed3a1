# meetups/infrastructure/change_feed.py
"""
Live change notifications for store documents.

Writers publish a small JSON payload on a channel (``events:<id>``,
``chats:<id>:messages``...). Listeners in this process get it through their
own delivery task, so a publisher never waits on a listener; when Redis is
configured the payload is also published there, and the relay task delivers
payloads published by other processes to local listeners.

A ``QueryWatch`` turns channel notifications into query snapshots: it re-runs
its fetch on every notification and pushes the result when it changed.
"""
import asyncio
import fnmatch
import json
import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Generic, TypeVar

from meetups.domain.errors import MeetupError
from meetups.infrastructure.redis_client import RedisClient

ChannelCallback = Callable[[str, dict[str, Any]], Awaitable[None]]
T = TypeVar("T")


class ListenerRegistration:
    """
    One listener on one or more channels (or on a glob pattern).

    Notifications are queued and handed to the callback one at a time, in
    publish order, by a task that lives while the queue has work.
    """

    def __init__(
        self,
        channels: Iterable[str],
        callback: ChannelCallback,
        on_remove: Callable[["ListenerRegistration"], None],
        spawn: Callable[[Awaitable[None]], asyncio.Task],
        logger: logging.Logger,
        pattern: bool = False,
    ):
        self.channels = tuple(channels)
        self.callback = callback
        self.pattern = pattern
        self.active = True
        self._on_remove = on_remove
        self._spawn = spawn
        self._logger = logger
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def matches(self, channel: str) -> bool:
        return any(fnmatch.fnmatchcase(channel, p) for p in self.channels)

    def push(self, channel: str, payload: dict[str, Any]) -> None:
        if not self.active:
            return
        self._queue.put_nowait((channel, payload))
        if self._task is None or self._task.done():
            self._task = self._spawn(self._drain())

    async def _drain(self) -> None:
        while not self._queue.empty():
            channel, payload = self._queue.get_nowait()
            # removed while queued: nothing more is delivered
            if not self.active:
                continue
            try:
                await self.callback(channel, payload)
            except Exception as e:
                self._logger.error(f"Listener on {channel} failed: {e!s}")

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self._on_remove(self)


class ChangeFeed:
    def __init__(
        self,
        logger: logging.Logger,
        redis_client: RedisClient | None = None,
        channel_prefix: str = "meetups:",
    ):
        self.logger = logger
        self.redis_client = redis_client
        self.channel_prefix = channel_prefix
        self.origin = uuid.uuid4().hex
        self._listeners: dict[str, list[ListenerRegistration]] = defaultdict(list)
        self._patterns: list[ListenerRegistration] = []
        self._deliveries: set[asyncio.Task] = set()
        self._relay_task: asyncio.Task | None = None
        self._pubsub = None

    def listen(
        self, channels: Iterable[str], callback: ChannelCallback
    ) -> ListenerRegistration:
        registration = ListenerRegistration(
            channels, callback, self._detach, self._spawn, self.logger
        )
        for channel in registration.channels:
            self._listeners[channel].append(registration)
        return registration

    def listen_pattern(
        self, pattern: str, callback: ChannelCallback
    ) -> ListenerRegistration:
        """Listens on every channel matching a glob such as ``events:*:participants``."""
        registration = ListenerRegistration(
            [pattern], callback, self._detach, self._spawn, self.logger, pattern=True
        )
        self._patterns.append(registration)
        return registration

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)
        return task

    def _detach(self, registration: ListenerRegistration) -> None:
        if registration.pattern:
            if registration in self._patterns:
                self._patterns.remove(registration)
            return
        for channel in registration.channels:
            listeners = self._listeners.get(channel)
            if not listeners:
                continue
            if registration in listeners:
                listeners.remove(registration)
            if not listeners:
                del self._listeners[channel]

    def listener_count(self, channel: str | None = None) -> int:
        if channel is not None:
            return len(self._listeners.get(channel, []))
        return len({id(r) for regs in self._listeners.values() for r in regs})

    async def wait_idle(self) -> None:
        """Returns once every queued notification has been handed out."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        self._deliver(channel, payload)
        if self.redis_client is not None and self.redis_client.connected:
            envelope = json.dumps(
                {"origin": self.origin, "payload": payload}, default=str
            )
            try:
                await self.redis_client.publish(
                    f"{self.channel_prefix}{channel}", envelope
                )
            except Exception as e:
                # local listeners already have it; other processes catch up on their next change
                self.logger.warning(f"Failed to relay change on {channel}: {e!s}")

    def _deliver(self, channel: str, payload: dict[str, Any]) -> None:
        for registration in list(self._listeners.get(channel, [])):
            registration.push(channel, payload)
        for registration in list(self._patterns):
            if registration.matches(channel):
                registration.push(channel, payload)

    async def start_relay(self) -> None:
        if self._relay_task is not None or self.redis_client is None:
            return
        if not self.redis_client.connected:
            return
        self._pubsub = self.redis_client.pubsub()
        await self._pubsub.psubscribe(f"{self.channel_prefix}*")
        self._relay_task = asyncio.create_task(self._relay_loop())
        self.logger.info("Change feed relay started")

    async def stop_relay(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
            self.logger.info("Change feed relay stopped")

    async def _relay_loop(self) -> None:
        async for message in self._pubsub.listen():
            try:
                await self.handle_relay_message(message)
            except Exception as e:
                self.logger.error(f"Error relaying change notification: {e!s}")

    async def handle_relay_message(self, message: dict[str, Any]) -> None:
        if message.get("type") not in ("message", "pmessage"):
            return
        envelope = json.loads(message["data"])
        if envelope.get("origin") == self.origin:
            return
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode()
        self._deliver(channel[len(self.channel_prefix) :], envelope["payload"])


class QueryWatch(Generic[T]):
    """
    Keeps a query result live.

    The fetch runs once on start and again after every notification on one
    of the watched channels; ``on_next`` only sees results that differ from the
    last one delivered. A fetch failing with a MeetupError cancels the watch
    and is reported once through ``on_error``: there is no retry.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        channels: Iterable[str],
        fetch: Callable[[], Awaitable[T]],
        on_next: Callable[[T], Awaitable[None]],
        on_error: Callable[[MeetupError], Awaitable[None]],
        name: str = "watch",
    ):
        self.feed = feed
        self.channels = tuple(channels)
        self.fetch = fetch
        self.on_next = on_next
        self.on_error = on_error
        self.name = name
        self._registration: ListenerRegistration | None = None
        self._cancelled = False
        self._refreshing = False
        self._dirty = False
        self._has_value = False
        self._last: T | None = None

    @property
    def active(self) -> bool:
        return self._registration is not None and not self._cancelled

    async def start(self) -> "QueryWatch[T]":
        if self._registration is not None:
            return self
        self._registration = self.feed.listen(self.channels, self._on_change)
        await self._refresh()
        return self

    def cancel(self) -> None:
        self._cancelled = True
        if self._registration is not None:
            self._registration.remove()

    async def _on_change(self, channel: str, payload: dict[str, Any]) -> None:
        await self._refresh()

    async def _refresh(self) -> None:
        if self._refreshing:
            self._dirty = True
            return
        self._refreshing = True
        try:
            while self.active:
                self._dirty = False
                try:
                    snapshot = await self.fetch()
                except MeetupError as exc:
                    if not self.active:
                        return
                    self.cancel()
                    await self.on_error(exc)
                    return
                if not self.active:
                    return
                if not (self._has_value and snapshot == self._last):
                    self._has_value = True
                    self._last = snapshot
                    await self.on_next(snapshot)
                if not self._dirty:
                    return
        finally:
            self._refreshing = False
