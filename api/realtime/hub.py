"""
In-process publish/subscribe hub for realtime events.

Channels are plain strings (`notifications:<user_id>`, `typing:<conversation_id>`,
`presence:online`, ...). Every subscription owns a bounded queue; a slow
consumer loses its oldest events instead of blocking publishers.

Listeners are synchronous callbacks run on every publish to a channel and are
used to keep server-side caches in step with realtime traffic.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
TYPING_TTL_S = 5.0

_CLOSED = object()

Listener = Callable[[dict[str, Any]], None]


def typing_channel(conversation_id: str) -> str:
    return f"typing:{conversation_id}"


def direct_conversation_id(*user_ids: int | str) -> str:
    return "-".join(str(uid) for uid in sorted({int(uid) for uid in user_ids}))


def conversation_members(conversation_id: str) -> set[int]:
    """Participants of a direct conversation id such as `3-7`; empty when malformed."""
    parts = str(conversation_id).split("-")
    if len(parts) < 2 or not all(part.isdigit() for part in parts):
        return set()
    return {int(part) for part in parts}


def notifications_channel(user_id: int | str) -> str:
    return f"notifications:{user_id}"


def streaks_channel(user_id: int | str) -> str:
    return f"streaks:{user_id}"


class Subscription:
    def __init__(self, hub: "RealtimeHub", channel: str, max_queue_size: int) -> None:
        self.hub = hub
        self.channel = channel
        self.queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_queue_size + 1)
        self.max_queue_size = max_queue_size
        self.dropped = 0
        self.closed = False

    def deliver(self, event: dict[str, Any]) -> None:
        if self.closed:
            return
        if self.queue.qsize() >= self.max_queue_size:
            # Drop the oldest so the newest state always gets through.
            self.queue.get_nowait()
            self.dropped += 1
            logger.warning("realtime_event_dropped channel=%s dropped=%s", self.channel, self.dropped)
        self.queue.put_nowait(event)

    def get_nowait(self) -> dict[str, Any] | None:
        try:
            event = self.queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        return None if event is _CLOSED else event

    def close(self) -> None:
        self.hub.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self.closed and self.queue.empty():
            raise StopAsyncIteration
        event = await self.queue.get()
        if event is _CLOSED:
            raise StopAsyncIteration
        return event


class RealtimeHub:
    def __init__(self, *, max_queue_size: int = DEFAULT_QUEUE_SIZE, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_queue_size = max_queue_size
        self._clock = clock
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._listeners: dict[str, list[Listener]] = {}
        self._presence: dict[str, dict[str, dict[str, Any]]] = {}
        self._presence_refs: dict[str, dict[str, int]] = {}
        self._typing: dict[str, dict[str, float]] = {}
        self._typing_swept_at = clock()
        self.published = 0

    # Subscriptions

    def subscribe(self, channel: str) -> Subscription:
        subscription = Subscription(self, channel, self.max_queue_size)
        self._subscriptions.setdefault(channel, []).append(subscription)
        logger.debug("realtime_subscribed channel=%s count=%s", channel, len(self._subscriptions[channel]))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if not subscription.closed:
            subscription.closed = True
            # The spare queue slot always has room for the end marker.
            subscription.queue.put_nowait(_CLOSED)
        subscribers = self._subscriptions.get(subscription.channel)
        if not subscribers:
            return
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            del self._subscriptions[subscription.channel]

    def subscriber_count(self, channel: str | None = None) -> int:
        if channel is not None:
            return len(self._subscriptions.get(channel, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def add_listener(self, channel: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(channel, []).append(listener)

        def _remove() -> None:
            listeners = self._listeners.get(channel, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(channel, None)

        return _remove

    def publish(self, channel: str, event: str, payload: dict[str, Any] | None = None) -> int:
        """
        Deliver an event to every subscriber of `channel`.

        Returns the number of subscriptions that received it.
        """
        message = {
            "channel": channel,
            "event": event,
            "payload": payload or {},
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        self.published += 1

        for listener in list(self._listeners.get(channel, [])):
            try:
                listener(message)
            except Exception:
                logger.exception("realtime_listener_failed channel=%s event=%s", channel, event)

        subscribers = list(self._subscriptions.get(channel, []))
        for subscription in subscribers:
            subscription.deliver(message)
        logger.debug("realtime_published channel=%s event=%s delivered=%s", channel, event, len(subscribers))
        return len(subscribers)

    # Presence

    def track(self, channel: str, key: str, meta: dict[str, Any] | None = None) -> None:
        """Track `key` on `channel`; each call needs a matching `untrack` before it leaves."""
        refs = self._presence_refs.setdefault(channel, {})
        refs[key] = refs.get(key, 0) + 1
        self._presence.setdefault(channel, {})[key] = dict(meta or {})
        self.publish(channel, "presence_sync", {"presence": self.presence(channel)})

    def untrack(self, channel: str, key: str) -> None:
        members = self._presence.get(channel)
        if not members or key not in members:
            return
        refs = self._presence_refs.get(channel, {})
        refs[key] = refs.get(key, 1) - 1
        if refs[key] > 0:
            return
        del refs[key]
        if not refs:
            self._presence_refs.pop(channel, None)
        del members[key]
        if not members:
            del self._presence[channel]
        self.publish(channel, "presence_sync", {"presence": self.presence(channel)})

    def presence(self, channel: str) -> dict[str, dict[str, Any]]:
        return {key: dict(meta) for key, meta in self._presence.get(channel, {}).items()}

    # Typing indicators

    def set_typing(self, conversation_id: str, user_id: int | str, is_typing: bool) -> int:
        if self._clock() - self._typing_swept_at >= TYPING_TTL_S:
            self.sweep_typing()
        users = self._typing.setdefault(str(conversation_id), {})
        if is_typing:
            users[str(user_id)] = self._clock()
        else:
            users.pop(str(user_id), None)
        if not users:
            self._typing.pop(str(conversation_id), None)
        return self.publish(
            typing_channel(str(conversation_id)),
            "typing",
            {"user_id": str(user_id), "is_typing": is_typing},
        )

    def sweep_typing(self) -> int:
        """Drop every expired typing entry. Returns how many were removed."""
        now = self._clock()
        self._typing_swept_at = now
        removed = 0
        for conversation_id, users in list(self._typing.items()):
            for user_id, seen_at in list(users.items()):
                if now - seen_at >= TYPING_TTL_S:
                    del users[user_id]
                    removed += 1
            if not users:
                del self._typing[conversation_id]
        return removed

    def typing_count(self) -> int:
        return sum(len(users) for users in self._typing.values())

    def typing_users(self, conversation_id: str) -> list[str]:
        users = self._typing.get(str(conversation_id))
        if not users:
            return []
        now = self._clock()
        for user_id, seen_at in list(users.items()):
            if now - seen_at >= TYPING_TTL_S:
                del users[user_id]
        if not users:
            self._typing.pop(str(conversation_id), None)
            return []
        return sorted(users)


_hub: RealtimeHub | None = None


def get_hub() -> RealtimeHub:
    global _hub
    if _hub is None:
        _hub = RealtimeHub()
    return _hub


def set_hub(hub: RealtimeHub | None) -> None:
    global _hub
    _hub = hub
