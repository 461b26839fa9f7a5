"""
Realtime WebSocket endpoint.

Protocol (JSON frames):
- Client -> Server:
  {"type": "subscribe", "channel": "notifications:42"}
  {"type": "unsubscribe", "channel": "notifications:42"}
  {"type": "typing", "conversation_id": "3-7", "is_typing": true}
  {"type": "ping"}
- Server -> Client:
  {"type": "event", "channel": ..., "event": ..., "payload": ..., "sent_at": ...}
  {"type": "subscribed" | "unsubscribed", "channel": ...}
  {"type": "pong"} / {"type": "error", "message": ...}
"""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from auth import service as auth_service

from .hub import RealtimeHub, Subscription, conversation_members, get_hub, notifications_channel, streaks_channel

logger = logging.getLogger(__name__)

router = APIRouter()

PRESENCE_CHANNEL = "presence:online"
PRESENCE_CHANNEL_PREFIX = "presence:"
TYPING_CHANNEL_PREFIX = "typing:"


def in_conversation(user_id: int, conversation_id: str) -> bool:
    return user_id in conversation_members(conversation_id)


def can_subscribe(user_id: int, channel: str) -> bool:
    if channel in (notifications_channel(user_id), streaks_channel(user_id)):
        return True
    if channel.startswith(TYPING_CHANNEL_PREFIX):
        return in_conversation(user_id, channel[len(TYPING_CHANNEL_PREFIX) :])
    return channel.startswith(PRESENCE_CHANNEL_PREFIX)


class RealtimeConnection:
    def __init__(self, websocket: WebSocket, hub: RealtimeHub, user_id: int) -> None:
        self.websocket = websocket
        self.hub = hub
        self.user_id = user_id
        self._subscriptions: dict[str, tuple[Subscription, asyncio.Task]] = {}

    async def _forward(self, subscription: Subscription) -> None:
        async for event in subscription:
            await self.websocket.send_json({"type": "event", **event})

    async def subscribe(self, channel: str) -> None:
        if not channel or not can_subscribe(self.user_id, channel):
            await self.websocket.send_json({"type": "error", "message": f"Not allowed to subscribe to {channel!r}."})
            return
        if channel not in self._subscriptions:
            subscription = self.hub.subscribe(channel)
            task = asyncio.create_task(self._forward(subscription))
            self._subscriptions[channel] = (subscription, task)
        await self.websocket.send_json({"type": "subscribed", "channel": channel})

    async def unsubscribe(self, channel: str) -> None:
        entry = self._subscriptions.pop(channel, None)
        if entry is not None:
            subscription, task = entry
            subscription.close()
            task.cancel()
        await self.websocket.send_json({"type": "unsubscribed", "channel": channel})

    async def handle(self, message: dict) -> None:
        kind = str(message.get("type") or "")
        if kind == "ping":
            await self.websocket.send_json({"type": "pong"})
        elif kind == "subscribe":
            await self.subscribe(str(message.get("channel") or ""))
        elif kind == "unsubscribe":
            await self.unsubscribe(str(message.get("channel") or ""))
        elif kind == "typing":
            conversation_id = str(message.get("conversation_id") or "").strip()
            if not conversation_id:
                await self.websocket.send_json({"type": "error", "message": "conversation_id is required."})
                return
            if not in_conversation(self.user_id, conversation_id):
                await self.websocket.send_json({"type": "error", "message": "Not a member of this conversation."})
                return
            self.hub.set_typing(conversation_id, self.user_id, bool(message.get("is_typing")))
        else:
            await self.websocket.send_json({"type": "error", "message": f"Unknown message type: {kind!r}."})

    async def close(self) -> None:
        for subscription, task in self._subscriptions.values():
            subscription.close()
            task.cancel()
        tasks = [task for _, task in self._subscriptions.values()]
        self._subscriptions.clear()
        await asyncio.gather(*tasks, return_exceptions=True)


@router.websocket("/realtime")
async def realtime_websocket(websocket: WebSocket, token: str = Query(default="")) -> None:
    try:
        user = await auth_service.get_user_from_access_token(token)
    except HTTPException as exc:
        await websocket.close(code=1008, reason=str(exc.detail))
        return

    await websocket.accept()
    user_id = int(user["id"])
    hub = get_hub()
    connection = RealtimeConnection(websocket, hub, user_id)
    hub.track(PRESENCE_CHANNEL, str(user_id), {"full_name": user.get("full_name")})
    logger.info("realtime_connected user_id=%s", user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            if isinstance(message, dict):
                await connection.handle(message)
            else:
                await websocket.send_json({"type": "error", "message": "Messages must be JSON objects."})
    except WebSocketDisconnect:
        logger.info("realtime_disconnected user_id=%s", user_id)
    finally:
        await connection.close()
        hub.untrack(PRESENCE_CHANNEL, str(user_id))
