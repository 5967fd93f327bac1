"""WebSocket stream of transaction lifecycle updates."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from stellar_wrap.models import TransactionSnapshot, TransactionState

logger = logging.getLogger(__name__)

# Seconds of client silence before the server sends a keepalive ping
KEEPALIVE_SECONDS = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StreamMessage(BaseModel):
    """One frame on the transaction stream."""

    type: str  # "connected", "transaction", "ping", "pong", "error"
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def for_snapshot(cls, type: str, snapshot: TransactionSnapshot) -> "StreamMessage":
        return cls(type=type, data=snapshot.to_dict())

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump(), default=str).decode("utf-8")


class ConnectionManager:
    """Track connected clients and fan transaction frames out to them."""

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info(f"Stream client joined ({len(self._clients)} connected)")

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
        logger.info(f"Stream client left ({len(self._clients)} connected)")

    async def broadcast(self, message: StreamMessage) -> None:
        """Send a frame to every client, dropping the ones that fail."""
        if not self._clients:
            return

        text = message.to_json()
        async with self._lock:
            dead = []
            for websocket in self._clients:
                try:
                    await websocket.send_text(text)
                except Exception as e:
                    logger.warning(f"Dropping stream client: {e}")
                    dead.append(websocket)
            self._clients.difference_update(dead)

    async def send_transaction(self, snapshot: TransactionSnapshot) -> None:
        await self.broadcast(StreamMessage.for_snapshot("transaction", snapshot))


class TransactionBroadcaster:
    """
    Observation bus sink that pushes transitions to stream clients.

    Transitions are queued synchronously and sent by a single drain task,
    so clients receive them in the order the machine produced them.
    """

    name = "websocket"

    def __init__(self, connection_manager: ConnectionManager):
        self._manager = connection_manager
        self._queue: asyncio.Queue[TransactionSnapshot] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def notify(self, state: TransactionState, snapshot: TransactionSnapshot) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._drain())
        self._queue.put_nowait(snapshot)

    async def _drain(self) -> None:
        while True:
            snapshot = await self._queue.get()
            try:
                await self._manager.send_transaction(snapshot)
            except Exception as e:
                logger.warning(f"Transaction broadcast failed: {e}")
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued transition is sent."""
        if self._task is not None and not self._task.done():
            await self._queue.join()

    async def close(self) -> None:
        """Stop the drain task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket):
    """
    Stream transaction lifecycle updates.

    Frames sent to the client:
    - connected: the current snapshot, once, on connect
    - transaction: every lifecycle transition
    - ping: keepalive after 60s of client silence

    Frame format:
    {
        "type": "transaction",
        "data": {"state": "confirming", "transaction_hash": "...", ...},
        "timestamp": "2026-01-01T00:00:00+00:00"
    }
    """
    await manager.connect(websocket)

    try:
        store = getattr(websocket.app.state, "store", None)
        snapshot = store.snapshot if store is not None else TransactionSnapshot()
        await websocket.send_text(StreamMessage.for_snapshot("connected", snapshot).to_json())

        while True:
            try:
                raw = await asyncio.wait_for(websocket.receive_text(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                await websocket.send_text(StreamMessage(type="ping").to_json())
                continue

            try:
                message = orjson.loads(raw)
            except orjson.JSONDecodeError:
                await websocket.send_text(
                    StreamMessage(type="error", data={"message": "Invalid JSON"}).to_json()
                )
                continue
            await handle_client_message(websocket, message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Stream error: {e}")
    finally:
        await manager.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, message: Any) -> None:
    """Answer a client frame: ping gets pong, anything else an error."""
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        reply = StreamMessage(type="pong")
    else:
        reply = StreamMessage(
            type="error", data={"message": f"Unknown message type: {msg_type}"}
        )
    await websocket.send_text(reply.to_json())
