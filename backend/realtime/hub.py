"""In-process registry of live websocket clients.

Sends never block: every client owns a bounded outbound queue drained by its
own writer task , a client whose queue is full is dropped from the hub.
"""
import asyncio
import itertools
import time
from typing import Any, Dict, List, Optional
from backend.realtime.constants import logger

_client_seq = itertools.count(1)


class Client:
    def __init__(self, user_id: Optional[int] = None, buffer_size: int = 256):
        self.id = f"client-{time.time_ns()}-{next(_client_seq)}"
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self.closed = asyncio.Event()

    def offer(self, message: Dict[str, Any]) -> bool:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True


class Hub:
    def __init__(self, buffer_size: int = 256):
        self.buffer_size = buffer_size
        self._clients: Dict[str, Client] = {}
        self._lock = asyncio.Lock()

    def new_client(self, user_id: Optional[int] = None) -> Client:
        return Client(user_id=user_id, buffer_size=self.buffer_size)

    async def register(self, client: Client) -> None:
        async with self._lock:
            self._clients[client.id] = client
        logger.info("ws.client.connected", extra={"client_id": client.id, "user_id": client.user_id})

    async def unregister(self, client: Client) -> None:
        async with self._lock:
            removed = self._clients.pop(client.id, None)
        client.closed.set()
        if removed is not None:
            logger.info("ws.client.disconnected", extra={"client_id": client.id, "user_id": client.user_id})

    def _drop(self, client: Client) -> None:
        # caller holds the lock
        self._clients.pop(client.id, None)
        client.closed.set()
        logger.warning("ws.client.dropped", extra={"client_id": client.id, "user_id": client.user_id})

    def _deliver(self, targets: List[Client], message: Dict[str, Any]) -> int:
        delivered = 0
        for client in targets:
            if client.offer(message):
                delivered += 1
            else:
                self._drop(client)
        return delivered

    async def broadcast(self, message: Dict[str, Any]) -> int:
        async with self._lock:
            return self._deliver(list(self._clients.values()), message)

    async def send_to_user(self, user_id: int, message: Dict[str, Any]) -> int:
        """Queue ``message`` for every connection of ``user_id`` , no connections is a no-op."""
        async with self._lock:
            targets = [c for c in self._clients.values() if c.user_id == user_id]
            return self._deliver(targets, message)

    def connected(self) -> int:
        return len(self._clients)

    async def close_all(self) -> None:
        async with self._lock:
            for client in self._clients.values():
                client.closed.set()
            self._clients.clear()
