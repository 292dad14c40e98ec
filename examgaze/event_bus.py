#!/usr/bin/env python3

from __future__ import annotations

import json
import logging
import socket
import threading
from typing import Any, Callable, Dict, Optional

from examgaze.filters import now_ms

logger = logging.getLogger(__name__)


class SocketEventBus:
    """Broadcasts log events as newline-delimited JSON to local TCP clients."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8765,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.host = host
        self.port = port
        self.clock = clock
        self._sock: Optional[socket.socket] = None
        self._clients: Dict[int, socket.socket] = {}
        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> tuple[str, int]:
        if self._sock is not None:
            return self._sock.getsockname()[:2]
        return self.host, self.port

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def start(self) -> None:
        if self._running:
            return
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((self.host, self.port))
        self._sock.listen(4)
        self._sock.settimeout(0.5)
        self._running = True
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()
        host, port = self.address
        logger.info("[Bus] IPC server listening on tcp://%s:%s", host, port)

    def _accept_loop(self) -> None:
        sock = self._sock
        assert sock is not None
        while self._running:
            try:
                conn, addr = sock.accept()
            except OSError:
                # accept() timeouts land here as well, which keeps the running flag polled.
                continue
            logger.info("[Bus] client connected: %s", addr)
            conn.setblocking(True)
            with self._lock:
                self._clients[conn.fileno()] = conn

    def broadcast(self, message: Dict[str, Any]) -> None:
        if not self._running:
            return
        payload = (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")
        dead = []
        with self._lock:
            for key, sock in list(self._clients.items()):
                try:
                    sock.sendall(payload)
                except OSError:
                    dead.append(key)
            for key in dead:
                self._disconnect(key)

    def emit(
        self,
        event_type: str,
        category: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.broadcast(
            {
                "source": "gaze",
                "timestamp": self.clock(),
                "intent": event_type,
                "category": category,
                "message": message,
                "payload": dict(data or {}),
            }
        )

    def _disconnect(self, key: int) -> None:
        sock = self._clients.pop(key, None)
        if sock:
            try:
                sock.close()
            except OSError:
                pass

    def stop(self) -> None:
        self._running = False
        with self._lock:
            for key in list(self._clients.keys()):
                self._disconnect(key)
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
        self._sock = None
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
