"""Socket.IO bridge to the Foundry VTT companion module."""

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .foundry_bridge_base import FoundryBridgeBase

logger = logging.getLogger(__name__)


@dataclass
class _PendingCommand:
    command: str
    done: threading.Event = field(default_factory=threading.Event)
    response: dict | None = None
    error: str | None = None

    def resolve(self, message: dict) -> None:
        if message.get("success"):
            self.response = message.get("data") or {}
        else:
            self.error = message.get("error") or "Unknown error"
        self.done.set()

    def fail(self, error: str) -> None:
        self.error = error
        self.done.set()


class FoundryBridge(FoundryBridgeBase):
    """WebSocket bridge to Foundry VTT.

    Python acts as the Socket.IO server and the Foundry module connects as
    the client. Commands go out as ``foundry:command`` and are matched to
    ``foundry:response`` messages by request id. Hook events arrive as
    ``foundry:event``.
    """

    def __init__(self, socketio: Any):
        """Initialize the bridge.

        Args:
            socketio: Flask-SocketIO instance
        """
        self._socketio = socketio
        self._sid: str | None = None
        self._pending: dict[str, _PendingCommand] = {}
        self._handlers: dict[str, list[Callable[[dict], None]]] = {}
        self._lock = threading.Lock()

    @property
    def sid(self) -> str | None:
        with self._lock:
            return self._sid

    def set_connected(self, sid: str) -> None:
        with self._lock:
            self._sid = sid
        logger.info(f"Foundry VTT connected (sid: {sid})")

    def set_disconnected(self) -> None:
        """Forget the client and fail every command still waiting for an answer."""
        with self._lock:
            self._sid = None
            pending = list(self._pending.values())
            self._pending.clear()
        for request in pending:
            request.fail("Foundry disconnected")
        if pending:
            logger.warning(f"Foundry disconnected with {len(pending)} pending commands")
        else:
            logger.info("Foundry VTT disconnected")

    def is_connected(self) -> bool:
        with self._lock:
            return self._sid is not None

    def send_command(self, command: str, data: dict | None = None, timeout: float = 5.0) -> dict:
        request_id = str(uuid.uuid4())
        request = _PendingCommand(command)

        with self._lock:
            sid = self._sid
            if sid is None:
                raise ConnectionError("Foundry VTT is not connected")
            self._pending[request_id] = request

        logger.debug(f"Foundry command {command} ({request_id})")
        self._socketio.emit(
            "foundry:command",
            {"requestId": request_id, "command": command, "data": data or {}},
            room=sid,
        )

        if not request.done.wait(timeout):
            with self._lock:
                self._pending.pop(request_id, None)
            raise TimeoutError(f"Timeout waiting for Foundry response to {command}")

        with self._lock:
            self._pending.pop(request_id, None)
        if request.error:
            raise RuntimeError(request.error)
        return request.response or {}

    def handle_response(self, data: dict) -> None:
        """Complete the command a ``foundry:response`` message answers.

        Args:
            data: Message with requestId, success and data or error
        """
        request_id = data.get("requestId")
        with self._lock:
            request = self._pending.get(request_id) if request_id else None
        if request is None:
            logger.debug(f"Ignoring response for unknown request {request_id}")
            return
        request.resolve(data)

    def handle_event(self, data: dict) -> None:
        """Dispatch a ``foundry:event`` message to its subscribers.

        Args:
            data: Message with eventType and payload
        """
        event_type = data.get("eventType")
        if not event_type:
            return
        payload = data.get("payload") or {}

        with self._lock:
            handlers = list(self._handlers.get(event_type, []))

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Error in Foundry {event_type} handler: {e}")

    def on_event(self, event_type: str, handler: Callable[[dict], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
