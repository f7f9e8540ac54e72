"""
WebSocket Server

Pushes gaze judgments and tracking status to presentation clients in real
time and accepts tracking commands from them. Every client receives a status
snapshot as its first message, so a page opened mid-session does not have to
wait for the next cycle to know whether tracking is running.
"""
import json
import uuid
from typing import Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from attention_backend.api.serialization import json_safe
from attention_backend.services.logger_service import get_logger
from attention_backend.types.messages import MessageType, WebSocketMessage


# Runs one inbound command; receives the message and the sender's client id
CommandHandler = Callable[[WebSocketMessage, str], Awaitable[None]]
# Builds the status message sent to a client right after it connects
SnapshotProvider = Callable[[], WebSocketMessage]


def encode_message(message: WebSocketMessage) -> str:
    return json.dumps(json_safe(message.to_dict()))


def decode_message(raw: str) -> Optional[WebSocketMessage]:
    """
    Parse a client frame.

    Returns:
        The message, or None for anything that is not a JSON object with a
        known message type.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        return WebSocketMessage.from_dict(data)
    except ValueError:
        return None


class WebSocketServer:
    """
    Fan-out of controller messages to presentation clients.

    Clients are keyed by a generated id so command replies (pong, capture
    errors) go back to the sender only.
    """

    def __init__(self, host: str = "localhost", port: int = 8765):
        self._host = host
        self._port = port
        self._server: Optional[object] = None
        self._clients: Dict[str, object] = {}
        self._commands: Dict[MessageType, CommandHandler] = {}
        self._snapshot: Optional[SnapshotProvider] = None
        self._is_running: bool = False
        self._logger = get_logger()

    async def start(self) -> None:
        self._server = await websockets.serve(self._serve_client, self._host, self._port)
        self._is_running = True
        self._logger.system(
            "websocket_server_started",
            {"host": self._host, "port": self._port},
            level="DEBUG",
        )

    async def stop(self) -> None:
        """Close every client connection, then the listening socket."""
        self._is_running = False

        clients, self._clients = self._clients, {}
        for client_id, websocket in clients.items():
            try:
                await websocket.close()
            except Exception as e:
                self._logger.system(
                    "websocket_client_close_error",
                    {"client_id": client_id, "error": str(e)},
                    level="DEBUG",
                )

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def is_running(self) -> bool:
        return self._is_running

    def register_handler(self, message_type: MessageType, handler: CommandHandler) -> None:
        """
        Route an inbound message type to a command handler.

        Args:
            message_type: Type of message to handle.
            handler: Coroutine called with the message and the sender's id.
        """
        self._commands[message_type] = handler

    def set_snapshot_provider(self, provider: Optional[SnapshotProvider]) -> None:
        self._snapshot = provider

    async def send_to_client(self, client_id: str, message: WebSocketMessage) -> bool:
        """
        Send a message to one client.

        Returns:
            True if the client is connected and the send succeeded.
        """
        websocket = self._clients.get(client_id)
        if websocket is None:
            return False
        return await self._deliver(client_id, websocket, encode_message(message))

    async def broadcast(self, message: WebSocketMessage) -> int:
        """
        Send a message to every connected client.

        Clients whose connection fails are dropped.

        Returns:
            Number of clients the message reached.
        """
        text = encode_message(message)
        sent = 0
        for client_id, websocket in list(self._clients.items()):
            if await self._deliver(client_id, websocket, text):
                sent += 1
        return sent

    # --- Internal Methods ---

    async def _deliver(self, client_id: str, websocket: object, text: str) -> bool:
        try:
            await websocket.send(text)
            return True
        except ConnectionClosed:
            self._logger.system(
                "websocket_client_gone",
                {"client_id": client_id},
                level="DEBUG",
            )
        except Exception as e:
            self._logger.system(
                "websocket_send_failed",
                {"client_id": client_id, "error": str(e)},
                level="WARNING",
            )
        self._clients.pop(client_id, None)
        return False

    async def _serve_client(self, websocket: object, path: str = "") -> None:
        """
        Connection handler passed to websockets.serve.

        Args:
            websocket: The client connection.
            path: Request path (only passed by older websockets releases).
        """
        client_id = uuid.uuid4().hex
        self._clients[client_id] = websocket
        self._logger.system(
            "websocket_client_connected",
            {"client_id": client_id, "total_clients": len(self._clients)},
        )

        try:
            if self._snapshot is not None:
                await self.send_to_client(client_id, self._snapshot())
            async for raw in websocket:
                await self._process_message(raw, client_id)
        except ConnectionClosed as e:
            self._logger.system(
                "websocket_client_closed",
                {"client_id": client_id, "reason": str(e)},
                level="DEBUG",
            )
        except Exception as e:
            self._logger.system(
                "websocket_client_error",
                {"client_id": client_id, "error": str(e)},
                level="WARNING",
            )
        finally:
            self._clients.pop(client_id, None)
            self._logger.system(
                "websocket_client_disconnected",
                {"client_id": client_id, "total_clients": len(self._clients)},
            )

    async def _process_message(self, raw: str, client_id: str) -> None:
        message = decode_message(raw)
        if message is None:
            self._logger.system(
                "websocket_invalid_message",
                {"client_id": client_id},
                level="WARNING",
            )
            return

        handler = self._commands.get(message.type)
        if handler is None:
            self._logger.system(
                "websocket_unhandled_message",
                {"client_id": client_id, "message_type": message.type.value},
                level="DEBUG",
            )
            return

        try:
            await handler(message, client_id)
        except Exception as e:
            self._logger.system(
                "websocket_command_failed",
                {"message_type": message.type.value, "error": str(e)},
                level="ERROR",
            )
