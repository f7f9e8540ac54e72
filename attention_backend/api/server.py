"""
Combined Server

Main server that runs the sampling controller together with the WebSocket
and REST API servers. Entry point for the backend application.
"""
import asyncio
import datetime
from typing import Optional, Dict, Any, List

from attention_backend.api.rest_api import HttpMethod, RestAPI
from attention_backend.api.serialization import json_safe
from attention_backend.api.websocket_server import WebSocketServer
from attention_backend.layers import SamplingController
from attention_backend.services.detector import create_face_detector
from attention_backend.services.frame_source import create_frame_source
from attention_backend.services.logger_service import get_logger
from attention_backend.services.session_storage import SessionStorage
from attention_backend.types import SystemConfig
from attention_backend.types.domain_events import DomainEvent, DomainEventType
from attention_backend.types.messages import MessageType, WebSocketMessage


EVENT_TO_MESSAGE_TYPE = {
    DomainEventType.GAZE_JUDGED: MessageType.GAZE_JUDGMENT,
    DomainEventType.NO_FACE_DETECTED: MessageType.NO_FACE,
    DomainEventType.CAPTURE_UNAVAILABLE: MessageType.CAPTURE_UNAVAILABLE,
    DomainEventType.CYCLE_FAILED: MessageType.CYCLE_FAILED,
    DomainEventType.TRACKING_STARTED: MessageType.STATUS_UPDATE,
    DomainEventType.TRACKING_STOPPED: MessageType.STATUS_UPDATE,
    DomainEventType.CONFIG_UPDATED: MessageType.STATUS_UPDATE,
}


class Server:
    """
    Main server combining the controller, WebSocket and REST API.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        controller: Optional[SamplingController] = None,
    ):
        """
        Initialize the combined server.

        Args:
            config: System configuration.
            controller: Pre-built controller; created from config if omitted.
        """
        self._config = config or SystemConfig()
        self._logger = get_logger()

        self._session_storage = SessionStorage(self._config.storage.data_dir)
        self._controller = controller or SamplingController(
            frame_source=create_frame_source(self._config.frame_source),
            detector=create_face_detector(self._config.detector),
            config=self._config.tracking,
            session_storage=self._session_storage,
            save_images=self._config.storage.save_images,
        )
        self._websocket_server = WebSocketServer(
            host=self._config.server.host,
            port=self._config.server.websocket_port,
        )
        self._rest_api = RestAPI(
            host=self._config.server.host,
            port=self._config.server.api_port,
            health_info={"detector": self._config.detector.mode.value},
        )

        self._is_running: bool = False
        self._background_tasks: set = set()

        self._wire_components()

    async def start(self) -> None:
        """Start all server components."""
        self._logger.system(
            "servers_starting",
            {
                "websocket_url": f"ws://{self._config.server.host}:{self._config.server.websocket_port}",
                "api_url": f"http://{self._config.server.host}:{self._config.server.api_port}",
            },
        )

        await self._controller.initialize()

        # Start WebSocket and REST API servers
        await self._websocket_server.start()
        await self._rest_api.start()

        self._is_running = True
        self._logger.system("servers_started", {})

        if self._config.tracking.auto_start:
            self._spawn(self._auto_capture(), "auto_capture")

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        self._logger.system("servers_stopping", {})
        self._is_running = False

        for task in list(self._background_tasks):
            task.cancel()

        await self._controller.dispose()
        await self._websocket_server.stop()
        await self._rest_api.stop()

        self._logger.system("servers_stopped", {})

    def is_running(self) -> bool:
        """
        Check if server is running.

        Returns:
            True if server is running.
        """
        return self._is_running

    def get_controller(self) -> SamplingController:
        """
        Get the sampling controller instance.

        Returns:
            The sampling controller.
        """
        return self._controller

    def get_websocket_server(self) -> WebSocketServer:
        return self._websocket_server

    def get_rest_api(self) -> RestAPI:
        return self._rest_api

    def get_session_storage(self) -> SessionStorage:
        return self._session_storage

    # --- Route Handlers ---

    async def start_tracking(self) -> Dict[str, Any]:
        started = await self._controller.start()
        return {"started": started, "status": self._controller.get_status_message()}

    async def stop_tracking(self) -> Dict[str, Any]:
        stopped = await self._controller.stop()
        return {"stopped": stopped, "status": self._controller.get_status_message()}

    def set_interval(self, interval_ms: int) -> Dict[str, Any]:
        self._controller.set_interval(interval_ms)
        return {"status": self._controller.get_status_message()}

    def set_confidence_threshold(self, confidence_threshold: float) -> Dict[str, Any]:
        self._controller.set_confidence_threshold(confidence_threshold)
        return {"status": self._controller.get_status_message()}

    def set_recording(self, enabled: bool) -> Dict[str, Any]:
        self._controller.set_recording(enabled)
        return {"status": self._controller.get_status_message()}

    def get_tracking_data(self) -> Dict[str, Any]:
        data = self._controller.export_samples()
        return {"success": True, "count": len(data), "data": data}

    def clear_tracking_data(self) -> Dict[str, Any]:
        return {"success": True, "cleared": self._controller.clear_samples()}

    def save_tracking_data(self, session_id: Optional[str] = None) -> Dict[str, Any]:
        data = self._controller.export_samples()
        if not data:
            raise ValueError("No tracking data to export")
        path = self._session_storage.save_session(data, session_id)
        return {
            "success": True,
            "message": "Data saved successfully",
            "filePath": str(path),
            "count": len(data),
        }

    def load_tracking_data(self, session_id: str) -> Dict[str, Any]:
        return {"success": True, "data": self._session_storage.load_session(session_id)}

    def list_tracking_sessions(self) -> Dict[str, List[str]]:
        return {"sessions": self._session_storage.list_sessions()}

    # --- Internal Methods ---

    def _wire_components(self) -> None:
        # Controller -> WebSocket (outbound) via domain events
        def handle_domain_event(event: DomainEvent) -> None:
            message_type = EVENT_TO_MESSAGE_TYPE.get(event.event_type)
            if message_type is None:
                self._logger.system(
                    "unhandled_domain_event_type",
                    {"event_type": event.event_type.value},
                    level="DEBUG",
                )
                return

            msg = WebSocketMessage(
                type=message_type,
                timestamp=event.timestamp,
                payload=json_safe(event.payload) or {},
            )
            self._spawn(self._broadcast_websocket_message(msg), "handle_domain_event")

        self._controller.register_event_handler(handle_domain_event)

        # WebSocket -> Controller (inbound)
        self._setup_websocket_handlers()

        # REST routes -> Controller (inbound)
        self._setup_api_routes()

    def _spawn(self, coro, source: str) -> None:
        """Run a coroutine in the background and log its failure."""
        def _handle_task_result(task: asyncio.Task) -> None:
            self._background_tasks.discard(task)
            if task.cancelled():
                self._logger.system(
                    "background_task_cancelled",
                    {"source": source},
                    level="DEBUG",
                )
                return
            exc = task.exception()
            if exc is not None:
                self._logger.system(
                    "background_task_error",
                    {"source": source, "error": str(exc)},
                    level="ERROR",
                )

        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            # No loop running (e.g. controller used synchronously); nothing to push to
            coro.close()
            return
        self._background_tasks.add(task)
        task.add_done_callback(_handle_task_result)

    async def _broadcast_websocket_message(self, msg: WebSocketMessage) -> None:
        """Broadcast a WebSocket message to all connected clients."""
        if not self._websocket_server.is_running():
            return
        sent = await self._websocket_server.broadcast(msg)
        self._logger.system(
            "message_broadcast",
            {"message_type": msg.type.value, "clients": sent},
            level="DEBUG",
        )

    async def _auto_capture(self) -> None:
        """Take one capture shortly after startup."""
        await asyncio.sleep(self._config.tracking.auto_start_delay_ms / 1000.0)
        self._logger.system("auto_capture", {}, level="INFO")
        await self._controller.capture_once()

    def _setup_api_routes(self) -> None:
        """Set up REST API routes with controller handlers."""
        routes = [
            ("/status", HttpMethod.GET, self._controller.get_status_message),
            ("/statistics", HttpMethod.GET, self._controller.get_statistics),
            ("/tracking/start", HttpMethod.POST, self.start_tracking),
            ("/tracking/stop", HttpMethod.POST, self.stop_tracking),
            ("/capture", HttpMethod.POST, self._controller.capture_once),
            ("/config/interval", HttpMethod.POST, self.set_interval),
            ("/config/confidence-threshold", HttpMethod.POST, self.set_confidence_threshold),
            ("/config/recording", HttpMethod.POST, self.set_recording),
            ("/tracking/data", HttpMethod.GET, self.get_tracking_data),
            ("/tracking/data", HttpMethod.DELETE, self.clear_tracking_data),
            ("/tracking/data/save", HttpMethod.POST, self.save_tracking_data),
            ("/tracking/sessions", HttpMethod.GET, self.list_tracking_sessions),
            ("/tracking/data/{session_id}", HttpMethod.GET, self.load_tracking_data),
        ]
        for path, method, handler in routes:
            self._rest_api.register_route(path, method, handler)

    def _setup_websocket_handlers(self) -> None:
        """
        Set up WebSocket message handlers for tracking commands.
        """
        async def on_start(message: WebSocketMessage, client_id: str) -> None:
            await self._controller.start()

        async def on_stop(message: WebSocketMessage, client_id: str) -> None:
            await self._controller.stop()

        async def on_capture(message: WebSocketMessage, client_id: str) -> None:
            try:
                await self._controller.capture_once()
            except Exception as e:
                error_msg = WebSocketMessage(
                    type=MessageType.ERROR,
                    timestamp=datetime.datetime.now(datetime.timezone.utc).timestamp(),
                    payload={"error": str(e)},
                    message_id=message.message_id,
                )
                await self._websocket_server.send_to_client(client_id, error_msg)

        async def on_ping(message: WebSocketMessage, client_id: str) -> None:
            pong_msg = WebSocketMessage(
                type=MessageType.PONG,
                timestamp=datetime.datetime.now(datetime.timezone.utc).timestamp(),
                payload={},
                message_id=message.message_id,  # Echo the incoming message_id
            )
            await self._websocket_server.send_to_client(client_id, pong_msg)

        def status_snapshot() -> WebSocketMessage:
            return WebSocketMessage(
                type=MessageType.STATUS_UPDATE,
                timestamp=datetime.datetime.now(datetime.timezone.utc).timestamp(),
                payload=json_safe(self._controller.get_status_message()),
            )

        self._websocket_server.set_snapshot_provider(status_snapshot)
        self._websocket_server.register_handler(MessageType.START_TRACKING, on_start)
        self._websocket_server.register_handler(MessageType.STOP_TRACKING, on_stop)
        self._websocket_server.register_handler(MessageType.CAPTURE, on_capture)
        self._websocket_server.register_handler(MessageType.PING, on_ping)


def create_server(config_path: Optional[str] = None) -> Server:
    """
    Factory function to create a server instance.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Configured server instance.
    """
    config = SystemConfig.from_file(config_path) if config_path else SystemConfig()
    return Server(config)
