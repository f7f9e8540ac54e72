#!/usr/bin/env python3
"""
Screen Attention Backend - Main Entry Point

Usage:
    python -m attention_backend.main [--config CONFIG_PATH] [--host HOST] [--api-port PORT]

Or after installing the package:
    attention-backend [--config CONFIG_PATH] [--host HOST] [--api-port PORT]
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for direct script execution
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent.parent))


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Screen Attention Tracking Backend Server"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind servers to",
    )
    parser.add_argument(
        "--ws-port",
        type=int,
        default=None,
        help="WebSocket server port",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="REST API server port",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Milliseconds between tracking cycles",
    )
    parser.add_argument(
        "--confidence-threshold",
        type=float,
        default=None,
        help="Minimum eye-direction confidence (0-100)",
    )
    parser.add_argument(
        "--detector",
        type=str,
        choices=["http", "simulated"],
        default=None,
        help="Face detector backend",
    )
    parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="Face analysis endpoint for the http detector",
    )
    parser.add_argument(
        "--frame-source",
        type=str,
        choices=["camera", "static"],
        default=None,
        help="Where frames come from",
    )
    parser.add_argument(
        "--image",
        type=str,
        default=None,
        help="Image file for the static frame source",
    )
    parser.add_argument(
        "--auto-start",
        action="store_true",
        help="Take one capture shortly after startup",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--session-log-level",
        type=str,
        choices=LOG_LEVELS,
        default=None,
        help="Session log level (overrides server.session_log_level)",
    )
    parser.add_argument(
        "--system-log-level",
        type=str,
        choices=LOG_LEVELS,
        default=None,
        help="System log level (overrides server.log_level)",
    )
    return parser.parse_args(argv)


def load_config(config_path: str | None) -> "SystemConfig":
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to configuration file.

    Returns:
        System configuration.
    """
    from attention_backend.types import SystemConfig
    from attention_backend.services.logger_service import get_logger

    logger = get_logger()

    if config_path:
        logger.system("config_loading", {"path": config_path})
        return SystemConfig.from_file(config_path)

    logger.system("config_using_defaults", {})
    return SystemConfig()


def apply_overrides(config: "SystemConfig", args: argparse.Namespace) -> "SystemConfig":
    """
    Override configuration values with command line arguments that were given.

    Args:
        config: Loaded configuration (modified in place).
        args: Parsed command line arguments.

    Returns:
        The same configuration object.
    """
    from attention_backend.types import DetectorMode, FrameSourceMode

    if args.host is not None:
        config.server.host = args.host
    if args.ws_port is not None:
        config.server.websocket_port = args.ws_port
    if args.api_port is not None:
        config.server.api_port = args.api_port
    if args.interval_ms is not None:
        config.tracking.interval_ms = args.interval_ms
    if args.confidence_threshold is not None:
        config.tracking.confidence_threshold = args.confidence_threshold
    if args.auto_start:
        config.tracking.auto_start = True
    if args.detector is not None:
        config.detector.mode = DetectorMode(args.detector)
    if args.endpoint is not None:
        config.detector.endpoint = args.endpoint
    if args.frame_source is not None:
        config.frame_source.mode = FrameSourceMode(args.frame_source)
    if args.image is not None:
        config.frame_source.image_path = args.image
        if args.frame_source is None:
            config.frame_source.mode = FrameSourceMode.STATIC
    return config


def resolve_log_levels(config: "SystemConfig", args: argparse.Namespace) -> tuple[str, str]:
    """
    Pick the session and system log levels.

    Command line flags win over the server section of the configuration;
    --debug forces system logs to DEBUG.

    Returns:
        (session_level, system_level)

    Raises:
        ValueError: If a configured level is not one of LOG_LEVELS.
    """
    session_level = args.session_log_level or config.server.session_log_level
    system_level = args.system_log_level or config.server.log_level
    if args.debug:
        system_level = "DEBUG"

    for key, value in (("session_log_level", session_level), ("log_level", system_level)):
        if str(value).upper() not in LOG_LEVELS:
            raise ValueError(f"server.{key} must be one of {LOG_LEVELS}, got {value!r}")
    return str(session_level).upper(), str(system_level).upper()


def setup_logging(debug: bool = False) -> None:
    """
    Set up logging configuration.

    Args:
        debug: Enable debug level logging.
    """
    import logging
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Suppress verbose third-party library logs
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("websockets.server").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def run_server(config: "SystemConfig") -> None:
    """
    Run the backend server.

    Args:
        config: System configuration.
    """
    from attention_backend.api.server import Server
    from attention_backend.services.logger_service import get_logger
    import signal

    server = Server(config)
    logger = get_logger()

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.system("shutdown_signal_received", {})
        shutdown_event.set()

    # add_signal_handler is not supported on Windows
    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    # Keep the server running until interrupted
    try:
        await server.start()
        # Wait for shutdown signal
        await shutdown_event.wait()
    except asyncio.CancelledError:
        logger.system("server_shutdown_requested", {})
    finally:
        await server.stop()


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Set up logging
    setup_logging(debug=args.debug)

    # Flag levels apply while the config loads; config levels fill in afterwards
    from attention_backend.services.logger_service import initialize_logger
    logger = initialize_logger(
        session_level=args.session_log_level or "INFO",
        system_level="DEBUG" if args.debug else (args.system_log_level or "INFO"),
    )

    try:
        config = apply_overrides(load_config(args.config), args)
        session_level, system_level = resolve_log_levels(config, args)
    except (OSError, ValueError) as e:
        logger.system(
            "config_error",
            {"error": str(e), "error_type": type(e).__name__},
            level="ERROR",
        )
        return 2

    logger.set_level("session", session_level)
    logger.set_level("system", system_level)

    logger.system(
        "backend_startup",
        {
            "websocket_url": f"ws://{config.server.host}:{config.server.websocket_port}",
            "api_url": f"http://{config.server.host}:{config.server.api_port}",
            "detector": config.detector.mode.value,
            "frame_source": config.frame_source.mode.value,
            "interval_ms": config.tracking.interval_ms,
            "debug": args.debug,
        },
    )

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.system("keyboard_interrupt", {})
        return 0
    except Exception as e:
        logger.system(
            "backend_error",
            {"error": str(e), "error_type": type(e).__name__},
            level="ERROR",
        )
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
