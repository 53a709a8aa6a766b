"""
Utility functions for the message host.

This module provides core functionality for:
- Logging setup with structured JSON output
- Event loop setup with uvloop
- Server kwargs generation for different platforms
- Error replies to clients whose request could not be handled

The message core itself never configures logging; only hosts call
configure_logging.
"""

import sys
import socket
import asyncio
import logging
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from .json_response import JsonResponse

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class ServerConfigError(Exception):
    """Custom exception for server configuration errors"""
    pass


def configure_logging(level=logging.INFO, log_file=None, json_format=True):
    """Configure logging for the reqres package.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        json_format: Emit JSON lines instead of plain text

    Returns:
        Configured logger instance
    """
    package_logger = logging.getLogger("reqres")
    package_logger.setLevel(level)

    if json_format:
        formatter = JsonFormatter(JSON_FORMAT)
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # Replace handlers from an earlier call
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger


def setup_uvloop() -> bool:
    """Install uvloop as the event loop policy on platforms that support it.

    Returns:
        True when uvloop is in use

    Raises:
        ServerConfigError: If uvloop is installed but cannot be set up
    """
    if sys.platform == "win32":
        logger.info("uvloop is not supported on Windows, using default event loop")
        return False

    import uvloop

    try:
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except Exception as e:
        logger.error(f"Failed to setup uvloop: {e}")
        raise ServerConfigError("Failed to initialize event loop")
    logger.info("Using uvloop event loop")
    return True


def get_server_kwargs(backlog: int = 2048) -> Dict[str, Any]:
    """Get platform-specific asyncio.start_server kwargs."""
    kwargs: Dict[str, Any] = {
        "reuse_address": True,
        "backlog": backlog,
        "start_serving": True,
    }

    if hasattr(socket, "SO_REUSEPORT") and sys.platform != "win32":
        kwargs["reuse_port"] = True

    return kwargs


async def send_error(
    writer: asyncio.StreamWriter,
    status: int,
    message: str,
) -> None:
    """Answer a client with a failure envelope and leave the connection open.

    Write errors are logged; the caller closes the connection.
    """
    response = JsonResponse().fail(message, status)
    response.header("Connection", "close")
    try:
        if not writer.is_closing():
            writer.write(response.emit().to_bytes())
            await writer.drain()
    except (ConnectionError, OSError) as e:
        logger.error(f"Error while sending error response: {e}")


async def close_writer(writer: asyncio.StreamWriter, log: Optional[logging.Logger] = None) -> None:
    """Close a client connection, logging failures instead of raising."""
    log = log or logger
    try:
        writer.close()
        await writer.wait_closed()
    except (ConnectionError, OSError):
        log.debug("Error closing writer", exc_info=True)
