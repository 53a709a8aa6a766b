"""
Asyncio host serving one application handler.

Each connection carries a single request: the host parses it with
httptools, captures a Request, calls the handler, writes the emitted
response and closes the connection.
"""

import asyncio
import logging
import os
import uuid
from typing import Callable, Optional

from .http_parser import HTTPParser, HTTPParserError
from .request import Request
from .response import Emission, Response
from .server_utils import (
    close_writer, configure_logging, get_server_kwargs, send_error, setup_uvloop
)

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Response]


class MessageServer:
    def __init__(
        self,
        handler: Handler,
        host: str = "127.0.0.1",
        port: int = 8000,
        script_name: str = "/index.py",
        read_timeout: float = 10.0,
        body_limit: int = HTTPParser.MAX_BODY_SIZE,
        backlog: int = 2048,
        use_uvloop: bool = True,
    ):
        """
        handler: callable taking a Request and returning an unemitted Response
        script_name: front controller path reported as SCRIPT_NAME
        read_timeout: per-read timeout in seconds
        body_limit: maximum size in bytes for request body
        """
        if not callable(handler):
            raise ValueError("Handler must be callable")
        self.handler = handler
        self.host = host

        # Validate port number
        if not isinstance(port, int):
            raise ValueError("Port must be an integer")
        if port < 0 or port > 65535:
            raise ValueError("Port number must be between 0 and 65535")
        self.port = port

        if not script_name.startswith("/"):
            raise ValueError("Script name must start with '/'")
        self.script_name = script_name

        if read_timeout <= 0:
            raise ValueError("Read timeout must be positive")
        self.read_timeout = read_timeout

        if not isinstance(body_limit, int) or body_limit < 1:
            raise ValueError("Body limit must be a positive integer")
        self.body_limit = body_limit

        if not isinstance(backlog, int):
            raise ValueError("Backlog must be an integer")
        if backlog < 1:
            raise ValueError("Backlog must be at least 1")
        self.backlog = backlog
        self.use_uvloop = use_uvloop

    def run(self, log_level=logging.INFO):
        configure_logging(log_level)
        if self.use_uvloop:
            setup_uvloop()
        try:
            asyncio.run(self.serve())
        except KeyboardInterrupt:
            logger.info("Server stopped")

    async def serve(self):
        server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            **get_server_kwargs(self.backlog),
        )

        bound = f"{self.host}:{self.port}"
        if server.sockets:
            addr = server.sockets[0].getsockname()
            bound = f"{addr[0]}:{addr[1]}"
        logger.info("Serving on %s pid=%s", bound, os.getpid())

        async with server:
            await server.serve_forever()

    def dispatch(self, environ) -> Emission:
        """Run the handler for one environ and emit its response.

        The current request is dropped once the handler has returned.
        """
        request = Request.from_environ(environ)
        try:
            response = self.handler(request)
            if not isinstance(response, Response):
                raise TypeError(f"Handler returned {type(response).__name__}, expected Response")
            response.header("Connection", "close")
            emission = response.emit()
        finally:
            Request.forget()
        return emission

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        peer = writer.get_extra_info("peername")
        client = f"{peer[0]}:{peer[1]}" if peer else "unknown"
        request_id = str(uuid.uuid4())
        start_time = asyncio.get_event_loop().time()
        method, path, status, length = "", "", 0, 0
        written = False

        try:
            parser = await self._read_request(reader)
            if parser is None:
                return

            environ = parser.to_environ(self.script_name, peer)
            environ["HTTP_X_REQUEST_ID"] = request_id
            method, path = environ["REQUEST_METHOD"], environ["PATH_INFO"]

            emission = self.dispatch(environ)
            data = emission.to_bytes(include_body=method != "HEAD")
            written = True
            writer.write(data)
            await writer.drain()
            status = emission.status
            length = 0 if method == "HEAD" else len(emission.body_bytes())

        except HTTPParserError as e:
            status = 400
            logger.warning("Bad request from %s: %s", client, e)
            await send_error(writer, status, str(e))
        except Exception:
            status = 500
            if written:
                # The stream already holds part of a response
                logger.exception("Error sending response to %s", client)
            else:
                logger.exception("Error processing request")
                await send_error(writer, status, "Internal Server Error")
        finally:
            if status:
                duration = asyncio.get_event_loop().time() - start_time
                logger.info("request", extra={
                    "method": method,
                    "path": path,
                    "status": status,
                    "length": length,
                    "duration_s": round(duration, 6),
                    "client": client,
                    "request_id": request_id,
                })
            await close_writer(writer, logger)

    async def _read_request(self, reader: asyncio.StreamReader) -> Optional[HTTPParser]:
        """Read until one request is parsed.

        Returns None when the client goes away or times out before sending
        anything.

        Raises:
            HTTPParserError: If the data is malformed, too large, or the
                client stops in the middle of a request
        """
        parser = HTTPParser(self.body_limit)
        received = False
        while not parser.is_complete:
            try:
                data = await asyncio.wait_for(reader.read(8192), timeout=self.read_timeout)
            except asyncio.TimeoutError:
                logger.warning("Read timeout while receiving request")
                if received:
                    raise HTTPParserError("Request timeout")
                return None

            if not data:
                if received:
                    raise HTTPParserError("Incomplete request")
                return None

            received = True
            parser.feed_data(data)
        return parser
