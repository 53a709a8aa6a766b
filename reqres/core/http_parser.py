"""
HTTP request parser using httptools.

This module turns raw request bytes into the inputs a Request is captured
from:
- Strict size limits for headers and body
- Incremental parsing as data arrives
- Transport metadata in CGI naming, with a front-controller REDIRECT_URL
"""

from io import BytesIO
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote

import httptools

from .transport import header_key


class HTTPParserError(Exception):
    """Custom exception for HTTP parsing errors"""
    pass


class HTTPParser:
    """Parses one HTTP request using httptools callbacks.

    Constants:
        MAX_BODY_SIZE: Maximum allowed request body size (10MB)
        MAX_HEADER_SIZE: Maximum size per header value (8KB)
        MAX_HEADERS: Maximum number of headers per request (100)
        MAX_URL_SIZE: Maximum request target length (8KB)
    """
    MAX_BODY_SIZE = 10485760  # 10MB limit
    MAX_HEADER_SIZE = 8192    # 8KB per header
    MAX_HEADERS = 100
    MAX_URL_SIZE = 8192

    def __init__(self, body_limit: Optional[int] = None):
        self.parser = httptools.HttpRequestParser(self)
        self.body_limit = body_limit if body_limit is not None else self.MAX_BODY_SIZE
        self.headers: Dict[str, str] = {}
        self.body = b''
        self.url: Optional[bytes] = None
        self.method: Optional[str] = None
        self.http_version: Optional[str] = None
        self._headers_count = 0
        self._parsing_complete = False

    def on_message_begin(self) -> None:
        self.headers = {}
        self.body = b''
        self.url = None
        self._headers_count = 0
        self._parsing_complete = False

    def on_url(self, url: bytes) -> None:
        # httptools may deliver the target in several pieces
        self.url = (self.url or b'') + url
        if len(self.url) > self.MAX_URL_SIZE:
            raise HTTPParserError("URL too long")

    def on_header(self, name: bytes, value: bytes) -> None:
        """Store a single header.

        Raises:
            HTTPParserError: If header limits are exceeded or the header
                is not ASCII
        """
        if self._headers_count >= self.MAX_HEADERS:
            raise HTTPParserError("Too many headers")
        if len(value) > self.MAX_HEADER_SIZE:
            raise HTTPParserError("Header value too long")
        try:
            name_str = name.decode('ascii')
            value_str = value.decode('ascii')
        except UnicodeDecodeError:
            raise HTTPParserError("Invalid header encoding")

        # Repeated headers are combined, as CGI does
        if name_str in self.headers:
            self.headers[name_str] = f'{self.headers[name_str]}, {value_str}'
        else:
            self.headers[name_str] = value_str
        self._headers_count += 1

    def on_headers_complete(self) -> None:
        self.method = self.parser.get_method().decode('ascii')
        self.http_version = self.parser.get_http_version()

    def on_body(self, body: bytes) -> None:
        if len(self.body) + len(body) > self.body_limit:
            raise HTTPParserError("Request body too large")
        self.body += body

    def on_message_complete(self) -> None:
        self._parsing_complete = True

    def feed_data(self, data: bytes) -> None:
        """Feed raw request data to the parser.

        Raises:
            HTTPParserError: If the data is not a valid request or breaks
                a limit
        """
        try:
            self.parser.feed_data(data)
        except HTTPParserError:
            raise
        except httptools.HttpParserError as e:
            # Errors raised in callbacks arrive wrapped
            cause = e.__context__
            if isinstance(cause, HTTPParserError):
                raise cause
            raise HTTPParserError(f"Parser error: {e}")

    @property
    def is_complete(self) -> bool:
        return self._parsing_complete

    def split_url(self) -> Tuple[str, str]:
        """Return the (path, query string) of the request target."""
        if self.url is None:
            raise HTTPParserError("No request line parsed")
        try:
            parsed = httptools.parse_url(self.url)
        except httptools.HttpParserInvalidURLError:
            raise HTTPParserError("Invalid request target")
        path = (parsed.path or b'/').decode('latin-1')
        query = (parsed.query or b'').decode('latin-1')
        return path, query

    def to_environ(
            self,
            script_name: str = '/index.py',
            peer: Optional[Tuple[str, int]] = None
    ) -> Dict[str, Any]:
        """Build a WSGI-style environ for the parsed request.

        ``REDIRECT_URL`` carries the decoded request path, as a front
        controller rewrite would set it, and ``SCRIPT_NAME`` names the
        front controller.
        """
        path, query = self.split_url()
        environ: Dict[str, Any] = {
            'REQUEST_METHOD': self.method or '',
            'SCRIPT_NAME': script_name,
            'PATH_INFO': unquote(path),
            'QUERY_STRING': query,
            'REQUEST_URI': self.url.decode('latin-1'),
            'REDIRECT_URL': unquote(path),
            'CONTENT_TYPE': '',
            'CONTENT_LENGTH': str(len(self.body)),
            'SERVER_PROTOCOL': f'HTTP/{self.http_version or "1.1"}',
            'wsgi.input': BytesIO(self.body),
        }
        if peer:
            environ['REMOTE_ADDR'] = str(peer[0])
            environ['REMOTE_PORT'] = str(peer[1])

        for name, value in self.headers.items():
            key = header_key(name)
            if key == 'CONTENT_LENGTH':
                continue
            environ[key] = value
        return environ
