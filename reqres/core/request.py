"""
Request model merging every inbound data source into one input space.

This module provides:
- Source merging with a fixed precedence (query, then body, then raw JSON)
- Derived request facts (method, path, AJAX marker) read from transport metadata
- A per-call "current request" reachable from any code running in that call
- Capture from a WSGI environ
"""

import json
import logging
from contextvars import ContextVar
from io import BytesIO
from posixpath import dirname
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs

from .transport import TransportMetadata

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'
AJAX_MARKER = 'XmlHttpRequest'

# Scoped per thread and per asyncio task
_current = ContextVar('reqres_current_request', default=None)


def decode_raw_body(raw_body: Union[bytes, str, None]) -> Dict[str, Any]:
    """Decode a raw request body as a JSON object.

    Returns an empty dict when the body is empty, is not valid JSON, or
    decodes to something other than an object.
    """
    if not raw_body:
        return {}
    try:
        decoded = json.loads(raw_body)
    except ValueError as e:
        logger.debug("Ignoring undecodable request body: %s", e)
        return {}
    if not isinstance(decoded, dict):
        logger.debug("Ignoring request body of type %s", type(decoded).__name__)
        return {}
    return decoded


def parse_fields(encoded: Union[bytes, str]) -> Dict[str, str]:
    """Parse urlencoded fields, keeping the last value of repeated keys."""
    if isinstance(encoded, bytes):
        encoded = encoded.decode('utf-8', errors='replace')
    return {
        key: values[-1]
        for key, values in parse_qs(encoded, keep_blank_values=True).items()
    }


class Request:
    """A single inbound request.

    The input space is built from the given groups in order; later groups
    overwrite earlier keys.
    """

    def __init__(self, *groups: Optional[Dict[str, Any]], server: Optional[TransportMetadata] = None):
        self.data: Dict[str, Any] = {}
        for group in groups:
            self.data.update(group or {})
        self.server = server if server is not None else TransportMetadata()

    @classmethod
    def capture(
            cls,
            query: Optional[Dict[str, Any]] = None,
            body: Optional[Dict[str, Any]] = None,
            server: Union[TransportMetadata, Dict[str, str], None] = None,
            raw_body: Union[bytes, str, None] = None
    ) -> 'Request':
        """Build the request for the current call and make it current.

        Args:
            query: Parsed query-string fields
            body: Parsed body fields
            server: Transport metadata, as a mapping or TransportMetadata
            raw_body: Raw request body, merged last when it is a JSON object

        Returns:
            The captured request. It replaces any request captured earlier
            in the same context.
        """
        if not isinstance(server, TransportMetadata):
            server = TransportMetadata(server)
        request = cls(query, body, decode_raw_body(raw_body), server=server)
        _current.set(request)
        return request

    @classmethod
    def from_environ(cls, environ: Dict[str, Any]) -> 'Request':
        """Capture a request from a WSGI environ."""
        try:
            length = int(environ.get('CONTENT_LENGTH') or 0)
        except ValueError:
            length = 0

        raw_body = b''
        stream = environ.get('wsgi.input') or BytesIO()
        if length > 0:
            raw_body = stream.read(length)

        body = {}
        content_type = environ.get('CONTENT_TYPE', '')
        if content_type.split(';', 1)[0].strip().lower() == FORM_CONTENT_TYPE:
            body = parse_fields(raw_body)

        return cls.capture(
            parse_fields(environ.get('QUERY_STRING', '')),
            body,
            TransportMetadata.from_environ(environ),
            raw_body,
        )

    @classmethod
    def instance(cls) -> Optional['Request']:
        """Return the request captured in this context, or None."""
        return _current.get()

    @classmethod
    def forget(cls) -> None:
        """Drop the current request of this context."""
        _current.set(None)

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Look up a field of the input space.

        Without a key the whole input space is returned.
        """
        if key is None:
            return self.data
        return self.data.get(key, default)

    def __getattr__(self, key: str) -> Any:
        # Only reached when normal attribute lookup fails
        if key.startswith('_') or key in ('data', 'server'):
            raise AttributeError(key)
        return self.input(key)

    def path(self) -> str:
        """Route path relative to the directory of the running script."""
        url = self.server.get('REDIRECT_URL')
        if url is None:
            return ''
        prefix = dirname(self.server.get('SCRIPT_NAME') or '').rstrip('/') + '/'
        if url.startswith(prefix):
            return url[len(prefix):]
        return url

    def method(self) -> str:
        return (self.server.get('REQUEST_METHOD') or '').upper()

    def ajax(self) -> bool:
        return self.server.get('HTTP_X_REQUESTED_WITH') == AJAX_MARKER

    def __repr__(self) -> str:
        return f'<Request {self.method()} {self.path()!r}>'
