"""
Response model accumulating status, headers and body fragments.

This module provides:
- Ordered header storage with removal by missing value
- Body fragments with an always current Content-Length header
- A single emission producing status line, headers and body
- Wire (HTTP/1.1) and WSGI renderings of an emission
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, BinaryIO, Dict, List, Mapping, Optional, Tuple

from reqres.features.cors import CORSConfig, cors_headers

if TYPE_CHECKING:
    from .json_response import JsonResponse

logger = logging.getLogger(__name__)

CONTENT_LENGTH = 'Content-Length'
PROTOCOL = 'HTTP/1.1'


class ResponseEmittedError(Exception):
    """Raised when a response is changed or emitted after its emission."""
    pass


class ResponseState(Enum):
    BUILDING = 'building'
    EMITTED = 'emitted'


@dataclass
class Emission:
    """What a response hands to its host: status, headers and body."""
    status: int
    headers: List[Tuple[str, Any]] = field(default_factory=list)
    body: str = ''

    @property
    def status_line(self) -> str:
        return f'{PROTOCOL} {self.status}'

    def body_bytes(self) -> bytes:
        return self.body.encode('utf-8')

    def wire_headers(self) -> List[Tuple[str, Any]]:
        """Headers as sent, with Content-Length counting encoded body bytes.

        The stored Content-Length counts characters; on the wire it has to
        match the UTF-8 body a client reads.
        """
        body_length = len(self.body_bytes())
        return [
            (name, body_length if name == CONTENT_LENGTH else value)
            for name, value in self.headers
        ]

    def header_lines(self) -> List[str]:
        """Render headers as ``Name: Value``; empty values give a bare name."""
        lines = []
        for name, value in self.wire_headers():
            if value is None or value == '':
                lines.append(name)
            else:
                lines.append(f'{name}: {value}')
        return lines

    def to_bytes(self, include_body: bool = True) -> bytes:
        """Render the emission as an HTTP/1.1 message.

        Without the body (HEAD), the headers still describe the full body.
        """
        body = self.body_bytes()
        head = '\r\n'.join([self.status_line] + self.header_lines())
        return (head + '\r\n\r\n').encode('latin-1') + (body if include_body else b'')

    def wsgi_status(self) -> str:
        """Status string for ``start_response``, e.g. ``'404 Not Found'``."""
        try:
            return f'{self.status} {HTTPStatus(self.status).phrase}'
        except ValueError:
            return str(self.status)

    def wsgi_headers(self) -> List[Tuple[str, str]]:
        return [(name, '' if value is None else str(value)) for name, value in self.wire_headers()]


class Response:
    """An outgoing HTTP response built up before a single emission.

    Every response starts with the CORS headers of its ``CORSConfig``.
    """

    def __init__(self, cors_config: Optional[CORSConfig] = None):
        self.status_code: int = 200
        self.headers: Dict[str, Any] = {}
        self.body: List[str] = []
        self.state = ResponseState.BUILDING
        self.cors_config = cors_config or CORSConfig()

        for name, value in cors_headers(self.cors_config):
            self.header(name, value)

    def _ensure_building(self) -> None:
        if self.state is ResponseState.EMITTED:
            raise ResponseEmittedError("Response has already been emitted")

    @property
    def emitted(self) -> bool:
        return self.state is ResponseState.EMITTED

    def with_headers(self, headers: Mapping[str, Any]) -> 'Response':
        """Apply ``header`` for each entry of the mapping."""
        for key, value in headers.items():
            self.header(key, value)
        return self

    def header(self, key: str, value: Any = None) -> 'Response':
        """Set a header, or remove it when no value is given.

        Args:
            key: Header name, stored as given
            value: Header value; None removes the header

        Returns:
            The response, for chaining
        """
        self._ensure_building()
        if value is None:
            self.headers.pop(key, None)
        else:
            self.headers[key] = value
        return self

    def has_header(self, key: str) -> bool:
        return key in self.headers

    def get_header(self, key: str) -> Any:
        return self.headers.get(key)

    def write(self, fragment: Any) -> 'Response':
        """Append a body fragment and grow Content-Length by its length.

        The length is a character count, not a byte count; the wire
        renderings of an emission send the encoded byte length instead.
        """
        self._ensure_building()
        if not isinstance(fragment, str):
            fragment = str(fragment)
        length = int(self.get_header(CONTENT_LENGTH) or 0)
        self.header(CONTENT_LENGTH, length + len(fragment))
        self.body.append(fragment)
        return self

    def status(self, status: int) -> 'Response':
        self._ensure_building()
        self.status_code = status
        return self

    def emit(self) -> Emission:
        """Finish the response and return what should be sent.

        The emission is rendered once before the state changes, so a header
        or body that cannot be encoded leaves the response in BUILDING.

        Raises:
            ResponseEmittedError: If the response was already emitted
            UnicodeEncodeError: If a header is not latin-1 or the body is
                not valid UTF-8 text
        """
        self._ensure_building()
        emission = Emission(
            status=self.status_code,
            headers=list(self.headers.items()),
            body=''.join(self.body),
        )
        emission.to_bytes()
        self.state = ResponseState.EMITTED
        logger.debug("Emitted %s with %d headers", emission.status_line, len(emission.headers))
        return emission

    def flush(self, stream: Optional[BinaryIO] = None) -> Emission:
        """Emit the response, writing it to ``stream`` when one is given."""
        emission = self.emit()
        if stream is not None:
            stream.write(emission.to_bytes())
        return emission

    def json(self, data: Any = None, status: int = 200) -> 'JsonResponse':
        """Return a new JSON response; nothing of this response is carried over."""
        from .json_response import JsonResponse
        return JsonResponse(data, status)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.status_code} {self.state.value}>'
