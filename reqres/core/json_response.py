"""
JSON response built from a structured data bag.

Writes are classified once at the call boundary:
- Composite (mappings, lists, tuples) merge key-wise into the bag,
  list elements keyed by their position
- Scalar (str, int, bool) is appended at the next free integer position

The bag is serialized when the response is emitted.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .response import CONTENT_LENGTH, Emission, Response
from reqres.features.cors import CORSConfig

logger = logging.getLogger(__name__)


@dataclass
class Composite:
    """Structured input merged key by key."""
    fields: Dict[Any, Any]


@dataclass
class Scalar:
    """Single value appended at the next integer position."""
    value: Union[str, int, bool]


def classify(data: Any) -> Optional[Union[Composite, Scalar]]:
    """Decide how ``JsonResponse.write`` treats a value.

    Lists and tuples become composites keyed by position, so they overwrite
    entries stored under the same integer keys instead of appending.
    Returns None for values that are neither (None, floats, objects).
    """
    if isinstance(data, (Composite, Scalar)):
        return data
    if isinstance(data, Mapping):
        return Composite(dict(data))
    if isinstance(data, (list, tuple)):
        return Composite(dict(enumerate(data)))
    if isinstance(data, (str, int, bool)):
        return Scalar(data)
    return None


def encodable(data: Any) -> Any:
    """Prepare a data bag for ``json.dumps``.

    A dict keyed exactly 0..n-1 in insertion order is encoded as an array.
    """
    if isinstance(data, dict):
        if data and list(data) == list(range(len(data))):
            return [encodable(value) for value in data.values()]
        return {key: encodable(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [encodable(value) for value in data]
    return data


class JsonResponse(Response):
    """A response whose body is the JSON encoding of ``data``."""

    def __init__(self, data: Any = None, status: int = 200, cors_config: Optional[CORSConfig] = None):
        super().__init__(cors_config)
        self.data: Dict[Any, Any] = {}
        self.header('Content-Type', 'application/json')

        if data:
            self.write(data)
        self.status(status)

    def _next_index(self) -> int:
        positions = [key for key in self.data if isinstance(key, int) and not isinstance(key, bool)]
        return max(positions) + 1 if positions else 0

    def write(self, data: Any) -> 'JsonResponse':
        """Merge structured data into the bag, or append a scalar to it."""
        self._ensure_building()
        payload = classify(data)
        if isinstance(payload, Composite):
            self.data.update(payload.fields)
        elif isinstance(payload, Scalar):
            self.data[self._next_index()] = payload.value
        else:
            logger.warning("Ignoring JSON write of unsupported type %s", type(data).__name__)
        return self

    def set(
            self,
            status_name: str,
            message: str,
            status_code: int,
            extra: Optional[Dict[str, Any]] = None
    ) -> 'JsonResponse':
        """Replace the bag with a status envelope.

        Args:
            status_name: Value of the ``status`` field
            message: Value of the ``message`` field
            status_code: HTTP status code of the response
            extra: Additional fields; they win over ``status`` and ``message``

        Returns:
            The response, for chaining
        """
        self.status(status_code)
        self.data = {'status': status_name, 'message': message}
        self.data.update(extra or {})
        return self

    def success(self, message: str = 'Successful.', status: int = 200, extend: Optional[Dict[str, Any]] = None) -> 'JsonResponse':
        return self.set('success', message, status, extend)

    def fail(self, message: str = 'Failed.', status: int = 500, extend: Optional[Dict[str, Any]] = None) -> 'JsonResponse':
        return self.set('failed', message, status, extend)

    def not_found(self, message: str = 'Not found.', extend: Optional[Dict[str, Any]] = None) -> 'JsonResponse':
        return self.set('not-found', message, 404, extend)

    def emit(self) -> Emission:
        """Serialize the bag as the body, then emit.

        If the emission fails, the serialized body is taken back out so the
        response can be repaired and emitted again.

        Raises:
            TypeError: If the bag holds a value JSON cannot encode
            UnicodeEncodeError: If a header cannot be encoded
            ResponseEmittedError: If the response was already emitted
        """
        self._ensure_building()
        document = json.dumps(encodable(self.data), separators=(',', ':'))
        body, length = list(self.body), self.get_header(CONTENT_LENGTH)
        Response.write(self, document)
        try:
            return super().emit()
        except UnicodeEncodeError:
            self.body = body
            self.header(CONTENT_LENGTH, length)
            raise
