"""
Read-only view over the transport facts of a single request.

Keys follow the CGI/WSGI naming used by the host (REQUEST_METHOD,
SCRIPT_NAME, REDIRECT_URL, HTTP_* headers). Values are strings.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

# Headers that CGI exposes without the HTTP_ prefix
CGI_HEADERS = {
    'CONTENT-TYPE': 'CONTENT_TYPE',
    'CONTENT-LENGTH': 'CONTENT_LENGTH',
}


def header_key(name: str) -> str:
    """Translate an HTTP header name into its transport variable name."""
    upper = name.strip().upper()
    if upper in CGI_HEADERS:
        return CGI_HEADERS[upper]
    return 'HTTP_' + upper.replace('-', '_')


class TransportMetadata(Mapping):
    """Immutable key/value facts supplied by the hosting environment.

    Lookups never raise: ``get`` and ``header`` return ``None`` for keys
    the host did not provide.
    """

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self._data = MappingProxyType(dict(data or {}))

    @classmethod
    def from_environ(cls, environ: Dict[str, Any]) -> 'TransportMetadata':
        """Keep the string-valued entries of a WSGI environ.

        Server objects such as ``wsgi.input`` and ``wsgi.errors`` are left
        behind; they are not transport facts.
        """
        return cls({
            key: value for key, value in environ.items()
            if isinstance(value, str)
        })

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def header(self, name: str) -> Optional[str]:
        """Look up a request header by its HTTP name."""
        return self._data.get(header_key(name))

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f'TransportMetadata({dict(self._data)!r})'
