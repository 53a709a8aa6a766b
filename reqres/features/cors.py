"""
Cross-origin defaults applied to every response.

This module provides:
- CORS configuration settings
- The default header pairs a new response starts with
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

DEFAULT_ALLOWED_HEADERS = [
    'Content-Type',
    'Access-Control-Allow-Headers',
    'Authorization',
    'X-Requested-With',
]


@dataclass
class CORSConfig:
    """CORS configuration settings."""
    allowed_origins: List[str] = None
    allowed_headers: List[str] = None
    allowed_methods: Optional[List[str]] = None
    max_age: Optional[int] = None

    def __post_init__(self):
        # Set defaults if None
        self.allowed_origins = self.allowed_origins or ['*']
        if len(self.allowed_origins) > 1:
            raise ValueError("Access-Control-Allow-Origin carries a single origin")
        self.allowed_headers = self.allowed_headers or list(DEFAULT_ALLOWED_HEADERS)
        if self.max_age is not None and self.max_age < 0:
            raise ValueError("max_age must not be negative")


def cors_headers(cors_config: CORSConfig) -> List[Tuple[str, str]]:
    """Build the CORS header pairs for a new response.

    Args:
        cors_config: CORS configuration

    Returns:
        Header tuples in emission order. Methods and max-age are only
        included when configured.
    """
    # Access-Control-Allow-Origin carries a single origin or '*'
    headers = [
        ('Access-Control-Allow-Origin', cors_config.allowed_origins[0]),
        ('Access-Control-Allow-Headers', ', '.join(cors_config.allowed_headers)),
    ]
    if cors_config.allowed_methods:
        headers.append(('Access-Control-Allow-Methods', ', '.join(cors_config.allowed_methods)))
    if cors_config.max_age is not None:
        headers.append(('Access-Control-Max-Age', str(cors_config.max_age)))
    if cors_config.allowed_origins[0] != '*':
        headers.append(('Vary', 'Origin'))
    return headers
