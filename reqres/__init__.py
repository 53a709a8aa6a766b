from .core import (
    TransportMetadata, Request, Response, JsonResponse, Emission,
    ResponseEmittedError, Composite, Scalar, wsgi_app, MessageServer
)
from .features import CORSConfig

__version__ = '1.0.0'

__all__ = [
    # Request side
    'TransportMetadata',
    'Request',

    # Response side
    'Response',
    'JsonResponse',
    'Emission',
    'ResponseEmittedError',
    'Composite',
    'Scalar',

    # Hosting
    'wsgi_app',
    'MessageServer',

    # Features
    'CORSConfig',
]
