"""
Core message components
"""

from .transport import TransportMetadata
from .request import Request
from .response import Emission, Response, ResponseEmittedError, ResponseState
from .json_response import Composite, JsonResponse, Scalar
from .wsgi import wsgi_app
from .server import MessageServer

# Expose public interface
__all__ = [
    "TransportMetadata",
    "Request",
    "Emission",
    "Response",
    "ResponseEmittedError",
    "ResponseState",
    "Composite",
    "JsonResponse",
    "Scalar",
    "wsgi_app",
    "MessageServer",
]
