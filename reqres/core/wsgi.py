"""
WSGI adapter for request/response handlers.

wsgi_app turns ``handler(request) -> Response`` into a PEP 3333
application, so the message core can run under any WSGI server.
"""

import functools
from typing import Any, Callable, Dict, List

from .request import Request
from .response import Response


def wsgi_app(handler: Callable[[Request], Response]) -> Callable:
    """Wrap a handler as a WSGI application.

    Handler exceptions propagate to the WSGI server.
    """

    @functools.wraps(handler)
    def application(environ: Dict[str, Any], start_response: Callable) -> List[bytes]:
        request = Request.from_environ(environ)
        try:
            response = handler(request)
            if not isinstance(response, Response):
                raise TypeError(f"Handler returned {type(response).__name__}, expected Response")
            emission = response.emit()
        finally:
            Request.forget()

        start_response(emission.wsgi_status(), emission.wsgi_headers())
        if request.method() == 'HEAD':
            return []
        return [emission.body_bytes()]

    return application
