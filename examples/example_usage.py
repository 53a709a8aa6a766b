#!/usr/bin/env python3
"""
Example application served by the reqres host or any WSGI server.

    python examples/example_usage.py          # asyncio host on port 8000
    gunicorn examples.example_usage:application
"""

from reqres import JsonResponse, MessageServer, Request, Response, wsgi_app

USERS = {'1': 'ada', '2': 'grace'}


def lookup_user() -> JsonResponse:
    # Reaches the request of the running call without it being passed in
    request = Request.instance()
    user_id = request.input('id')
    if user_id not in USERS:
        return JsonResponse().not_found(f'No user {user_id}.')
    return JsonResponse().success(extend={'id': user_id, 'name': USERS[user_id]})


def handler(request: Request) -> Response:
    if request.path() == 'users':
        return lookup_user()
    if request.method() == 'POST':
        return JsonResponse(request.input()).status(201)
    return Response().header('Content-Type', 'text/plain').write('Hello from reqres\n')


application = wsgi_app(handler)


if __name__ == '__main__':
    MessageServer(handler, host='127.0.0.1', port=8000).run()
