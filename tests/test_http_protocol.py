#!/usr/bin/env python3
"""
Test suite for the HTTP parser and the asyncio host
"""
import asyncio
import json
import unittest

from reqres.core.http_parser import HTTPParser, HTTPParserError
from reqres.core.json_response import JsonResponse
from reqres.core.request import Request
from reqres.core.response import Response
from reqres.core.server import MessageServer


class MockStreamWriter:
    def __init__(self):
        self.buffer = []
        self.closed = False

    def write(self, data):
        self.buffer.append(data)

    async def drain(self):
        pass

    def is_closing(self):
        return self.closed

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass

    def get_extra_info(self, name):
        return ('127.0.0.1', 8000) if name == 'peername' else None


class MockStreamReader:
    def __init__(self, data=b''):
        self.data = data
        self.pos = 0

    async def read(self, n=-1):
        if self.pos >= len(self.data):
            return b''
        if n == -1:
            chunk = self.data[self.pos:]
            self.pos = len(self.data)
        else:
            chunk = self.data[self.pos:self.pos + n]
            self.pos += n
        return chunk


class HTTPParserTests(unittest.TestCase):
    def test_parse_request(self):
        parser = HTTPParser()
        parser.feed_data(
            b'POST /app/items?x=1&y=%20z HTTP/1.1\r\n'
            b'Host: example.com\r\n'
            b'Content-Type: application/json\r\n'
            b'X-Requested-With: XmlHttpRequest\r\n'
            b'Content-Length: 8\r\n'
            b'\r\n'
            b'{"a": 1}'
        )
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.method, 'POST')
        self.assertEqual(parser.body, b'{"a": 1}')

        environ = parser.to_environ('/app/index.py', ('10.0.0.1', 5555))
        self.assertEqual(environ['REQUEST_METHOD'], 'POST')
        self.assertEqual(environ['REDIRECT_URL'], '/app/items')
        self.assertEqual(environ['QUERY_STRING'], 'x=1&y=%20z')
        self.assertEqual(environ['CONTENT_TYPE'], 'application/json')
        self.assertEqual(environ['CONTENT_LENGTH'], '8')
        self.assertEqual(environ['HTTP_HOST'], 'example.com')
        self.assertEqual(environ['HTTP_X_REQUESTED_WITH'], 'XmlHttpRequest')
        self.assertEqual(environ['REMOTE_ADDR'], '10.0.0.1')

        request = Request.from_environ(environ)
        try:
            self.assertEqual(request.path(), 'items')
            self.assertTrue(request.ajax())
            self.assertEqual(request.input(), {'x': '1', 'y': ' z', 'a': 1})
        finally:
            Request.forget()

    def test_incremental_feed(self):
        parser = HTTPParser()
        parser.feed_data(b'GET /a HTTP/1.1\r\nHo')
        self.assertFalse(parser.is_complete)
        parser.feed_data(b'st: x\r\n\r\n')
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.headers['Host'], 'x')

    def test_repeated_headers_are_combined(self):
        parser = HTTPParser()
        parser.feed_data(b'GET / HTTP/1.1\r\nAccept: a\r\nAccept: b\r\n\r\n')
        self.assertEqual(parser.headers['Accept'], 'a, b')

    def test_too_many_headers(self):
        parser = HTTPParser()
        headers = b''.join(b'X-H%d: v\r\n' % i for i in range(HTTPParser.MAX_HEADERS + 1))
        with self.assertRaises(HTTPParserError):
            parser.feed_data(b'GET / HTTP/1.1\r\n' + headers + b'\r\n')

    def test_body_limit(self):
        parser = HTTPParser(body_limit=4)
        with self.assertRaises(HTTPParserError):
            parser.feed_data(b'POST / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello')

    def test_malformed_request(self):
        parser = HTTPParser()
        with self.assertRaises(HTTPParserError):
            parser.feed_data(b'NOT A REQUEST\r\n\r\n')


class ServerProtocolTests(unittest.TestCase):
    def setUp(self):
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        self.loop.close()
        asyncio.set_event_loop(None)

    def _run_raw_request(self, server, request_bytes):
        writer = MockStreamWriter()
        reader = MockStreamReader(request_bytes)
        self.loop.run_until_complete(server.handle_client(reader, writer))
        self.assertTrue(writer.closed)
        return b''.join(writer.buffer)

    def test_handler_response_is_written(self):
        def handler(request):
            return JsonResponse().success('Hi.', extend={'path': request.path(), 'q': request.q})

        server = MessageServer(handler, use_uvloop=False)
        raw = self._run_raw_request(server, b'GET /users/5?q=1 HTTP/1.1\r\nHost: x\r\n\r\n')

        head, body = raw.split(b'\r\n\r\n', 1)
        lines = head.split(b'\r\n')
        self.assertEqual(lines[0], b'HTTP/1.1 200')
        self.assertIn(b'Content-Type: application/json', lines)
        self.assertIn(b'Connection: close', lines)
        self.assertIn(b'Content-Length: %d' % len(body), lines)
        self.assertEqual(json.loads(body), {'status': 'success', 'message': 'Hi.', 'path': 'users/5', 'q': '1'})

    def test_request_id_is_transport_metadata(self):
        seen = {}

        def handler(request):
            seen['id'] = request.server.header('X-Request-Id')
            return Response()

        server = MessageServer(handler, use_uvloop=False)
        self._run_raw_request(server, b'GET / HTTP/1.1\r\n\r\n')
        self.assertTrue(seen['id'])

    def test_head_request(self):
        server = MessageServer(lambda request: Response().write('hidden'), use_uvloop=False)
        raw = self._run_raw_request(server, b'HEAD / HTTP/1.1\r\n\r\n')
        self.assertTrue(raw.endswith(b'\r\n\r\n'))
        self.assertIn(b'Content-Length: 6', raw)
        self.assertNotIn(b'hidden', raw)

    def test_handler_error_gives_500(self):
        def handler(request):
            raise RuntimeError("boom")

        server = MessageServer(handler, use_uvloop=False)
        with self.assertLogs('reqres.core.server', level='ERROR'):
            raw = self._run_raw_request(server, b'GET / HTTP/1.1\r\n\r\n')

        head, body = raw.split(b'\r\n\r\n', 1)
        self.assertTrue(head.startswith(b'HTTP/1.1 500'))
        self.assertEqual(json.loads(body), {'status': 'failed', 'message': 'Internal Server Error'})
        self.assertNotIn(b'boom', raw)

    def test_failed_send_is_not_followed_by_error_reply(self):
        class BrokenWriter(MockStreamWriter):
            async def drain(self):
                raise ConnectionResetError("peer went away")

        server = MessageServer(lambda request: Response().write('ok'), use_uvloop=False)
        writer = BrokenWriter()
        reader = MockStreamReader(b'GET / HTTP/1.1\r\n\r\n')
        with self.assertLogs('reqres.core.server', level='ERROR'):
            self.loop.run_until_complete(server.handle_client(reader, writer))

        raw = b''.join(writer.buffer)
        self.assertEqual(raw.count(b'HTTP/1.1 '), 1)
        self.assertTrue(raw.startswith(b'HTTP/1.1 200'))
        self.assertTrue(writer.closed)

    def test_malformed_request_gives_400(self):
        server = MessageServer(lambda request: Response(), use_uvloop=False)
        raw = self._run_raw_request(server, b'NOT A REQUEST\r\n\r\n')
        head, body = raw.split(b'\r\n\r\n', 1)
        self.assertTrue(head.startswith(b'HTTP/1.1 400'))
        self.assertEqual(json.loads(body)['status'], 'failed')

    def test_incomplete_request_gives_400(self):
        server = MessageServer(lambda request: Response(), use_uvloop=False)
        raw = self._run_raw_request(server, b'POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc')
        self.assertTrue(raw.startswith(b'HTTP/1.1 400'))

    def test_empty_connection(self):
        server = MessageServer(lambda request: Response(), use_uvloop=False)
        self.assertEqual(self._run_raw_request(server, b''), b'')

    def test_current_request_is_released(self):
        server = MessageServer(lambda request: Response(), use_uvloop=False)
        environ = {
            'REQUEST_METHOD': 'GET',
            'SCRIPT_NAME': '/index.py',
            'QUERY_STRING': '',
        }
        emission = server.dispatch(environ)
        self.assertEqual(emission.status, 200)
        self.assertIsNone(Request.instance())


class ServerConfigTests(unittest.TestCase):
    def test_invalid_arguments(self):
        def handler(request):
            return Response()

        invalid = [
            {'port': 70000},
            {'port': '80'},
            {'script_name': 'index.py'},
            {'read_timeout': 0},
            {'body_limit': 0},
            {'backlog': 0},
        ]
        for kwargs in invalid:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    MessageServer(handler, **kwargs)

    def test_handler_must_be_callable(self):
        with self.assertRaises(ValueError):
            MessageServer(None)


if __name__ == '__main__':
    unittest.main()
