#!/usr/bin/env python3
"""
Test suite for transport metadata and CORS defaults
"""
import io
import unittest

from reqres.core.transport import TransportMetadata, header_key
from reqres.features.cors import CORSConfig, cors_headers


class TestTransportMetadata(unittest.TestCase):
    def setUp(self):
        self.meta = TransportMetadata({
            'REQUEST_METHOD': 'GET',
            'CONTENT_TYPE': 'application/json',
            'HTTP_X_REQUESTED_WITH': 'XmlHttpRequest',
        })

    def test_lookup(self):
        self.assertEqual(self.meta.get('REQUEST_METHOD'), 'GET')
        self.assertEqual(self.meta['REQUEST_METHOD'], 'GET')

    def test_missing_key_is_none(self):
        self.assertIsNone(self.meta.get('REDIRECT_URL'))

    def test_header_lookup(self):
        self.assertEqual(self.meta.header('X-Requested-With'), 'XmlHttpRequest')
        self.assertEqual(self.meta.header('content-type'), 'application/json')
        self.assertIsNone(self.meta.header('Authorization'))

    def test_is_read_only(self):
        with self.assertRaises(TypeError):
            self.meta['REQUEST_METHOD'] = 'POST'

    def test_source_changes_do_not_leak(self):
        source = {'REQUEST_METHOD': 'GET'}
        meta = TransportMetadata(source)
        source['REQUEST_METHOD'] = 'DELETE'
        self.assertEqual(meta.get('REQUEST_METHOD'), 'GET')

    def test_from_environ_keeps_strings(self):
        meta = TransportMetadata.from_environ({
            'REQUEST_METHOD': 'GET',
            'wsgi.input': io.BytesIO(b''),
            'wsgi.version': (1, 0),
        })
        self.assertEqual(dict(meta), {'REQUEST_METHOD': 'GET'})
        self.assertEqual(len(meta), 1)

    def test_empty(self):
        self.assertEqual(len(TransportMetadata()), 0)


class TestHeaderKey(unittest.TestCase):
    def test_names(self):
        self.assertEqual(header_key('X-Requested-With'), 'HTTP_X_REQUESTED_WITH')
        self.assertEqual(header_key('Content-Length'), 'CONTENT_LENGTH')
        self.assertEqual(header_key('Host'), 'HTTP_HOST')


class TestCORSConfig(unittest.TestCase):
    def test_default_initialization(self):
        """Test CORS config initializes with default values"""
        cors_config = CORSConfig()
        self.assertEqual(cors_config.allowed_origins, ['*'])
        self.assertEqual(cors_config.allowed_headers, [
            'Content-Type', 'Access-Control-Allow-Headers', 'Authorization', 'X-Requested-With'
        ])
        self.assertIsNone(cors_config.allowed_methods)
        self.assertIsNone(cors_config.max_age)

    def test_default_headers(self):
        self.assertEqual(cors_headers(CORSConfig()), [
            ('Access-Control-Allow-Origin', '*'),
            ('Access-Control-Allow-Headers',
             'Content-Type, Access-Control-Allow-Headers, Authorization, X-Requested-With'),
        ])

    def test_optional_headers(self):
        headers = dict(cors_headers(CORSConfig(allowed_methods=['GET', 'POST'], max_age=600)))
        self.assertEqual(headers['Access-Control-Allow-Methods'], 'GET, POST')
        self.assertEqual(headers['Access-Control-Max-Age'], '600')

    def test_single_origin_only(self):
        with self.assertRaises(ValueError):
            CORSConfig(allowed_origins=['https://a.example', 'https://b.example'])

    def test_negative_max_age(self):
        with self.assertRaises(ValueError):
            CORSConfig(max_age=-1)


if __name__ == '__main__':
    unittest.main()
