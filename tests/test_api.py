#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Unit tests for API endpoints
"""

import unittest
import json
from io import BytesIO
from unittest.mock import Mock

# Import Flask app (web registers the api routes)
from web import app as flask_app
import api
import aws
from fake_s3 import FakeS3Client

ADMIN_IP = '1.2.3.4'
MIB = 1024 * 1024


class APITestCase(unittest.TestCase):
    """Shared setup: an in-memory bucket and a configured allowlist"""

    def setUp(self):
        """Set up test client and bucket"""
        flask_app.config['TESTING'] = True
        flask_app.config['ADMIN_IP_LIST'] = ADMIN_IP + ', 5.6.7.8'
        flask_app.config['S3_BUCKET_NAME'] = 'test-bucket'
        flask_app.config['TRUSTED_IP_HEADER'] = 'CF-Connecting-IP'
        flask_app.config['MAX_FILE_SIZE_MB'] = 10
        self.s3 = FakeS3Client()
        aws._s3_client = self.s3
        self.client = flask_app.test_client()

    def tearDown(self):
        aws._s3_client = None

    def headers(self, ip=ADMIN_IP):
        return {'CF-Connecting-IP': ip} if ip else {}

    def upload(self, data=b'\x89PNG fake', filename='photo.png', content_type='image/png', ip=ADMIN_IP):
        return self.client.post(
            '/api/upload',
            data={'file': (BytesIO(data), filename, content_type)},
            content_type='multipart/form-data',
            headers=self.headers(ip)
        )


class TestListAndFetch(APITestCase):

    def test_list_empty_store(self):
        response = self.client.get('/api/list')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), [])

    def test_list_keys(self):
        self.s3.add('b.jpg', b'b', 'image/jpeg')
        self.s3.add('a.png', b'a', 'image/png')
        response = self.client.get('/api/list')
        data = json.loads(response.data)
        self.assertEqual(sorted(d['key'] for d in data), ['a.png', 'b.jpg'])
        self.assertTrue(all(set(d) == {'key'} for d in data))

    def test_list_unconfigured_store(self):
        flask_app.config['S3_BUCKET_NAME'] = None
        response = self.client.get('/api/list')
        self.assertEqual(response.status_code, 500)
        self.assertIn('configuration', json.loads(response.data)['error'])

    def test_list_store_failure(self):
        self.s3.fail_with = 'bucket on fire'
        response = self.client.get('/api/list')
        self.assertEqual(response.status_code, 500)
        self.assertIn('bucket on fire', json.loads(response.data)['error'])

    def test_fetch_photo(self):
        self.s3.add('abc.webp', b'webpbytes', 'image/webp')
        response = self.client.get('/api/abc.webp')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b'webpbytes')
        self.assertEqual(response.headers['Content-Type'], 'image/webp')
        self.assertEqual(response.headers['Cache-Control'], 'public, max-age=31536000')

    def test_fetch_without_content_type(self):
        self.s3.add('raw', b'bytes', None)
        response = self.client.get('/api/raw')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['Content-Type'], 'application/octet-stream')

    def test_fetch_missing(self):
        response = self.client.get('/api/does-not-exist.jpg')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.data)['error'], 'File not found')

    def test_fetch_store_failure(self):
        self.s3.fail_with = 'slow down'
        response = self.client.get('/api/abc.jpg')
        self.assertEqual(response.status_code, 500)
        self.assertIn('slow down', json.loads(response.data)['error'])

    def test_fetch_unconfigured_store(self):
        flask_app.config['S3_BUCKET_NAME'] = None
        response = self.client.get('/api/abc.jpg')
        self.assertEqual(response.status_code, 500)


class TestIp(APITestCase):

    def test_admin_ip(self):
        data = json.loads(self.client.get('/api/ip', headers=self.headers()).data)
        self.assertEqual(data, {'ip': ADMIN_IP, 'isAdmin': True})

    def test_second_admin_ip_after_trimming(self):
        data = json.loads(self.client.get('/api/ip', headers=self.headers('5.6.7.8')).data)
        self.assertTrue(data['isAdmin'])

    def test_visitor_ip(self):
        data = json.loads(self.client.get('/api/ip', headers=self.headers('9.9.9.9')).data)
        self.assertEqual(data, {'ip': '9.9.9.9', 'isAdmin': False})

    def test_no_trusted_header(self):
        response = self.client.get('/api/ip')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {'ip': 'unknown', 'isAdmin': False})

    def test_no_allowlist(self):
        flask_app.config['ADMIN_IP_LIST'] = None
        data = json.loads(self.client.get('/api/ip', headers=self.headers()).data)
        self.assertEqual(data, {'ip': 'unknown', 'isAdmin': False})


class TestUpload(APITestCase):

    def test_upload_png(self):
        response = self.upload(filename='holiday.png')
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data['message'], 'File uploaded successfully')
        self.assertTrue(data['key'].endswith('.png'))
        self.assertEqual(self.s3.objects[data['key']]['ContentType'], 'image/png')

    def test_upload_unsafe_extension_dropped(self):
        response = self.upload(filename='evil.p/ng')
        key = json.loads(response.data)['key']
        self.assertNotIn('.', key)

    def test_upload_forbidden_for_visitor(self):
        response = self.upload(ip='9.9.9.9')
        self.assertEqual(response.status_code, 403)
        self.assertIn('Forbidden', json.loads(response.data)['error'])
        self.assertEqual(self.s3.calls, [])

    def test_upload_forbidden_without_header(self):
        response = self.upload(ip=None)
        self.assertEqual(response.status_code, 403)

    def test_auth_checked_before_validation(self):
        response = self.client.post('/api/upload', data={}, headers=self.headers('9.9.9.9'))
        self.assertEqual(response.status_code, 403)

    def test_upload_forbidden_without_allowlist(self):
        flask_app.config['ADMIN_IP_LIST'] = None
        self.assertEqual(self.upload().status_code, 403)

    def test_upload_no_file(self):
        response = self.client.post('/api/upload', data={'other': 'x'},
                                    content_type='multipart/form-data', headers=self.headers())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.data)['error'], 'No file provided')

    def test_upload_exactly_max_size(self):
        response = self.upload(data=b'\0' * (10 * MIB), filename='big.jpg', content_type='image/jpeg')
        self.assertEqual(response.status_code, 200)

    def test_upload_one_byte_over(self):
        response = self.upload(data=b'\0' * (10 * MIB + 1), filename='big.jpg', content_type='image/jpeg')
        self.assertEqual(response.status_code, 400)
        self.assertIn('10MB', json.loads(response.data)['error'])
        self.assertEqual(self.s3.objects, {})

    def test_upload_wrong_type(self):
        for content_type in ['image/gif', 'text/plain', 'application/octet-stream', 'image/svg+xml']:
            response = self.upload(data=b'x', filename='a.png', content_type=content_type)
            self.assertEqual(response.status_code, 400, content_type)
            self.assertIn('Invalid file type', json.loads(response.data)['error'])
        self.assertEqual(self.s3.objects, {})

    def test_upload_type_is_not_sniffed(self):
        # declared type wins, even for bytes that are not an image
        response = self.upload(data=b'plain text', filename='a.jpg', content_type='image/jpeg')
        self.assertEqual(response.status_code, 200)

    def test_upload_unconfigured_store(self):
        flask_app.config['S3_BUCKET_NAME'] = None
        response = self.upload()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.data)['error'], 'File storage configuration error.')

    def test_upload_store_failure(self):
        self.s3.fail_with = 'disk full'
        response = self.upload()
        self.assertEqual(response.status_code, 500)
        error = json.loads(response.data)['error']
        self.assertTrue(error.startswith('Upload failed:'))
        self.assertIn('disk full', error)


class TestDelete(APITestCase):

    def test_delete(self):
        self.s3.add('abc.jpg', b'x', 'image/jpeg')
        response = self.client.delete('/api/delete/abc.jpg', headers=self.headers())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data)['message'], 'File abc.jpg deleted successfully.')
        self.assertNotIn('abc.jpg', self.s3.objects)

    def test_delete_missing_is_not_found(self):
        response = self.client.delete('/api/delete/never-uploaded.jpg', headers=self.headers())
        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.data)['error'], 'File not found: never-uploaded.jpg')
        self.assertNotIn('DeleteObject', self.s3.calls)

    def test_delete_forbidden_leaves_object(self):
        self.s3.add('keep.jpg', b'x', 'image/jpeg')
        response = self.client.delete('/api/delete/keep.jpg', headers=self.headers('9.9.9.9'))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.s3.calls, [])
        self.assertEqual(self.client.get('/api/keep.jpg').status_code, 200)

    def test_delete_forbidden_for_missing_key_too(self):
        response = self.client.delete('/api/delete/whatever', headers=self.headers('9.9.9.9'))
        self.assertEqual(response.status_code, 403)

    def test_delete_missing_key_in_path(self):
        response = self.client.delete('/api/delete/', headers=self.headers())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.data)['error'], 'Missing photo key in URL.')

    def test_delete_unconfigured_store(self):
        flask_app.config['S3_BUCKET_NAME'] = None
        response = self.client.delete('/api/delete/abc.jpg', headers=self.headers())
        self.assertEqual(response.status_code, 500)

    def test_delete_store_failure(self):
        self.s3.add('abc.jpg', b'x', 'image/jpeg')
        self.s3.fail_with = 'access denied upstream'
        response = self.client.delete('/api/delete/abc.jpg', headers=self.headers())
        self.assertEqual(response.status_code, 500)
        error = json.loads(response.data)['error']
        self.assertTrue(error.startswith('Deletion failed:'))
        self.assertIn('access denied upstream', error)
        self.s3.fail_with = None
        self.assertIn('abc.jpg', self.s3.objects)


class TestExifEndpoint(APITestCase):

    def test_exif_missing(self):
        self.assertEqual(self.client.get('/api/exif/nope.jpg').status_code, 404)

    def test_exif_for_non_image(self):
        self.s3.add('text.jpg', b'not really a jpeg', 'image/jpeg')
        response = self.client.get('/api/exif/text.jpg')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {})


class TestPhotoLifecycle(APITestCase):
    """Upload, fetch, delete, delete again"""

    def test_scenario(self):
        payload = bytes(range(256)) * (2 * MIB // 256)
        response = self.upload(data=payload, filename='sunset.png', content_type='image/png')
        self.assertEqual(response.status_code, 200)
        key = json.loads(response.data)['key']

        listed = [d['key'] for d in json.loads(self.client.get('/api/list').data)]
        self.assertIn(key, listed)

        response = self.client.get('/api/' + key)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, payload)
        self.assertEqual(response.headers['Content-Type'], 'image/png')

        response = self.client.delete('/api/delete/' + key, headers=self.headers())
        self.assertEqual(response.status_code, 200)

        response = self.client.delete('/api/delete/' + key, headers=self.headers())
        self.assertEqual(response.status_code, 404)

        self.assertEqual(self.client.get('/api/' + key).status_code, 404)


class TestStreamBody(unittest.TestCase):
    """The store body is released however the response ends"""

    def make_body(self):
        body = Mock()
        body.iter_chunks.return_value = iter([b'one', b'two', b'three'])
        return body

    def test_closed_after_full_read(self):
        body = self.make_body()
        self.assertEqual(b''.join(api.streamBody(body)), b'onetwothree')
        body.close.assert_called_once_with()

    def test_closed_when_client_disconnects(self):
        body = self.make_body()
        chunks = api.streamBody(body)
        self.assertEqual(next(chunks), b'one')
        chunks.close()
        body.close.assert_called_once_with()


class TestHealth(APITestCase):

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.data), {'status': 'ok'})


if __name__ == '__main__':
    unittest.main()
