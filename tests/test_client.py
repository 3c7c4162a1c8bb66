import base64
import hashlib
from unittest.mock import Mock

import pytest
import requests

from p3client import P3Client
from p3client.auth import sign
from p3client.errors import RequestFailedError, ResponseFormatError

ENDPOINT = 'http://gw.test/'


def make_response(status_code=200, json_body=None, content=b'', text=''):
    resp = Mock()
    resp.status_code = status_code
    resp.content = content
    resp.text = text
    resp.json.return_value = json_body
    return resp


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return P3Client(endpoint=ENDPOINT, access_key_id='AKID', access_key_secret='secret',
                    timeout=5, session=session)


def sent_request(session):
    return session.send.call_args[0][0]


def assert_signed(prepared, bucket, key):
    access_key_id, b64 = prepared.headers['Authorization'].split(':', 1)
    assert access_key_id == 'AKID'
    assert base64.b64decode(b64) == sign(prepared, bucket, key, 'secret')


class TestPutObject:

    def test_put(self, client, session):
        session.send.return_value = make_response(json_body={'cid': 'bafycid'})

        cid = client.put_object('my_bucket', '/path/to/obj', b'object content')

        assert cid == 'bafycid'
        prepared = sent_request(session)
        assert prepared.method == 'PUT'
        assert prepared.url == 'http://gw.test/gateway/v1/path/to/obj'
        assert prepared.body == b'object content'
        assert prepared.headers['x-p3-bucket'] == 'my_bucket'
        assert prepared.headers['x-p3-content-md5'] == hashlib.md5(b'object content').hexdigest()
        assert prepared.headers['x-p3-unixtime'].isdigit()
        assert_signed(prepared, 'my_bucket', '/path/to/obj')
        assert session.send.call_args[1] == {'timeout': 5, 'verify': True}

    def test_put_str_data(self, client, session):
        session.send.return_value = make_response(json_body={'cid': 'bafycid'})
        client.put_object('b', 'k', 'text')
        assert sent_request(session).headers['x-p3-content-md5'] == hashlib.md5(b'text').hexdigest()

    def test_put_error_status(self, client, session):
        session.send.return_value = make_response(status_code=403, text='denied')
        with pytest.raises(RequestFailedError) as excinfo:
            client.put_object('b', 'k', b'data')
        assert excinfo.value.status_code == 403
        assert excinfo.value.body == 'denied'

    def test_put_missing_cid(self, client, session):
        session.send.return_value = make_response(json_body={'other': 1})
        with pytest.raises(ResponseFormatError):
            client.put_object('b', 'k', b'data')

    def test_put_invalid_json(self, client, session):
        resp = make_response(text='not json')
        resp.json.side_effect = ValueError('no json')
        session.send.return_value = resp
        with pytest.raises(ResponseFormatError):
            client.put_object('b', 'k', b'data')

    def test_transport_error_propagates(self, client, session):
        session.send.side_effect = requests.ConnectionError('down')
        with pytest.raises(requests.ConnectionError):
            client.put_object('b', 'k', b'data')


class TestGetObject:

    def test_get(self, client, session):
        session.send.return_value = make_response(content=b'object content')

        assert client.get_object('my_bucket', 'path/to/obj') == b'object content'

        prepared = sent_request(session)
        assert prepared.method == 'GET'
        assert prepared.url == 'http://gw.test/gateway/v1/path/to/obj'
        assert prepared.headers['x-p3-bucket'] == 'my_bucket'
        assert 'x-p3-content-md5' not in prepared.headers
        assert_signed(prepared, 'my_bucket', 'path/to/obj')

    def test_get_by_cid(self, client, session):
        session.send.return_value = make_response(content=b'data')

        assert client.get_object_by_cid('bafycid') == b'data'

        prepared = sent_request(session)
        assert prepared.url == 'http://gw.test/gateway/v1/bafycid?is_cid=1'
        assert 'x-p3-bucket' not in prepared.headers
        assert_signed(prepared, '', 'bafycid')

    def test_get_not_found(self, client, session):
        session.send.return_value = make_response(status_code=404, text='not found')
        with pytest.raises(RequestFailedError) as excinfo:
            client.get_object('b', 'missing')
        assert excinfo.value.status_code == 404


class TestSignedRequest:

    def test_content_type(self, client):
        prepared = client.signed_request('PUT', 'b', 'k', data=b'x',
                                         content_type='application/octet-stream')
        assert prepared.headers['x-p3-content-type'] == 'application/octet-stream'
        assert prepared.headers['Content-Type'] == 'application/octet-stream'
        assert_signed(prepared, 'b', 'k')

    def test_key_is_quoted(self, client):
        prepared = client.signed_request('GET', 'b', 'dir/my file')
        assert prepared.url == 'http://gw.test/gateway/v1/dir/my%20file'


class TestConstruction:

    def test_env_credentials(self, monkeypatch):
        monkeypatch.setenv('P3_ACCESS_KEY_ID', 'ENVID')
        monkeypatch.setenv('P3_ACCESS_KEY_SECRET', 'ENVSECRET')
        client = P3Client()
        assert client.endpoint == 'http://api.p3.photon.storage:13000'
        assert client.auth.access_key_id == 'ENVID'
        assert client.auth.secret_key == 'ENVSECRET'

    def test_from_config(self, session):
        client = P3Client.from_config({
            'endpoint': 'https://p3.example.com',
            'access_key_id': 'AK',
            'access_key_secret': 'SK',
            'timeout': 10,
            'verify_ssl': False,
        }, session=session)
        assert client.endpoint == 'https://p3.example.com'
        assert client.auth.access_key_id == 'AK'
        assert client.timeout == 10
        assert client.verify_ssl is False
        assert client.session is session
