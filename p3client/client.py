import hashlib
import logging
import os
import time
from urllib.parse import quote

import requests

from .auth import Authenticator
from .errors import RequestFailedError, ResponseFormatError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = 'http://api.p3.photon.storage:13000'
API_GROUP = 'gateway/v1'


class P3Client:
    """
    Client for the P3 object storage gateway.

    Credentials default to the P3_ACCESS_KEY_ID and P3_ACCESS_KEY_SECRET
    environment variables.
    """

    def __init__(self, endpoint: str = DEFAULT_ENDPOINT, access_key_id: str = None,
                 access_key_secret: str = None, timeout: float = None,
                 verify_ssl: bool = True, session: requests.Session = None):
        if access_key_id is None:
            access_key_id = os.getenv('P3_ACCESS_KEY_ID', '')
        if access_key_secret is None:
            access_key_secret = os.getenv('P3_ACCESS_KEY_SECRET', '')
        self.endpoint = endpoint.rstrip('/')
        self.group = API_GROUP
        self.auth = Authenticator(access_key_id, access_key_secret)
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, conf: dict, session: requests.Session = None) -> 'P3Client':
        return cls(
            endpoint=conf.get('endpoint') or DEFAULT_ENDPOINT,
            access_key_id=conf.get('access_key_id'),
            access_key_secret=conf.get('access_key_secret'),
            timeout=conf.get('timeout'),
            verify_ssl=conf.get('verify_ssl', True),
            session=session,
        )

    def object_url(self, key: str) -> str:
        return f"{self.endpoint}/{self.group}/{quote(key.lstrip('/'))}"

    def signed_request(self, method: str, bucket: str, key: str, data: bytes = None,
                       content_type: str = None, params: dict = None) -> requests.PreparedRequest:
        """Build and sign a request without sending it."""
        headers = {}
        if bucket:
            headers['x-p3-bucket'] = bucket
        if data is not None:
            headers['x-p3-content-md5'] = hashlib.md5(data).hexdigest()
        if content_type:
            headers['x-p3-content-type'] = content_type
            headers['Content-Type'] = content_type
        headers['x-p3-unixtime'] = str(int(time.time()))

        req = requests.Request(method, self.object_url(key), headers=headers,
                               data=data, params=params)
        self.auth.sign(req, bucket=bucket, key=key)
        return req.prepare()

    def _send(self, prepared: requests.PreparedRequest) -> requests.Response:
        logger.debug(f"P3 {prepared.method} {prepared.url}")
        resp = self.session.send(prepared, timeout=self.timeout, verify=self.verify_ssl)
        if resp.status_code != 200:
            logger.warning(f"P3 {prepared.method} {prepared.url} failed with status {resp.status_code}")
            raise RequestFailedError(resp.status_code, resp.text)
        return resp

    def put_object(self, bucket: str, key: str, data: bytes) -> str:
        """Upload ``data`` and return the CID assigned by the gateway."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        resp = self._send(self.signed_request('PUT', bucket, key, data=data))
        try:
            return resp.json()['cid']
        except (ValueError, KeyError, TypeError) as e:
            raise ResponseFormatError(f"unexpected PUT response: {resp.text!r}") from e

    def get_object(self, bucket: str, key: str) -> bytes:
        resp = self._send(self.signed_request('GET', bucket, key))
        return resp.content

    def get_object_by_cid(self, cid: str) -> bytes:
        resp = self._send(self.signed_request('GET', '', cid, params={'is_cid': '1'}))
        return resp.content
