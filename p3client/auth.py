"""
P3 request authentication.

The scheme follows AWS S3 REST authentication: a canonical string is built
from the request and signed with HMAC-SHA1 using the access key secret. The
result goes into the Authorization header as ``<access key id>:<base64 sig>``.

String to sign (newline separated)::

    METHOD
    content md5
    content type
    timestamp (RFC 3339, UTC)
    x-p3-* headers, sorted, one ``name:v1,v2`` per line
    /bucket/key
"""
import base64
import datetime
import hashlib
import hmac
import logging
import re

from .errors import (
    DateParseError,
    RequestDateMissingError,
    RequestTooOldError,
    SigningEncodingError,
    TimestampParseError,
    TimestampRangeError,
)

logger = logging.getLogger(__name__)

HEADER_PREFIX = 'x-p3-'
MAX_REQUEST_AGE = datetime.timedelta(minutes=15)

_WEEKDAYS = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')
_LONG_WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')
_MONTHS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
           'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

_TIME = r'(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})'
_MONTH = '(?P<month>' + '|'.join(_MONTHS) + ')'

# RFC 1123, RFC 850, ANSI C asctime(); names are matched in English
# regardless of the process locale.
HTTP_DATE_PATTERNS = (
    re.compile('(?:' + '|'.join(_WEEKDAYS) + r'), (?P<day>[0-9]{2}) ' + _MONTH
               + r' (?P<year>[0-9]{4}) ' + _TIME + ' GMT'),
    re.compile('(?:' + '|'.join(_LONG_WEEKDAYS) + r'), (?P<day>[0-9]{2})-' + _MONTH
               + r'-(?P<year>[0-9]{2}) ' + _TIME + ' GMT'),
    re.compile('(?:' + '|'.join(_WEEKDAYS) + ') ' + _MONTH + r' +(?P<day>[0-9]{1,2}) '
               + _TIME + r' (?P<year>[0-9]{4})'),
)

_UNIXTIME_RE = re.compile(r'[+-]?[0-9]+')


def _as_str(value) -> str:
    # requests puts bytes header values on the wire as-is
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('latin-1')
    return str(value)


def _as_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return [_as_str(v) for v in value]
    return [_as_str(value)]


def _header_values(headers, name: str) -> list:
    name = name.lower()
    values = []
    for k, v in headers.items():
        if k.lower() == name:
            values.extend(_as_list(v))
    return values


def _first_header(headers, *names: str) -> str:
    """First value of the first header in ``names`` that is set and non-empty."""
    for name in names:
        values = _header_values(headers, name)
        if values and values[0]:
            return values[0]
    return ''


def parse_http_date(value: str) -> datetime.datetime:
    for pattern in HTTP_DATE_PATTERNS:
        m = pattern.fullmatch(value)
        if m is None:
            continue
        year = int(m.group('year'))
        if len(m.group('year')) == 2:
            year += 1900 if year >= 69 else 2000
        try:
            return datetime.datetime(
                year, _MONTHS.index(m.group('month')) + 1, int(m.group('day')),
                int(m.group('hour')), int(m.group('minute')), int(m.group('second')),
                tzinfo=datetime.timezone.utc,
            )
        except ValueError as e:
            raise DateParseError(f"invalid Date header: {value!r}") from e
    raise DateParseError(f"invalid Date header: {value!r}")


def request_time(headers) -> datetime.datetime:
    """
    Resolve the request timestamp from x-p3-unixtime, falling back to Date.

    Unix times outside the datetime range (years 1-9999) raise
    TimestampRangeError.
    """
    unixtime = _first_header(headers, 'x-p3-unixtime')
    if unixtime:
        if not _UNIXTIME_RE.fullmatch(unixtime):
            raise TimestampParseError(f"invalid x-p3-unixtime header: {unixtime!r}")
        try:
            return datetime.datetime.fromtimestamp(int(unixtime), tz=datetime.timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise TimestampRangeError(f"x-p3-unixtime out of range: {unixtime!r}") from e

    date = _first_header(headers, 'Date')
    if date:
        return parse_http_date(date)
    raise RequestDateMissingError()


def canonical_headers(headers) -> list:
    grouped = {}
    for k, v in headers.items():
        lk = k.lower()
        if lk.startswith(HEADER_PREFIX):
            grouped.setdefault(lk, []).extend(_as_list(v))
    return [f"{k}:{','.join(grouped[k])}" for k in sorted(grouped)]


def canonical_resource(bucket: str, key: str) -> str:
    segments = (s.strip() for s in f"{bucket}/{key}".split('/'))
    return '/' + '/'.join(s for s in segments if s)


def string_to_sign(request, bucket: str, key: str, now: datetime.datetime = None) -> str:
    """
    Build the canonical string for ``request``.

    ``now`` must be timezone aware; it defaults to the current UTC time and
    only serves the freshness check. Timestamps in the future are accepted.
    """
    headers = request.headers

    # 1) Content-MD5 / Content-Type, x-p3- variants first
    content_md5 = _first_header(headers, 'x-p3-content-md5', 'Content-MD5')
    content_type = _first_header(headers, 'x-p3-content-type', 'Content-Type')

    # 2) Timestamp and freshness
    ts = request_time(headers)
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    if ts < now - MAX_REQUEST_AGE:
        raise RequestTooOldError()

    # 3) x-p3- headers and resource path
    p3_headers = canonical_headers(headers)
    uri = canonical_resource(bucket, key)

    return "\n".join([
        request.method.upper(),
        content_md5,
        content_type,
        ts.astimezone(datetime.timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
        "\n".join(p3_headers),
        uri,
    ])


def _encode(value, what: str) -> bytes:
    try:
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value)
            value.decode('utf-8')
            return value
        return value.encode('utf-8')
    except UnicodeError as e:
        raise SigningEncodingError(f"{what} is not valid UTF-8") from e


def sign(request, bucket: str, key: str, secret_key, now: datetime.datetime = None) -> bytes:
    """Return the raw HMAC-SHA1 signature (20 bytes) of ``request``."""
    to_sign = string_to_sign(request, bucket, key, now=now)
    logger.debug(f"P3 string to sign: {to_sign!r}")

    sk = _encode(secret_key, 'secret key')
    msg = _encode(to_sign, 'string to sign')
    return hmac.new(sk, msg, hashlib.sha1).digest()


def add_auth_header(request, bucket: str, key: str, access_key_id: str, secret_key,
                    now: datetime.datetime = None) -> str:
    """
    Sign ``request`` and set its Authorization header.

    Headers are left untouched when signing fails. Returns the header value.
    """
    sig = sign(request, bucket, key, secret_key, now=now)
    signature_b64 = base64.b64encode(sig).decode('utf-8')
    auth = f"{access_key_id}:{signature_b64}"
    request.headers['Authorization'] = auth
    return auth


class Authenticator:
    def __init__(self, access_key_id: str, secret_key):
        self.access_key_id = access_key_id
        self.secret_key = secret_key

    def __repr__(self):
        return f"Authenticator(access_key_id={self.access_key_id!r})"

    def sign(self, request, bucket: str = '', key: str = '') -> str:
        return add_auth_header(request, bucket, key, self.access_key_id, self.secret_key)
