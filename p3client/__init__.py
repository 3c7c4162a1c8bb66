from .auth import Authenticator, add_auth_header, sign
from .client import P3Client
from .errors import (
    ConfigError,
    DateParseError,
    P3Error,
    RequestDateMissingError,
    RequestFailedError,
    RequestTooOldError,
    ResponseFormatError,
    SigningEncodingError,
    SigningError,
    TimestampParseError,
    TimestampRangeError,
)

__version__ = '0.1.0'
