class P3Error(Exception):
    """Base class for every error raised by p3client."""


class SigningError(P3Error):
    """A request could not be signed."""


class RequestDateMissingError(SigningError):
    def __init__(self, message: str = 'request date missing'):
        super().__init__(message)


class RequestTooOldError(SigningError):
    def __init__(self, message: str = 'request date too old'):
        super().__init__(message)


class TimestampParseError(SigningError, ValueError):
    """The x-p3-unixtime header is not a base-10 integer."""


class TimestampRangeError(SigningError):
    """The x-p3-unixtime header is well formed but outside years 1-9999."""


class DateParseError(SigningError, ValueError):
    """The Date header is not a valid HTTP date."""


class SigningEncodingError(SigningError):
    """The secret key or signing string is not valid UTF-8."""


class RequestFailedError(P3Error):
    def __init__(self, status_code: int, body: str = ''):
        super().__init__(f"request error with code: {status_code}")
        self.status_code = status_code
        self.body = body


class ResponseFormatError(P3Error):
    pass


class ConfigError(P3Error):
    pass
