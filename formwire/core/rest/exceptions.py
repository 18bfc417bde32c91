class RestError(Exception):
    """
    Base exception for all request-building failures.
    """

    pass


class InvalidBoundaryError(RestError, ValueError):
    """
    Raised when a multipart boundary token is not a valid RFC 2046 boundary.
    """

    pass


class UploadReadError(RestError):
    """
    Raised when a file-backed upload source cannot be opened or read.

    The offending path is kept on `.path` and named in the message.
    """

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        msg = f"failed to read file for upload at {path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
