"""
Failure taxonomy for one connection attempt.

Every `SSEStreamError` is retryable: the subscription logs it, hands it to the
retry controller and carries on. None of these ever reach the consumer.
"""


class SSEError(Exception):
    """Base class for everything raised by resilient_sse."""


class SSEStreamError(SSEError):
    category: str = "stream"


class BadStatusError(SSEStreamError):
    category = "status"

    def __init__(self, status_code: int):
        super().__init__(f"unexpected status {status_code}")
        self.status_code = status_code


class ProtocolViolation(SSEStreamError):
    category = "protocol"

    def __init__(self, field: str, line: str):
        super().__init__(f"unknown field {field!r} in line {line!r}")
        self.field = field
        self.line = line


class StreamEndedError(SSEStreamError):
    category = "eof"

    def __init__(self):
        super().__init__("server closed the stream")
