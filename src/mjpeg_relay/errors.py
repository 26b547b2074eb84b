"""
Relay Errors
============

Exception taxonomy for the capture-and-forward pipeline.

Every failure that ends a session is a RelayError. The supervisor catches
RelayError (and only RelayError) and retries after its fixed delay.

    RelayError
     ├── ConnectError         remote unreachable or refused
     ├── CaptureLaunchError   capture tool failed to start / no stdout
     ├── CaptureReadError     I/O failure reading capture output
     ├── TransportWriteError  I/O failure writing to the connection
     └── ProtocolError        malformed stream on the receiving side

A zero-length read from the capture output is NOT an error: it ends the
frame iteration normally.
"""


class RelayError(Exception):
    """Base class for session-ending failures."""


class ConnectError(RelayError):
    """Raised when the remote viewer cannot be reached."""


class CaptureLaunchError(RelayError):
    """Raised when the capture process cannot be started."""


class CaptureReadError(RelayError):
    """Raised when reading from the capture output fails."""


class TransportWriteError(RelayError):
    """Raised when writing a frame or marker to the connection fails."""


class ProtocolError(RelayError):
    """Raised when a received stream violates the wire format."""
