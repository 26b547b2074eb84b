"""
Frame Transport
===============

Length-prefixed wire format for relaying frames to the viewer.

Wire Format:
    Per frame:       [u32 little-endian length L][L bytes JPEG]
    End of session:  [u32 little-endian 0]

Real frames are never empty, so a zero header unambiguously ends the
session. There is no handshake, acknowledgement or version negotiation.

Design Rules:
    - Every write is followed by a flush
    - Write failures surface as TransportWriteError, never retried here
    - FrameReader is the receiving half, used by the reference viewer
"""

import logging
import struct
from typing import BinaryIO, Iterator

from mjpeg_relay.errors import ProtocolError, TransportWriteError
from mjpeg_relay.stream.frame import Frame


logger = logging.getLogger(__name__)


HEADER = struct.Struct("<I")

END_OF_SESSION = HEADER.pack(0)


def encode_header(length: int) -> bytes:
    """Encode a frame length as the 4-byte little-endian header."""
    return HEADER.pack(length)


def encode_frame(frame: Frame) -> bytes:
    """Encode a frame as header plus body (4 + len(frame) bytes)."""
    return encode_header(len(frame.data)) + frame.data


class FrameTransport:
    """
    Writes frames onto an open, writable connection.
    
    Attributes:
        frames_sent: Frames written and flushed
        bytes_sent: Bytes written, headers included
    """
    
    def __init__(self, writer: BinaryIO) -> None:
        """
        Initialize transport.
        
        Args:
            writer: Writable binary stream, e.g. socket.makefile("wb")
        """
        self._writer = writer
        self.frames_sent: int = 0
        self.bytes_sent: int = 0
    
    def send(self, frame: Frame) -> None:
        """
        Send one frame and flush.
        
        Raises:
            TransportWriteError: If the write or flush fails
        """
        self._write(encode_header(len(frame.data)), frame.data)
        self.frames_sent += 1
    
    def send_end_of_session(self) -> None:
        """
        Send the zero-length end-of-session marker and flush.
        
        Raises:
            TransportWriteError: If the write or flush fails
        """
        self._write(END_OF_SESSION)
        logger.debug(f"End-of-session marker sent after {self.frames_sent} frames")
    
    def _write(self, *parts: bytes) -> None:
        try:
            for part in parts:
                self._writer.write(part)
            self._writer.flush()
        except OSError as e:
            raise TransportWriteError(f"Failed to write to connection: {e}") from e
        self.bytes_sent += sum(len(part) for part in parts)


class FrameReader:
    """
    Reads length-prefixed frames until the end-of-session marker.
    
    Iteration stops cleanly on the zero header. A connection that closes
    before the marker, or in the middle of a frame, raises ProtocolError.
    
    Example:
        with conn.makefile("rb") as stream:
            for frame in FrameReader(stream):
                show(frame.data)
    """
    
    def __init__(self, reader: BinaryIO) -> None:
        self._reader = reader
        self.frames_received: int = 0
    
    def __iter__(self) -> Iterator[Frame]:
        while True:
            (length,) = HEADER.unpack(self._read_exact(HEADER.size, "header"))
            if length == 0:
                return
            data = self._read_exact(length, "frame body")
            yield Frame(data=data, sequence=self.frames_received)
            self.frames_received += 1
    
    def _read_exact(self, size: int, what: str) -> bytes:
        data = bytearray()
        while len(data) < size:
            chunk = self._reader.read(size - len(data))
            if not chunk:
                raise ProtocolError(
                    f"Connection closed mid-{what}: got {len(data)} of {size} bytes"
                )
            data += chunk
        return bytes(data)
