"""
Frame Assembler
===============

Cuts an unstructured MJPEG byte stream into complete JPEG frames.

The capture tool writes baseline JPEG images back to back with no
separators or lengths. The assembler accumulates bytes and emits one
Frame each time the JPEG end-of-image marker (FF D9) is seen.

Design Rules:
    - A frame is never emitted before its EOI marker has been read
    - Only the newly appended bytes (plus one byte of lookback for a
      marker split across reads) are searched; the buffer is never rescanned
    - Emitted bytes are removed from the buffer immediately
    - A zero-length read ends iteration; it is not an error
    - Read failures surface as CaptureReadError

Example:
    from mjpeg_relay.stream import FrameAssembler
    
    for frame in FrameAssembler(process.stdout):
        transport.send(frame)
"""

import logging
from typing import BinaryIO, Iterator, List

from mjpeg_relay.errors import CaptureReadError
from mjpeg_relay.stream.frame import Frame


logger = logging.getLogger(__name__)


EOI_MARKER = b"\xff\xd9"

DEFAULT_CHUNK_SIZE = 4096


class FrameAssembler:
    """
    Lazy, single-pass iterator of Frames over a readable byte source.
    
    Attributes:
        chunk_size: Maximum bytes requested per read
        frames_emitted: Number of frames yielded so far
        bytes_read: Total bytes consumed from the source
    """
    
    def __init__(self, source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        """
        Initialize assembler.
        
        Args:
            source: Readable binary stream (e.g. a subprocess stdout pipe)
            chunk_size: Read size in bytes. Must be >= 1.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        
        self.chunk_size = chunk_size
        self.frames_emitted: int = 0
        self.bytes_read: int = 0
        
        # read1() returns whatever is available instead of waiting for a full chunk
        self._read = getattr(source, "read1", source.read)
        self._buffer = bytearray()
    
    @property
    def pending_bytes(self) -> int:
        """Bytes of the current, not yet terminated frame."""
        return len(self._buffer)
    
    def __iter__(self) -> Iterator[Frame]:
        while True:
            try:
                chunk = self._read(self.chunk_size)
            except OSError as e:
                raise CaptureReadError(f"Failed to read capture output: {e}") from e
            
            if not chunk:
                if self._buffer:
                    logger.warning(
                        f"Capture output ended with {len(self._buffer)} bytes "
                        f"of an unterminated frame, discarding"
                    )
                    self._buffer.clear()
                return
            
            self.bytes_read += len(chunk)
            yield from self.feed(chunk)
    
    def feed(self, chunk: bytes) -> List[Frame]:
        """
        Append a chunk and return every frame it completes.
        
        Args:
            chunk: Bytes just read from the source
            
        Returns:
            Completed frames in stream order (usually zero or one)
        """
        # A marker may straddle the previous read, so look back one byte
        search_from = max(len(self._buffer) - 1, 0)
        self._buffer += chunk
        
        frames: List[Frame] = []
        cut = 0
        while True:
            index = self._buffer.find(EOI_MARKER, search_from)
            if index < 0:
                break
            end = index + len(EOI_MARKER)
            frames.append(Frame(data=bytes(self._buffer[cut:end]), sequence=self.frames_emitted))
            self.frames_emitted += 1
            cut = search_from = end
        
        if cut:
            del self._buffer[:cut]
        
        return frames
