"""
Test Configuration
==================

Pytest fixtures and fakes for the relay.

No test needs a camera or a network: the capture tool, its stdout pipe and
the viewer connection are all replaced by in-memory fakes.
"""

import io
import itertools
from typing import Iterable, List, Optional

import pytest


SOI = b"\xff\xd8"
EOI = b"\xff\xd9"


def build_jpeg(index: int, size: int = 64) -> bytes:
    """Synthetic JPEG: SOI, a body with no 0xFF bytes, EOI."""
    body = bytes((index * 31 + i) % 0xFE for i in range(size))
    return SOI + body + EOI


class ChunkedReader:
    """Readable source that returns data in a fixed cycle of chunk sizes."""
    
    def __init__(
        self,
        data: bytes,
        chunk_sizes: Iterable[int] = (4096,),
        fail_after_reads: Optional[int] = None,
    ) -> None:
        self._data = data
        self._pos = 0
        self._sizes = itertools.cycle(chunk_sizes)
        self._fail_after_reads = fail_after_reads
        self.reads = 0
    
    def read(self, n: int) -> bytes:
        if self._fail_after_reads is not None and self.reads >= self._fail_after_reads:
            raise OSError("pipe read failed")
        self.reads += 1
        size = min(n, next(self._sizes))
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk
    
    def close(self) -> None:
        pass


class FakeWriter:
    """Writable stream recording bytes; can fail on the Nth write."""
    
    def __init__(self, fail_on_write: Optional[int] = None, fail_on_flush: bool = False) -> None:
        self.data = bytearray()
        self.writes = 0
        self.flushes = 0
        self.closed = False
        self._fail_on_write = fail_on_write
        self._fail_on_flush = fail_on_flush
    
    def write(self, b: bytes) -> int:
        self.writes += 1
        if self._fail_on_write is not None and self.writes >= self._fail_on_write:
            raise BrokenPipeError(32, "Broken pipe")
        self.data += b
        return len(b)
    
    def flush(self) -> None:
        self.flushes += 1
        if self._fail_on_flush:
            raise ConnectionResetError(104, "Connection reset by peer")
    
    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Stand-in for a connected socket."""
    
    def __init__(self, writer: Optional[FakeWriter] = None, incoming: bytes = b"") -> None:
        self.writer = writer or FakeWriter()
        self.incoming = incoming
        self.closed = False
    
    def makefile(self, mode: str = "r"):
        if "w" in mode:
            return self.writer
        return io.BytesIO(self.incoming)
    
    def close(self) -> None:
        self.closed = True


class FakePopen:
    """Stand-in for subprocess.Popen of the capture tool."""
    
    _next_pid = itertools.count(1000)
    
    def __init__(self, args, stdout=None, running: bool = False, source=None, **kwargs) -> None:
        self.args = args
        self.kwargs = kwargs
        self.pid = next(self._next_pid)
        self.stdout = source if source is not None else io.BytesIO(b"")
        self.returncode = None if running else 0
        self.terminated = False
        self.killed = False
    
    def poll(self):
        return self.returncode
    
    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15
    
    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
    
    def wait(self, timeout=None):
        return self.returncode


class PopenFactory:
    """Callable replacing subprocess.Popen; each launch gets the next source."""
    
    def __init__(self, sources: List, running: bool = False) -> None:
        self._sources = list(sources)
        self.running = running
        self.launched: List[FakePopen] = []
    
    def __call__(self, args, **kwargs) -> FakePopen:
        source = self._sources.pop(0)
        if isinstance(source, BaseException):
            raise source
        if isinstance(source, bytes):
            source = io.BytesIO(source)
        process = FakePopen(args, source=source, running=self.running, **kwargs)
        self.launched.append(process)
        return process


@pytest.fixture
def jpeg_images() -> List[bytes]:
    """Five synthetic JPEGs of different sizes."""
    return [build_jpeg(i, size=50 + i * 937) for i in range(5)]


@pytest.fixture
def mjpeg_stream(jpeg_images) -> bytes:
    """The images concatenated as the capture tool would emit them."""
    return b"".join(jpeg_images)
