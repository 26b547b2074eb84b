"""
Session Supervisor
==================

Owns the connect / capture / stream lifecycle and retries failed sessions.

State Machine:
    CONNECTING → CAPTURING → STREAMING → ENDED     (normal path)
    any state  → FAILED → (retry delay) → CONNECTING

    - CONNECTING: open the TCP connection to the viewer
    - CAPTURING:  launch the capture tool, wait out the warmup delay
    - STREAMING:  assemble frames from capture output, send each one
    - ENDED:      capture output closed; send end-of-session marker, stop
    - FAILED:     log, sleep the fixed retry delay, start over

Retry Policy:
    Fixed delay, no backoff, no jitter, no attempt limit. Each session
    starts from a clean slate: nothing is buffered across sessions, so a
    frame lost to a failed write is never resent.

Example:
    supervisor = SessionSupervisor(
        host="10.19.47.196",
        port=2281,
        capture=CaptureSource(640, 480, 30, True, False, "libcamera-vid"),
        retry_delay=1.0,
        warmup_delay=1.0,
    )
    supervisor.run()  # returns only after a clean end of stream
"""

import logging
import socket
import time
from contextlib import ExitStack
from enum import Enum
from typing import BinaryIO, Callable, Optional, Tuple

from mjpeg_relay.capture import CaptureSource
from mjpeg_relay.errors import ConnectError, RelayError
from mjpeg_relay.stream import FrameAssembler, FrameTransport
from mjpeg_relay.stream.assembler import DEFAULT_CHUNK_SIZE


logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """
    Lifecycle states of one capture-and-forward session.
    
    Attributes:
        CONNECTING: Opening the viewer connection
        CAPTURING: Starting the capture tool
        STREAMING: Relaying frames
        ENDED: Capture output closed cleanly (terminal)
        FAILED: Session aborted by an I/O error; retry pending
    """
    
    CONNECTING = "CONNECTING"
    CAPTURING = "CAPTURING"
    STREAMING = "STREAMING"
    ENDED = "ENDED"
    FAILED = "FAILED"


class SupervisorMetrics:
    """Metrics for SessionSupervisor observability."""
    
    __slots__ = (
        "sessions_started",
        "connect_attempts",
        "failures",
        "frames_sent",
        "bytes_sent",
        "last_error",
    )
    
    def __init__(self) -> None:
        self.sessions_started: int = 0
        self.connect_attempts: int = 0
        self.failures: int = 0
        self.frames_sent: int = 0
        self.bytes_sent: int = 0
        self.last_error: Optional[str] = None
    
    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "sessions_started": self.sessions_started,
            "connect_attempts": self.connect_attempts,
            "failures": self.failures,
            "frames_sent": self.frames_sent,
            "bytes_sent": self.bytes_sent,
            "last_error": self.last_error,
        }


class SessionSupervisor:
    """
    Runs relay sessions until one ends cleanly.
    
    Attributes:
        host: Viewer host name or address
        port: Viewer TCP port
        capture: Factory for capture tool processes
        retry_delay: Seconds to wait after a failed session
        warmup_delay: Seconds to wait after launching the capture tool
        state: Current SessionState
        metrics: Operational metrics across all sessions
    """
    
    def __init__(
        self,
        host: str,
        port: int,
        capture: CaptureSource,
        retry_delay: float,
        warmup_delay: float,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_on_capture_eof: bool = False,
        connect: Callable[[Tuple[str, int]], socket.socket] = socket.create_connection,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize supervisor.
        
        Args:
            host: Viewer host
            port: Viewer port
            capture: CaptureSource launched once per session
            retry_delay: Fixed delay between failed sessions
            warmup_delay: Delay between capture launch and first read
            chunk_size: Read size for the frame assembler
            retry_on_capture_eof: Restart instead of exiting when the
                capture output closes
            connect: Opens the viewer connection (socket.create_connection)
            sleep: Blocking sleep (time.sleep)
        """
        self.host = host
        self.port = port
        self.capture = capture
        self.retry_delay = retry_delay
        self.warmup_delay = warmup_delay
        self.chunk_size = chunk_size
        self.retry_on_capture_eof = retry_on_capture_eof
        
        self._connect = connect
        self._sleep = sleep
        
        self.state: SessionState = SessionState.CONNECTING
        self.metrics = SupervisorMetrics()
    
    def run(self) -> None:
        """
        Run sessions until one reaches ENDED.
        
        RelayError failures are logged and retried forever after
        retry_delay. Any other exception is a bug and propagates.
        """
        logger.info(f"Relaying to {self.host}:{self.port}")
        
        while True:
            try:
                self.run_session()
            except RelayError as e:
                self._enter(SessionState.FAILED)
                self.metrics.failures += 1
                self.metrics.last_error = str(e)
                logger.error(f"Error occurred: {e}. Retrying in {self.retry_delay}s...")
                self._sleep(self.retry_delay)
                continue
            
            if self.retry_on_capture_eof:
                logger.warning(
                    f"Capture output closed. Restarting in {self.retry_delay}s..."
                )
                self._sleep(self.retry_delay)
                continue
            
            logger.info("Stream ended normally")
            return
    
    def run_session(self) -> None:
        """
        Run one session from CONNECTING to ENDED.
        
        The connection and the capture process are released when the
        session returns or fails.
        
        Raises:
            RelayError: On any connect, launch, read or write failure
        """
        self.metrics.sessions_started += 1
        
        with ExitStack() as stack:
            self._enter(SessionState.CONNECTING)
            conn = self._open_connection()
            stack.callback(conn.close)
            writer = conn.makefile("wb")
            stack.callback(_release_writer, writer)
            
            self._enter(SessionState.CAPTURING)
            process = stack.enter_context(self.capture.launch())
            if self.warmup_delay > 0:
                logger.debug(f"Waiting {self.warmup_delay}s for camera warmup")
                self._sleep(self.warmup_delay)
            
            self._enter(SessionState.STREAMING)
            transport = FrameTransport(writer)
            assembler = FrameAssembler(process.stdout, chunk_size=self.chunk_size)
            try:
                for frame in assembler:
                    transport.send(frame)
                
                self._enter(SessionState.ENDED)
                transport.send_end_of_session()
            finally:
                self.metrics.frames_sent += transport.frames_sent
                self.metrics.bytes_sent += transport.bytes_sent
            
            logger.info(
                f"Capture output closed after {transport.frames_sent} frames "
                f"({transport.bytes_sent} bytes sent)"
            )
    
    def _open_connection(self) -> socket.socket:
        self.metrics.connect_attempts += 1
        try:
            conn = self._connect((self.host, self.port))
        except OSError as e:
            raise ConnectError(f"Failed to connect to {self.host}:{self.port}: {e}") from e
        logger.info("Connected to server successfully.")
        return conn
    
    def _enter(self, state: SessionState) -> None:
        logger.debug(f"Session state: {self.state.value} -> {state.value}")
        self.state = state


def _release_writer(writer: BinaryIO) -> None:
    # close() flushes leftover bytes; after a failed write that raises again
    try:
        writer.close()
    except OSError as e:
        logger.debug(f"Error closing connection writer: {e}")
