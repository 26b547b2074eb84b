"""
Frame Receiver
==============

Reference viewer endpoint for the relay wire format.

Listens for one sender at a time, reads length-prefixed frames until the
end-of-session marker, and hands each frame to the configured sinks:
    - output path: latest frame written atomically as a JPEG file
    - display: decoded and shown in an OpenCV window (optional extra)

A protocol error or dropped connection ends that connection only; the
receiver then waits for the sender's next session.

Usage:
    mjpeg-relay-receive --port 2281 --output /tmp/latest.jpg
    mjpeg-relay-receive --port 2281 --display
"""

import argparse
import logging
import os
import socket
import sys
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from mjpeg_relay.errors import ProtocolError
from mjpeg_relay.stream import Frame, FrameReader

# OpenCV is only needed for --display
try:
    import cv2
    import numpy as np
    _DISPLAY_AVAILABLE = True
except ImportError:
    _DISPLAY_AVAILABLE = False


logger = logging.getLogger(__name__)


FrameSink = Callable[[Frame], None]


def write_latest_frame(path: Path, frame: Frame) -> None:
    """Atomically replace path with the frame's JPEG bytes."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".frame-", suffix=".jpg")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(frame.data)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def show_frame(frame: Frame, window_name: str = "mjpeg-relay") -> None:
    """Decode a frame and show it in an OpenCV window."""
    image = cv2.imdecode(np.frombuffer(frame.data, np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        logger.warning(f"Could not decode frame {frame.sequence} ({len(frame)} bytes)")
        return
    cv2.imshow(window_name, image)
    cv2.waitKey(1)


class FrameReceiver:
    """
    Accepts sender connections and drains their frames into sinks.
    
    Attributes:
        host: Bind host
        port: Bind port
        sinks: Callables invoked with every received frame
        sessions: Connections handled so far
        frames_received: Frames received across all connections
    """
    
    def __init__(self, host: str, port: int, sinks: Optional[List[FrameSink]] = None) -> None:
        self.host = host
        self.port = port
        self.sinks: List[FrameSink] = list(sinks or [])
        self.sessions: int = 0
        self.frames_received: int = 0
    
    def serve_forever(self) -> None:
        """Listen and handle sender connections one at a time."""
        with socket.create_server((self.host, self.port)) as server:
            logger.info(f"Listening on {self.host}:{self.port}")
            while True:
                conn, address = server.accept()
                with conn:
                    self.handle_connection(conn, address)
    
    def handle_connection(self, conn: socket.socket, address: Tuple[str, int]) -> int:
        """
        Read one session from a connected sender.
        
        Returns:
            Number of frames received on this connection
        """
        self.sessions += 1
        logger.info(f"Sender connected from {address[0]}:{address[1]}")
        
        stream = conn.makefile("rb")
        reader = FrameReader(stream)
        try:
            for frame in reader:
                for sink in self.sinks:
                    sink(frame)
        except (ProtocolError, OSError) as e:
            logger.warning(f"Session from {address[0]} aborted: {e}")
        else:
            logger.info(f"Session from {address[0]} ended by sender")
        finally:
            stream.close()
            self.frames_received += reader.frames_received
        
        logger.info(f"Received {reader.frames_received} frames from {address[0]}")
        return reader.frames_received


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mjpeg-relay-receive",
        description="Receive frames from mjpeg-relay",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("-p", "--port", type=int, default=2281, help="Bind port")
    parser.add_argument("-o", "--output", type=Path, help="Write latest frame to this JPEG path")
    parser.add_argument("--display", action="store_true", help="Show frames in a window (needs opencv)")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    
    sinks: List[FrameSink] = []
    if args.output is not None:
        output: Path = args.output
        sinks.append(lambda frame: write_latest_frame(output, frame))
    if args.display:
        if not _DISPLAY_AVAILABLE:
            print(
                "--display requires OpenCV. Install with: pip install 'mjpeg-relay[viewer]'",
                file=sys.stderr,
            )
            return 2
        sinks.append(show_frame)
    
    receiver = FrameReceiver(args.host, args.port, sinks)
    try:
        receiver.serve_forever()
    except KeyboardInterrupt:
        logger.info(f"Interrupted after {receiver.frames_received} frames")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
