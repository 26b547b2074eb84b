"""
MJPEG Relay
===========

Camera-to-viewer MJPEG relay for embedded devices.

This package reads the concatenated JPEG output of an external camera tool,
cuts it into frames at JPEG end-of-image markers, and sends each frame to a
single remote viewer over TCP using a 4-byte little-endian length prefix.
Failed sessions are retried forever after a fixed delay.

Components:
    - stream: Frame assembly and the length-prefixed wire format
    - capture: Launching the external camera tool
    - supervisor: Connect / capture / stream lifecycle with retry
    - receiver: Reference viewer endpoint

Example:
    mjpeg-relay --ip 192.168.1.20 --port 2281 --width 640 --height 480
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
