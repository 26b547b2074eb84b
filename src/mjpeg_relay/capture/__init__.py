"""
Capture Module
==============

Integration with the external camera tool that produces the MJPEG stream.
"""

from mjpeg_relay.capture.source import CaptureProcess, CaptureSource


__all__ = [
    "CaptureProcess",
    "CaptureSource",
]
