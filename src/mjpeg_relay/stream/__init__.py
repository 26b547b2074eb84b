"""
Stream Module
=============

Frame boundary detection and wire framing.

This module provides the data path of the relay:
    - Frame: One complete JPEG image (internal representation)
    - FrameAssembler: Cuts the capture byte stream at EOI markers
    - FrameTransport: Length-prefixed writer for the viewer connection
    - FrameReader: Receiving half of the wire format

Example:
    from mjpeg_relay.stream import FrameAssembler, FrameTransport
    
    transport = FrameTransport(sock.makefile("wb"))
    for frame in FrameAssembler(process.stdout):
        transport.send(frame)
    transport.send_end_of_session()
"""

from mjpeg_relay.stream.frame import Frame, FrameSizeError
from mjpeg_relay.stream.assembler import EOI_MARKER, FrameAssembler
from mjpeg_relay.stream.transport import (
    END_OF_SESSION,
    FrameReader,
    FrameTransport,
    encode_frame,
    encode_header,
)


__all__ = [
    "END_OF_SESSION",
    "EOI_MARKER",
    "Frame",
    "FrameAssembler",
    "FrameReader",
    "FrameSizeError",
    "FrameTransport",
    "encode_frame",
    "encode_header",
]
