"""
Frame Data Model
================

Internal frame representation passed from the assembler to the transport.

Design Rules:
    - A Frame is one complete JPEG image, ending in the EOI marker
    - Does NOT decode or validate image data beyond its size
    - Length must be non-zero and fit the 32-bit wire header
"""

from dataclasses import dataclass


MAX_FRAME_SIZE = 0xFFFFFFFF


class FrameSizeError(ValueError):
    """Raised when frame data cannot be represented on the wire."""
    pass


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One complete JPEG image cut from the capture stream.
    
    Attributes:
        data: Raw JPEG bytes, including the trailing EOI marker
        sequence: Zero-based index of the frame within its session
    """
    
    data: bytes
    sequence: int = 0
    
    def __post_init__(self) -> None:
        if not self.data:
            raise FrameSizeError("Frame data must not be empty")
        if len(self.data) > MAX_FRAME_SIZE:
            raise FrameSizeError(
                f"Frame of {len(self.data)} bytes exceeds 32-bit length field"
            )
    
    def __len__(self) -> int:
        return len(self.data)
    
    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image bytes."""
        return f"Frame(sequence={self.sequence}, size={len(self.data)})"
