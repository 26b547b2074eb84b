"""
Frame Receiver Tests
====================

Reference viewer: session handling and latest-frame output.
"""

from conftest import FakeConnection, build_jpeg
from mjpeg_relay.receiver import FrameReceiver, write_latest_frame
from mjpeg_relay.stream import END_OF_SESSION, Frame, encode_frame


ADDRESS = ("192.168.1.50", 40000)


def wire(images, end=True):
    data = b"".join(encode_frame(Frame(data=image)) for image in images)
    return data + (END_OF_SESSION if end else b"")


class TestFrameReceiver:
    
    def test_frames_delivered_to_sinks(self, jpeg_images):
        received = []
        receiver = FrameReceiver("127.0.0.1", 0, sinks=[received.append])
        
        count = receiver.handle_connection(FakeConnection(incoming=wire(jpeg_images)), ADDRESS)
        
        assert count == len(jpeg_images)
        assert [f.data for f in received] == jpeg_images
        assert receiver.sessions == 1
    
    def test_dropped_connection_ends_session_only(self, jpeg_images, caplog):
        receiver = FrameReceiver("127.0.0.1", 0)
        truncated = wire(jpeg_images, end=False)[:-3]
        
        count = receiver.handle_connection(FakeConnection(incoming=truncated), ADDRESS)
        
        assert count == len(jpeg_images) - 1
        assert "aborted" in caplog.text
    
    def test_totals_across_sessions(self, jpeg_images):
        receiver = FrameReceiver("127.0.0.1", 0)
        
        receiver.handle_connection(FakeConnection(incoming=wire(jpeg_images[:2])), ADDRESS)
        receiver.handle_connection(FakeConnection(incoming=END_OF_SESSION), ADDRESS)
        
        assert receiver.sessions == 2
        assert receiver.frames_received == 2


class TestWriteLatestFrame:
    
    def test_replaces_file(self, tmp_path):
        path = tmp_path / "latest.jpg"
        
        write_latest_frame(path, Frame(data=build_jpeg(0)))
        write_latest_frame(path, Frame(data=build_jpeg(1)))
        
        assert path.read_bytes() == build_jpeg(1)
        assert [p.name for p in tmp_path.iterdir()] == ["latest.jpg"]
