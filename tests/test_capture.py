"""
Capture Source Tests
====================

Command construction, launch failures and process cleanup.
"""

import io

import pytest

from conftest import FakePopen, PopenFactory
from mjpeg_relay.capture import CaptureSource
from mjpeg_relay.errors import CaptureLaunchError


def make_source(popen, vflip=False, hflip=False, command="libcamera-vid"):
    return CaptureSource(
        width=1280,
        height=720,
        fps=15,
        vflip=vflip,
        hflip=hflip,
        command=command,
        popen=popen,
    )


class TestBuildCommand:
    
    def test_mjpeg_to_stdout_without_timeout(self):
        argv = make_source(PopenFactory([])).build_command()
        
        assert argv[0] == "libcamera-vid"
        assert argv[argv.index("--codec") + 1] == "mjpeg"
        assert argv[argv.index("--timeout") + 1] == "0"
        assert argv[-2:] == ["--output", "-"]
    
    def test_resolution_and_fps(self):
        argv = make_source(PopenFactory([])).build_command()
        
        assert argv[argv.index("--width") + 1] == "1280"
        assert argv[argv.index("--height") + 1] == "720"
        assert argv[argv.index("--framerate") + 1] == "15"
    
    @pytest.mark.parametrize(
        "vflip,hflip,expected",
        [
            (False, False, []),
            (True, False, ["--vflip"]),
            (False, True, ["--hflip"]),
            (True, True, ["--vflip", "--hflip"]),
        ],
    )
    def test_flip_flags(self, vflip, hflip, expected):
        argv = make_source(PopenFactory([]), vflip=vflip, hflip=hflip).build_command()
        
        assert [a for a in argv if a.endswith("flip")] == expected


class TestLaunch:
    
    def test_launch_pipes_stdout(self):
        popen = PopenFactory([b"\xff\xd8\xff\xd9"])
        
        process = make_source(popen).launch()
        
        assert process.stdout.read() == b"\xff\xd8\xff\xd9"
        assert popen.launched[0].kwargs["bufsize"] == 0
    
    def test_missing_binary(self):
        popen = PopenFactory([FileNotFoundError(2, "No such file or directory")])
        
        with pytest.raises(CaptureLaunchError, match="rpicam-vid") as excinfo:
            make_source(popen, command="rpicam-vid").launch()
        
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    
    def test_no_stdout(self):
        started = []
        
        def popen(args, **kwargs):
            process = FakePopen(args, running=True)
            process.stdout = None
            started.append(process)
            return process
        
        with pytest.raises(CaptureLaunchError):
            make_source(popen).launch()
        
        assert started[0].killed


class TestCaptureProcess:
    
    def test_close_terminates_running_tool(self):
        popen = PopenFactory([io.BytesIO(b"")], running=True)
        
        with make_source(popen).launch() as process:
            assert process.returncode is None
        
        assert popen.launched[0].terminated
        assert process.stdout.closed
    
    def test_close_after_exit_does_not_signal(self):
        popen = PopenFactory([b""])
        
        make_source(popen).launch().close()
        
        assert not popen.launched[0].terminated
        assert not popen.launched[0].killed
