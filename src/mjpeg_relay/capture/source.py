"""
Capture Source
==============

Launches the external camera tool whose stdout is a raw MJPEG stream.

The tool is invoked libcamera-style in run-indefinitely mode and writes
concatenated JPEG images to standard output. The relay never restarts the
tool mid-session; a new process is launched for every session.

Example:
    from mjpeg_relay.capture import CaptureSource
    
    source = CaptureSource(width=640, height=480, fps=30, vflip=True,
                           hflip=False, command="libcamera-vid")
    with source.launch() as process:
        for frame in FrameAssembler(process.stdout):
            ...
"""

import logging
import subprocess
from typing import BinaryIO, Callable, List, Optional

from mjpeg_relay.errors import CaptureLaunchError


logger = logging.getLogger(__name__)


# Seconds to wait for the tool to exit after SIGTERM before killing it
TERMINATE_TIMEOUT = 2.0


class CaptureProcess:
    """
    Handle on one running capture tool.
    
    Owns the process and its stdout pipe for the duration of a session.
    Closing terminates the tool if it is still running and reaps it.
    """
    
    def __init__(self, process: subprocess.Popen, stdout: BinaryIO) -> None:
        self._process = process
        self.stdout = stdout
    
    @property
    def pid(self) -> int:
        return self._process.pid
    
    @property
    def returncode(self) -> Optional[int]:
        """Exit status, or None while the tool is still running."""
        return self._process.poll()
    
    def close(self) -> None:
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=TERMINATE_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning(f"Capture process {self.pid} ignored SIGTERM, killing")
                self._process.kill()
                self._process.wait()
        self.stdout.close()
        logger.debug(f"Capture process {self.pid} exited with {self._process.returncode}")
    
    def __enter__(self) -> "CaptureProcess":
        return self
    
    def __exit__(self, *args) -> None:
        self.close()


class CaptureSource:
    """
    Factory for capture tool processes.
    
    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Capture frame rate
        vflip: Flip vertically
        hflip: Flip horizontally
        command: Executable name or path of the capture tool
    """
    
    def __init__(
        self,
        width: int,
        height: int,
        fps: int,
        vflip: bool,
        hflip: bool,
        command: str,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.width = width
        self.height = height
        self.fps = fps
        self.vflip = vflip
        self.hflip = hflip
        self.command = command
        self._popen = popen
    
    def build_command(self) -> List[str]:
        """
        Build the argv for the capture tool.
        
        Returns:
            Argument list: MJPEG codec, no timeout, no preview, output to stdout
        """
        argv = [
            self.command,
            "--codec", "mjpeg",
            "--timeout", "0",
            "--nopreview",
            "--width", str(self.width),
            "--height", str(self.height),
            "--framerate", str(self.fps),
        ]
        if self.vflip:
            argv.append("--vflip")
        if self.hflip:
            argv.append("--hflip")
        argv.extend(["--output", "-"])
        return argv
    
    def launch(self) -> CaptureProcess:
        """
        Start the capture tool with stdout piped.
        
        Returns:
            CaptureProcess owning the running tool
            
        Raises:
            CaptureLaunchError: If the tool cannot be started or has no stdout
        """
        argv = self.build_command()
        try:
            process = self._popen(
                argv,
                stdout=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                bufsize=0,
            )
        except (OSError, ValueError) as e:
            raise CaptureLaunchError(f"Failed to start {self.command}: {e}") from e
        
        if process.stdout is None:
            process.kill()
            process.wait()
            raise CaptureLaunchError(f"No stdout from {self.command}")
        
        logger.info(
            f"Capture started (pid={process.pid}): "
            f"{self.width}x{self.height}@{self.fps}fps "
            f"vflip={self.vflip} hflip={self.hflip}"
        )
        return CaptureProcess(process, process.stdout)
