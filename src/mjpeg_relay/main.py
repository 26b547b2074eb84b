"""
MJPEG Relay Main Application
============================

Command-line entry point: streams camera frames to a remote viewer.

Usage:
    mjpeg-relay --ip 192.168.1.20 --port 2281
    mjpeg-relay -w 1280 -H 720 -f 15 --vflip 0 --timeout 2
    mjpeg-relay --config /etc/mjpeg-relay/config.yaml

Exit Codes:
    0   - Capture output closed and the stream ended normally
    2   - Invalid configuration
    130 - Interrupted
"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from mjpeg_relay import __version__
from mjpeg_relay.capture import CaptureSource
from mjpeg_relay.config import Settings, load_config, setup_logging
from mjpeg_relay.supervisor import SessionSupervisor


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mjpeg-relay",
        description="Stream MJPEG frames from the camera to a remote viewer",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", help="Path to YAML config file")
    parser.add_argument("-w", "--width", type=int, help="Width of frame")
    parser.add_argument("-H", "--height", type=int, help="Height of frame")
    parser.add_argument("-f", "--fps", type=int, help="FPS from camera")
    parser.add_argument("-i", "--ip", help="Viewer IP address")
    parser.add_argument("-p", "--port", type=int, help="Viewer port")
    parser.add_argument(
        "-v", "--vflip", type=int, choices=(0, 1),
        help="Flip frame vertically (0 or 1)",
    )
    parser.add_argument(
        "--hflip", type=int, choices=(0, 1),
        help="Flip frame horizontally (0 or 1)",
    )
    parser.add_argument(
        "-t", "--timeout", type=float,
        help="Camera warmup and retry delay in seconds",
    )
    parser.add_argument("--command", help="Capture tool executable")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """
    Merge command-line flags over loaded settings.
    
    Flags left unset keep the loaded value. The result is re-validated.
    """
    data = settings.model_dump()
    
    overrides = {
        ("capture", "width"): args.width,
        ("capture", "height"): args.height,
        ("capture", "fps"): args.fps,
        ("capture", "command"): args.command,
        ("remote", "host"): args.ip,
        ("remote", "port"): args.port,
        ("logging", "level"): args.log_level,
    }
    if args.vflip is not None:
        overrides[("capture", "vflip")] = bool(args.vflip)
    if args.hflip is not None:
        overrides[("capture", "hflip")] = bool(args.hflip)
    if args.timeout is not None:
        overrides[("capture", "warmup_seconds")] = args.timeout
        overrides[("retry", "delay_seconds")] = args.timeout
    
    for (section, key), value in overrides.items():
        if value is not None:
            data[section][key] = value
    
    return Settings.model_validate(data)


def create_supervisor(settings: Settings) -> SessionSupervisor:
    """Build the supervisor and capture source from settings."""
    capture = CaptureSource(
        width=settings.capture.width,
        height=settings.capture.height,
        fps=settings.capture.fps,
        vflip=settings.capture.vflip,
        hflip=settings.capture.hflip,
        command=settings.capture.command,
    )
    return SessionSupervisor(
        host=settings.remote.host,
        port=settings.remote.port,
        capture=capture,
        retry_delay=settings.retry.delay_seconds,
        warmup_delay=settings.capture.warmup_seconds,
        chunk_size=settings.capture.chunk_size,
        retry_on_capture_eof=settings.retry.retry_on_capture_eof,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    try:
        settings = apply_cli_overrides(load_config(args.config), args)
    except (ValidationError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    
    setup_logging(settings)
    supervisor = create_supervisor(settings)
    
    try:
        supervisor.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130
    
    logger.info(f"Relay finished: {supervisor.metrics.to_dict()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
