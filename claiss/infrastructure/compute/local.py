"""
Local Manim renderer.

Used when the remote compute service is disabled or fails. Runs the
manim CLI as a subprocess against a fixed source file, with a hard
wall-clock timeout. subprocess.run blocks, so it is handed to a worker
thread with asyncio.to_thread and never stalls other requests.

One render at a time per work directory: the source file and output
path are fixed, so concurrent local renders in the same directory
overwrite each other.
"""

import asyncio
import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ...core.errors import CompilationError
from ...core.models import ComputeTier

logger = logging.getLogger(__name__)

SOURCE_FILENAME = "current_animation.py"
# -ql renders 854x480 at 15fps, which manim writes under a 480p15 folder.
QUALITY_FLAG = "-ql"
QUALITY_DIR = "480p15"


@dataclass
class RenderOutput:
    """A finished local render."""
    video_bytes: bytes
    logs: str
    duration_seconds: float


def _as_text(output: Union[None, str, bytes]) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class ManimRenderer:
    """Renders a Manim scene with the local manim CLI."""

    def __init__(
        self,
        manim_command: str = "manim",
        work_dir: str = "/tmp/manim-current",
        timeout_seconds: float = 120.0,
    ) -> None:
        """
        Args:
            manim_command: Path to the manim executable (default assumes it's in PATH)
            work_dir: Directory holding the source file and manim's media output
            timeout_seconds: Wall-clock limit for one render
        """
        self._manim = manim_command
        self._work_dir = Path(work_dir)
        self._timeout = timeout_seconds

    @property
    def source_path(self) -> Path:
        return self._work_dir / SOURCE_FILENAME

    def expected_output_path(self, class_name: str) -> Path:
        """Where manim writes <class_name>.mp4 for our source file and quality."""
        return (
            self._work_dir
            / "media"
            / "videos"
            / Path(SOURCE_FILENAME).stem
            / QUALITY_DIR
            / f"{class_name}.mp4"
        )

    async def render(self, code: str, class_name: str = "Scene") -> RenderOutput:
        """
        Render class_name from code.

        Raises:
            CompilationError: (tier=local) on timeout, nonzero exit, missing
                manim executable, or when no video was produced. Captured
                output is attached as logs.
        """
        started = time.monotonic()

        await asyncio.to_thread(self._write_source, code)
        logger.info(
            "Python file written for local render",
            extra={"source_path": str(self.source_path), "class_name": class_name}
        )

        cmd = [
            self._manim,
            str(self.source_path),
            class_name,
            QUALITY_FLAG,
            "--disable_caching",
        ]

        logger.info("Starting local render", extra={"command": " ".join(cmd)})

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                cwd=self._work_dir,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            logs = _as_text(e.stdout) + _as_text(e.stderr)
            logger.error("Local render timed out", extra={"timeout_seconds": self._timeout})
            raise CompilationError(
                f"Local compilation timed out after {self._timeout:.0f}s",
                tier=ComputeTier.LOCAL,
                logs=logs,
            ) from e
        except FileNotFoundError as e:
            raise CompilationError(
                f"manim executable not found: {self._manim}",
                tier=ComputeTier.LOCAL,
            ) from e

        logs = _as_text(result.stdout) + _as_text(result.stderr)

        if result.returncode != 0:
            logger.error(
                "Local render failed",
                extra={"returncode": result.returncode, "stderr": _as_text(result.stderr)[-2000:]}
            )
            raise CompilationError(
                f"manim exited with status {result.returncode}",
                tier=ComputeTier.LOCAL,
                logs=logs,
            )

        output_path = self.expected_output_path(class_name)
        logger.debug("Looking for rendered video", extra={"output_path": str(output_path)})

        if not output_path.is_file():
            self._log_output_dir(output_path.parent)
            raise CompilationError(
                f"Video file was not generated at expected path: {output_path}",
                tier=ComputeTier.LOCAL,
                logs=logs,
            )

        video_bytes = await asyncio.to_thread(output_path.read_bytes)
        duration = time.monotonic() - started

        logger.info(
            "Local render completed",
            extra={"size_bytes": len(video_bytes), "duration": round(duration, 2)}
        )

        return RenderOutput(video_bytes=video_bytes, logs=logs, duration_seconds=duration)

    def _write_source(self, code: str) -> None:
        self._work_dir.mkdir(parents=True, exist_ok=True)
        self.source_path.write_text(code, encoding="utf-8")

    def _log_output_dir(self, directory: Path) -> Optional[list[str]]:
        try:
            files = sorted(os.listdir(directory))
        except OSError:
            logger.warning("Could not read render output directory", extra={"directory": str(directory)})
            return None

        logger.warning(
            "Rendered video missing",
            extra={
                "directory": str(directory),
                "files": files,
                "mp4_files": [f for f in files if f.endswith(".mp4")],
            }
        )
        return files
