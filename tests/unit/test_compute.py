"""
Unit tests for the compute backends.

The remote client is served by httpx.MockTransport; the local renderer
has subprocess.run patched, so manim is never installed or invoked.
"""

import base64
import json
import subprocess
from unittest.mock import patch

import httpx
import pytest

from claiss.core.errors import CompilationError, RemoteComputeError
from claiss.core.models import ComputeTier
from claiss.infrastructure.compute.local import ManimRenderer
from claiss.infrastructure.compute.remote import RemoteComputeClient

CODE = "from manim import *\n\nclass Demo(Scene):\n    pass\n"


# ---------------------------------------------------------------------------
# Remote client Tests
# ---------------------------------------------------------------------------

class TestRemoteComputeClient:

    @pytest.mark.asyncio
    async def test_compile_posts_request_and_decodes_base64(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "video_bytes": base64.b64encode(b"mp4-bytes").decode(),
                "logs": "rendered",
                "duration": 12.5,
            })

        client = RemoteComputeClient(
            "https://compute.example.com/",
            token="secret",
            transport=httpx.MockTransport(handler),
        )
        result = await client.compile(CODE, "Demo", "medium_quality")

        assert seen["url"] == "https://compute.example.com/compile"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"code": CODE, "class_name": "Demo", "quality": "medium_quality"}
        assert result.success
        assert result.video_bytes == b"mp4-bytes"
        assert result.duration == 12.5

    @pytest.mark.asyncio
    async def test_byte_array_payload_is_accepted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "video_bytes": [0, 1, 255]})

        client = RemoteComputeClient("https://compute", transport=httpx.MockTransport(handler))
        result = await client.merge_videos(["https://cdn/0.mp4"])

        assert result.video_bytes == bytes([0, 1, 255])

    @pytest.mark.asyncio
    async def test_unsuccessful_response_is_returned(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "NameError: Circle"})

        client = RemoteComputeClient("https://compute", transport=httpx.MockTransport(handler))
        result = await client.compile(CODE)

        assert not result.success
        assert result.error == "NameError: Circle"
        assert result.video_bytes is None

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        client = RemoteComputeClient("https://compute", transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteComputeError, match="502"):
            await client.compile(CODE)

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = RemoteComputeClient("https://compute", transport=httpx.MockTransport(handler))

        with pytest.raises(RemoteComputeError, match="Failed to connect"):
            await client.merge_videos(["https://cdn/0.mp4"])

    @pytest.mark.asyncio
    async def test_merge_requires_urls(self):
        client = RemoteComputeClient("https://compute")

        with pytest.raises(ValueError):
            await client.merge_videos([])

    def test_base_url_is_required(self):
        with pytest.raises(ValueError, match="base URL"):
            RemoteComputeClient("")


# ---------------------------------------------------------------------------
# Local renderer Tests
# ---------------------------------------------------------------------------

class TestManimRenderer:

    @pytest.fixture
    def renderer(self, tmp_path):
        return ManimRenderer(manim_command="manim", work_dir=str(tmp_path), timeout_seconds=5)

    @pytest.mark.asyncio
    async def test_successful_render_reads_output(self, renderer):
        output_path = renderer.expected_output_path("Demo")

        def fake_run(cmd, **kwargs):
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(b"rendered")
            return subprocess.CompletedProcess(cmd, 0, stdout="done\n", stderr="")

        with patch("claiss.infrastructure.compute.local.subprocess.run", side_effect=fake_run) as run:
            result = await renderer.render(CODE, "Demo")

        cmd = run.call_args.args[0]
        assert cmd == ["manim", str(renderer.source_path), "Demo", "-ql", "--disable_caching"]
        assert run.call_args.kwargs["timeout"] == 5
        assert renderer.source_path.read_text() == CODE
        assert result.video_bytes == b"rendered"
        assert result.logs == "done\n"

    def test_expected_output_path_layout(self, renderer, tmp_path):
        expected = tmp_path / "media" / "videos" / "current_animation" / "480p15" / "Demo.mp4"
        assert renderer.expected_output_path("Demo") == expected

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_logs(self, renderer):
        completed = subprocess.CompletedProcess([], 1, stdout="", stderr="SyntaxError")

        with patch("claiss.infrastructure.compute.local.subprocess.run", return_value=completed):
            with pytest.raises(CompilationError) as exc_info:
                await renderer.render(CODE, "Demo")

        assert exc_info.value.tier == ComputeTier.LOCAL
        assert "SyntaxError" in exc_info.value.logs

    @pytest.mark.asyncio
    async def test_timeout_raises(self, renderer):
        timeout = subprocess.TimeoutExpired(cmd="manim", timeout=5)

        with patch("claiss.infrastructure.compute.local.subprocess.run", side_effect=timeout):
            with pytest.raises(CompilationError, match="timed out"):
                await renderer.render(CODE, "Demo")

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self, renderer):
        with patch("claiss.infrastructure.compute.local.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(CompilationError, match="not found"):
                await renderer.render(CODE, "Demo")

    @pytest.mark.asyncio
    async def test_missing_output_raises(self, renderer):
        completed = subprocess.CompletedProcess([], 0, stdout="ok", stderr="")

        with patch("claiss.infrastructure.compute.local.subprocess.run", return_value=completed):
            with pytest.raises(CompilationError, match="not generated"):
                await renderer.render(CODE, "Demo")
