"""
Unit tests for the compilation orchestrator.

Every collaborator is an in-test fake, so these tests exercise only the
two fallback chains: remote -> local for compute and upload -> local
file for storage.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest

from claiss.core.compiler import VideoCompiler
from claiss.core.errors import CompilationError, StorageError
from claiss.core.models import ComputeTier
from claiss.infrastructure.storage.memory import MockStorageAdapter

CODE = "from manim import *\n\nclass Demo(Scene):\n    pass\n"


@dataclass
class FakeRemoteOutcome:
    success: bool
    video_bytes: Optional[bytes] = None
    logs: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[str] = None


@dataclass
class FakeLocalOutcome:
    video_bytes: bytes
    logs: str = "local logs"
    duration_seconds: float = 2.0


class FakeRemote:
    def __init__(self, outcome=None, raises: Optional[Exception] = None):
        self.outcome = outcome
        self.raises = raises
        self.calls = []

    async def compile(self, code, class_name="Scene", quality="low_quality"):
        self.calls.append((code, class_name, quality))
        if self.raises:
            raise self.raises
        return self.outcome


class FakeLocal:
    def __init__(self, video_bytes: bytes = b"local-video", raises: Optional[Exception] = None):
        self.video_bytes = video_bytes
        self.raises = raises
        self.calls = []

    async def render(self, code, class_name="Scene"):
        self.calls.append((code, class_name))
        if self.raises:
            raise self.raises
        return FakeLocalOutcome(video_bytes=self.video_bytes)


class FakeSelector:
    def __init__(self, adapter):
        self.adapter = adapter

    def get(self):
        return self.adapter


class BrokenStorage(MockStorageAdapter):
    async def upload(self, path, data, options=None):
        raise StorageError("all providers down")


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []

    async def save(self, data: bytes) -> Path:
        if self.fail:
            raise OSError("disk full")
        self.saved.append(data)
        return Path("/tmp/latest.mp4")


def make_compiler(
    remote=None,
    local=None,
    storage=None,
    store=None,
    use_remote=True,
    fallback_to_local=True,
):
    return VideoCompiler(
        storage=FakeSelector(storage or MockStorageAdapter()),
        local_store=store or FakeStore(),
        local_renderer=local or FakeLocal(),
        remote_renderer=remote,
        use_remote=use_remote,
        fallback_to_local=fallback_to_local,
        id_factory=lambda: "vid_test",
    )


class TestComputeChain:

    @pytest.mark.asyncio
    async def test_remote_success_skips_local(self):
        remote = FakeRemote(FakeRemoteOutcome(success=True, video_bytes=b"remote-video", duration=3.5))
        local = FakeLocal()
        storage = MockStorageAdapter()
        compiler = make_compiler(remote=remote, local=local, storage=storage)

        result = await compiler.compile(CODE, "Demo")

        assert result.success
        assert result.compilation_type is ComputeTier.REMOTE
        assert result.video_id == "vid_test"
        assert result.video_url == "mock://storage/videos/vid_test.mp4"
        assert result.duration == 3.5
        assert local.calls == []
        assert remote.calls == [(CODE, "Demo", "low_quality")]
        assert storage.read("videos/vid_test.mp4") == b"remote-video"

    @pytest.mark.asyncio
    async def test_remote_failure_without_fallback_reports_remote(self):
        remote = FakeRemote(FakeRemoteOutcome(success=False, error="render crashed", logs="trace"))
        local = FakeLocal()
        compiler = make_compiler(remote=remote, local=local, fallback_to_local=False)

        result = await compiler.compile(CODE, "Demo")

        assert not result.success
        assert result.compilation_type is ComputeTier.REMOTE
        assert result.error == "render crashed"
        assert result.logs == "trace"
        assert local.calls == []

    @pytest.mark.asyncio
    async def test_remote_exception_falls_back_to_local(self):
        remote = FakeRemote(raises=RuntimeError("connection refused"))
        local = FakeLocal(video_bytes=b"local-video")
        compiler = make_compiler(remote=remote, local=local)

        result = await compiler.compile(CODE, "Demo")

        assert result.success
        assert result.compilation_type is ComputeTier.LOCAL
        assert result.logs == "local logs"
        assert local.calls == [(CODE, "Demo")]

    @pytest.mark.asyncio
    async def test_empty_remote_bytes_count_as_failure(self):
        remote = FakeRemote(FakeRemoteOutcome(success=True, video_bytes=b""))
        local = FakeLocal()
        compiler = make_compiler(remote=remote, local=local)

        result = await compiler.compile(CODE, "Demo")

        assert result.compilation_type is ComputeTier.LOCAL
        assert len(local.calls) == 1

    @pytest.mark.asyncio
    async def test_remote_enabled_but_unconfigured_uses_local(self):
        local = FakeLocal()
        compiler = make_compiler(remote=None, local=local)

        result = await compiler.compile(CODE, "Demo")

        assert result.success
        assert result.compilation_type is ComputeTier.LOCAL

    @pytest.mark.asyncio
    async def test_remote_disabled_goes_straight_to_local(self):
        remote = FakeRemote(FakeRemoteOutcome(success=True, video_bytes=b"remote"))
        compiler = make_compiler(remote=remote, use_remote=False)

        result = await compiler.compile(CODE, "Demo")

        assert result.compilation_type is ComputeTier.LOCAL
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_both_tiers_fail(self):
        remote = FakeRemote(raises=RuntimeError("remote down"))
        local = FakeLocal(raises=CompilationError("syntax error", tier="local", logs="stderr"))
        compiler = make_compiler(remote=remote, local=local)

        result = await compiler.compile(CODE, "Demo")

        assert not result.success
        assert result.compilation_type is ComputeTier.LOCAL
        assert "remote: Remote compilation failed: remote down" in result.error
        assert "local: syntax error" in result.error
        assert result.logs == "stderr"

    @pytest.mark.asyncio
    async def test_local_only_failure_keeps_plain_error(self):
        local = FakeLocal(raises=CompilationError("syntax error", tier="local"))
        compiler = make_compiler(local=local, use_remote=False)

        result = await compiler.compile(CODE, "Demo")

        assert not result.success
        assert result.error == "syntax error"


class TestStorageChain:

    @pytest.mark.asyncio
    async def test_upload_failure_saves_to_local_file(self):
        store = FakeStore()
        compiler = make_compiler(storage=BrokenStorage(), store=store, use_remote=False)

        result = await compiler.compile(CODE, "Demo")

        assert result.success
        assert result.compilation_type is ComputeTier.LOCAL
        assert result.video_path == "/tmp/latest.mp4"
        assert result.video_url == "/api/videos?id=vid_test"
        assert store.saved == [b"local-video"]

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_rerender(self):
        remote = FakeRemote(FakeRemoteOutcome(success=True, video_bytes=b"remote-video"))
        local = FakeLocal()
        compiler = make_compiler(remote=remote, local=local, storage=BrokenStorage())

        result = await compiler.compile(CODE, "Demo")

        assert result.success
        assert result.compilation_type is ComputeTier.REMOTE
        assert local.calls == []

    @pytest.mark.asyncio
    async def test_disk_failure_reports_both_errors(self):
        compiler = make_compiler(
            storage=BrokenStorage(),
            store=FakeStore(fail=True),
            use_remote=False,
        )

        result = await compiler.compile(CODE, "Demo")

        assert not result.success
        assert result.error.startswith("Failed to save video")
        assert "storage: all providers down" in result.error
        assert "local disk: disk full" in result.error
