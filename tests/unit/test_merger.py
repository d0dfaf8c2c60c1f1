"""
Unit tests for scene validation and the merge orchestrator.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from claiss.core.errors import StorageError, ValidationError
from claiss.core.merger import VideoMerger, ordered_video_urls, validate_scenes
from claiss.core.models import Scene
from claiss.infrastructure.storage.memory import MockStorageAdapter


def compiled(order: int) -> Scene:
    return Scene(order=order, status="compiled", video_url=f"https://cdn/{order}.mp4")


@dataclass
class FakeMergeOutcome:
    success: bool
    video_bytes: Optional[bytes] = None
    duration: Optional[float] = None
    error: Optional[str] = None


class FakeRemoteMerger:
    def __init__(self, outcome=None, raises: Optional[Exception] = None):
        self.outcome = outcome or FakeMergeOutcome(success=True, video_bytes=b"merged", duration=4.2)
        self.raises = raises
        self.calls = []

    async def merge_videos(self, video_urls, add_transitions=False, transition_duration=0.5):
        self.calls.append((list(video_urls), add_transitions, transition_duration))
        if self.raises:
            raise self.raises
        return self.outcome


class FakeSelector:
    def __init__(self, adapter):
        self.adapter = adapter

    def get(self):
        return self.adapter


class BrokenStorage(MockStorageAdapter):
    async def upload(self, path, data, options=None):
        raise StorageError("bucket gone")


class TestValidateScenes:

    def test_valid_scenes_have_no_issues(self):
        assert validate_scenes([compiled(0), compiled(1), compiled(2)]) == []

    def test_missing_video_is_reported(self):
        scenes = [compiled(0), Scene(order=1, status="pending")]
        assert validate_scenes(scenes) == ["1 scene(s) missing compiled videos"]

    def test_gap_in_order_is_reported(self):
        scenes = [compiled(0), compiled(2)]
        assert validate_scenes(scenes) == ["Scene order has gaps or duplicates"]

    def test_duplicate_order_is_reported(self):
        scenes = [compiled(0), compiled(0)]
        assert validate_scenes(scenes) == ["Scene order has gaps or duplicates"]

    def test_both_problems_are_itemized(self):
        scenes = [Scene(order=1, status="failed"), compiled(3)]
        assert len(validate_scenes(scenes)) == 2

    def test_urls_follow_scene_order(self):
        scenes = [compiled(2), compiled(0), compiled(1)]
        assert ordered_video_urls(scenes) == [
            "https://cdn/0.mp4",
            "https://cdn/1.mp4",
            "https://cdn/2.mp4",
        ]


class TestVideoMerger:

    def make(self, remote=None, storage=None) -> VideoMerger:
        return VideoMerger(
            storage=FakeSelector(storage or MockStorageAdapter()),
            remote=remote or FakeRemoteMerger(),
            id_factory=lambda: "final-1",
        )

    @pytest.mark.asyncio
    async def test_invalid_scenes_raise_before_remote_call(self):
        remote = FakeRemoteMerger()
        merger = self.make(remote=remote)

        with pytest.raises(ValidationError) as exc_info:
            await merger.merge([compiled(0), compiled(2)])

        assert exc_info.value.issues == ["Scene order has gaps or duplicates"]
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_empty_scene_list_is_rejected(self):
        with pytest.raises(ValidationError, match="No compiled scenes"):
            await self.make().merge([])

    @pytest.mark.asyncio
    async def test_successful_merge_uploads_with_suffix(self):
        remote = FakeRemoteMerger()
        storage = MockStorageAdapter()
        merger = self.make(remote=remote, storage=storage)

        result = await merger.merge(
            [compiled(1), compiled(0)],
            add_transitions=True,
            transition_duration=1.0,
        )

        assert result.success
        assert result.scene_count == 2
        assert result.video_id == "final-1"
        assert result.merge_time == 4.2
        assert result.video_url.startswith("mock://storage/videos/final-1-")
        assert remote.calls == [(["https://cdn/0.mp4", "https://cdn/1.mp4"], True, 1.0)]

    @pytest.mark.asyncio
    async def test_explicit_video_id_is_used(self):
        result = await self.make().merge([compiled(0)], video_id="lesson-7")
        assert result.video_id == "lesson-7"

    @pytest.mark.asyncio
    async def test_remote_failure_returns_failed_result(self):
        remote = FakeRemoteMerger(FakeMergeOutcome(success=False, error="ffmpeg exited 1"))

        result = await self.make(remote=remote).merge([compiled(0)])

        assert not result.success
        assert result.error == "ffmpeg exited 1"
        assert result.scene_count == 1

    @pytest.mark.asyncio
    async def test_remote_exception_returns_failed_result(self):
        remote = FakeRemoteMerger(raises=RuntimeError("timeout"))

        result = await self.make(remote=remote).merge([compiled(0)])

        assert not result.success
        assert result.error == "Merge failed: timeout"

    @pytest.mark.asyncio
    async def test_upload_failure_returns_failed_result(self):
        result = await self.make(storage=BrokenStorage()).merge([compiled(0)])

        assert not result.success
        assert result.error == "Failed to store merged video: bucket gone"
