"""Tests for SegmentAssembler."""

from pathlib import Path

import pytest

from storyreel.config import Orientation
from storyreel.exceptions import TimingInvariantError
from storyreel.render import FfmpegService, SegmentAssembler
from storyreel.storyboard import Storyboard, StoryboardItem


def value_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


def build_storyboard(workspace: Path, durations: list[float], shared_audio: bool = False) -> Storyboard:
    storyboard = Storyboard()
    for index, duration in enumerate(durations):
        image = workspace / f"Title_{index}.png"
        audio = workspace / ("Title_all.mp3" if shared_audio else f"Title_{index}.mp3")
        image.write_bytes(b"png")
        audio.write_bytes(b"audio")
        start = storyboard.next_start_time()
        storyboard.add(StoryboardItem(image, audio, start, start + duration))
    return storyboard


@pytest.fixture
def workspace(tmp_path) -> Path:
    path = tmp_path / "ws"
    path.mkdir()
    return path


class TestSegmentAssembler:
    """Tests for SegmentAssembler.assemble."""

    @pytest.mark.asyncio
    async def test_two_clips_rescaled_to_measured_track(self, config, workspace, fake_media, make_runner):
        """2.5s + 2.5s of speech concatenated into a 5.2s track."""
        runner = make_runner(durations={"Title_narration.mp3": 5.2})
        assembler = SegmentAssembler(config, fake_media, FfmpegService(config, runner))
        storyboard = build_storyboard(workspace, [2.5, 2.5])

        output = await assembler.assemble(storyboard, "abstract", workspace, "Title")

        assert output == workspace / "Title_clip.mp4"
        assert storyboard.items[0].start_time == 0.0
        assert storyboard.items[0].end_time == pytest.approx(2.6)
        assert storyboard.items[1].start_time == pytest.approx(2.6)
        assert storyboard.items[1].end_time == 5.2
        assert storyboard.is_contiguous()

        concat_args, render_args = runner.ffmpeg_calls
        assert concat_args[-1] == str(workspace / "Title_narration.mp3")
        assert value_after(render_args, "-t") == "5.2"
        assert str(workspace / "Title_narration.mp3") in render_args
        assert "enable='gte(t,2.6)*lt(t,5.2)'" in value_after(render_args, "-filter_complex")

    @pytest.mark.asyncio
    async def test_single_narration_is_used_directly(self, config, workspace, fake_media, make_runner):
        runner = make_runner(durations={"Title_0.mp3": 3.0})
        assembler = SegmentAssembler(config, fake_media, FfmpegService(config, runner))
        storyboard = build_storyboard(workspace, [3.0])

        await assembler.assemble(storyboard, "abstract", workspace, "Title")

        assert len(runner.ffmpeg_calls) == 1
        render_args = runner.ffmpeg_calls[0]
        assert str(workspace / "Title_0.mp3") in render_args
        assert not (workspace / "Title_narration.mp3").exists()

    @pytest.mark.asyncio
    async def test_shared_audio_path_counts_once(self, config, workspace, fake_media, make_runner):
        runner = make_runner(durations={"Title_all.mp3": 4.0})
        assembler = SegmentAssembler(config, fake_media, FfmpegService(config, runner))
        storyboard = build_storyboard(workspace, [2.0, 2.0], shared_audio=True)

        await assembler.assemble(storyboard, "abstract", workspace, "Title")

        assert len(runner.ffmpeg_calls) == 1

    @pytest.mark.asyncio
    async def test_silent_storyboard_uses_own_duration(self, config, workspace, fake_media, ffmpeg, runner):
        storyboard = Storyboard()
        image = workspace / "Title_0.png"
        image.write_bytes(b"png")
        storyboard.add(StoryboardItem(image, None, 0.0, 4.0))

        await SegmentAssembler(config, fake_media, ffmpeg).assemble(storyboard, "abstract", workspace, "Title")

        render_args = runner.ffmpeg_calls[0]
        assert runner.probe_calls == []
        assert "-an" in render_args
        assert value_after(render_args, "-t") == "4"

    @pytest.mark.asyncio
    async def test_fetches_background_with_orientation(self, config, workspace, fake_media, make_runner):
        runner = make_runner(durations={"Title_0.mp3": 3.0})
        assembler = SegmentAssembler(config, fake_media, FfmpegService(config, runner))
        storyboard = build_storyboard(workspace, [3.0])

        await assembler.assemble(storyboard, "nature", workspace, "Title", Orientation.PORTRAIT)

        assert fake_media.queries == [("nature", str(Orientation.PORTRAIT))]
        assert (workspace / "Title_bg.mp4").exists()
        assert "scale=1080:1920" in value_after(runner.ffmpeg_calls[0], "-filter_complex")

    @pytest.mark.asyncio
    async def test_missing_audio_file(self, config, workspace, fake_media, ffmpeg, runner):
        storyboard = build_storyboard(workspace, [2.0, 2.0])
        storyboard.items[1].audio_path.unlink()

        with pytest.raises(TimingInvariantError, match="Narration clip not found"):
            await SegmentAssembler(config, fake_media, ffmpeg).assemble(storyboard, "abstract", workspace, "Title")
        assert runner.ffmpeg_calls == []

    @pytest.mark.asyncio
    async def test_background_not_written(self, config, workspace, ffmpeg):
        class EmptyMedia:
            async def fetch(self, query, output_path, orientation=Orientation.LANDSCAPE):
                return output_path

        storyboard = build_storyboard(workspace, [2.0])
        with pytest.raises(TimingInvariantError, match="Background"):
            await SegmentAssembler(config, EmptyMedia(), ffmpeg).assemble(storyboard, "abstract", workspace, "Title")

    @pytest.mark.asyncio
    async def test_progress_reaches_completion(self, config, workspace, fake_media, ffmpeg, progress_log):
        storyboard = build_storyboard(workspace, [5.0])
        await SegmentAssembler(config, fake_media, ffmpeg).assemble(
            storyboard, "abstract", workspace, "Title", progress=progress_log.append
        )
        percentages = [r.percentage for r in progress_log if r.percentage is not None]
        assert percentages[0] == 0
        assert percentages[-1] == 100
        assert percentages == sorted(percentages)
