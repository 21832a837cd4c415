"""Tests for the filter graph and command line builder."""

from pathlib import Path

import pytest

from storyreel.config import FfmpegConfig, Orientation, VideoConfig
from storyreel.exceptions import TimingInvariantError
from storyreel.render import FilterGraphBuilder, RenderRequest, overlay_enable_expression
from storyreel.render.filtergraph import format_seconds
from storyreel.storyboard import OverlayPosition, Storyboard, StoryboardItem


@pytest.fixture
def assets(tmp_path):
    """Background, narration and two caption images on disk."""
    background = tmp_path / "bg.mp4"
    narration = tmp_path / "narration.mp3"
    images = [tmp_path / "cap_0.png", tmp_path / "cap_1.png"]
    for path in [background, narration, *images]:
        path.write_bytes(b"x")
    return background, narration, images


def make_storyboard(images: list[Path], durations: list[float]) -> Storyboard:
    storyboard = Storyboard()
    for image, duration in zip(images, durations):
        start = storyboard.next_start_time()
        storyboard.add(StoryboardItem(image, None, start, start + duration))
    return storyboard


def make_request(assets, tmp_path, durations=(4.0, 3.0), narration=True, **kwargs) -> RenderRequest:
    background, narration_path, images = assets
    storyboard = make_storyboard(images[: len(durations)], list(durations))
    return RenderRequest(
        storyboard=storyboard,
        background_path=background,
        narration_path=narration_path if narration else None,
        target_duration=kwargs.pop("target_duration", storyboard.total_duration),
        output_path=tmp_path / "out.mp4",
        **kwargs,
    )


def value_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


class TestOverlayEnableExpression:
    """Tests for overlay visibility windows."""

    def test_half_open_window(self):
        item = StoryboardItem(Path("a.png"), None, 0.0, 4.0)
        assert overlay_enable_expression(item) == "gte(t,0)*lt(t,4)"

    def test_fractional_times(self):
        item = StoryboardItem(Path("a.png"), None, 2.2, 5.5)
        assert overlay_enable_expression(item) == "gte(t,2.2)*lt(t,5.5)"

    def test_format_seconds(self):
        assert format_seconds(5.2) == "5.2"
        assert format_seconds(10.0) == "10"
        assert format_seconds(0.1 + 0.2) == "0.3"


class TestFilterGraphBuilder:
    """Tests for FilterGraphBuilder.build."""

    def test_inputs_in_order(self, assets, tmp_path):
        background, narration, images = assets
        args = FilterGraphBuilder().build(make_request(assets, tmp_path))

        inputs = [args[i + 1] for i, arg in enumerate(args) if arg == "-i"]
        assert inputs == [str(background), str(narration), str(images[0]), str(images[1])]
        assert args[args.index("-i") - 2 : args.index("-i")] == ["-stream_loop", "-1"]

    def test_overlay_chain(self, assets, tmp_path):
        args = FilterGraphBuilder().build(make_request(assets, tmp_path))
        graph = value_after(args, "-filter_complex")
        stages = graph.split(";")

        assert stages[0] == (
            "[0:v]scale=1920:1080:force_original_aspect_ratio=decrease,"
            "pad=1920:1080:-1:-1:color=black,setsar=1[bg]"
        )
        assert stages[1] == "[bg][2:v]overlay=x=(W-w)/2:y=(H-h)/2:enable='gte(t,0)*lt(t,4)'[v1]"
        assert stages[2] == "[v1][3:v]overlay=x=(W-w)/2:y=(H-h)/2:enable='gte(t,4)*lt(t,7)'[vout]"
        assert value_after(args, "-map") == "[vout]"

    def test_narration_is_mapped(self, assets, tmp_path):
        args = FilterGraphBuilder().build(make_request(assets, tmp_path))
        maps = [args[i + 1] for i, arg in enumerate(args) if arg == "-map"]
        assert maps == ["[vout]", "1:a"]
        assert "-an" not in args

    def test_without_narration(self, assets, tmp_path):
        args = FilterGraphBuilder().build(make_request(assets, tmp_path, narration=False))
        graph = value_after(args, "-filter_complex")
        assert "[bg][1:v]overlay" in graph
        assert "-an" in args
        assert "1:a" not in args

    def test_empty_storyboard_maps_background(self, assets, tmp_path):
        background, _, _ = assets
        request = RenderRequest(
            storyboard=Storyboard(),
            background_path=background,
            narration_path=None,
            target_duration=3.0,
            output_path=tmp_path / "out.mp4",
        )
        args = FilterGraphBuilder().build(request)
        assert value_after(args, "-map") == "[bg]"
        assert "overlay" not in value_after(args, "-filter_complex")

    def test_duration_and_encoding(self, assets, tmp_path):
        config = FfmpegConfig(video_codec="libx265", preset="fast", video_bitrate="2000k")
        builder = FilterGraphBuilder(config, VideoConfig(fps=25))
        args = builder.build(make_request(assets, tmp_path, target_duration=7.25))

        assert value_after(args, "-t") == "7.25"
        assert value_after(args, "-c:v") == "libx265"
        assert value_after(args, "-preset") == "fast"
        assert value_after(args, "-b:v") == "2000k"
        assert value_after(args, "-r") == "25"
        assert value_after(args, "-pix_fmt") == "yuv420p"
        assert args[-2:] == ["-y", str(tmp_path / "out.mp4")]

    def test_portrait_canvas(self, assets, tmp_path):
        request = make_request(assets, tmp_path, orientation=Orientation.PORTRAIT)
        graph = value_after(FilterGraphBuilder().build(request), "-filter_complex")
        assert graph.startswith("[0:v]scale=1080:1920:")
        assert "pad=1080:1920:-1:-1" in graph

    def test_overlay_position(self, assets, tmp_path):
        background, _, images = assets
        storyboard = Storyboard()
        storyboard.add(StoryboardItem(images[0], None, 0.0, 2.0, OverlayPosition.BOTTOM_RIGHT))
        request = RenderRequest(storyboard, background, None, 2.0, tmp_path / "out.mp4")
        graph = value_after(FilterGraphBuilder().build(request), "-filter_complex")
        assert "overlay=x=W-w:y=H-h:enable=" in graph

    def test_missing_image_is_rejected(self, assets, tmp_path):
        request = make_request(assets, tmp_path)
        request.storyboard.items[1].image_path.unlink()
        with pytest.raises(TimingInvariantError, match="Caption image not found"):
            FilterGraphBuilder().build(request)

    def test_rejects_implausible_duration(self, assets, tmp_path):
        with pytest.raises(TimingInvariantError):
            FilterGraphBuilder().build(make_request(assets, tmp_path, target_duration=3700.0))

    def test_rejects_non_positive_duration(self, assets, tmp_path):
        with pytest.raises(TimingInvariantError):
            FilterGraphBuilder().build(make_request(assets, tmp_path, target_duration=0.0))

    def test_limit_is_configurable(self, assets, tmp_path):
        builder = FilterGraphBuilder(max_render_seconds=5.0)
        with pytest.raises(TimingInvariantError):
            builder.build(make_request(assets, tmp_path, target_duration=7.0))


class TestRenderSegmentGuard:
    """The duration guard runs before any process is launched."""

    @pytest.mark.asyncio
    async def test_no_launch_for_implausible_duration(self, assets, tmp_path, ffmpeg, runner):
        request = make_request(assets, tmp_path, target_duration=3700.0)
        with pytest.raises(TimingInvariantError):
            await ffmpeg.render_segment(request)
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_render_passes_expected_duration(self, assets, tmp_path, ffmpeg, runner, progress_log):
        output = await ffmpeg.render_segment(make_request(assets, tmp_path), progress=progress_log.append)

        assert output == tmp_path / "out.mp4"
        assert runner.calls[0][0] == "ffmpeg"
        assert progress_log[-1].percentage == 100.0
