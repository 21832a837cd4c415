"""Translate a storyboard into an ffmpeg command line.

The background is scaled and padded onto a fixed canvas, then each caption
image is overlaid in storyboard order, gated to its display window. The last
overlay stage (or the background alone) is mapped to the video output.
"""

from dataclasses import dataclass
from pathlib import Path

from ..config import FfmpegConfig, Orientation, VideoConfig
from ..exceptions import TimingInvariantError
from ..storyboard.models import Storyboard, StoryboardItem

DEFAULT_MAX_RENDER_SECONDS = 3600.0


@dataclass(frozen=True)
class RenderRequest:
    """Everything needed to render one segment.

    ``target_duration`` is the authoritative length of the output: the
    measured narration duration when there is narration, otherwise the
    storyboard's own total.
    """

    storyboard: Storyboard
    background_path: Path
    narration_path: Path | None
    target_duration: float
    output_path: Path
    orientation: Orientation = Orientation.LANDSCAPE


def format_seconds(value: float) -> str:
    """Format seconds for ffmpeg arguments without float noise."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def overlay_enable_expression(item: StoryboardItem) -> str:
    """Half-open visibility window ``start <= t < end`` for an overlay."""
    return f"gte(t,{format_seconds(item.start_time)})*lt(t,{format_seconds(item.end_time)})"


class FilterGraphBuilder:
    """Builds renderer arguments for a ``RenderRequest``."""

    def __init__(
        self,
        ffmpeg_config: FfmpegConfig | None = None,
        video_config: VideoConfig | None = None,
        max_render_seconds: float = DEFAULT_MAX_RENDER_SECONDS,
    ):
        self.ffmpeg = ffmpeg_config or FfmpegConfig()
        self.video = video_config or VideoConfig()
        self.max_render_seconds = max_render_seconds

    def check_duration(self, target_duration: float) -> None:
        """Reject durations that can only come from a timing bug."""
        if target_duration <= 0:
            raise TimingInvariantError(
                f"Refusing to render a segment of {target_duration:.3f}s"
            )
        if target_duration > self.max_render_seconds:
            raise TimingInvariantError(
                f"Refusing to render {target_duration:.1f}s, more than the "
                f"{self.max_render_seconds:.0f}s limit"
            )

    def build_filter_graph(self, request: RenderRequest, first_overlay_input: int) -> tuple[str, str]:
        """Build the filter graph expression.

        Args:
            request: Render request.
            first_overlay_input: Input index of the first caption image.

        Returns:
            Tuple of (filter graph, output label to map).
        """
        width, height = self.video.canvas_size(request.orientation)
        stages = [
            f"[0:v]scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:-1:-1:color=black,setsar=1[bg]"
        ]

        items = request.storyboard.items
        previous = "[bg]"
        for index, item in enumerate(items):
            label = "[vout]" if index == len(items) - 1 else f"[v{index + 1}]"
            stages.append(
                f"{previous}[{first_overlay_input + index}:v]"
                f"overlay={item.position.expression()}:"
                f"enable='{overlay_enable_expression(item)}'{label}"
            )
            previous = label

        return ";".join(stages), previous

    def build(self, request: RenderRequest) -> list[str]:
        """Build the argument list (without the executable).

        Raises:
            TimingInvariantError: If the duration is out of bounds or an
                input file is missing.
        """
        self.check_duration(request.target_duration)

        if not Path(request.background_path).exists():
            raise TimingInvariantError(f"Background clip not found: {request.background_path}")
        if request.narration_path is not None and not Path(request.narration_path).exists():
            raise TimingInvariantError(f"Narration track not found: {request.narration_path}")

        args = ["-hide_banner", "-stream_loop", "-1", "-i", str(request.background_path)]

        first_overlay_input = 1
        if request.narration_path is not None:
            args += ["-i", str(request.narration_path)]
            first_overlay_input = 2

        for item in request.storyboard.items:
            if not item.image_path.exists():
                raise TimingInvariantError(f"Caption image not found: {item.image_path}")
            args += ["-i", str(item.image_path)]

        filter_graph, video_label = self.build_filter_graph(request, first_overlay_input)
        args += ["-filter_complex", filter_graph, "-map", video_label]

        if request.narration_path is not None:
            args += ["-map", "1:a"]
        else:
            args += ["-an"]

        args += ["-t", format_seconds(request.target_duration)]
        args += [
            "-r", str(self.video.fps),
            "-c:v", self.ffmpeg.video_codec,
            "-preset", self.ffmpeg.preset,
            "-b:v", self.ffmpeg.video_bitrate,
            "-pix_fmt", self.ffmpeg.pixel_format,
        ]
        if request.narration_path is not None:
            args += [
                "-c:a", self.ffmpeg.audio_codec,
                "-b:a", self.ffmpeg.audio_bitrate,
                "-ar", str(self.ffmpeg.sample_rate),
                "-ac", "2",
            ]
        args += ["-y", str(request.output_path)]
        return args
