"""FFmpeg operations used by the pipeline.

Every operation goes through ``ProcessRunner`` so that failures carry the
renderer's diagnostics and cancellation kills the child process.
"""

import json
import logging
from pathlib import Path
from typing import Sequence

from ..config import Config, Orientation
from ..exceptions import TimingInvariantError
from ..progress import ProgressCallback
from .filtergraph import FilterGraphBuilder, RenderRequest, format_seconds
from .process import ProcessRunner

logger = logging.getLogger(__name__)


def escape_concat_path(path: Path) -> str:
    """Quote a path for an ffmpeg concat list entry."""
    return str(Path(path).absolute()).replace("'", "'\\''")


def write_concat_list(paths: Sequence[Path], list_path: Path) -> Path:
    """Write an ffmpeg concat demuxer list file."""
    list_path.parent.mkdir(parents=True, exist_ok=True)
    with open(list_path, "w") as f:
        for path in paths:
            f.write(f"file '{escape_concat_path(path)}'\n")
    return list_path


class FfmpegService:
    """Thin async wrapper around the ffmpeg and ffprobe executables."""

    def __init__(self, config: Config | None = None, runner: ProcessRunner | None = None):
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.builder = FilterGraphBuilder(
            self.config.ffmpeg,
            self.config.video,
            max_render_seconds=self.config.timing.max_render_seconds,
        )

    @property
    def ffmpeg_path(self) -> str:
        return self.config.ffmpeg.ffmpeg_path

    @property
    def ffprobe_path(self) -> str:
        return self.config.ffmpeg.ffprobe_path

    async def probe_duration(self, path: Path) -> float:
        """Get the duration of a media file in seconds.

        Raises:
            TimingInvariantError: If the file is missing or has no readable
                duration.
        """
        path = Path(path)
        if not path.exists():
            raise TimingInvariantError(f"Cannot measure missing file: {path}")

        result = await self.runner.run(
            [
                self.ffprobe_path, "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(path),
            ],
            capture_stdout=True,
        )
        try:
            return float(result.stdout.strip())
        except ValueError as e:
            raise TimingInvariantError(
                f"ffprobe reported no duration for {path}: {result.stdout.strip()!r}"
            ) from e

    async def has_audio_stream(self, path: Path) -> bool:
        """Check whether a media file carries at least one audio stream."""
        result = await self.runner.run(
            [
                self.ffprobe_path, "-v", "error",
                "-select_streams", "a",
                "-show_entries", "stream=index",
                "-of", "json",
                str(path),
            ],
            capture_stdout=True,
        )
        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            return False
        return bool(data.get("streams"))

    async def concat_audio(self, inputs: Sequence[Path], output_path: Path) -> Path:
        """Concatenate audio clips into one re-encoded track.

        Re-encoding keeps the timestamps continuous so the measured duration
        of the result matches what the renderer plays.
        """
        if not inputs:
            raise ValueError("No audio files to combine")

        ffmpeg = self.config.ffmpeg
        concat_file = write_concat_list(inputs, output_path.with_suffix(".concat.txt"))
        try:
            await self.runner.run([
                self.ffmpeg_path, "-hide_banner", "-y",
                "-f", "concat", "-safe", "0",
                "-i", str(concat_file),
                "-c:a", ffmpeg.audio_codec,
                "-b:a", ffmpeg.audio_bitrate,
                "-ar", str(ffmpeg.sample_rate),
                str(output_path),
            ])
        finally:
            concat_file.unlink(missing_ok=True)
        return output_path

    async def concat_videos(
        self,
        inputs: Sequence[Path],
        output_path: Path,
        progress: ProgressCallback | None = None,
        expected_duration: float = 0.0,
    ) -> Path:
        """Join normalized clips without re-encoding."""
        if not inputs:
            raise ValueError("No video files to combine")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        concat_file = write_concat_list(inputs, output_path.with_suffix(".concat.txt"))
        try:
            await self.runner.run(
                [
                    self.ffmpeg_path, "-hide_banner", "-y",
                    "-f", "concat", "-safe", "0",
                    "-i", str(concat_file),
                    "-c", "copy",
                    str(output_path),
                ],
                expected_duration=expected_duration,
                progress=progress,
            )
        finally:
            concat_file.unlink(missing_ok=True)
        return output_path

    async def trim_video(self, input_path: Path, output_path: Path, duration: float) -> Path:
        """Keep the first ``duration`` seconds of a clip."""
        ffmpeg = self.config.ffmpeg
        await self.runner.run(
            [
                self.ffmpeg_path, "-hide_banner", "-y",
                "-i", str(input_path),
                "-t", format_seconds(duration),
                "-c:v", ffmpeg.video_codec,
                "-preset", ffmpeg.preset,
                "-c:a", ffmpeg.audio_codec,
                str(output_path),
            ],
            expected_duration=duration,
        )
        return output_path

    async def normalize_video(
        self,
        input_path: Path,
        output_path: Path,
        orientation: Orientation | None = None,
    ) -> Path:
        """Re-encode a clip to the shared canvas, frame rate and audio layout.

        Clips without an audio stream get a silent track so that all
        segments can be joined with the concat demuxer.
        """
        ffmpeg = self.config.ffmpeg
        width, height = self.config.video.canvas_size(orientation)
        video_filter = (
            f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:-1:-1:color=black,setsar=1"
        )

        args = [self.ffmpeg_path, "-hide_banner", "-y", "-i", str(input_path)]
        if await self.has_audio_stream(input_path):
            args += ["-map", "0:v:0", "-map", "0:a:0"]
        else:
            logger.info("%s has no audio, adding a silent track", Path(input_path).name)
            args += [
                "-f", "lavfi",
                "-i", f"anullsrc=channel_layout=stereo:sample_rate={ffmpeg.sample_rate}",
                "-map", "0:v:0", "-map", "1:a:0", "-shortest",
            ]

        args += [
            "-vf", video_filter,
            "-r", str(self.config.video.fps),
            "-c:v", ffmpeg.video_codec,
            "-preset", ffmpeg.preset,
            "-b:v", ffmpeg.video_bitrate,
            "-pix_fmt", ffmpeg.pixel_format,
            "-c:a", ffmpeg.audio_codec,
            "-b:a", ffmpeg.audio_bitrate,
            "-ar", str(ffmpeg.sample_rate),
            "-ac", "2",
            str(output_path),
        ]
        await self.runner.run(args)
        return output_path

    async def create_silence(self, output_path: Path, duration: float) -> Path:
        """Write a silent audio clip of the given duration."""
        ffmpeg = self.config.ffmpeg
        output_path.parent.mkdir(parents=True, exist_ok=True)
        await self.runner.run([
            self.ffmpeg_path, "-hide_banner", "-y",
            "-f", "lavfi",
            "-i", f"anullsrc=channel_layout=stereo:sample_rate={ffmpeg.sample_rate}",
            "-t", format_seconds(duration),
            "-c:a", ffmpeg.audio_codec,
            "-b:a", ffmpeg.audio_bitrate,
            str(output_path),
        ])
        return output_path

    async def render_segment(
        self,
        request: RenderRequest,
        progress: ProgressCallback | None = None,
    ) -> Path:
        """Render a storyboard over its background.

        The command line is fully built (and the duration guard checked)
        before the renderer is started.
        """
        args = self.builder.build(request)
        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        await self.runner.run(
            [self.ffmpeg_path, *args],
            expected_duration=request.target_duration,
            progress=progress,
        )
        return request.output_path
