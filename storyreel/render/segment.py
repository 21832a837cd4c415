"""Assemble one rendered segment from a storyboard."""

import logging
from pathlib import Path

from ..config import Config, Orientation
from ..exceptions import TimingInvariantError
from ..progress import ProgressCallback, report, scaled
from ..providers.base import MediaFetcher
from ..storyboard.models import Storyboard
from ..storyboard.reconcile import DurationReconciler
from .ffmpeg import FfmpegService
from .filtergraph import RenderRequest

logger = logging.getLogger(__name__)


class SegmentAssembler:
    """Turns a storyboard into a video clip over fetched background footage.

    Steps: fetch the background, pick or build the narration track, measure
    it and reconcile the storyboard against it, then render.
    """

    def __init__(
        self,
        config: Config,
        media: MediaFetcher,
        ffmpeg: FfmpegService | None = None,
        reconciler: DurationReconciler | None = None,
    ):
        self.config = config
        self.media = media
        self.ffmpeg = ffmpeg or FfmpegService(config)
        self.reconciler = reconciler or DurationReconciler(config.timing.rescale_threshold)

    async def assemble(
        self,
        storyboard: Storyboard,
        background_query: str,
        workspace: Path,
        segment_name: str,
        orientation: Orientation | None = None,
        progress: ProgressCallback | None = None,
    ) -> Path:
        """Render ``storyboard`` to ``<workspace>/<segment_name>_clip.mp4``.

        Args:
            storyboard: Timed caption/audio items; rescaled in place if the
                narration track drifts.
            background_query: Search query for background footage.
            workspace: Directory for intermediate and output files.
            segment_name: Prefix for every file this segment writes.
            orientation: Output orientation; defaults to the configured one.
            progress: Callback for progress updates.

        Returns:
            Path to the rendered clip.
        """
        workspace = Path(workspace)
        orientation = Orientation(orientation or self.config.video.orientation)

        report(progress, f"Fetching background for {segment_name}...", 0)
        background_path = workspace / f"{segment_name}_bg.mp4"
        await self.media.fetch(background_query, background_path, orientation)
        if not background_path.exists():
            raise TimingInvariantError(f"Background clip was not written: {background_path}")

        narration_path = await self._prepare_narration(storyboard, workspace, segment_name)
        if narration_path is None:
            target_duration = storyboard.total_duration
        else:
            target_duration = await self.ffmpeg.probe_duration(narration_path)
            self.reconciler.reconcile(storyboard, target_duration)

        logger.info(
            "Rendering %s: %d captions, %.2fs", segment_name, len(storyboard), target_duration
        )
        request = RenderRequest(
            storyboard=storyboard,
            background_path=background_path,
            narration_path=narration_path,
            target_duration=target_duration,
            output_path=workspace / f"{segment_name}_clip.mp4",
            orientation=orientation,
        )
        output = await self.ffmpeg.render_segment(
            request, progress=scaled(progress, 5, 100, prefix=f"{segment_name}: ")
        )
        report(progress, f"Rendered {segment_name}", 100)
        return output

    async def _prepare_narration(
        self, storyboard: Storyboard, workspace: Path, segment_name: str
    ) -> Path | None:
        """Return the narration track for the segment, or None if silent."""
        audio_paths = storyboard.audio_paths()
        for path in audio_paths:
            if not path.exists():
                raise TimingInvariantError(f"Narration clip not found: {path}")

        if not audio_paths:
            return None

        # A single clip is used as-is
        if len(audio_paths) == 1:
            return audio_paths[0]

        output_path = workspace / f"{segment_name}_narration.mp3"
        return await self.ffmpeg.concat_audio(audio_paths, output_path)
