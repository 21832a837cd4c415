"""Compose a full video from a title and its comments."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..config import Config, Orientation, load_config
from ..progress import ProgressCallback, report, scaled
from ..providers import CaptionRenderer, get_media_fetcher, get_tts_provider
from ..providers.base import CaptionRasterizer, MediaFetcher, SpeechSynthesizer
from ..render.ffmpeg import FfmpegService
from ..render.segment import SegmentAssembler
from ..storyboard.generator import NarrationAssetGenerator
from ..text import sanitize_filename
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class Post:
    """A post title and the comments narrated after it."""

    title: str
    comments: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Post":
        return cls(title=data["title"], comments=list(data.get("comments", [])))


def load_posts(path: Path | str) -> list[Post]:
    """Load posts from a JSON file holding a list of {title, comments}."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    return [Post.from_dict(item) for item in data]


@dataclass
class CompositionResult:
    """Result of composing one video."""

    output_path: Path
    segment_paths: list[Path]
    duration_seconds: float


class Compositor:
    """Sequences intro, title, comments and outro into one video.

    Every generated file lives in a workspace that is removed when the
    composition ends, whether it succeeded or not.
    """

    def __init__(
        self,
        config: Config | None = None,
        tts: SpeechSynthesizer | None = None,
        captions: CaptionRasterizer | None = None,
        media: MediaFetcher | None = None,
        ffmpeg: FfmpegService | None = None,
    ):
        """Initialize the compositor.

        Args:
            config: Configuration (loads config.yaml or defaults if None).
            tts: Speech provider; defaults to the configured one.
            captions: Caption renderer; when None, one is created per
                composition at the canvas size of its orientation.
            media: Background footage source; defaults to the configured one.
            ffmpeg: Renderer service.
        """
        self.config = config or load_config()
        self.ffmpeg = ffmpeg or FfmpegService(self.config)
        self.tts = tts or get_tts_provider(self.config, self.ffmpeg)
        self.captions = captions
        self.media = media or get_media_fetcher(self.config)
        self.assembler = SegmentAssembler(self.config, self.media, self.ffmpeg)

    async def compose(
        self,
        title: str,
        comments: list[str],
        output_path: Path | str,
        orientation: Orientation | None = None,
        progress: ProgressCallback | None = None,
    ) -> CompositionResult:
        """Render a complete video.

        Args:
            title: Post title, narrated first.
            comments: Comments narrated after the title, in order.
            output_path: Where to write the final video.
            orientation: Output orientation; defaults to the configured one.
            progress: Callback for progress updates.

        Returns:
            CompositionResult with the output path and duration.
        """
        output_path = Path(output_path)
        orientation = Orientation(orientation or self.config.video.orientation)
        captions = self.captions or CaptionRenderer(
            self.config.captions, self.config.video, orientation
        )
        generator = NarrationAssetGenerator(self.config, self.tts, captions)
        clips = self.config.clips

        if not generator.split_units([title]):
            raise ValueError("Title has no text to narrate")

        narrated = []
        for index, comment in enumerate(comments, start=1):
            if generator.split_units([comment]):
                narrated.append((f"Comment_{index}", comment))
            else:
                logger.warning("Skipping comment %d: no text to narrate", index)

        logger.info("Starting video composition for: %s", title)
        segments: list[Path] = []
        workspace = Workspace(self.config.workspace.root_dir, keep=self.config.workspace.keep)

        with workspace as ws:
            try:
                intro_clip = await self._prepare_static_clip(
                    clips.intro_path, clips.intro_duration, "intro", ws, orientation
                )
                if intro_clip:
                    segments.append(intro_clip)

                share = 90 / (1 + len(narrated))
                segments.append(await self._render_segment(
                    generator, [title], self.config.backgrounds.title_query, ws, "Title",
                    orientation, scaled(progress, 0, share),
                ))

                break_clip = None
                if narrated:
                    break_clip = await self._prepare_static_clip(
                        clips.break_path, clips.break_duration, "break", ws, orientation
                    )

                for position, (segment_name, comment) in enumerate(narrated, start=1):
                    if break_clip:
                        segments.append(break_clip)
                    logger.info("Generating video segment for %s", segment_name)
                    segments.append(await self._render_segment(
                        generator, [comment], self.config.backgrounds.comment_query, ws,
                        segment_name, orientation,
                        scaled(progress, share * position, share * (position + 1)),
                    ))

                outro_clip = await self._prepare_static_clip(
                    clips.outro_path, clips.outro_duration, "outro", ws, orientation
                )
                if outro_clip:
                    segments.append(outro_clip)

                report(progress, "Stitching final video...", 95)
                await self.ffmpeg.concat_videos(segments, output_path)
                duration = await self.ffmpeg.probe_duration(output_path)
            except Exception:
                logger.exception("Video composition failed for title: %s", title)
                raise

        logger.info("Final video rendered successfully at: %s", output_path)
        report(progress, "Video composition complete.", 100)
        return CompositionResult(
            output_path=output_path,
            segment_paths=segments,
            duration_seconds=duration,
        )

    async def _render_segment(
        self,
        generator: NarrationAssetGenerator,
        texts: list[str],
        background_query: str,
        workspace: Path,
        segment_name: str,
        orientation: Orientation,
        progress: ProgressCallback | None,
    ) -> Path:
        storyboard = await generator.generate(
            texts, workspace, segment_name, progress=scaled(progress, 0, 40)
        )
        return await self.assembler.assemble(
            storyboard,
            background_query,
            workspace,
            segment_name,
            orientation,
            progress=scaled(progress, 40, 100),
        )

    async def _prepare_static_clip(
        self,
        clip_path: str | None,
        duration: float,
        clip_name: str,
        workspace: Path,
        orientation: Orientation,
    ) -> Path | None:
        """Trim (when a duration is set) and normalize an intro/break/outro clip.

        Returns None when no clip is configured or the configured file is
        missing, so the clip is left out of the video.
        """
        if not clip_path:
            return None
        clip_path = Path(clip_path)
        if not clip_path.exists():
            logger.warning("%s clip not found, skipping: %s", clip_name, clip_path)
            return None

        source = clip_path
        if duration > 0:
            source = await self.ffmpeg.trim_video(
                clip_path, workspace / f"{clip_name}_trimmed.mp4", duration
            )
        return await self.ffmpeg.normalize_video(
            source, workspace / f"{clip_name}_final.mp4", orientation
        )

    async def compose_posts(
        self,
        posts: list[Post],
        output_dir: Path | str,
        orientation: Orientation | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[CompositionResult]:
        """Render one video per post into ``output_dir``.

        Files are named ``<title>_output.mp4`` with the title made safe for
        the filesystem and cut to 40 characters.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        results = []
        for index, post in enumerate(posts):
            start = index / len(posts) * 100
            end = (index + 1) / len(posts) * 100
            output_path = output_dir / f"{sanitize_filename(post.title, 40)}_output.mp4"
            results.append(await self.compose(
                post.title,
                post.comments,
                output_path,
                orientation=orientation,
                progress=scaled(progress, start, end, prefix=f"Video {index + 1}/{len(posts)}: "),
            ))
        return results

    def compose_sync(
        self,
        title: str,
        comments: list[str],
        output_path: Path | str,
        **kwargs,
    ) -> CompositionResult:
        """Synchronous wrapper for compose."""
        return asyncio.run(self.compose(title, comments, output_path, **kwargs))
