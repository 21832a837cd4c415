"""Generate narration audio and caption images for a segment."""

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from ..config import Config
from ..exceptions import TimingInvariantError
from ..progress import ProgressCallback, report
from ..providers.base import CaptionRasterizer, SpeechSynthesizer
from ..text import paginate, sanitize_post_content
from .models import Storyboard, StoryboardItem

logger = logging.getLogger(__name__)


class NarrationAssetGenerator:
    """Builds a storyboard by synthesizing each narration unit.

    Texts are sanitized and split into units. For each unit the speech clip
    and the caption image are produced concurrently; units are processed one
    after another so that each start time is the previous unit's end.
    """

    def __init__(
        self,
        config: Config,
        tts: SpeechSynthesizer,
        captions: CaptionRasterizer,
    ):
        self.config = config
        self.tts = tts
        self.captions = captions

    def split_units(self, texts: Iterable[str]) -> list[str]:
        """Sanitize and paginate texts into narration units."""
        limit = self.config.captions.max_chars_per_page
        units = []
        for text in texts:
            units.extend(paginate(sanitize_post_content(text), limit))
        return units

    async def generate(
        self,
        texts: Iterable[str],
        workspace: Path,
        segment_name: str,
        progress: ProgressCallback | None = None,
    ) -> Storyboard:
        """Generate assets for all units of a segment.

        Args:
            texts: Source texts, e.g. a title or a comment.
            workspace: Directory for generated files.
            segment_name: Prefix for file names and progress messages.
            progress: Callback for progress updates.

        Returns:
            Storyboard with one item per unit, contiguous from zero.
        """
        workspace = Path(workspace)
        audio_dir = workspace / f"{segment_name}_audio"
        overlay_dir = workspace / f"{segment_name}_overlay"
        audio_dir.mkdir(parents=True, exist_ok=True)
        overlay_dir.mkdir(parents=True, exist_ok=True)

        units = self.split_units(texts)
        logger.info("Generating %d units for segment '%s'", len(units), segment_name)

        storyboard = Storyboard()
        for index, unit in enumerate(units):
            report(
                progress,
                f"Processing {segment_name} part {index + 1}...",
                index / len(units) * 100,
            )
            await self._generate_unit(
                storyboard,
                unit,
                audio_dir / f"{segment_name}_{index}.mp3",
                overlay_dir / f"{segment_name}_{index}.png",
            )

        logger.info(
            "Segment '%s' storyboard duration: %.3fs", segment_name, storyboard.total_duration
        )
        return storyboard

    async def _generate_unit(
        self,
        storyboard: Storyboard,
        text: str,
        audio_path: Path,
        image_path: Path,
    ) -> StoryboardItem:
        speech_task = asyncio.ensure_future(self.tts.synthesize(text, audio_path))
        caption_task = asyncio.ensure_future(self.captions.rasterize(text, image_path))
        try:
            speech, image = await asyncio.gather(speech_task, caption_task)
        except BaseException:
            # gather leaves the sibling running when one task fails
            speech_task.cancel()
            caption_task.cancel()
            await asyncio.gather(speech_task, caption_task, return_exceptions=True)
            raise

        logger.debug(
            "Speech for %s: %.3fs at %s", image_path.name, speech.duration_seconds, speech.audio_path
        )
        if speech.duration_seconds <= 0:
            raise TimingInvariantError(
                f"Speech clip {speech.audio_path} has no duration ({speech.duration_seconds}s)"
            )

        start = storyboard.next_start_time()
        return storyboard.add(
            StoryboardItem(
                image_path=Path(image),
                audio_path=speech.audio_path,
                start_time=start,
                end_time=start + speech.duration_seconds,
            )
        )
