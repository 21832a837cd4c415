"""Contracts for the external collaborators the pipeline consumes."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..config import Orientation


@dataclass
class SpeechResult:
    """Synthesized narration clip and its measured duration."""

    audio_path: Path
    duration_seconds: float


@runtime_checkable
class SpeechSynthesizer(Protocol):
    """Turns text into a narration clip."""

    async def synthesize(self, text: str, output_path: Path) -> SpeechResult:
        """Write speech for ``text`` to ``output_path`` and measure it.

        Raises:
            SpeechSynthesisError: On quota, auth, network or empty output.
        """
        ...


@runtime_checkable
class CaptionRasterizer(Protocol):
    """Turns text into a caption image."""

    async def rasterize(self, text: str, output_path: Path) -> Path:
        """Render ``text`` to an image at ``output_path``.

        Raises:
            CaptionRenderError: If fonts, encoding or writing fail.
        """
        ...


@runtime_checkable
class MediaFetcher(Protocol):
    """Finds and downloads background footage."""

    async def fetch(
        self,
        query: str,
        output_path: Path,
        orientation: Orientation = Orientation.LANDSCAPE,
    ) -> Path:
        """Download one clip matching ``query`` to ``output_path``.

        Raises:
            MediaFetchError: If there are no results or the download fails.
        """
        ...
