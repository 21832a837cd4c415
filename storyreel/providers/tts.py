"""Text-to-speech providers."""

import logging
from pathlib import Path

import edge_tts

from ..config import TTSConfig
from ..exceptions import RendererProcessError, SpeechSynthesisError, TimingInvariantError
from ..render.ffmpeg import FfmpegService
from .base import SpeechResult

logger = logging.getLogger(__name__)


class EdgeTTS:
    """Microsoft Edge TTS provider (free, no API key required).

    The clip duration is measured with ffprobe after the file is written.
    """

    DEFAULT_VOICES = {
        "male": "en-US-GuyNeural",
        "female": "en-US-JennyNeural",
        "british_male": "en-GB-RyanNeural",
        "british_female": "en-GB-SoniaNeural",
    }

    def __init__(
        self,
        config: TTSConfig | None = None,
        voice: str | None = None,
        ffmpeg: FfmpegService | None = None,
    ):
        self.config = config or TTSConfig()
        self.voice = voice or self.config.voice_id or self.DEFAULT_VOICES["male"]
        self.ffmpeg = ffmpeg or FfmpegService()

    async def synthesize(self, text: str, output_path: Path) -> SpeechResult:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        preview = text if len(text) <= 40 else text[:40] + "..."
        logger.info("Generating speech with %s for '%s'", self.voice, preview)

        try:
            communicate = edge_tts.Communicate(text, self.voice, rate=self.config.rate)
            await communicate.save(str(output_path))
        except Exception as e:
            raise SpeechSynthesisError(f"Edge TTS failed for {output_path.name}: {e}") from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise SpeechSynthesisError(f"Edge TTS produced no audio for {output_path.name}")

        try:
            duration = await self.ffmpeg.probe_duration(output_path)
        except (RendererProcessError, TimingInvariantError) as e:
            raise SpeechSynthesisError(f"Cannot measure speech clip {output_path.name}: {e}") from e

        return SpeechResult(audio_path=output_path, duration_seconds=duration)


class MockTTS:
    """Writes silent clips sized by word count, for offline runs and tests."""

    def __init__(self, config: TTSConfig | None = None, ffmpeg: FfmpegService | None = None):
        self.config = config or TTSConfig(provider="mock")
        self.ffmpeg = ffmpeg or FfmpegService()

    def estimate_duration(self, text: str) -> float:
        words = len(text.split())
        return max(1.0, words / self.config.words_per_minute * 60)

    async def synthesize(self, text: str, output_path: Path) -> SpeechResult:
        output_path = Path(output_path)
        duration = self.estimate_duration(text)
        try:
            await self.ffmpeg.create_silence(output_path, duration)
        except RendererProcessError as e:
            raise SpeechSynthesisError(f"Mock speech failed for {output_path.name}: {e}") from e
        return SpeechResult(audio_path=output_path, duration_seconds=duration)
