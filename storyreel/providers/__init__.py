"""External collaborators: speech, captions and background footage."""

from ..config import Config
from ..render.ffmpeg import FfmpegService
from .base import CaptionRasterizer, MediaFetcher, SpeechResult, SpeechSynthesizer
from .captions import CaptionRenderer
from .media import LocalMediaFetcher, PexelsVideoFetcher
from .tts import EdgeTTS, MockTTS


def get_tts_provider(config: Config, ffmpeg: FfmpegService | None = None) -> SpeechSynthesizer:
    """Get the appropriate TTS provider based on configuration."""
    ffmpeg = ffmpeg or FfmpegService(config)
    provider = config.tts.provider.lower()

    if provider == "edge":
        return EdgeTTS(config.tts, ffmpeg=ffmpeg)
    elif provider == "mock":
        return MockTTS(config.tts, ffmpeg=ffmpeg)
    else:
        raise ValueError(f"Unknown TTS provider: {provider}")


def get_media_fetcher(config: Config) -> MediaFetcher:
    """Get the background footage source based on configuration."""
    provider = config.backgrounds.provider.lower()

    if provider == "pexels":
        return PexelsVideoFetcher(config.backgrounds)
    elif provider == "local":
        return LocalMediaFetcher(config.backgrounds.local_dir)
    else:
        raise ValueError(f"Unknown background provider: {provider}")


__all__ = [
    "CaptionRasterizer",
    "CaptionRenderer",
    "EdgeTTS",
    "LocalMediaFetcher",
    "MediaFetcher",
    "MockTTS",
    "PexelsVideoFetcher",
    "SpeechResult",
    "SpeechSynthesizer",
    "get_media_fetcher",
    "get_tts_provider",
]
