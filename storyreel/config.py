"""Configuration loading and management."""

import os
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class Orientation(str, Enum):
    """Output video orientation."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


class VideoConfig(BaseModel):
    """Video output configuration."""

    fps: int = 30
    landscape_width: int = 1920
    landscape_height: int = 1080
    portrait_width: int = 1080
    portrait_height: int = 1920
    orientation: Orientation = Orientation.LANDSCAPE

    def canvas_size(self, orientation: Orientation | None = None) -> tuple[int, int]:
        """Return (width, height) of the render canvas for an orientation."""
        orientation = Orientation(orientation or self.orientation)
        if orientation == Orientation.PORTRAIT:
            return self.portrait_width, self.portrait_height
        return self.landscape_width, self.landscape_height


class FfmpegConfig(BaseModel):
    """External renderer configuration."""

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    video_codec: str = "libx264"
    audio_codec: str = "libmp3lame"
    preset: str = "ultrafast"
    video_bitrate: str = "5000k"
    audio_bitrate: str = "192k"
    sample_rate: int = 44100
    pixel_format: str = "yuv420p"


class CaptionConfig(BaseModel):
    """Caption image configuration."""

    max_chars_per_page: int = 400
    font_path: str | None = None
    font_size: int = 48
    interior_padding: int = 50
    exterior_padding: int = 100
    line_spacing: float = 1.5
    text_color: str = "#FFFFFF"
    rectangle_color: str = "#000000"
    background_opacity: float = 0.6
    corner_radius: int = 24


class TTSConfig(BaseModel):
    """Text-to-speech configuration."""

    provider: str = "edge"
    voice_id: str | None = None
    rate: str = "+0%"
    words_per_minute: int = 160


class BackgroundConfig(BaseModel):
    """Background footage configuration."""

    provider: str = "pexels"
    api_key: str | None = None
    title_query: str = "abstract"
    comment_query: str = "nature"
    per_page: int = 15
    local_dir: str = "backgrounds"


class ClipConfig(BaseModel):
    """Optional static clips added around the generated segments.

    A duration of zero keeps the whole clip.
    """

    intro_path: str | None = None
    intro_duration: float = 0.0
    break_path: str | None = None
    break_duration: float = 0.0
    outro_path: str | None = None
    outro_duration: float = 0.0


class TimingConfig(BaseModel):
    """Timing policy for storyboards and renders."""

    rescale_threshold: float = 0.01
    max_render_seconds: float = 3600.0


class WorkspaceConfig(BaseModel):
    """Temporary workspace configuration."""

    root_dir: str | None = None
    keep: bool = False


class Config(BaseModel):
    """Main application configuration."""

    video: VideoConfig = Field(default_factory=VideoConfig)
    ffmpeg: FfmpegConfig = Field(default_factory=FfmpegConfig)
    captions: CaptionConfig = Field(default_factory=CaptionConfig)
    tts: TTSConfig = Field(default_factory=TTSConfig)
    backgrounds: BackgroundConfig = Field(default_factory=BackgroundConfig)
    clips: ClipConfig = Field(default_factory=ClipConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)

    def model_post_init(self, __context) -> None:
        if self.backgrounds.api_key is None:
            self.backgrounds.api_key = os.environ.get("PEXELS_API_KEY")

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json", exclude={"backgrounds": {"api_key"}})
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file or use defaults."""
    if config_path is None:
        # Look for config.yaml in current directory or project root
        candidates = [Path("config.yaml"), Path(__file__).parent.parent / "config.yaml"]
        for candidate in candidates:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is not None:
        return Config.from_yaml(config_path)

    return Config()
