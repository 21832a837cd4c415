"""Shared test fixtures."""

import asyncio
import json
import shutil
from pathlib import Path

import pytest

from storyreel.config import Config
from storyreel.progress import ProgressReport
from storyreel.providers.base import SpeechResult
from storyreel.render.ffmpeg import FfmpegService
from storyreel.render.process import ProcessResult, ProcessRunner


def pytest_collection_modifyitems(config, items):
    """Skip tests that need the real ffmpeg when it is not installed."""
    if shutil.which("ffmpeg") and shutil.which("ffprobe"):
        return
    skip_ffmpeg = pytest.mark.skip(reason="ffmpeg not available")
    for item in items:
        if "ffmpeg" in item.keywords:
            item.add_marker(skip_ffmpeg)


class FakeRunner(ProcessRunner):
    """Records command lines instead of launching processes.

    ffprobe calls answer from ``durations`` (keyed by file name) and
    ``has_audio``; ffmpeg calls create their output file.
    """

    def __init__(self, durations: dict | None = None, default_duration: float = 5.0, has_audio: bool = True):
        super().__init__()
        self.calls: list[list[str]] = []
        self.durations = durations or {}
        self.default_duration = default_duration
        self.has_audio = has_audio

    async def run(self, argv, expected_duration=0.0, progress=None, capture_stdout=False):
        argv = [str(arg) for arg in argv]
        self.calls.append(argv)

        if Path(argv[0]).name == "ffprobe":
            if "-select_streams" in argv:
                streams = [{"index": 1}] if self.has_audio else []
                return ProcessResult(0, json.dumps({"streams": streams}), "")
            duration = self.durations.get(Path(argv[-1]).name, self.default_duration)
            return ProcessResult(0, f"{duration}\n", "")

        output = Path(argv[-1])
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"media")
        if progress and expected_duration > 0:
            progress(ProgressReport(percentage=100.0, message="Rendering video... 100%"))
        return ProcessResult(0, "", "")

    @property
    def ffmpeg_calls(self) -> list[list[str]]:
        return [call for call in self.calls if Path(call[0]).name == "ffmpeg"]

    @property
    def probe_calls(self) -> list[list[str]]:
        return [call for call in self.calls if Path(call[0]).name == "ffprobe"]


class FakeTTS:
    """Writes a placeholder clip and reports durations from a list."""

    def __init__(self, durations: list[float] | None = None, delay: float = 0.0):
        self.durations = list(durations or [2.0])
        self.delay = delay
        self.texts: list[str] = []
        self.cancelled = False

    async def synthesize(self, text: str, output_path: Path) -> SpeechResult:
        self.texts.append(text)
        duration = self.durations[(len(self.texts) - 1) % len(self.durations)]
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"audio")
        return SpeechResult(audio_path=output_path, duration_seconds=duration)


class FakeCaptions:
    """Writes a placeholder caption image."""

    def __init__(self, error: Exception | None = None):
        self.texts: list[str] = []
        self.error = error

    async def rasterize(self, text: str, output_path: Path) -> Path:
        self.texts.append(text)
        if self.error:
            raise self.error
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"png")
        return output_path


class FakeMedia:
    """Writes a placeholder background clip."""

    def __init__(self):
        self.queries: list[tuple[str, str]] = []

    async def fetch(self, query, output_path, orientation="landscape"):
        self.queries.append((query, str(orientation)))
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"video")
        return output_path


@pytest.fixture
def config(tmp_path) -> Config:
    """Provide a test configuration with offline providers."""
    config = Config()
    config.tts.provider = "mock"
    config.backgrounds.provider = "local"
    config.backgrounds.local_dir = str(tmp_path / "backgrounds")
    config.workspace.root_dir = str(tmp_path / "workspaces")
    return config


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def ffmpeg(config, runner) -> FfmpegService:
    return FfmpegService(config, runner)


@pytest.fixture
def fake_tts() -> FakeTTS:
    return FakeTTS()


@pytest.fixture
def fake_captions() -> FakeCaptions:
    return FakeCaptions()


@pytest.fixture
def fake_media() -> FakeMedia:
    return FakeMedia()


@pytest.fixture
def progress_log():
    """Collects progress reports."""
    reports: list[ProgressReport] = []
    return reports


@pytest.fixture
def make_runner():
    """Factory for runners with custom probe answers."""
    return FakeRunner


@pytest.fixture
def make_tts():
    """Factory for speech fakes with custom durations."""
    return FakeTTS


@pytest.fixture
def make_captions():
    return FakeCaptions
