"""Error types raised by the storyboard and rendering pipeline.

Cancellation is not represented here: it travels as ``asyncio.CancelledError``
so that it is never reported as a failure.
"""


class StoryreelError(Exception):
    """Base class for all pipeline failures."""


class ExternalProviderError(StoryreelError):
    """An external collaborator (speech, caption, media) failed."""


class SpeechSynthesisError(ExternalProviderError):
    """Speech synthesis failed (quota, auth, network or empty output)."""


class CaptionRenderError(ExternalProviderError):
    """Caption image rasterization failed (fonts, encoding, I/O)."""


class MediaFetchError(ExternalProviderError):
    """Background media search or download failed."""


class TimingInvariantError(StoryreelError):
    """A timing invariant was violated or required assets are missing."""


class RendererProcessError(StoryreelError):
    """The external renderer exited with a non-zero code.

    Attributes:
        exit_code: Process exit code, or None when the process never started.
        diagnostics: Full captured diagnostic stream, verbatim.
    """

    def __init__(self, message: str, exit_code: int | None = None, diagnostics: str = ""):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        text = self.message
        if self.exit_code is not None:
            text = f"{text} (exit code {self.exit_code})"
        if self.diagnostics:
            text = f"{text}\n{self.diagnostics}"
        return text


class RendererLaunchError(RendererProcessError):
    """The external renderer could not be started at all."""
