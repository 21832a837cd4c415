"""Rendering through the external ffmpeg process."""

from .ffmpeg import FfmpegService
from .filtergraph import FilterGraphBuilder, RenderRequest, overlay_enable_expression
from .process import FfmpegProgressParser, ProcessResult, ProcessRunner, ProgressParser
from .segment import SegmentAssembler

__all__ = [
    "FfmpegProgressParser",
    "FfmpegService",
    "FilterGraphBuilder",
    "ProcessResult",
    "ProcessRunner",
    "ProgressParser",
    "RenderRequest",
    "SegmentAssembler",
    "overlay_enable_expression",
]
