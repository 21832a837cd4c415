"""Narrated caption videos rendered over background footage with ffmpeg."""

__version__ = "0.1.0"
