"""Storyboard model, asset generation and duration reconciliation."""

from .generator import NarrationAssetGenerator
from .models import OverlayPosition, Storyboard, StoryboardItem
from .reconcile import DurationReconciler

__all__ = [
    "DurationReconciler",
    "NarrationAssetGenerator",
    "OverlayPosition",
    "Storyboard",
    "StoryboardItem",
]
