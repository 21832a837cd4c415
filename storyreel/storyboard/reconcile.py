"""Reconcile storyboard timings with the measured narration track."""

import logging

from ..exceptions import TimingInvariantError
from .models import Storyboard

logger = logging.getLogger(__name__)

DEFAULT_RESCALE_THRESHOLD = 0.01


class DurationReconciler:
    """Rescales storyboard item timings to match the final narration duration.

    Per-clip durations are measured when each clip is synthesized, but the
    concatenated track can come out slightly longer or shorter. Overlay
    windows have to follow the track the renderer actually plays.
    """

    def __init__(self, threshold: float = DEFAULT_RESCALE_THRESHOLD):
        """Initialize the reconciler.

        Args:
            threshold: Relative drift above which timings are rescaled
                (0.01 means more than 1%).
        """
        if threshold < 0:
            raise ValueError(f"threshold must not be negative, got {threshold}")
        self.threshold = threshold

    def reconcile(self, storyboard: Storyboard, actual_duration: float) -> float:
        """Rescale the storyboard in place if it drifts from ``actual_duration``.

        Args:
            storyboard: Storyboard whose item timings may be rewritten.
            actual_duration: Measured duration of the final narration track.

        Returns:
            The scale factor applied, or 1.0 when timings were left untouched.
        """
        estimated = storyboard.total_duration
        if estimated <= 0:
            return 1.0

        if actual_duration <= 0:
            raise TimingInvariantError(
                f"Narration track has no measurable duration ({actual_duration}s) "
                f"for a storyboard of {estimated:.3f}s"
            )

        scale = actual_duration / estimated
        if abs(scale - 1.0) <= self.threshold:
            logger.debug(
                "Storyboard duration %.3fs within %.1f%% of narration %.3fs, keeping timings",
                estimated, self.threshold * 100, actual_duration,
            )
            return 1.0

        logger.info(
            "Rescaling storyboard from %.3fs to %.3fs (factor %.4f)",
            estimated, actual_duration, scale,
        )

        cumulative = 0.0
        for item in storyboard.items:
            item_duration = (item.end_time - item.start_time) * scale
            item.start_time = cumulative
            item.end_time = cumulative + item_duration
            cumulative = item.end_time

        if storyboard.items:
            storyboard.items[-1].end_time = actual_duration

        if not storyboard.is_contiguous():
            raise TimingInvariantError("Storyboard is not contiguous after rescaling")

        return scale
