"""Storyboard data model: timed caption/narration placements for one segment."""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..exceptions import TimingInvariantError


class OverlayPosition(str, Enum):
    """Anchor of a caption image on the canvas."""

    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @classmethod
    def parse(cls, value: "str | OverlayPosition | None") -> "OverlayPosition":
        """Parse a position tag; unknown tags fall back to center."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.CENTER

    def expression(self) -> str:
        """Return the overlay x/y expression for this anchor."""
        return _POSITION_EXPRESSIONS[self]


_POSITION_EXPRESSIONS = {
    OverlayPosition.CENTER: "x=(W-w)/2:y=(H-h)/2",
    OverlayPosition.TOP_LEFT: "x=0:y=0",
    OverlayPosition.TOP_RIGHT: "x=W-w:y=0",
    OverlayPosition.BOTTOM_LEFT: "x=0:y=H-h",
    OverlayPosition.BOTTOM_RIGHT: "x=W-w:y=H-h",
}


@dataclass
class StoryboardItem:
    """One narration unit's caption image and audio, placed on the timeline.

    Times are seconds since the start of the segment. The display window is
    half-open: the item is visible from ``start_time`` up to but not
    including ``end_time``.
    """

    image_path: Path
    audio_path: Path | None
    start_time: float
    end_time: float
    position: OverlayPosition = OverlayPosition.CENTER

    def __post_init__(self) -> None:
        self.image_path = Path(self.image_path)
        if self.audio_path:
            self.audio_path = Path(self.audio_path)
        else:
            self.audio_path = None
        self.position = OverlayPosition.parse(self.position)
        if self.end_time <= self.start_time:
            raise TimingInvariantError(
                f"Storyboard item {self.image_path.name} ends at {self.end_time:.3f}s "
                f"which is not after its start {self.start_time:.3f}s"
            )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def is_active_at(self, t: float) -> bool:
        """Whether the caption is visible at render time ``t``."""
        return self.start_time <= t < self.end_time

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "image_path": str(self.image_path),
            "audio_path": str(self.audio_path) if self.audio_path else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "position": self.position.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoryboardItem":
        return cls(
            image_path=Path(data["image_path"]),
            audio_path=Path(data["audio_path"]) if data.get("audio_path") else None,
            start_time=data["start_time"],
            end_time=data["end_time"],
            position=OverlayPosition.parse(data.get("position")),
        )


@dataclass
class Storyboard:
    """Ordered timeline of storyboard items; insertion order is timeline order."""

    items: list[StoryboardItem] = field(default_factory=list)

    def next_start_time(self) -> float:
        """Start time for the next item: the latest end time, or zero if empty."""
        if not self.items:
            return 0.0
        return max(item.end_time for item in self.items)

    @property
    def total_duration(self) -> float:
        return self.next_start_time()

    def add(self, item: StoryboardItem, tolerance: float = 1e-6) -> StoryboardItem:
        """Append an item that starts exactly where the timeline ends."""
        expected = self.next_start_time()
        if abs(item.start_time - expected) > tolerance:
            raise TimingInvariantError(
                f"Storyboard item starts at {item.start_time:.3f}s but the timeline "
                f"ends at {expected:.3f}s"
            )
        self.items.append(item)
        return item

    def audio_paths(self) -> list[Path]:
        """Ordered, de-duplicated audio paths declared by the items."""
        paths = [item.audio_path for item in self.items if item.audio_path]
        return list(dict.fromkeys(paths))

    def is_contiguous(self, tolerance: float = 1e-6) -> bool:
        """Check that items start at zero and each starts where the previous ends."""
        if not self.items:
            return True
        if abs(self.items[0].start_time) > tolerance:
            return False
        for previous, current in zip(self.items, self.items[1:]):
            if abs(previous.end_time - current.start_time) > tolerance:
                return False
        return abs(self.next_start_time() - self.items[-1].end_time) <= tolerance

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "items": [item.to_dict() for item in self.items],
            "total_duration": self.total_duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Storyboard":
        return cls(items=[StoryboardItem.from_dict(item) for item in data.get("items", [])])

    def save_manifest(self, path: Path) -> Path:
        """Save storyboard manifest to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    @classmethod
    def load_manifest(cls, path: Path) -> "Storyboard":
        """Load storyboard from manifest file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
