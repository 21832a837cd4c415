"""Caption images drawn with Pillow."""

import asyncio
import logging
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw, ImageFont

from ..config import CaptionConfig, Orientation, VideoConfig
from ..exceptions import CaptionRenderError

logger = logging.getLogger(__name__)

DEFAULT_FONT = "DejaVuSans.ttf"


def wrap_text(text: str, font, max_width: float) -> list[str]:
    """Break text into lines no wider than ``max_width`` pixels.

    A single word wider than the limit gets a line of its own.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and font.getlength(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


class CaptionRenderer:
    """Renders text onto a transparent canvas-sized PNG.

    The text is wrapped to fit inside the exterior padding, centered, and
    drawn over a translucent rounded rectangle.
    """

    def __init__(
        self,
        config: CaptionConfig | None = None,
        video: VideoConfig | None = None,
        orientation: Orientation | None = None,
    ):
        self.config = config or CaptionConfig()
        self.video = video or VideoConfig()
        self.size = self.video.canvas_size(orientation)
        self._font = None

    def _load_font(self):
        if self._font is not None:
            return self._font
        try:
            self._font = ImageFont.truetype(self.config.font_path or DEFAULT_FONT, self.config.font_size)
        except OSError as e:
            if self.config.font_path:
                raise CaptionRenderError(f"Cannot load font {self.config.font_path}: {e}") from e
            logger.warning("%s not found, using Pillow's built-in font", DEFAULT_FONT)
            self._font = ImageFont.load_default(size=self.config.font_size)
        return self._font

    def render(self, text: str, output_path: Path) -> Path:
        """Draw ``text`` and save it as a PNG (blocking)."""
        output_path = Path(output_path)
        cfg = self.config
        width, height = self.size

        try:
            font = self._load_font()
            image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            max_text_width = width - 2 * cfg.exterior_padding
            lines = wrap_text(text, font, max_text_width)

            if lines:
                draw = ImageDraw.Draw(image)
                line_height = cfg.font_size * cfg.line_spacing
                rect_width = max_text_width + 2 * cfg.interior_padding
                rect_height = len(lines) * line_height + 2 * cfg.interior_padding
                left = (width - rect_width) / 2
                top = (height - rect_height) / 2

                fill = ImageColor.getrgb(cfg.rectangle_color)[:3] + (int(cfg.background_opacity * 255),)
                draw.rounded_rectangle(
                    (left, top, left + rect_width, top + rect_height),
                    radius=cfg.corner_radius,
                    fill=fill,
                )

                text_color = ImageColor.getrgb(cfg.text_color)
                y = top + cfg.interior_padding
                for line in lines:
                    draw.text((width / 2, y), line, font=font, fill=text_color, anchor="ma")
                    y += line_height
            else:
                logger.warning("No text to draw for %s, writing a blank caption", output_path.name)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            image.save(output_path, "PNG")
        except CaptionRenderError:
            raise
        except (OSError, ValueError) as e:
            raise CaptionRenderError(f"Failed to render caption {output_path}: {e}") from e

        return output_path

    async def rasterize(self, text: str, output_path: Path) -> Path:
        """Render the caption without blocking the event loop."""
        return await asyncio.to_thread(self.render, text, output_path)
