"""Render the analysis view to a raster image.

The report exporter only depends on the `SurfaceRasterizer` protocol; the
Pillow implementation below lays the markdown blocks out as plain text.
"""
import asyncio
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont

from app.services.markdown_renderer import Block, to_blocks

HEADING_SIZES = {1: 1.6, 2: 1.35, 3: 1.2}


@dataclass(frozen=True)
class RenderedSurface:
    markdown: str
    title: str = "Analysis Result:"


class SurfaceRasterizer(Protocol):
    async def capture(self, surface: RenderedSurface, scale: int) -> Image.Image:
        ...


@dataclass(frozen=True)
class _Line:
    text: str
    font: ImageFont.ImageFont
    x: int
    height: int


class PillowRasterizer:
    """Draws the result view on a white canvas `width * scale` pixels wide."""

    def __init__(self, width: int = 800, padding: int = 24, font_size: int = 14):
        self.width = width
        self.padding = padding
        self.font_size = font_size

    async def capture(self, surface: RenderedSurface, scale: int) -> Image.Image:
        return await asyncio.to_thread(self._draw, surface, scale)

    def _font(self, size: float) -> ImageFont.ImageFont:
        return ImageFont.load_default(size=max(1, round(size)))

    def _draw(self, surface: RenderedSurface, scale: int) -> Image.Image:
        width = self.width * scale
        padding = self.padding * scale
        body = self._font(self.font_size * scale)
        line_height = round(self.font_size * scale * 1.5)

        lines = self._wrap(surface.title, self._font(self.font_size * scale * 1.25), padding,
                           width - padding, round(line_height * 1.4))
        for block in to_blocks(surface.markdown):
            lines.extend(self._layout_block(block, body, line_height, scale, padding, width - padding))

        height = padding * 2 + sum(line.height for line in lines)
        canvas = Image.new("RGB", (width, height), "white")
        draw = ImageDraw.Draw(canvas)
        y = padding
        for line in lines:
            if line.text:
                draw.text((line.x, y), line.text, fill=(31, 41, 55), font=line.font)
            y += line.height
        return canvas

    def _layout_block(self, block: Block, body, line_height: int, scale: int,
                      left: int, right: int) -> list[_Line]:
        if block.kind == "blank":
            return [_Line("", body, left, line_height // 2)]
        if block.kind == "heading":
            factor = HEADING_SIZES.get(block.level, 1.1)
            font = self._font(self.font_size * scale * factor)
            lines = [_Line("", body, left, line_height // 2)]
            lines += self._wrap(block.text, font, left, right, round(line_height * factor))
            return lines

        indent = left + block.level * 20 * scale
        if block.kind in ("bullet", "numbered"):
            marker = "-" if block.kind == "bullet" else block.marker
            marker_width = round(body.getlength(marker + " "))
            lines = self._wrap(block.text, body, indent + marker_width, right, line_height)
            first = lines[0]
            lines[0] = _Line(marker + " " + first.text, body, indent, first.height)
            return lines
        return self._wrap(block.text, body, indent, right, line_height)

    @staticmethod
    def _wrap(text: str, font, left: int, right: int, line_height: int) -> list[_Line]:
        max_width = max(1, right - left)
        lines: list[_Line] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if current and font.getlength(candidate) > max_width:
                lines.append(_Line(current, font, left, line_height))
                current = word
            else:
                current = candidate
            # Tokens wider than the line (URLs, long identifiers) break per character.
            while len(current) > 1 and font.getlength(current) > max_width:
                cut = _fitting_prefix(current, font, max_width)
                lines.append(_Line(current[:cut], font, left, line_height))
                current = current[cut:]
        lines.append(_Line(current, font, left, line_height))
        return lines


def _fitting_prefix(text: str, font, max_width: int) -> int:
    """Length of the longest prefix of `text` that fits, at least one character."""
    cut = 1
    while cut < len(text) and font.getlength(text[:cut + 1]) <= max_width:
        cut += 1
    return cut
