import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Sequence

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger("country_api")

IMAGE_SIZE = (800, 400)


@dataclass(frozen=True)
class SummaryEntry:
    name: str
    estimated_gdp: Optional[float]

    @property
    def gdp_label(self) -> str:
        if self.estimated_gdp is None:
            return "N/A"
        return f"{self.estimated_gdp:.2f}"


@dataclass(frozen=True)
class SummaryData:
    total: int
    refreshed_at: str
    top: Sequence[SummaryEntry] = field(default_factory=tuple)

    @classmethod
    def from_countries(cls, total: int, countries, refreshed_at: str) -> "SummaryData":
        top = tuple(SummaryEntry(c.name, c.estimated_gdp) for c in countries)
        return cls(total=total, refreshed_at=refreshed_at, top=top)

    def lines(self) -> list[str]:
        lines = [f"Total countries: {self.total}", "Top 5 GDPs:"]
        lines.extend(f"{entry.name}: {entry.gdp_label}" for entry in self.top)
        lines.append(f"Last refreshed: {self.refreshed_at}")
        return lines


class SummaryRenderer(Protocol):
    def render(self, summary: SummaryData) -> bytes:
        """Return the summary as PNG bytes."""
        ...


def _load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


class PillowSummaryRenderer:
    """Draws the summary lines top to bottom on a white canvas."""

    def __init__(self, size: tuple[int, int] = IMAGE_SIZE, font_size: int = 22, margin: int = 20):
        self.size = size
        self.font_size = font_size
        self.margin = margin

    def render(self, summary: SummaryData) -> bytes:
        img = Image.new("RGB", self.size, color=(255, 255, 255))
        draw = ImageDraw.Draw(img)
        font = _load_font(self.font_size)

        line_height = self.font_size + 8
        y = self.margin
        for line in summary.lines():
            draw.text((self.margin, y), line, fill=(0, 0, 0), font=font)
            y += line_height

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


def write_summary_image(summary: SummaryData, path: Path, renderer: Optional[SummaryRenderer] = None) -> Path:
    """Render the summary and write it to ``path``, replacing any previous image."""
    renderer = renderer or PillowSummaryRenderer()
    data = renderer.render(summary)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("Summary image written to %s (%d bytes)", path, len(data))
    return path
