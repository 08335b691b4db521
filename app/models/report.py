import enum
from dataclasses import dataclass, field

from PIL import Image

MM_PER_INCH = 25.4


class OverflowPolicy(str, enum.Enum):
    SPLIT = "split"
    CLAMP = "clamp"


@dataclass(frozen=True)
class PageGeometry:
    """Printable page in millimetres, rasterized at `dpi`."""

    width_mm: float = 210.0
    height_mm: float = 297.0
    margin_mm: float = 10.0
    dpi: int = 150

    def to_px(self, mm: float) -> int:
        return round(mm * self.dpi / MM_PER_INCH)

    @property
    def page_size_px(self) -> tuple[int, int]:
        return self.to_px(self.width_mm), self.to_px(self.height_mm)

    @property
    def margin_px(self) -> int:
        return self.to_px(self.margin_mm)

    @property
    def content_width_px(self) -> int:
        return self.to_px(self.width_mm - 2 * self.margin_mm)

    @property
    def content_height_px(self) -> int:
        return self.to_px(self.height_mm - 2 * self.margin_mm)


A4_PORTRAIT = PageGeometry()


@dataclass
class ReportDocument:
    geometry: PageGeometry = A4_PORTRAIT
    pages: list[Image.Image] = field(default_factory=list)

    def add_page(self, page: Image.Image) -> None:
        self.pages.append(page)

    def __len__(self) -> int:
        return len(self.pages)


@dataclass(frozen=True)
class SavedReport:
    filename: str
    content: bytes = field(repr=False)
    media_type: str = "application/pdf"
