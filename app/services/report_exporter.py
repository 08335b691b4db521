"""Export the rendered analysis and the original image as a PDF report."""
import io
import logging

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from app.models.image import ImageAsset
from app.models.report import A4_PORTRAIT, OverflowPolicy, PageGeometry, ReportDocument, SavedReport
from app.services.rasterizer import PillowRasterizer, RenderedSurface, SurfaceRasterizer
from app.services.session_state import AnalysisSession
from app.utils.exceptions import ExportUnavailableError

logger = logging.getLogger(__name__)

CAPTURE_SCALE = 2

ORIGINAL_IMAGE_CAPTION = "Original Embryo Image"
# Fixed placement of the original image page, in millimetres.
ORIGINAL_IMAGE_BOX_MM = (15.0, 30.0, 180.0, 135.0)  # x, y, width, height
CAPTION_POSITION_MM = (15.0, 20.0)
CAPTION_SIZE_PT = 16


def _blank_page(geometry: PageGeometry) -> Image.Image:
    return Image.new("RGB", geometry.page_size_px, "white")


def paginate(
    raster: Image.Image,
    geometry: PageGeometry = A4_PORTRAIT,
    overflow: OverflowPolicy = OverflowPolicy.SPLIT,
) -> list[Image.Image]:
    """Scale the raster to the page content width and lay it out on pages.

    Content taller than one page is split across consecutive pages, or with
    OverflowPolicy.CLAMP cropped to the first page.
    """
    content_width = geometry.content_width_px
    content_height = geometry.content_height_px
    scaled_height = max(1, round(raster.height * content_width / raster.width))
    scaled = raster.convert("RGB").resize((content_width, scaled_height), Image.LANCZOS)

    if scaled_height <= content_height:
        slices = [scaled]
    elif overflow is OverflowPolicy.CLAMP:
        logger.warning(
            "Report content is %d px tall, clamping to one page of %d px",
            scaled_height, content_height,
        )
        slices = [scaled.crop((0, 0, content_width, content_height))]
    else:
        slices = [
            scaled.crop((0, top, content_width, min(top + content_height, scaled_height)))
            for top in range(0, scaled_height, content_height)
        ]

    pages = []
    for chunk in slices:
        page = _blank_page(geometry)
        page.paste(chunk, (geometry.margin_px, geometry.margin_px))
        pages.append(page)
    return pages


def append_original_image(document: ReportDocument, asset: ImageAsset | None) -> ReportDocument:
    """Add one captioned page holding the original image, if there is one."""
    if asset is None:
        return document

    geometry = document.geometry
    page = _blank_page(geometry)
    draw = ImageDraw.Draw(page)
    font = ImageFont.load_default(size=round(CAPTION_SIZE_PT * geometry.dpi / 72))
    caption_xy = tuple(geometry.to_px(v) for v in CAPTION_POSITION_MM)
    draw.text(caption_xy, ORIGINAL_IMAGE_CAPTION, fill="black", font=font)

    x, y, w, h = (geometry.to_px(v) for v in ORIGINAL_IMAGE_BOX_MM)
    try:
        with Image.open(io.BytesIO(asset.data)) as src:
            image = ImageOps.exif_transpose(src).convert("RGB").resize((w, h), Image.LANCZOS)
        page.paste(image, (x, y))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Could not embed original image %r in report: %s", asset.filename, e)
        draw.rectangle((x, y, x + w, y + h), outline=(156, 163, 175), width=2)
        draw.text((x + geometry.to_px(5), y + geometry.to_px(5)),
                  "The original image could not be embedded.", fill=(107, 114, 128), font=font)

    document.add_page(page)
    return document


def save(document: ReportDocument, filename: str) -> SavedReport:
    """Serialize every page, in order, into one PDF."""
    if not document.pages:
        raise ValueError("Cannot save a report without pages")
    buf = io.BytesIO()
    first, *rest = document.pages
    first.save(
        buf,
        format="PDF",
        save_all=True,
        append_images=rest,
        resolution=float(document.geometry.dpi),
        title="Embryo Analysis Report",
    )
    return SavedReport(filename=filename, content=buf.getvalue())


class ReportExporter:
    def __init__(
        self,
        rasterizer: SurfaceRasterizer | None = None,
        geometry: PageGeometry = A4_PORTRAIT,
        overflow: OverflowPolicy = OverflowPolicy.SPLIT,
        filename: str = "embryo_analysis_report.pdf",
    ):
        self.rasterizer = rasterizer or PillowRasterizer()
        self.geometry = geometry
        self.overflow = overflow
        self.filename = filename

    async def capture(self, surface: RenderedSurface) -> Image.Image:
        return await self.rasterizer.capture(surface, CAPTURE_SCALE)

    async def build_document(self, markdown_text: str, asset: ImageAsset | None) -> ReportDocument:
        raster = await self.capture(RenderedSurface(markdown_text))
        document = ReportDocument(geometry=self.geometry)
        for page in paginate(raster, self.geometry, self.overflow):
            document.add_page(page)
        return append_original_image(document, asset)

    async def export(self, session: AnalysisSession) -> SavedReport:
        if not session.export_enabled:
            raise ExportUnavailableError()
        # Snapshot before the capture suspension point; the session may move on.
        result, asset = session.result, session.asset

        document = await self.build_document(result.markdown, asset)
        report = save(document, self.filename)
        logger.info(
            "Exported report for session %s: %d pages, %d bytes",
            session.id, len(document), len(report.content),
        )
        return report
