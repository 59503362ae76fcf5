import io
import logging
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .config import CARD_MAX_SEMESTERS, CARD_SIZE
from .record import AcademicRecord, RecordSummary, SemesterSummary, summarize

logger = logging.getLogger(__name__)

NUS_ORANGE = (239, 124, 0)
NUS_BLUE = (0, 61, 124)
SLATE = (100, 116, 139)
BACKGROUND = (248, 250, 252)


def _font(size: int, bold: bool = False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _fmt_credits(value) -> str:
    return f"{value:g}"


def semester_rows(summary: RecordSummary, limit: int) -> Tuple[List[SemesterSummary], int]:
    """First `limit` semesters, plus how many were left out."""
    shown = summary.semesters[:limit]
    return shown, len(summary.semesters) - len(shown)


def fit_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "...", font=font) > max_width:
        text = text[:-1]
    return text + "..."


class SummaryCardRenderer:
    """
    Draws the shareable summary card as a PNG.

    Only one render runs at a time; a call made while another is in flight
    returns None instead of starting a second one.
    """

    def __init__(self, size: Tuple[int, int] = CARD_SIZE, max_semesters: int = CARD_MAX_SEMESTERS):
        self.size = size
        self.max_semesters = max_semesters
        self.busy = False

    def render(self, record: AcademicRecord, share_url: str) -> Optional[bytes]:
        if self.busy:
            logger.debug("Summary card render already in progress")
            return None
        self.busy = True
        try:
            image = self.draw(summarize(record), share_url)
            buf = io.BytesIO()
            image.save(buf, format="PNG")
            return buf.getvalue()
        except (OSError, ValueError):
            logger.exception("Summary card render failed")
            return None
        finally:
            self.busy = False

    def draw(self, summary: RecordSummary, share_url: str) -> Image.Image:
        width, height = self.size
        image = Image.new("RGB", self.size, BACKGROUND)
        draw = ImageDraw.Draw(image)
        pad = 60

        draw.rectangle([0, 0, width, 12], fill=NUS_ORANGE)
        draw.text((pad, 50), "NUS GPA Calc", font=_font(40, bold=True), fill=NUS_BLUE)

        # ---- Left column: headline numbers ----
        draw.text((pad, 140), "CUMULATIVE GPA", font=_font(22, bold=True), fill=SLATE)
        draw.text((pad, 170), summary.cumulative_gpa, font=_font(140, bold=True), fill=NUS_ORANGE)

        stats = [
            f"{_fmt_credits(summary.graded_credits)} graded / {_fmt_credits(summary.total_credits)} total credits",
            f"{len(summary.semesters)} semester{'s' if len(summary.semesters) != 1 else ''}",
            summary.honours,
        ]
        y = 350
        for line in stats:
            draw.text((pad, y), line, font=_font(28), fill=NUS_BLUE)
            y += 44

        # ---- Right column: per-semester breakdown ----
        col_x = width // 2 + 60
        col_w = width - col_x - pad
        draw.text((col_x, 140), "BY SEMESTER", font=_font(22, bold=True), fill=SLATE)

        shown, more = semester_rows(summary, self.max_semesters)
        row_font = _font(28)
        gpa_font = _font(28, bold=True)
        y = 185
        for sem in shown:
            gpa_w = draw.textlength(sem.gpa, font=gpa_font)
            label = fit_text(draw, sem.label or "Untitled", row_font, col_w - gpa_w - 20)
            draw.text((col_x, y), label, font=row_font, fill=NUS_BLUE)
            draw.text((col_x + col_w - gpa_w, y), sem.gpa, font=gpa_font, fill=NUS_ORANGE)
            y += 46
        if more:
            draw.text((col_x, y), f"+{more} more", font=_font(24), fill=SLATE)

        # ---- Footer ----
        footer_font = _font(20)
        draw.line([pad, height - 80, width - pad, height - 80], fill=(226, 232, 240), width=2)
        draw.text((pad, height - 60), fit_text(draw, share_url, footer_font, width - 2 * pad),
                  font=footer_font, fill=SLATE)
        return image
