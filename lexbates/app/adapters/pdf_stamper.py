"""PDF stamping adapter using PyMuPDF for Bates labels, exhibit stickers and watermarks."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import fitz  # type: ignore[import]

from lexbates.app.ports.documents import PDF_MIME_TYPE
from lexbates.app.ports.stamp import StampPort, StampPosition, StampResult
from lexbates.errors import RenderError


@dataclass(frozen=True)
class _EdgeOffsets:
    """Anchor for a label expressed as distances from the page edges (points)."""

    from_left: float | None
    from_right: float | None
    from_top: float | None
    from_bottom: float | None


class PDFStamperAdapter(StampPort):
    """Stamp text onto PDFs with PyMuPDF; pass other types through untouched."""

    _LOG = logging.getLogger(__name__)
    _FONT_NAME = "helv"
    _LABEL_FONT_SIZE = 12
    _BADGE_FONT_SIZE = 14
    _WATERMARK_FONT_SIZE = 60
    # MuPDF is not thread-safe; every fitz call in the process goes through this lock.
    _FITZ_LOCK = threading.Lock()
    _POSITION_PRESETS: dict[str, _EdgeOffsets] = {
        "bottom-right": _EdgeOffsets(from_left=None, from_right=150, from_top=None, from_bottom=20),
        "bottom-left": _EdgeOffsets(from_left=20, from_right=None, from_top=None, from_bottom=20),
        "top-left": _EdgeOffsets(from_left=20, from_right=None, from_top=20, from_bottom=None),
        "top-right": _EdgeOffsets(from_left=None, from_right=150, from_top=20, from_bottom=None),
    }

    def supports(self, mime_type: str) -> bool:
        return (mime_type or "").split(";")[0].strip().lower() == PDF_MIME_TYPE

    def stamp_text(
        self,
        data: bytes,
        text: str,
        *,
        mime_type: str,
        position: StampPosition = "bottom-right",
    ) -> StampResult:
        preset = self._POSITION_PRESETS.get(position)
        if preset is None:
            raise RenderError(f"Unsupported stamp position: {position}")

        def draw(doc: fitz.Document) -> int:
            for page in doc:
                self._draw_label(page, text, preset)
            return doc.page_count

        return self._render(data, mime_type, draw)

    def stamp_badge(self, data: bytes, text: str, *, mime_type: str) -> StampResult:
        def draw(doc: fitz.Document) -> int:
            self._draw_badge(doc[0], text)
            return 1

        return self._render(data, mime_type, draw)

    def stamp_watermark(self, data: bytes, text: str, *, mime_type: str) -> StampResult:
        def draw(doc: fitz.Document) -> int:
            for page in doc:
                self._draw_watermark(page, text)
            return doc.page_count

        return self._render(data, mime_type, draw)

    def merge(self, parts: Sequence[bytes]) -> bytes:
        if not parts:
            raise RenderError("Nothing to merge")

        with self._FITZ_LOCK:
            merged = fitz.open()
            try:
                for index, part in enumerate(parts):
                    source = self._open(part)
                    try:
                        merged.insert_pdf(source)
                    finally:
                        source.close()
                    self._LOG.debug("Merged part %s (%s pages so far)", index, merged.page_count)
                return merged.tobytes(garbage=3, deflate=True)
            except (RuntimeError, ValueError) as exc:
                raise RenderError(f"Unable to merge PDFs: {exc}") from exc
            finally:
                merged.close()

    def page_count(self, data: bytes, *, mime_type: str) -> int:
        if not self.supports(mime_type):
            return 0
        with self._FITZ_LOCK:
            doc = self._open(data)
            try:
                return doc.page_count
            finally:
                doc.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _render(
        self,
        data: bytes,
        mime_type: str,
        draw: Callable[[fitz.Document], int],
    ) -> StampResult:
        if not self.supports(mime_type):
            self._LOG.info("No visual label applied to %s artifact; passing through", mime_type)
            return StampResult(data=bytes(data), stamped=False, pages_stamped=0)

        with self._FITZ_LOCK:
            doc = self._open(data)
            try:
                if doc.page_count == 0:
                    raise RenderError("PDF has no pages to stamp")
                pages_stamped = draw(doc)
                output = doc.tobytes(garbage=3, deflate=True)
            except (RuntimeError, ValueError) as exc:
                raise RenderError(f"Unable to stamp PDF: {exc}") from exc
            finally:
                doc.close()

        return StampResult(data=output, stamped=True, pages_stamped=pages_stamped)

    def _open(self, data: bytes) -> fitz.Document:
        try:
            return fitz.open(stream=bytes(data), filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise RenderError(f"Unreadable PDF: {exc}") from exc

    def _to_page_space(self, page: fitz.Page, point: fitz.Point) -> fitz.Point:
        # page.rect is the visible (rotated) area; drawing happens in unrotated space.
        if page.rotation % 360 == 0:
            return point
        return point * page.derotation_matrix

    def _draw_label(self, page: fitz.Page, text: str, preset: _EdgeOffsets) -> None:
        visible = page.rect
        if preset.from_left is not None:
            x = visible.x0 + preset.from_left
        else:
            x = visible.x1 - (preset.from_right or 0)
        if preset.from_top is not None:
            y = visible.y0 + preset.from_top
        else:
            y = visible.y1 - (preset.from_bottom or 0)

        page.insert_text(
            self._to_page_space(page, fitz.Point(x, y)),
            text,
            fontsize=self._LABEL_FONT_SIZE,
            fontname=self._FONT_NAME,
            color=(0, 0, 0),
            rotate=page.rotation,
            overlay=True,
        )

    def _draw_badge(self, page: fitz.Page, text: str) -> None:
        visible = page.rect
        box = fitz.Rect(visible.x1 - 150, visible.y0 + 20, visible.x1 - 20, visible.y0 + 50)
        if page.rotation % 360:
            box = box * page.derotation_matrix

        page.draw_rect(box, color=(0, 0, 0), fill=(1, 1, 1), width=1, overlay=True)

        line_height = self._BADGE_FONT_SIZE * 1.2
        inset = max(0.0, (30 - line_height) / 2)
        text_box = fitz.Rect(box.x0 + 2, box.y0 + inset - 1, box.x1 - 2, box.y1)
        inserted = page.insert_textbox(
            text_box,
            text,
            fontsize=self._BADGE_FONT_SIZE,
            fontname=self._FONT_NAME,
            color=(0, 0, 0),
            align=fitz.TEXT_ALIGN_CENTER,
            rotate=page.rotation,
            overlay=True,
        )
        if inserted < 0:
            # Text wider than the sticker; fall back to a plain baseline insert.
            baseline = fitz.Point(visible.x1 - 145, visible.y0 + 35)
            page.insert_text(
                self._to_page_space(page, baseline),
                text,
                fontsize=self._BADGE_FONT_SIZE,
                fontname=self._FONT_NAME,
                color=(0, 0, 0),
                rotate=page.rotation,
                overlay=True,
            )

    def _draw_watermark(self, page: fitz.Page, text: str) -> None:
        visible = page.rect
        size = self._WATERMARK_FONT_SIZE
        text_width = fitz.get_text_length(text, fontname=self._FONT_NAME, fontsize=size)
        center = self._to_page_space(
            page, fitz.Point(visible.x0 + visible.width / 2, visible.y0 + visible.height / 2)
        )
        start = fitz.Point(center.x - text_width / 2, center.y + size / 3)

        page.insert_text(
            start,
            text,
            fontsize=size,
            fontname=self._FONT_NAME,
            color=(0.8, 0.8, 0.8),
            fill_opacity=0.3,
            morph=(center, fitz.Matrix(45 + page.rotation)),
            overlay=True,
        )
