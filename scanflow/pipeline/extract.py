"""
Page extraction: parsed text and rendered images for every page of a PDF.

Text comes from the document's text layer (PyMuPDF). Each page is rebuilt
span by span: spans on the same baseline are joined directly and a change
of baseline starts a new line. Images come from pdf2image, one PNG per
page, and define the authoritative page count and order.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import fitz
from PIL import Image
from pdf2image import convert_from_path
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

from scanflow.errors import ExtractionFailure
from scanflow.models import Page, PageImage, TextExtraction

logger = logging.getLogger(__name__)


def render_page_text(page_dict: Dict) -> str:
    """Rebuild a page's text from a PyMuPDF `get_text("dict")` structure."""
    text = ""
    last_y = None

    for block in page_dict.get("blocks", []):
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []) or []:
            for span in line.get("spans", []) or []:
                y = round(float(span.get("origin", (0.0, 0.0))[1]), 2)
                fragment = str(span.get("text", ""))
                if last_y is None or y == last_y:
                    text += fragment
                else:
                    text += "\n" + fragment
                last_y = y

    return text


def image_file_name(input_name: str, page_number: int) -> str:
    return f"{input_name}_page_{page_number}.png"


class PageExtractor:
    def __init__(self, dpi: int = 150, max_width: int = 0, logger_instance: Optional[logging.Logger] = None):
        self.dpi = dpi
        self.max_width = max_width
        self.logger = logger_instance or logger

    @classmethod
    def from_config(cls, config) -> 'PageExtractor':
        return cls(dpi=config.image_dpi, max_width=config.image_max_width)

    def extract_text(self, pdf_path: Path) -> TextExtraction:
        """
        Read the text layer of every page.

        Pages whose text cannot be read are reported in `failures` instead of
        being dropped; failing to open the document at all is fatal.

        Raises:
            ExtractionFailure: document cannot be opened or parsed
        """
        try:
            doc = fitz.open(str(pdf_path))
        except (RuntimeError, ValueError, OSError) as e:
            raise ExtractionFailure(f"Could not open {Path(pdf_path).name} for text extraction: {e}") from e

        extraction = TextExtraction()
        try:
            for index, page in enumerate(doc):
                page_number = index + 1
                try:
                    extraction.pages[page_number] = render_page_text(page.get_text("dict"))
                except (RuntimeError, ValueError) as e:
                    extraction.failures[page_number] = str(e)
                    self.logger.warning(f"Text extraction failed for page {page_number}: {e}")
        finally:
            doc.close()

        self.logger.debug(
            f"Extracted text from {Path(pdf_path).name}: "
            f"{len(extraction.pages)} pages, {len(extraction.failures)} failures"
        )
        return extraction

    def extract_images(self, pdf_path: Path, output_dir: Path) -> List[PageImage]:
        """
        Render every page to `{output_dir}/{stem}_page_{N}.png`.

        Raises:
            ExtractionFailure: rasterization failed or produced no pages
        """
        pdf_path = Path(pdf_path)
        output_dir = Path(output_dir)

        try:
            images = convert_from_path(str(pdf_path), dpi=self.dpi)
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError, OSError) as e:
            raise ExtractionFailure(f"Could not render pages of {pdf_path.name}: {e}") from e

        if not images:
            raise ExtractionFailure(f"No pages rendered from {pdf_path.name}")

        output_dir.mkdir(parents=True, exist_ok=True)
        page_images = []
        for index, image in enumerate(images):
            page_number = index + 1
            image = self._limit_width(image)
            image_path = output_dir / image_file_name(pdf_path.stem, page_number)
            image.save(image_path, format="PNG")
            page_images.append(PageImage(page_number=page_number, path=image_path))

        self.logger.debug(f"Rendered {len(page_images)} pages of {pdf_path.name} at {self.dpi} DPI")
        return page_images

    def _limit_width(self, image: Image.Image) -> Image.Image:
        if not self.max_width or image.width <= self.max_width:
            return image

        ratio = self.max_width / image.width
        new_size = (self.max_width, max(1, int(image.height * ratio)))
        return image.resize(new_size, Image.Resampling.LANCZOS)

    def extract(self, pdf_path: Path, images_dir: Path) -> List[Page]:
        """Text and images combined into ordered pages; images set the page count."""
        extraction = self.extract_text(pdf_path)
        page_images = self.extract_images(pdf_path, images_dir)

        image_numbers = {img.page_number for img in page_images}
        orphan_text = sorted(set(extraction.pages) - image_numbers)
        if orphan_text:
            self.logger.warning(f"Parsed text for pages without an image ignored: {orphan_text}")

        return [
            Page(
                page_number=img.page_number,
                image_path=img.path,
                parsed_text=extraction.text_for(img.page_number),
            )
            for img in sorted(page_images, key=lambda p: p.page_number)
        ]
