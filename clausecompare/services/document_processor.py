import logging
from pathlib import Path
from typing import Any, Dict, List

import fitz  # PyMuPDF
from docx import Document

from clausecompare.services.errors import DocumentProcessingError

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "could not find readable text - check the file is text-based and not a scanned image"


class DocumentProcessor:
    """Converts PDF/DOCX/TXT uploads to plain text for clause extraction"""

    async def extract_text(self, file_path: str) -> str:
        """
        Extract the full text of a document

        Args:
            file_path: Path to a .pdf, .docx or .txt file

        Returns:
            Page texts joined by blank lines
        """
        pages = await self.convert_to_pages(file_path)
        text = "\n\n".join(page["text"].strip() for page in pages if page["text"].strip())

        if not text:
            raise DocumentProcessingError(f"{Path(file_path).name}: {NO_TEXT_MESSAGE}")

        logger.info(f"Extracted {len(text)} characters from {len(pages)} page(s) of {Path(file_path).name}")
        return text

    async def convert_to_pages(self, file_path: str) -> List[Dict[str, Any]]:
        file_ext = Path(file_path).suffix.lower()

        if file_ext == '.pdf':
            return self._process_pdf(file_path)
        elif file_ext == '.docx':
            return self._process_docx(file_path)
        elif file_ext == '.txt':
            return self._process_txt(file_path)
        else:
            raise DocumentProcessingError(f"Unsupported file format: {file_ext}")

    def _process_pdf(self, pdf_path: str) -> List[Dict[str, Any]]:
        pages = []
        try:
            with fitz.open(pdf_path) as doc:
                for page_num, page in enumerate(doc, start=1):
                    pages.append({"page_number": page_num, "text": page.get_text("text")})
        except Exception as e:
            raise DocumentProcessingError(f"PDF processing error: {str(e)}") from e
        return pages

    def _process_docx(self, docx_path: str, paragraphs_per_page: int = 50) -> List[Dict[str, Any]]:
        """DOCX has no pages, so paragraphs are grouped into logical pages"""
        try:
            doc = Document(docx_path)
        except Exception as e:
            raise DocumentProcessingError(f"DOCX processing error: {str(e)}") from e

        paragraphs = [para.text for para in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                paragraphs.append(" | ".join(cell.text for cell in row.cells))

        return [
            {
                "page_number": (i // paragraphs_per_page) + 1,
                "text": "\n".join(paragraphs[i:i + paragraphs_per_page])
            }
            for i in range(0, len(paragraphs), paragraphs_per_page)
        ]

    def _process_txt(self, txt_path: str) -> List[Dict[str, Any]]:
        try:
            text = Path(txt_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentProcessingError(f"Text file processing error: {str(e)}") from e
        return [{"page_number": 1, "text": text}]
