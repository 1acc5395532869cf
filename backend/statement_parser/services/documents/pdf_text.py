"""PDF text extraction wrapper using pypdf.

Keeps the rest of the pipeline independent of the PDF library: callers get
plain text back, or a ``CredentialError`` / ``DecodeError``.
"""

from __future__ import annotations

import abc
import asyncio
import io
import logging

from pypdf import PdfReader
from pypdf.errors import DependencyError, PdfReadError

from statement_parser.core.config import get_settings
from statement_parser.core.exceptions import (
    CredentialError,
    CredentialErrorKind,
    DecodeError,
    DecodeErrorKind,
)

logger = logging.getLogger(__name__)


class DocumentTextExtractor(abc.ABC):
    """Turns document bytes (plus an optional password) into text."""

    @abc.abstractmethod
    async def extract(self, document: bytes, credential: str | None = None) -> str:
        """Return the text of the leading pages of *document*."""


class PdfTextExtractor(DocumentTextExtractor):
    """Reads the first ``max_pages`` pages of a PDF with pypdf.

    Example:
        >>> extractor = PdfTextExtractor()
        >>> text = await extractor.extract(pdf_bytes, "secret")
    """

    def __init__(self, max_pages: int | None = None):
        self.max_pages = max_pages or get_settings().pdf_max_pages

    async def extract(self, document: bytes, credential: str | None = None) -> str:
        return await asyncio.to_thread(self.extract_sync, document, credential)

    def extract_sync(self, document: bytes, credential: str | None = None) -> str:
        """Blocking variant of ``extract``.

        Raises:
            CredentialError: the PDF is encrypted and *credential* is missing or wrong.
            DecodeError: the bytes are not a readable PDF.
        """
        if not document:
            raise DecodeError(DecodeErrorKind.CORRUPT, "The uploaded file is empty.")

        password = credential if credential and credential.strip() else None

        try:
            reader = PdfReader(io.BytesIO(document))
            if reader.is_encrypted:
                self._unlock(reader, password)

            texts = []
            for page in reader.pages[: self.max_pages]:
                texts.append(page.extract_text() or "")
        except (CredentialError, DecodeError):
            raise
        except DependencyError as exc:
            logger.warning("PDF needs an optional crypto dependency: %s", exc)
            raise DecodeError(DecodeErrorKind.OTHER, f"Failed to decrypt PDF: {exc}") from exc
        except PdfReadError as exc:
            logger.info("Unreadable PDF: %s", exc)
            raise DecodeError(DecodeErrorKind.CORRUPT) from exc
        except Exception as exc:
            logger.exception("PDF text extraction failed")
            raise DecodeError(DecodeErrorKind.OTHER, f"Failed to extract PDF content: {exc}") from exc

        logger.debug("Extracted text from %d page(s)", len(texts))
        return "".join(f"{text}\n" for text in texts)

    @staticmethod
    def _unlock(reader: PdfReader, password: str | None) -> None:
        # Some statements are encrypted with an empty user password.
        if reader.decrypt(password or ""):
            return
        if password is None:
            raise CredentialError(CredentialErrorKind.REQUIRED)
        raise CredentialError(CredentialErrorKind.INCORRECT)
