"""
Plain-text recovery from DOCX (Office Open XML) files.

A DOCX is a ZIP archive; the body lives in word/document.xml. Paragraphs end
with </w:p> and their visible text sits in <w:t> runs. Runs of one paragraph
are stitched with no separator (formatting toggles split words into several
runs), paragraphs are joined with a blank line.

Deliberately narrow: tables, headers, footers and embedded objects are not
walked. The output only feeds LLM prompts.
"""

import html
import logging
import re
import zipfile
from io import BytesIO

from ..core.errors import ParseError

logger = logging.getLogger(__name__)

DOCUMENT_ENTRY = "word/document.xml"
PARAGRAPH_END = "</w:p>"
PARAGRAPH_SEPARATOR = "\n\n"

# <w:t> or <w:t xml:space="preserve">, never <w:tab/>, <w:tbl>, <w:t/>
_TEXT_RUN = re.compile(r"<w:t(?:\s[^>]*)?>([^<]*)</w:t>")


def extract_docx_text(data: bytes) -> str:
    """Return the document's paragraphs as plain text. Raises ParseError."""
    try:
        with zipfile.ZipFile(BytesIO(data)) as archive:
            if DOCUMENT_ENTRY not in archive.namelist():
                raise ParseError(
                    f"Failed to extract text from DOCX: no {DOCUMENT_ENTRY} found, "
                    "not a valid DOCX file"
                )
            xml = archive.read(DOCUMENT_ENTRY).decode("utf-8")
    except ParseError:
        raise
    except Exception as e:
        # damaged streams surface as zlib.error, EOFError or NotImplementedError
        logger.error("DOCX extraction error: %s", e)
        raise ParseError(f"Failed to extract text from DOCX: {e}") from e

    return paragraphs_to_text(xml)


def paragraphs_to_text(xml: str) -> str:
    """Collapse document.xml into paragraph text."""
    paragraphs = []
    for fragment in xml.split(PARAGRAPH_END):
        text = html.unescape("".join(_TEXT_RUN.findall(fragment)))
        if text.strip():
            paragraphs.append(text)
    return PARAGRAPH_SEPARATOR.join(paragraphs)
