"""
Resume text extraction and keyword-based ATS scoring.
"""

import io
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..core.exceptions import FaceHireError
from ..core.logging import get_logger

logger = get_logger(__name__)

MAX_PAGES = 50

ATS_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "cloud engineer": (
        "AWS", "Azure", "GCP", "Docker", "Kubernetes", "Cloud", "CI/CD",
    ),
    "software engineer": (
        "JavaScript", "React", "Angular", "Node.js", "SQL", "NoSQL", "Python", "Java",
    ),
}


class ResumeError(FaceHireError):
    code = "RESUME_ERROR"


@dataclass(frozen=True)
class AtsResult:
    role: str
    score: float
    matched: Tuple[str, ...]
    missing: Tuple[str, ...]


def extract_pdf_text(data: bytes) -> str:
    """Text of every page, one page per line."""
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise ResumeError("Encrypted PDF files are not supported.")
        if len(reader.pages) > MAX_PAGES:
            raise ResumeError(f"PDF exceeds maximum page limit ({MAX_PAGES}).")
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise ResumeError(f"Failed to extract text. Ensure the PDF is valid: {e}") from e
    logger.info("resume_text_extracted", pages=len(pages))
    return "\n".join(pages)


def _keyword_pattern(keyword: str) -> re.Pattern:
    # word boundaries that also hold for keywords ending in punctuation (CI/CD, Node.js)
    return re.compile(r"(?<![\w])" + re.escape(keyword.lower()) + r"(?![\w])")


def score_resume(text: str, role: str) -> AtsResult:
    """
    Percentage of the role's keywords present in the resume text.

    Raises:
        ResumeError: the role has no keyword list
    """
    keywords = ATS_KEYWORDS.get(role.strip().lower())
    if keywords is None:
        raise ResumeError(f"Unknown role: {role}", details={"roles": sorted(ATS_KEYWORDS)})

    lowered = text.lower()
    matched: List[str] = []
    missing: List[str] = []
    for keyword in keywords:
        (matched if _keyword_pattern(keyword).search(lowered) else missing).append(keyword)
    score = round(100 * len(matched) / len(keywords), 1)
    return AtsResult(role=role.strip().lower(), score=score, matched=tuple(matched), missing=tuple(missing))
