"""Resume text extraction (pymupdf, optional dependency) and skill detection."""

from pathlib import Path

from src.skills.extractor import SkillExtractor


def extract_text_from_pdf(path: str | Path) -> str:
    """Extract plain text from a PDF file.

    Args:
        path: Path to the PDF file.

    Returns:
        Concatenated text from all pages.

    Raises:
        FileNotFoundError: If the PDF file does not exist.
        ImportError: If pymupdf is not installed.
    """
    path = Path(path)
    if not path.exists():
        msg = f"PDF file not found: {path}"
        raise FileNotFoundError(msg)

    try:
        import pymupdf
    except ImportError:
        msg = (
            "pymupdf is required for PDF extraction. "
            "Install with: pip install 'jobs-match-engine[profile]'"
        )
        raise ImportError(msg) from None

    doc = pymupdf.open(str(path))
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def extract_resume_skills(path: str | Path, extractor: SkillExtractor) -> list[str]:
    """Read a resume PDF and return the canonical skills found in it."""
    return extractor.extract_from_resume(extract_text_from_pdf(path))
