"""
Ticket Text Helpers
===================

Title extraction from free-text descriptions and length bounding.
"""

from typing import Optional

DEFAULT_TITLE = "Sem título"
TITLE_MAX_LENGTH = 100
TITLE_MARKERS = ("**Título:**", "Título:")
ELLIPSIS = "..."


def truncate_text(text: str, limit: int) -> str:
    """
    Bound ``text`` to ``limit`` characters.

    Longer text keeps its first ``limit - 3`` characters followed by "...",
    so the result is exactly ``limit`` characters long.
    """
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _problem_to_title(problem: str) -> str:
    # "problema-de-rede" -> "Problema De Rede"
    return " ".join(
        word[:1].upper() + word[1:].lower()
        for word in problem.replace("-", " ").split(" ")
    )


def extract_title(description: Optional[str], problem: Optional[str] = None) -> str:
    """
    Derive a ticket title from its detailed description.

    Tried in order:
    1. A line carrying a "**Título:**" or "Título:" marker (text after it)
    2. The first non-empty line
    3. The problem type, title-cased with hyphens turned into spaces

    Titles from the description are bounded to 100 characters.
    """
    if not description:
        return DEFAULT_TITLE

    lines = [line for line in description.split("\n") if line.strip()]

    marked = next(
        (line for line in lines if any(marker in line for marker in TITLE_MARKERS)),
        None,
    )
    if marked is not None:
        title = marked.strip()
        for marker in TITLE_MARKERS:
            if marker in title:
                title = title.split(marker, 1)[1].strip() or title
                break
        return truncate_text(title, TITLE_MAX_LENGTH)

    if lines:
        return truncate_text(lines[0].strip(), TITLE_MAX_LENGTH)

    if problem:
        return _problem_to_title(problem)

    return DEFAULT_TITLE
