"""Overlap trimming for model continuations.

Models asked to continue a document often echo part of it back: a
speaker label, the whole document, or just its last few words. ``trim``
removes that echo so appending the result never duplicates text.
"""

import logging
import re

logger = logging.getLogger(__name__)

MAX_OVERLAP_WORDS = 5

_ROLE_LABEL_RE = re.compile(r"^(Assistant:\s*)+", re.IGNORECASE)
_WORD_RE = re.compile(r"\S+")


def seam_overlap(document: str, text: str) -> tuple[int, int]:
    """Find the largest seam overlap between ``document`` and ``text``.

    Returns ``(words, offset)``: the number of leading words of ``text``
    that repeat the tail of ``document`` (at most MAX_OVERLAP_WORDS), and
    the character offset in ``text`` where those words end.
    """
    document_words = document.split()
    leading = []
    for match in _WORD_RE.finditer(text):
        leading.append(match)
        if len(leading) == MAX_OVERLAP_WORDS:
            break

    best, offset = 0, 0
    for i in range(1, min(len(document_words), len(leading)) + 1):
        suffix = [w.lower() for w in document_words[-i:]]
        prefix = [m.group().lower() for m in leading[:i]]
        if suffix == prefix:
            best, offset = i, leading[i - 1].end()
    return best, offset


def _trim_once(document: str, text: str) -> str:
    text = _ROLE_LABEL_RE.sub("", text, count=1)

    if document and text.startswith(document):
        text = text[len(document):].lstrip()
        logger.debug("Removed full document prefix, %d chars remain", len(text))

    words, offset = seam_overlap(document, text)
    if words:
        text = text[offset:].lstrip()
        logger.debug("Removed %d overlapping words", words)

    return text


def trim(document: str, raw: str) -> str:
    """Return ``raw`` with any leading repetition of ``document`` removed.

    The comparison is case-insensitive but punctuation-sensitive. Passes
    repeat until nothing more is removed, so ``trim`` is idempotent. Text
    that needs no trimming is returned unchanged, empty or not.
    """
    text = raw
    while True:
        trimmed = _trim_once(document, text)
        if trimmed == text:
            return text
        text = trimmed
