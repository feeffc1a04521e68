"""
Text normalization utilities for editor content.

Cleans the plain text extracted from the rich-text editor before it is
measured, wrapped or flowed into DOCX paragraphs.
"""

import re
from typing import Optional


class TextNormalizer:
    """Normalizes plain text extracted from editor HTML."""

    # Invisible or layout-only characters the editor leaves behind
    SPECIAL_CHARS = {
        '\u00a0': ' ',      # Non-breaking space → regular space
        '\u2009': ' ',      # Thin space → regular space
        '\u2007': ' ',      # Figure space → regular space
        '\u2008': ' ',      # Punctuation space → regular space
        '\u202f': ' ',      # Narrow no-break space → regular space
        '\u200b': '',       # Zero-width space → remove
        '\u200c': '',       # Zero-width non-joiner → remove
        '\u200d': '',       # Zero-width joiner → remove
        '\ufeff': '',       # Byte order mark → remove
        '\u00ad': '',       # Soft hyphen → remove
        '\u2011': '-',      # Non-breaking hyphen → regular hyphen
    }

    # Horizontal whitespace only; newlines carry block boundaries
    INLINE_WHITESPACE_PATTERN = re.compile(r'[ \t\f\v]+')
    WHITESPACE_PATTERN = re.compile(r'\s+')

    # Control characters (except tabs, newlines, carriage returns)
    CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]')

    def __init__(self, keep_newlines: bool = False):
        """Initialize text normalizer.

        Args:
            keep_newlines: If True, newlines survive and only horizontal
                whitespace is collapsed. If False, every whitespace run
                becomes a single space.
        """
        self.keep_newlines = keep_newlines

    def normalize_text(self, text: Optional[str]) -> str:
        """Normalize text extracted from the editor."""
        if not text:
            return ""

        normalized = self._replace_special_chars(text)
        normalized = self.CONTROL_CHARS_PATTERN.sub('', normalized)

        if self.keep_newlines:
            lines = normalized.replace('\r\n', '\n').replace('\r', '\n').split('\n')
            return '\n'.join(self.INLINE_WHITESPACE_PATTERN.sub(' ', line).strip() for line in lines)

        return self.WHITESPACE_PATTERN.sub(' ', normalized).strip()

    def _replace_special_chars(self, text: str) -> str:
        for original, replacement in self.SPECIAL_CHARS.items():
            text = text.replace(original, replacement)
        return text
