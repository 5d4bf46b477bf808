"""
Description normalizer for transaction text.

Produces the canonical form of a transaction description that feeds the
dedupe hash. Any change to this function changes every hash, so it is
versioned with NORMALIZER_VERSION.
"""
import re
import unicodedata

NORMALIZER_VERSION = 1

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_description(text: str) -> str:
    """
    Normalize a raw description.

    NFKD decomposition, punctuation to spaces, whitespace collapsed,
    trimmed and lower-cased. Total: empty or None input yields "".

    Args:
        text: Description as extracted.

    Returns:
        Canonical description.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    spaced = _NON_WORD.sub(" ", decomposed)
    return _WHITESPACE.sub(" ", spaced).strip().lower()
