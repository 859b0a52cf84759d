"""Text sanitization and base64 encoding for the GitHub contents API.

The contents API has mangled unescaped control and non-ASCII bytes in the
past, so everything written to the repository is reduced to plain ASCII
first and the encoded payload is verified before it leaves the process.
"""

from __future__ import annotations

import base64
import binascii
import re

from gitblog.exceptions import ContentEncodingError

_BYTE_ORDER_MARKS = ("\ufeff", "\ufffe")

# Everything below 0x20 except tab and newline, plus DEL and C1 controls.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")

_TRANSLITERATIONS = {
    "á": "a", "à": "a", "ä": "a", "â": "a", "ã": "a", "å": "a",
    "é": "e", "è": "e", "ë": "e", "ê": "e",
    "í": "i", "ì": "i", "ï": "i", "î": "i",
    "ó": "o", "ò": "o", "ö": "o", "ô": "o", "õ": "o", "ø": "o",
    "ú": "u", "ù": "u", "ü": "u", "û": "u",
    "ñ": "n", "ç": "c", "ý": "y", "ÿ": "y",
    "Á": "A", "À": "A", "Ä": "A", "Â": "A", "Ã": "A", "Å": "A",
    "É": "E", "È": "E", "Ë": "E", "Ê": "E",
    "Í": "I", "Ì": "I", "Ï": "I", "Î": "I",
    "Ó": "O", "Ò": "O", "Ö": "O", "Ô": "O", "Õ": "O", "Ø": "O",
    "Ú": "U", "Ù": "U", "Ü": "U", "Û": "U",
    "Ñ": "N", "Ç": "C", "Ý": "Y",
    "ß": "ss", "æ": "ae", "Æ": "AE", "œ": "oe", "Œ": "OE",
    "¿": "?", "¡": "!",
    "‘": "'", "’": "'", "“": '"', "”": '"', "«": '"', "»": '"',
    "\u2013": "-", "\u2014": "-", "…": "...", "\u00a0": " ",
}  # fmt: skip

_TRANSLITERATION_TABLE = str.maketrans(_TRANSLITERATIONS)


def sanitize_text(text: str) -> str:
    """Reduce text to ASCII suitable for the contents API.

    Normalizes line endings, strips control characters and byte-order marks,
    transliterates common accented characters, drops any other non-ASCII
    character, and guarantees exactly one trailing newline.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    for mark in _BYTE_ORDER_MARKS:
        text = text.replace(mark, "")
    text = _CONTROL_CHARS_RE.sub("", text)
    text = text.translate(_TRANSLITERATION_TABLE)
    text = text.encode("ascii", "ignore").decode("ascii")
    return text.rstrip("\n") + "\n"


def encode_content(text: str) -> str:
    """Sanitize text and return its base64 payload.

    Raises ContentEncodingError if the payload does not decode back to the
    sanitized text.
    """
    clean = sanitize_text(text)
    payload = base64.b64encode(clean.encode("ascii")).decode("ascii")
    try:
        round_trip = base64.b64decode(payload, validate=True).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as exc:
        msg = f"Encoded content failed verification: {exc}"
        raise ContentEncodingError(msg) from exc
    if round_trip != clean:
        msg = "Encoded content does not round-trip"
        raise ContentEncodingError(msg)
    return payload


def decode_content(payload: str) -> str:
    """Decode a base64 payload as returned by the contents API.

    GitHub wraps the payload in newlines; those are ignored.
    """
    try:
        raw = base64.b64decode("".join(payload.split()), validate=True)
    except binascii.Error as exc:
        msg = f"Malformed content payload: {exc}"
        raise ContentEncodingError(msg) from exc
    return raw.decode("utf-8", errors="replace")
