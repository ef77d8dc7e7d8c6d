"""Text normalization applied to each line right before synthesis."""

import re

# Typographic quotes → ASCII equivalents
QUOTE_REPLACEMENTS = {
    "‘": "'",   # left single quote
    "’": "'",   # right single quote
    "‚": "'",   # low single quote
    "“": '"',   # left double quote
    "”": '"',   # right double quote
    "„": '"',   # low double quote
    "«": '"',   # left guillemet
    "»": '"',   # right guillemet
}

_UNSAFE_CHARS = re.compile(r"""[^\w\s.,!?;:()'"-]""")


def normalize_for_tts(text: str) -> str:
    """Clean a line of text so the speech engine reads it naturally."""
    # Line endings
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    # Excessive whitespace
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)

    # Sentences split by layout newlines
    text = re.sub(r"([.!?])\s*\n\s*", r"\1 ", text)

    # Missing sentence break: "fineInizio" → "fine. Inizio"
    text = re.sub(r"([a-z])([A-Z])", r"\1. \2", text)

    for old, new in QUOTE_REPLACEMENTS.items():
        text = text.replace(old, new)

    text = _UNSAFE_CHARS.sub("", text)

    # Terminal punctuation
    text = re.sub(r"([a-zA-Z0-9])\s*$", r"\1.", text)

    return text.strip()
