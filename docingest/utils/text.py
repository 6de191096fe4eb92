"""Text normalization and small domain helpers.

Cleans extracted text before it is sent to inference calls and bounds
payload size with a word-count approximation of tokens.
"""

import re

# C0/C1 controls other than the whitespace ones (tab, LF, VT, FF, CR)
_CONTROL_CHARS = re.compile("[\u0000-\u0008\u000e-\u001f\u007f-\u009f]")
_WHITESPACE = re.compile(r"\s+")
_EMAIL = re.compile(r"^[^\s@]+@([^\s@]+)$")
_PROTOCOL = re.compile(r"^(https?://)")

WORDS_PER_TOKEN = 0.75


def clean_text(text: str) -> str:
    """Remove control characters and collapse whitespace.

    Non-printing C0 and C1 control characters are dropped. Whitespace
    runs, newlines and tabs included, become single spaces so that
    words on adjacent lines stay separated.

    Args:
        text: Raw extracted text.

    Returns:
        Single-line normalized text.
    """
    cleaned = _CONTROL_CHARS.sub("", text)
    return _WHITESPACE.sub(" ", cleaned).strip()


def get_content_sample(text: str, max_tokens: int = 1200) -> str:
    """Return the leading words of ``text`` fitting a rough token budget.

    Tokens are approximated from words with a fixed ratio, which is
    enough to bound the payload of an inference request.

    Args:
        text: Source text.
        max_tokens: Approximate token budget.

    Returns:
        The first ``max_tokens / 0.75`` words joined by single spaces.
    """
    max_words = int(max_tokens / WORDS_PER_TOKEN)
    words = text.split()
    return " ".join(words[:max_words])


def limit_words(text: str, max_words: int) -> str:
    """Truncate text to at most ``max_words`` words."""
    if not text:
        return ""

    words = text.split()
    if len(words) <= max_words:
        return text

    return " ".join(words[:max_words])


def get_domain_from_email(email: str | None) -> str | None:
    """Extract the registrable domain from an email address.

    ``billing@eu.mail.example.com`` yields ``example.com``.
    """
    if not email:
        return None

    match = _EMAIL.match(email.strip())
    if not match:
        return None

    parts = match.group(1).split(".")
    if len(parts) > 2:
        return ".".join(parts[-2:])
    return match.group(1)


def remove_protocol_from_domain(domain: str | None) -> str | None:
    """Strip a leading ``http://`` or ``https://``."""
    if not domain:
        return None
    return _PROTOCOL.sub("", domain)
