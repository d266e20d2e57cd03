"""Chat text sanitization."""

import re

# Any '<' ... '>' span with at least one character between; not an HTML parser.
_TAG_PATTERN = re.compile(r"<[^>]+>")


def strip_tags(text: str) -> str:
    """Remove tag-like spans from chat text. Idempotent."""
    return _TAG_PATTERN.sub("", text)
