"""
Readable-text extraction from raw HTML.

Regex based: pages are only mined for their main text block, and
the output feeds an AI prompt, so exact DOM fidelity is not required.
"""

import re
from html import unescape

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)

# Content regions, highest priority first
_CONTENT_PATTERNS = [
    re.compile(r"<main\b[^>]*>(.*?)</main\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<article\b[^>]*>(.*?)</article\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(
        r"<div\b[^>]*class=[\"'][^\"']*content[^\"']*[\"'][^>]*>(.*?)</div\s*>",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(
        r"<div\b[^>]*id=[\"'][^\"']*content[^\"']*[\"'][^>]*>(.*?)</div\s*>",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(r"<body\b[^>]*>(.*?)</body\s*>", re.IGNORECASE | re.DOTALL),
]

_BLOCK_TAG_RE = re.compile(
    r"</?(?:p|div|br|hr|li|ul|ol|tr|table|section|header|footer|h[1-6]|pre|blockquote)\b[^>]*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")
_INLINE_WS_RE = re.compile(r"[ \t\f\v\r\u00a0]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")

ELLIPSIS = "..."


def extract_main_content(html: str) -> str:
    """
    Extract the main readable text of an HTML document.

    Scripts, styles and comments are removed before the content-region
    search so markup inside them cannot produce a false match. The first
    region found among ``<main>``, ``<article>``, a content-class ``<div>``,
    a content-id ``<div>`` and ``<body>`` is used; with none, the whole
    document is.

    Args:
        html: Raw HTML

    Returns:
        Plain text; blank-line runs collapsed to one blank line and other
        whitespace runs collapsed to a single space.
    """
    if not html:
        return ""

    cleaned = _SCRIPT_RE.sub("", html)
    cleaned = _STYLE_RE.sub("", cleaned)
    cleaned = _COMMENT_RE.sub("", cleaned)

    region = ""
    for pattern in _CONTENT_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            region = match.group(1)
            break

    if not region.strip():
        region = cleaned

    text = _BLOCK_TAG_RE.sub("\n", region)
    text = _TAG_RE.sub("", text)
    text = unescape(text)

    lines = [_INLINE_WS_RE.sub(" ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = _BLANK_LINES_RE.sub("\n\n", text)

    return text.strip()


def truncate_content(text: str, max_length: int) -> str:
    """Cut to ``max_length`` code points and mark the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + ELLIPSIS


def truncate_snippet(text: str, max_length: int = 150) -> str:
    """
    Shorten a snippet to at most ``max_length`` characters without splitting a word.

    Text already within the limit is returned unchanged, and since the result
    (ellipsis included) never exceeds the limit, truncating twice is a no-op.
    """
    if len(text) <= max_length:
        return text

    cut = max_length - len(ELLIPSIS)
    truncated = text[:cut]
    if not text[cut].isspace():
        last_space = truncated.rfind(" ")
        if last_space > 0:
            truncated = truncated[:last_space]

    return truncated.rstrip() + ELLIPSIS
