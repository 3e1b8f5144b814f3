"""Href and fragment normalization.

Every function here is pure and total: unusable input yields ``None`` which
callers treat as "unresolvable", never as an error.
"""

from dataclasses import dataclass
from urllib.parse import unquote


@dataclass(frozen=True)
class HrefParts:
    """An href split at its first ``#``."""

    path: str | None
    fragment: str | None


def split_href(href: str | None) -> HrefParts:
    """Split *href* into path and fragment at the first ``#``."""
    if href is None or not href.strip():
        return HrefParts(None, None)
    trimmed = href.strip()
    path, sep, fragment = trimmed.partition("#")
    if not sep:
        return HrefParts(trimmed, None)
    return HrefParts(path, fragment)


def normalize_path(path: str | None) -> str | None:
    """Canonicalize a resource path inside the archive.

    Backslashes become slashes, the fragment is dropped, ``.`` and blank
    segments vanish and ``..`` pops the previous segment. A ``..`` at the
    archive root is dropped since it cannot escape the container.

    Examples:
        "OEBPS/Text/../ch1.xhtml#a" -> "OEBPS/ch1.xhtml"
        "..\\ch1.xhtml" -> "ch1.xhtml"
        "#only-fragment" -> None
    """
    if path is None or not path.strip():
        return None
    without_fragment = path.strip().split("#", 1)[0]
    unified = without_fragment.replace("\\", "/")

    segments: list[str] = []
    for segment in unified.split("/"):
        if not segment.strip() or segment == ".":
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)

    normalized = "/".join(segments)
    return normalized or None


def normalize_fragment(fragment: str | None) -> str | None:
    """Normalize a fragment identifier for lenient comparison.

    Strips a leading ``#``, percent-decodes as UTF-8 and lower-cases.
    Undecodable escapes keep the raw trimmed value.
    """
    if fragment is None or not fragment.strip():
        return None
    trimmed = fragment.strip()
    if trimmed.startswith("#"):
        trimmed = trimmed[1:]
    if not trimmed.strip():
        return None
    try:
        decoded = unquote(trimmed, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        decoded = trimmed
    return decoded.lower()
