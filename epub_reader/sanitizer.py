"""HTML sanitization and chapter document wrapping.

Chapter markup comes straight out of the book, so it is reduced to a fixed
allow-list before display. The allow-list is plain data: a tag set and a
tag -> attributes table handed to bleach.
"""

import html
import re
from dataclasses import dataclass

import bleach
from bs4 import BeautifulSoup

# =============================================================================
# Allow-list
# =============================================================================

BASE_TAGS = frozenset({
    "a", "b", "blockquote", "br", "caption", "cite", "code", "col", "colgroup",
    "dd", "div", "dl", "dt", "em", "h1", "h2", "h3", "h4", "h5", "h6", "i",
    "li", "ol", "p", "pre", "q", "small", "span", "strike", "strong", "sub",
    "sup", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "u", "ul",
})

# Images are rendered by the UI layer, never from chapter markup.
EXCLUDED_TAGS = frozenset({"img"})

ALLOWED_TAGS = BASE_TAGS - EXCLUDED_TAGS

ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "blockquote": ["cite"],
    "col": ["span", "width"],
    "colgroup": ["span", "width"],
    "ol": ["start", "type"],
    "q": ["cite"],
    "table": ["summary", "width"],
    "td": ["abbr", "axis", "colspan", "rowspan", "width"],
    "th": ["abbr", "axis", "colspan", "rowspan", "scope", "width"],
    "ul": ["type"],
}

ALLOWED_PROTOCOLS = frozenset({"ftp", "http", "https", "mailto"})

# Dropped with their contents instead of being unwrapped to text.
DROPPED_WITH_CONTENT = ["script", "style", "noscript", "template", "head", "title", "img"]


@dataclass(frozen=True)
class ChapterTheme:
    """Colors of the chapter document shell."""

    background: str = "#2B2B2B"
    foreground: str = "#f0f0f0"
    link: str = "#4da3ff"
    muted: str = "#bbbbbb"

    def to_dict(self) -> dict[str, str]:
        return {
            "background": self.background,
            "foreground": self.foreground,
            "link": self.link,
            "muted": self.muted,
        }


DEFAULT_THEME = ChapterTheme()

_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3}|#[0-9a-fA-F]{6}|[a-zA-Z]+)$")

# html5lib drops the first newline after <pre> on every parse.
_PRE_LEADING_NEWLINE_RE = re.compile(r"<pre>(?=\n)")


def is_valid_color(value: str) -> bool:
    return bool(_COLOR_RE.match(value or ""))


def sanitize_html(raw_html: str | None) -> str:
    """Reduce arbitrary markup to the allow-listed subset.

    Never raises; malformed markup is repaired or dropped. Applying it to its
    own output returns that output unchanged.
    """
    if not raw_html or not raw_html.strip():
        return ""
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup.find_all(DROPPED_WITH_CONTENT):
        tag.decompose()
    cleaned = bleach.clean(
        str(soup),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    cleaned = _PRE_LEADING_NEWLINE_RE.sub("<pre>\n", cleaned)
    return cleaned.strip()


def has_text(fragment: str) -> bool:
    """True when *fragment* renders at least one visible character."""
    if not fragment or not fragment.strip():
        return False
    text = BeautifulSoup(fragment, "html.parser").get_text()
    return bool(text.replace("\xa0", " ").strip())


def wrap_chapter_html(content: str, theme: ChapterTheme = DEFAULT_THEME) -> str:
    """Wrap sanitized *content* into a self-contained themed HTML document."""
    body = content.strip() or "&nbsp;"
    return f"""<html>
  <head>
    <style>
      body.epub-content {{
        margin: 0;
        padding: 0;
        background-color: {theme.background};
        color: {theme.foreground};
        font-family: inherit;
        line-height: 1.5;
      }}
      body.epub-content a {{
        color: {theme.link};
      }}
    </style>
  </head>
  <body class="epub-content">
    {body}
  </body>
</html>"""


def placeholder_chapter_html(title: str, theme: ChapterTheme = DEFAULT_THEME) -> str:
    """Chapter document used when a chapter has no textual content."""
    safe_title = html.escape(title or "", quote=False)
    message = f'No textual content detected for "{safe_title}".'
    return wrap_chapter_html(f'<p style="color:{theme.muted};">{message}</p>', theme)


def sanitize_for_display(
    raw_html: str | None,
    title: str,
    theme: ChapterTheme = DEFAULT_THEME,
) -> str:
    """Sanitize *raw_html* and wrap it, or return the placeholder for *title*."""
    cleaned = sanitize_html(raw_html)
    if not has_text(cleaned):
        return placeholder_chapter_html(title, theme)
    return wrap_chapter_html(cleaned, theme)


def chapter_body_text(chapter_html: str) -> str:
    """Plain text of a wrapped chapter document, for terminal display."""
    soup = BeautifulSoup(chapter_html, "html.parser")
    body = soup.body or soup
    for tag in body.find_all("style"):
        tag.decompose()
    for br in body.find_all("br"):
        br.replace_with("\n")
    text = body.get_text("\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
