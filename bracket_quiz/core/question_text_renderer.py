"""Markdown rendering of operator-authored question text for API clients."""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class QuestionTextRenderer:
    """Converts question markdown into an HTML fragment.

    Raw HTML in question text is escaped, never passed through.
    """

    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": False}).enable("strikethrough")

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = QuestionTextRenderer()
