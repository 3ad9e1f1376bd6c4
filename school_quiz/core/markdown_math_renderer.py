"""Markdown + LaTeX rendering for question prompts sent to student clients.

Prompts are rendered to HTML fragments on the server. Math spans (``$...$``
and ``$$...$$``) are lifted out by an inline rule before emphasis and other
inline markup run, so ``$a*b*c$`` reaches the browser untouched and MathJax
typesets it there.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml
from markdown_it.rules_inline import StateInline

_MATH_TOKEN = "math_inline"


def _math_span(state: StateInline, silent: bool) -> bool:
    if state.src[state.pos] != "$":
        return False
    delimiter = "$$" if state.src.startswith("$$", state.pos) else "$"
    start = state.pos + len(delimiter)
    end = state.src.find(delimiter, start)
    if end <= start:
        return False
    content = state.src[start:end]
    # "$5 and $10" is prose, not math.
    if delimiter == "$" and (content[0].isspace() or content[-1].isspace()):
        return False
    if not silent:
        token = state.push(_MATH_TOKEN, "", 0)
        token.markup = delimiter
        token.content = content
    state.pos = end + len(delimiter)
    return True


def _render_math(self, tokens, idx, options, env) -> str:
    token = tokens[idx]
    return escapeHtml(f"{token.markup}{token.content}{token.markup}")


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        markdown = MarkdownIt("commonmark", {"html": self.enable_html}).enable(["table", "strikethrough"])
        markdown.inline.ruler.before("escape", _MATH_TOKEN, _math_span)
        markdown.add_render_rule(_MATH_TOKEN, _render_math)
        self._markdown = markdown

    def render_fragment(self, markdown_text: str) -> str:
        text = markdown_text.strip()
        if not text:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(text)


# MarkdownIt is safe for concurrent read-only renders, so API workers share one instance.
renderer = MarkdownMathRenderer()
