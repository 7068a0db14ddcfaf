"""Text rewrites applied to old daily notes.

Every transform is a pure `str -> str` function and is idempotent on its own
output.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Iterator

from .settings import CleanupConfig

BUTTON_TAG = "button"
TASKS_TAG = "tasks"

HEADING_RE = re.compile(r"^#+\s")


def strip_blocks(text: str, tag: str) -> str:
    """Delete every ```<tag> ... ``` fenced block, fences included.

    The closing fence is the nearest following ``` (no nesting). An opening
    fence without a closing one is left as-is.
    """

    pattern = re.compile(r"```" + re.escape(tag) + r"[\s\S]*?```")
    return pattern.sub("", text)


class SpanKind(Enum):
    BODY = "body"  # lines before the first heading
    SECTION = "section"
    EMPTY_SECTION = "empty_section"


def is_heading(line: str) -> bool:
    return HEADING_RE.match(line) is not None


def iter_spans(lines: Iterable[str]) -> Iterator[tuple[SpanKind, list[str]]]:
    """Group lines into spans, each starting at a heading (except the first).

    A heading span runs until the next heading of any level or the end. It is
    EMPTY_SECTION when none of its body lines has non-whitespace content.
    """

    kind = SpanKind.BODY
    span: list[str] = []
    for line in lines:
        if is_heading(line):
            if span:
                yield kind, span
            kind, span = SpanKind.EMPTY_SECTION, [line]
            continue
        if kind is SpanKind.EMPTY_SECTION and line.strip():
            kind = SpanKind.SECTION
        span.append(line)
    if span:
        yield kind, span


def prune_empty_sections(text: str) -> str:
    """Drop headings that have only blank lines before the next heading.

    Headings are judged one by one, not as a hierarchy: a `##` with nothing
    under it goes even if the enclosing `#` has content later on.
    """

    kept: list[str] = []
    for kind, span in iter_spans(text.split("\n")):
        if kind is not SpanKind.EMPTY_SECTION:
            kept.extend(span)
    return "\n".join(kept)


def apply_transforms(text: str, config: CleanupConfig) -> str:
    out = text
    if config.strip_buttons:
        out = strip_blocks(out, BUTTON_TAG)
    if config.strip_task_queries:
        out = strip_blocks(out, TASKS_TAG)
    # Must run after block removal so sections left empty by it get pruned.
    # Trimmed first: an indented first line only reads as a heading once the
    # final strip has run, so pruning must already see it that way.
    if config.prune_empty_sections:
        out = prune_empty_sections(out.strip())
    return out.strip() + "\n"
