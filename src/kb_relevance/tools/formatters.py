"""Compact output formatters for MCP tool responses."""

from datetime import datetime

from kb_relevance.models.item import KnowledgeItem, TaskItem
from kb_relevance.models.link import ContextLink
from kb_relevance.models.search import RankedResult

_SNIPPET_WIDTH = 30


def format_item_header(item: KnowledgeItem, score: float | None = None) -> str:
    """Format: [it-00004] note | Title (0.82)."""
    title = item.title or "(untitled)"
    line = f"[{item.id}] {item.kind} | {title}"
    if score is not None:
        line += f" ({score:.2f})"
    return line


def format_item_meta(item: KnowledgeItem) -> str:
    """Format: #tag1 #tag2 | due 2026-10-20 | high."""
    parts: list[str] = []
    if item.tags:
        parts.append(" ".join(f"#{t.name}" for t in item.tags))
    if isinstance(item, TaskItem):
        if item.deadline is not None:
            parts.append(f"due {item.deadline:%Y-%m-%d}")
        if item.priority is not None:
            parts.append(item.priority.value)
    return " | ".join(parts)


def format_snippet(content: str, start: int, end: int) -> str:
    """Highlighted span with a little surrounding context, marked with **."""
    left = max(0, start - _SNIPPET_WIDTH)
    right = min(len(content), end + _SNIPPET_WIDTH)
    prefix = "..." if left > 0 else ""
    suffix = "..." if right < len(content) else ""
    body = f"{content[left:start]}**{content[start:end]}**{content[end:right]}"
    return prefix + " ".join(body.split()) + suffix


def format_ranked_result(result: RankedResult) -> str:
    """Header + explanation + meta + highlighted snippets."""
    lines = [format_item_header(result.item, result.score), f"  why: {result.explanation}"]
    meta = format_item_meta(result.item)
    if meta:
        lines.append(f"  {meta}")
    for h in result.highlights:
        lines.append(f"  > {format_snippet(result.item.content, h.start, h.end)}")
    return "\n".join(lines)


def format_link(link: ContextLink, target: KnowledgeItem | None = None) -> str:
    """Format: [lk-00001] it-00001 <-> it-00002 suggested (75%) Title."""
    link_id = link.id or "unsaved"
    line = (
        f"[{link_id}] {link.source_id} <-> {link.target_id} "
        f"{link.link_type.value} ({link.confidence:.0%})"
    )
    if link.status.value != "active":
        line += f" [{link.status.value.upper()}]"
    if target is not None and target.title:
        line += f" {target.title}"
    return line


def format_focus(priorities: list[RankedResult], generated_at: datetime) -> str:
    """Numbered focus list with per-task reasons."""
    if not priorities:
        return "No open tasks."
    lines = [f"Focus for {generated_at:%Y-%m-%d}"]
    for rank, result in enumerate(priorities, start=1):
        title = result.item.title or result.item.id
        lines.append(f"{rank}. [{result.item.id}] {title} ({result.score:.0f})")
        lines.append(f"   {result.explanation}")
    return "\n".join(lines)


def format_result_list(
    formatted_entries: list[str],
    header: str | None = None,
    note: str | None = None,
    total_count: int | None = None,
) -> str:
    """Count + note + entries joined by blank lines."""
    if not formatted_entries:
        return "No results found."

    lines: list[str] = []
    if header:
        lines.append(header)
    count = f"{len(formatted_entries)} result(s)"
    if total_count is not None and total_count > len(formatted_entries):
        count += f" of {total_count}"
    lines.append(count)
    if note:
        lines.append(f"Note: {note}")
    lines.append("")
    lines.append("\n\n".join(formatted_entries))
    return "\n".join(lines)
