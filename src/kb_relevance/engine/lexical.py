"""Term extraction, overlap and highlight spans for lexical scoring."""

import re

from kb_relevance.models.search import Highlight

MAX_HIGHLIGHTS = 3

# Longest run of non-word characters still merged into one highlight
_MERGE_GAP = 3

_TOKEN_RE = re.compile(r"\w+")
_WORD_RE = re.compile(r"\w")

_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "how",
        "in", "is", "it", "of", "on", "or", "the", "to", "what", "when", "with",
    }
)  # fmt: skip


def tokenize(text: str) -> list[str]:
    """Split text into case-folded word tokens."""
    return [t.casefold() for t in _TOKEN_RE.findall(text)]


def query_terms(text: str) -> list[str]:
    """Distinct meaningful query terms in first-seen order.

    Stopwords and single characters are dropped unless nothing else remains.
    """
    tokens = list(dict.fromkeys(tokenize(text)))
    terms = [t for t in tokens if len(t) > 1 and t not in _STOPWORDS]
    return terms or tokens


def matched_terms(terms: list[str], text: str) -> list[str]:
    """Terms that appear as whole tokens in ``text``, in query order."""
    vocabulary = set(tokenize(text))
    return [t for t in terms if t in vocabulary]


def matched_tags(terms: list[str], tag_names: frozenset[str]) -> list[str]:
    """Terms equal to one of the item's tag names, in query order."""
    return [t for t in terms if t in tag_names]


def coverage(matched: list[str], terms: list[str]) -> float:
    """Share of query terms matched, 0 when there are no terms."""
    if not terms:
        return 0.0
    return len(matched) / len(terms)


def highlight_spans(content: str, terms: list[str], limit: int = MAX_HIGHLIGHTS) -> list[Highlight]:
    """Shortest non-overlapping spans of ``content`` containing query terms.

    Takes the first token of ``content`` whose case-folded form equals each
    term, the same comparison ``matched_terms`` uses. Spans separated only by
    a short run of punctuation or whitespace are merged, and at most ``limit``
    spans are returned in document order.
    """
    wanted = set(terms)
    spans: list[tuple[int, int]] = []
    for match in _TOKEN_RE.finditer(content):
        token = match.group().casefold()
        if token in wanted:
            wanted.discard(token)
            spans.append((match.start(), match.end()))

    merged: list[tuple[int, int]] = []
    for start, end in spans:
        if merged:
            prev_start, prev_end = merged[-1]
            between = content[prev_end:start]
            if start <= prev_end or (
                len(between) <= _MERGE_GAP and not _WORD_RE.search(between)
            ):
                merged[-1] = (prev_start, max(prev_end, end))
                continue
        merged.append((start, end))

    return [Highlight(start=s, end=e, text=content[s:e]) for s, e in merged[:limit]]
