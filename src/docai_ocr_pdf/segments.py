from __future__ import annotations

import json
from bisect import bisect_left
from typing import Callable, Iterable, Sequence, TypeVar

from .errors import AlignmentError, UnsortedInputError
from .model import Page, TextSegment, Token

T = TypeVar("T")


def assert_sorted(items: Iterable[T], key: Callable[[T], float], what: str = "items") -> None:
    last = float("-inf")
    for index, item in enumerate(items):
        current = key(item)
        if not current >= last:
            raise UnsortedInputError(f"{what} unsorted at index {index}: {current} after {last}")
        last = current


def check_page_sorted(page: Page) -> None:
    assert_sorted(page.lines, lambda line: line.segment.start, "lines")
    assert_sorted(page.tokens, lambda token: token.segment.start, "tokens")


def _find_exact(tokens: Sequence[Token], value: int, key: Callable[[Token], int]) -> tuple[int, bool]:
    index = bisect_left(tokens, value, key=key)
    found = index < len(tokens) and key(tokens[index]) == value
    return index, found


def tokens_in_range(text: str, segment: TextSegment, tokens: Sequence[Token]) -> list[Token]:
    """Return the tokens exactly covering ``segment``.

    ``tokens`` must be sorted by start offset. The first token has to start
    at ``segment.start`` and the last one has to end at ``segment.end``;
    anything else means the tokenization and the line offsets disagree.
    """
    if not tokens:
        raise AlignmentError(f"no tokens to cover {segment}: {text[segment.start:segment.end]!r}")

    first, first_found = _find_exact(tokens, segment.start, lambda token: token.segment.start)
    last, last_found = _find_exact(tokens, segment.end, lambda token: token.segment.end)
    if first_found and last_found and first <= last:
        return list(tokens[first : last + 1])

    near_first = tokens[min(first, len(tokens) - 1)].segment
    near_last = tokens[min(last, len(tokens) - 1)].segment
    nearby = [text[t.segment.start : t.segment.end] for t in tokens[first : last + 1]]
    raise AlignmentError(
        f"start or end not found exactly: {segment} vs first token: {near_first} "
        f"to {near_last}: {json.dumps(text[segment.start:segment.end])} vs. {json.dumps(nearby)}"
    )


def tokens_in_line(page: Page, segment: TextSegment) -> list[Token]:
    return tokens_in_range(page.text, segment, page.tokens)
