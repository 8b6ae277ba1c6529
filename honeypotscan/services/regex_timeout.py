"""
ReDoS protection for catalog matching.

Python's ``re`` engine cannot be interrupted mid-search, so no single
search is allowed to see much text: each one is confined to a sub-window of
``SEARCH_STEP + MATCH_SPAN`` characters and the time budget is checked
before every search. Bounded quantifiers in the catalog keep each sub-window
search short, which makes the budget hold even on hostile input.
"""

import re
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional, Pattern, Tuple

import structlog

logger = structlog.get_logger()

DEFAULT_TIMEOUT_MS = 100
DEFAULT_MAX_MATCHES = 100
DEFAULT_CHUNK_SIZE = 50000
MAX_OVERLAP = 2000

# Start positions covered by one search
SEARCH_STEP = 2048
# Longest match a search must be able to see in full; at least twice the
# longest catalog match (about 900 chars for hidden_sell_tax)
MATCH_SPAN = 2048

_clock = time.perf_counter


@dataclass(frozen=True)
class RegexMatch:
    index: int
    match: str
    groups: Tuple = field(default_factory=tuple)


@dataclass
class MatchStats:
    """Filled in by exec_with_timeout so callers can tell why iteration stopped"""
    matches: int = 0
    elapsed_ms: float = 0.0
    chunks: int = 0
    timed_out: bool = False
    max_matches_hit: bool = False


def _overlap_for(chunk_size: int) -> int:
    return min(MAX_OVERLAP, chunk_size // 2)


def exec_with_timeout(
    regex: Pattern,
    text: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    max_matches: int = DEFAULT_MAX_MATCHES,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    stats: Optional[MatchStats] = None,
) -> Iterator[RegexMatch]:
    """
    Yield every non-overlapping match of ``regex`` in ``text``.

    Large inputs are scanned in windows of ``chunk_size`` characters that
    overlap by ``min(2000, chunk_size // 2)``; matches are reported once, by
    absolute offset, and never inside the span of an earlier match. Inside a
    window every search is limited to ``SEARCH_STEP + MATCH_SPAN``
    characters. Iteration stops early when the time budget or
    ``max_matches`` is exhausted.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    if max_matches < 1:
        raise ValueError("max_matches must be at least 1")
    if stats is None:
        stats = MatchStats()
    start = _clock()
    overlap = _overlap_for(chunk_size) if len(text) > chunk_size else 0
    seen = set()
    last_end = 0
    offset = 0
    reach = SEARCH_STEP + MATCH_SPAN

    def _elapsed_ms():
        return (_clock() - start) * 1000

    while offset < len(text):
        window_end = min(offset + chunk_size + overlap, len(text))
        chunk = text[offset:window_end]
        stats.chunks += 1
        # Resume after the last reported match when it ran into this window
        pos = max(0, last_end - offset)
        width = reach

        while pos <= len(chunk):
            elapsed = _elapsed_ms()
            if elapsed > timeout_ms:
                stats.timed_out = True
                stats.elapsed_ms = elapsed
                logger.warning("regex_timeout",
                               pattern=regex.pattern[:60],
                               offset=offset + pos,
                               elapsed_ms=round(elapsed, 2))
                return

            end = min(pos + width, len(chunk))
            m = regex.search(chunk, pos, end)
            if m is None:
                if end == len(chunk):
                    break
                # Anything starting before end - MATCH_SPAN would have been seen
                pos = end - MATCH_SPAN
                width = reach
                continue

            if m.end() >= end and end < len(chunk):
                # The match touches the search edge and may depend on it; widen
                width += SEARCH_STEP
                continue
            width = reach

            # Zero-width matches would never move the cursor on their own
            pos = m.end() if m.end() > m.start() else m.start() + 1

            absolute = offset + m.start()
            if absolute in seen or absolute < last_end:
                continue
            seen.add(absolute)
            last_end = offset + m.end()

            stats.matches += 1
            yield RegexMatch(index=absolute, match=m.group(0), groups=m.groups())

            if stats.matches >= max_matches:
                stats.max_matches_hit = True
                stats.elapsed_ms = _elapsed_ms()
                logger.warning("regex_max_matches",
                               pattern=regex.pattern[:60],
                               max_matches=max_matches)
                return

        offset += chunk_size

    stats.elapsed_ms = _elapsed_ms()


_NESTED_QUANTIFIERS = re.compile(r"\([^)]*[*+]\)[*+]")
_OVERLAPPING_ALTERNATION = re.compile(r"\([^|)]+\|[^)]+\)[*+]")
_EXCESSIVE_REPETITION = re.compile(r"\[[^\]]+\]\{[1-9]\d{2,}")


def is_safe_pattern(source: str) -> Tuple[bool, Optional[str]]:
    """Quick heuristic lint for common ReDoS shapes in a pattern source"""
    if _NESTED_QUANTIFIERS.search(source):
        return False, "Nested quantifiers detected - potential ReDoS risk"
    if _OVERLAPPING_ALTERNATION.search(source):
        return False, "Overlapping alternation with quantifier - potential ReDoS risk"
    if _EXCESSIVE_REPETITION.search(source):
        return False, "Excessive character class repetition - potential ReDoS risk"
    return True, None
