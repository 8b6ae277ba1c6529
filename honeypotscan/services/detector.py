from typing import List, Optional, Sequence

import structlog
from prometheus_client import Counter

from ..config.settings import settings
from ..models.contract_models import DetectionVerdict, Finding, HoneypotPattern, MatchReport
from .patterns import HONEYPOT_PATTERNS
from .regex_timeout import MatchStats, exec_with_timeout

logger = structlog.get_logger()

SNIPPET_LENGTH = 100

PATTERN_TIMEOUTS = Counter(
    'honeypot_pattern_timeouts_total',
    'Catalog patterns abandoned after exhausting their time budget',
    ['pattern']
)
PATTERN_ERRORS = Counter(
    'honeypot_pattern_errors_total',
    'Catalog patterns that raised while matching',
    ['pattern']
)


def line_number_at(source: str, index: int) -> int:
    return source.count("\n", 0, index) + 1


def find_patterns(
    source: str,
    patterns: Sequence[HoneypotPattern] = HONEYPOT_PATTERNS,
    timeout_ms: Optional[int] = None,
    max_matches: Optional[int] = None,
    chunk_size: Optional[int] = None,
    max_length: Optional[int] = None,
    line_map: Optional[Sequence[int]] = None,
) -> MatchReport:
    """
    Run every catalog pattern over ``source`` and collect findings in catalog order.

    ``line_map`` translates line numbers in ``source`` back to the text it
    was derived from (see ``SanitizeResult.line_map``).
    """
    if timeout_ms is None:
        timeout_ms = settings.REGEX_TIMEOUT_MS
    if max_matches is None:
        max_matches = settings.REGEX_MAX_MATCHES
    if chunk_size is None:
        chunk_size = settings.REGEX_CHUNK_SIZE
    if max_length is None:
        max_length = settings.MAX_SOURCE_LENGTH
    if max_matches < 1 or chunk_size < 1:
        raise ValueError("max_matches and chunk_size must be at least 1")

    report = MatchReport()
    if len(source) > max_length:
        logger.warning("source_truncated",
                       original_length=len(source),
                       max_length=max_length)
        source = source[:max_length]
        report.truncated = True

    for pattern in patterns:
        stats = MatchStats()
        try:
            for match in exec_with_timeout(pattern.regex, source,
                                           timeout_ms=timeout_ms,
                                           max_matches=max_matches,
                                           chunk_size=chunk_size,
                                           stats=stats):
                line = line_number_at(source, match.index)
                if line_map and line <= len(line_map):
                    line = line_map[line - 1]
                report.findings.append(Finding(
                    pattern_name=pattern.name,
                    line_number=line,
                    code_snippet=match.match[:SNIPPET_LENGTH],
                    offset=match.index,
                ))
        except Exception as e:
            # One broken pattern must not cost the others their findings
            logger.error("pattern_match_failed", pattern=pattern.name, error=str(e))
            PATTERN_ERRORS.labels(pattern=pattern.name).inc()
            report.failed_patterns.append(pattern.name)
            continue

        if stats.timed_out:
            PATTERN_TIMEOUTS.labels(pattern=pattern.name).inc()
            report.timed_out_patterns.append(pattern.name)
        if stats.max_matches_hit:
            report.capped_patterns.append(pattern.name)

    return report


def _format_message(is_honeypot: bool, count: int, min_patterns: int,
                    truncated: bool = False, incomplete: int = 0) -> str:
    plural = "s" if count != 1 else ""
    if is_honeypot:
        return f"This contract contains {count} honeypot pattern{plural}. DO NOT BUY!"
    if truncated or incomplete:
        reasons = []
        if truncated:
            reasons.append("the source was too long and only its beginning was analyzed")
        if incomplete:
            reasons.append(f"{incomplete} pattern{'s' if incomplete != 1 else ''} "
                           f"could not be fully evaluated")
        return (f"Detection incomplete: {' and '.join(reasons)}. {count} suspicious "
                f"pattern{plural} found. Review the contract before trading.")
    if count == 0:
        return "No honeypot patterns detected. Contract appears safe."
    return (f"{count} suspicious pattern{plural} found, below the detection threshold "
            f"of {min_patterns}. Review the contract before trading.")


def build_verdict(
    findings: List[Finding],
    min_patterns: Optional[int] = None,
    report: Optional[MatchReport] = None,
) -> DetectionVerdict:
    """
    Turn findings into a verdict.

    A contract is a honeypot once it has at least ``min_patterns`` findings.
    Honeypot confidence grows with the number of findings; safe confidence
    shrinks with every stray finding below the threshold. A safe verdict
    from an incomplete pass drops to the safe confidence floor and says so.
    """
    if min_patterns is None:
        min_patterns = settings.MIN_PATTERNS_FOR_DETECTION
    if min_patterns < 1:
        raise ValueError("min_patterns must be at least 1")

    count = len(findings)
    is_honeypot = count >= min_patterns
    truncated = report.truncated if report is not None else False
    incomplete = report.incomplete_patterns if report is not None else []

    if is_honeypot:
        confidence = min(
            settings.HONEYPOT_CONFIDENCE_CEILING,
            settings.HONEYPOT_CONFIDENCE_FLOOR + settings.HONEYPOT_CONFIDENCE_STEP * count,
        )
    elif truncated or incomplete:
        confidence = settings.SAFE_CONFIDENCE_FLOOR
    else:
        confidence = max(
            settings.SAFE_CONFIDENCE_FLOOR,
            settings.SAFE_CONFIDENCE_MAX - settings.SAFE_CONFIDENCE_STEP * count,
        )

    return DetectionVerdict(
        is_honeypot=is_honeypot,
        confidence=confidence,
        findings=list(findings),
        message=_format_message(is_honeypot, count, min_patterns, truncated, len(incomplete)),
        truncated=truncated,
        incomplete_patterns=incomplete,
    )


def detect_honeypot(source: str, min_patterns: Optional[int] = None) -> DetectionVerdict:
    report = find_patterns(source)
    verdict = build_verdict(report.findings, min_patterns=min_patterns, report=report)
    logger.info("detection_completed",
                is_honeypot=verdict.is_honeypot,
                pattern_count=len(verdict.findings),
                truncated=report.truncated)
    return verdict
