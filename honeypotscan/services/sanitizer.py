import re
from typing import Dict, List, Tuple

from ..config.settings import settings
from ..models.contract_models import SanitizeResult

# Checked against the raw input, before comments are stripped
INJECTION_SIGNATURES = (
    re.compile(r"<\s*/?\s*(?:script|iframe|html|body|div|object|embed|form|meta|link|style)\b", re.I),
    re.compile(r"<[a-z][^>]{0,200}?\son[a-z]{1,30}\s{0,10}=\s{0,10}[\"']", re.I),
    re.compile(r"\b(?:javascript|vbscript)\s{0,10}:", re.I),
    re.compile(r"\bdata\s{0,10}:\s{0,10}text/html", re.I),
    re.compile(r"%3c\s{0,10}(?:/\s{0,10})?script", re.I),
    re.compile(r"&(?:lt|#0{0,8}60|#x0{0,8}3c);?\s{0,10}(?:/\s{0,10})?script", re.I),
    re.compile(r"\\(?:x3c|u003c)\s{0,10}script", re.I),
)

_PRAGMA = re.compile(r"pragma\s+solidity", re.I)
_DECLARATION = re.compile(r"\b(?:contract|interface|library)\s+\w+")


def _skip_string(code: str, i: int, quote: str) -> int:
    """Return the index just past the string literal opening at ``i``"""
    n = len(code)
    i += 1
    while i < n and code[i] != quote:
        if code[i] == "\\" and i + 1 < n:
            i += 2
        else:
            i += 1
    return min(i + 1, n)


def remove_comments(code: str) -> str:
    """
    Strip ``//`` and ``/* */`` comments with a character scanner.

    Quoted string literals are copied through untouched, so URLs such as
    ``"https://example.com"`` keep their ``//``. Block comments leave their
    line breaks behind. An unterminated block comment swallows the rest of
    the input.
    """
    out = []
    i = 0
    n = len(code)
    while i < n:
        ch = code[i]
        if ch == '"' or ch == "'":
            end = _skip_string(code, i, ch)
            out.append(code[i:end])
            i = end
            continue

        if ch == "/" and i + 1 < n:
            nxt = code[i + 1]
            if nxt == "/":
                newline = code.find("\n", i)
                i = n if newline == -1 else newline
                continue
            if nxt == "*":
                close = code.find("*/", i + 2)
                stop = n if close == -1 else close + 2
                # Keep the comment's line breaks so later lines keep their numbers
                out.append("\n" * code.count("\n", i, stop))
                i = stop
                continue

        out.append(ch)
        i += 1
    return "".join(out)


def collapse_blank_lines(code: str) -> Tuple[str, List[int]]:
    """
    Collapse runs of empty lines to a single one and trim surrounding
    whitespace, returning the text and the 1-based input line each output
    line came from.
    """
    lines = []
    line_map = []
    empty_run = 0
    for number, line in enumerate(code.split("\n"), start=1):
        if line:
            empty_run = 0
        else:
            empty_run += 1
            if empty_run > 1:
                continue
        lines.append(line)
        line_map.append(number)

    first = 0
    while first < len(lines) and not lines[first].strip():
        first += 1
    last = len(lines)
    while last > first and not lines[last - 1].strip():
        last -= 1
    lines = lines[first:last]
    line_map = line_map[first:last]
    if lines:
        lines[0] = lines[0].lstrip()
        lines[-1] = lines[-1].rstrip()
    return "\n".join(lines), line_map


def format_code_stats(code: str) -> Dict[str, int]:
    if not code:
        return {"lines": 0, "chars": 0}
    return {"lines": code.count("\n") + 1, "chars": len(code)}


def _reject(error: str, sanitized: str = "") -> SanitizeResult:
    return SanitizeResult(
        sanitized=sanitized,
        is_valid=False,
        error=error,
        stats=format_code_stats(sanitized),
    )


def sanitize_contract_code(code, max_size: int = None, check_injection: bool = True) -> SanitizeResult:
    """
    Validate and clean Solidity source before detection.

    Each gate can short-circuit with ``is_valid=False``; nothing here raises,
    so callers can always show ``error`` to the user.
    """
    if not code or not isinstance(code, str):
        return _reject("No code provided")

    max_size = max_size or settings.MAX_CODE_SIZE
    if len(code) > max_size:
        return _reject(f"Code is too large (max {max_size // 1024}KB)")

    if check_injection:
        for signature in INJECTION_SIGNATURES:
            if signature.search(code):
                return _reject("Invalid input: HTML/script content detected")

    sanitized = code.replace("\r\n", "\n").replace("\r", "\n")
    sanitized = remove_comments(sanitized)
    sanitized, line_map = collapse_blank_lines(sanitized)

    if len(sanitized) < settings.MIN_CODE_LENGTH:
        return _reject("Code is too short to be a valid contract", sanitized)

    if not (_PRAGMA.search(sanitized) and _DECLARATION.search(sanitized)):
        return _reject(
            "No valid Solidity code detected (missing pragma or contract/interface/library)",
            sanitized,
        )

    return SanitizeResult(
        sanitized=sanitized,
        is_valid=True,
        stats=format_code_stats(sanitized),
        line_map=line_map,
    )
