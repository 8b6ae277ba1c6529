"""Scan local Solidity files without touching the network."""

import argparse
import sys
from pathlib import Path
from typing import Iterable, List

from .config.settings import settings
from .services.detector import build_verdict, find_patterns
from .services.sanitizer import sanitize_contract_code


def collect_files(paths: Iterable[str]) -> List[Path]:
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(path.rglob("*.sol")))
        else:
            files.append(path)
    return files


def scan_file(path: Path, min_patterns: int) -> dict:
    try:
        code = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        return {"file": str(path), "error": str(e)}

    sanitized = sanitize_contract_code(code, max_size=settings.MAX_FETCHED_SOURCE_SIZE)
    if not sanitized.is_valid:
        return {"file": str(path), "error": sanitized.error}

    report = find_patterns(sanitized.sanitized, line_map=sanitized.line_map)
    verdict = build_verdict(report.findings, min_patterns=min_patterns, report=report)
    return {"file": str(path), "verdict": verdict}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="honeypotscan-files",
        description="Screen local Solidity sources for honeypot patterns",
    )
    parser.add_argument("paths", nargs="+", help=".sol files or directories to scan")
    parser.add_argument("--min-patterns", type=int, default=settings.MIN_PATTERNS_FOR_DETECTION,
                        help="findings needed to flag a contract (default: %(default)s)")
    args = parser.parse_args(argv)

    files = collect_files(args.paths)
    if not files:
        print("No Solidity files found", file=sys.stderr)
        return 2

    flagged = 0
    for path in files:
        result = scan_file(path, args.min_patterns)
        if "error" in result:
            print(f"[SKIP] {result['file']}: {result['error']}")
            continue

        verdict = result["verdict"]
        label = "HONEYPOT" if verdict.is_honeypot else "SAFE"
        print(f"[{label}] {result['file']} (confidence {verdict.confidence}%)")
        for finding in verdict.findings:
            print(f"    - {finding.pattern_name} (line {finding.line_number})")
        if verdict.is_honeypot:
            flagged += 1

    print(f"\n{flagged}/{len(files)} file(s) flagged")
    return 1 if flagged else 0


if __name__ == "__main__":
    sys.exit(main())
