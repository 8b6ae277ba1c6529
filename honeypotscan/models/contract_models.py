from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Optional, Pattern


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class HoneypotPattern:
    name: str
    regex: Pattern


@dataclass(frozen=True)
class PatternExplanation:
    name: str
    title: str
    description: str
    severity: Severity
    how_it_works: str
    protection: str


@dataclass(frozen=True)
class ChainConfig:
    name: str
    chain_id: int
    display_name: str


@dataclass
class Finding:
    pattern_name: str
    line_number: int
    code_snippet: str
    offset: int = 0

    def to_dict(self) -> Dict:
        return {
            "name": self.pattern_name,
            "line": self.line_number,
            "code": self.code_snippet,
        }


@dataclass
class MatchReport:
    """Findings from one pass of the catalog, plus what the pass had to give up on"""
    findings: List[Finding] = field(default_factory=list)
    truncated: bool = False
    timed_out_patterns: List[str] = field(default_factory=list)
    failed_patterns: List[str] = field(default_factory=list)
    capped_patterns: List[str] = field(default_factory=list)

    @property
    def incomplete_patterns(self) -> List[str]:
        names = self.timed_out_patterns + self.failed_patterns + self.capped_patterns
        return list(dict.fromkeys(names))

    @property
    def complete(self) -> bool:
        return not (self.truncated or self.incomplete_patterns)


@dataclass
class DetectionVerdict:
    is_honeypot: bool
    confidence: int
    findings: List[Finding]
    message: str
    truncated: bool = False
    incomplete_patterns: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not (self.truncated or self.incomplete_patterns)

    def to_dict(self) -> Dict:
        return {
            "isHoneypot": self.is_honeypot,
            "confidence": self.confidence,
            "patterns": [f.to_dict() for f in self.findings],
            "message": self.message,
            "truncated": self.truncated,
            "incompletePatterns": list(self.incomplete_patterns),
        }


@dataclass
class TokenMetadata:
    name: Optional[str] = None
    symbol: Optional[str] = None
    compiler_version: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "compilerVersion": self.compiler_version,
        }


@dataclass
class FetchResult:
    source_code: str
    metadata: TokenMetadata = field(default_factory=TokenMetadata)


@dataclass
class SanitizeResult:
    sanitized: str
    is_valid: bool
    error: Optional[str] = None
    stats: Dict[str, int] = field(default_factory=lambda: {"lines": 0, "chars": 0})
    # Line in the input each sanitized line came from
    line_map: List[int] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None

    def __bool__(self):
        return self.valid


def explanation_to_dict(explanation: PatternExplanation) -> Dict:
    data = asdict(explanation)
    data["severity"] = explanation.severity.value
    return data
