from .scanner import HoneypotScanner
from .detector import detect_honeypot, find_patterns, build_verdict
from .sanitizer import sanitize_contract_code
from .normalizer import parse_source_code
from .patterns import HONEYPOT_PATTERNS, PATTERN_EXPLANATIONS, CHAIN_CONFIGS
from .errors import ScanError

__all__ = [
    'HoneypotScanner',
    'detect_honeypot',
    'find_patterns',
    'build_verdict',
    'sanitize_contract_code',
    'parse_source_code',
    'HONEYPOT_PATTERNS',
    'PATTERN_EXPLANATIONS',
    'CHAIN_CONFIGS',
    'ScanError',
]
