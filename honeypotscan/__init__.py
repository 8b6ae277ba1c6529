from .services import (
    HoneypotScanner,
    detect_honeypot,
    find_patterns,
    build_verdict,
    sanitize_contract_code,
    parse_source_code,
    HONEYPOT_PATTERNS,
    ScanError
)
from .models.contract_models import (
    Severity,
    HoneypotPattern,
    Finding,
    DetectionVerdict,
    TokenMetadata,
    ChainConfig
)
from .config.settings import settings

__all__ = [
    'HoneypotScanner',
    'detect_honeypot',
    'find_patterns',
    'build_verdict',
    'sanitize_contract_code',
    'parse_source_code',
    'HONEYPOT_PATTERNS',
    'ScanError',
    'Severity',
    'HoneypotPattern',
    'Finding',
    'DetectionVerdict',
    'TokenMetadata',
    'ChainConfig',
    'settings'
]
