import os
from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str) -> str:
    # Strip any whitespace or trailing comments from environment variables
    return os.getenv(name, default).split("#")[0].strip()


def _env_int(name: str, default: int) -> int:
    return int(_env(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(_env(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, "true" if default else "false").lower() in ("1", "true", "yes", "on")


class Settings:
    PORT = _env_int("PORT", 8000)
    VERSION = "1.0.0"

    # Bump whenever the pattern catalog changes so cached verdicts expire
    DETECTION_VERSION = _env("DETECTION_VERSION", "v3")

    # Block explorer (Etherscan v2 multichain API)
    EXPLORER_API_URL = _env("EXPLORER_API_URL", "https://api.etherscan.io/v2/api")
    ETHERSCAN_API_KEYS = _env("ETHERSCAN_API_KEYS", "")
    FETCH_TIMEOUT = _env_float("FETCH_TIMEOUT", 10.0)
    FETCH_BACKOFF = _env_float("FETCH_BACKOFF", 0.05)
    CHAIN_PROBE_TIMEOUT = _env_float("CHAIN_PROBE_TIMEOUT", 10.0)

    # Detection
    MIN_PATTERNS_FOR_DETECTION = _env_int("MIN_PATTERNS_FOR_DETECTION", 2)
    HONEYPOT_CONFIDENCE_FLOOR = 60
    HONEYPOT_CONFIDENCE_CEILING = 95
    HONEYPOT_CONFIDENCE_STEP = 10
    SAFE_CONFIDENCE_MAX = 100
    SAFE_CONFIDENCE_FLOOR = 70
    SAFE_CONFIDENCE_STEP = 10

    # Sanitizer limits
    MAX_CODE_SIZE = _env_int("MAX_CODE_SIZE", 100 * 1024)
    MAX_FETCHED_SOURCE_SIZE = _env_int("MAX_FETCHED_SOURCE_SIZE", 2 * 1024 * 1024)
    MIN_CODE_LENGTH = 50

    # Regex matcher limits
    REGEX_TIMEOUT_MS = _env_int("REGEX_TIMEOUT_MS", 100)
    REGEX_MAX_MATCHES = _env_int("REGEX_MAX_MATCHES", 100)
    REGEX_CHUNK_SIZE = _env_int("REGEX_CHUNK_SIZE", 50000)
    MAX_SOURCE_LENGTH = _env_int("MAX_SOURCE_LENGTH", 500000)

    # Cache settings
    CACHE_TTL = _env_int("CACHE_TTL", 86400)
    CACHE_MAXSIZE = _env_int("CACHE_MAXSIZE", 10000)

    # Rate limiting settings
    RATE_LIMIT_SCAN = _env("RATE_LIMIT_SCAN", "30/minute")
    RATE_LIMIT_STORAGE_URI = _env("RATE_LIMIT_STORAGE_URI", "memory://")

    CORS_ORIGINS = [o.strip() for o in _env("CORS_ORIGINS", "*").split(",") if o.strip()]
    MAX_BATCH_SIZE = 3
    MAX_REQUEST_BODY_SIZE = 200 * 1024

    # Validate EIP-55 checksums on mixed-case addresses
    STRICT_CHECKSUM = _env_bool("STRICT_CHECKSUM", False)

    def api_keys(self) -> list:
        """Collect explorer API keys from ETHERSCAN_API_KEYS and ETHERSCAN_API_KEY_1..6"""
        keys = [k.strip() for k in self.ETHERSCAN_API_KEYS.split(",") if k.strip()]
        for i in range(1, 7):
            key = _env(f"ETHERSCAN_API_KEY_{i}", "")
            if key and key not in keys:
                keys.append(key)
        return keys


settings = Settings()
