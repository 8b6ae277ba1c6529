import json
from typing import Dict, Optional

from ..models.contract_models import TokenMetadata


def parse_source_code(source_code: str) -> str:
    """
    Flatten a block explorer SourceCode payload into one text blob.

    Standard-JSON-input payloads (optionally wrapped in an extra pair of
    braces) are expanded file by file, each prefixed with a ``// File:``
    marker. Anything else is returned unchanged.
    """
    normalized = source_code.strip()
    if normalized.startswith("{{") and normalized.endswith("}}"):
        normalized = normalized[1:-1]

    if not normalized.startswith("{"):
        return source_code

    try:
        payload = json.loads(normalized)
    except ValueError:
        return source_code

    sources = payload.get("sources") if isinstance(payload, dict) else None
    if not isinstance(sources, dict):
        return source_code

    combined = []
    for filename, file_obj in sources.items():
        content = file_obj.get("content") if isinstance(file_obj, dict) else None
        if content:
            combined.append(f"// File: {filename}\n{content}\n\n")

    return "".join(combined) or source_code


def extract_token_metadata(entry: Optional[Dict]) -> TokenMetadata:
    """Best-effort metadata from a getsourcecode result entry"""
    if not isinstance(entry, dict):
        return TokenMetadata()

    def _clean(value):
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    return TokenMetadata(
        name=_clean(entry.get("ContractName")),
        symbol=_clean(entry.get("TokenSymbol") or entry.get("Symbol")),
        compiler_version=_clean(entry.get("CompilerVersion")),
    )
