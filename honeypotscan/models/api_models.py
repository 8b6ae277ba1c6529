from pydantic import BaseModel, Field
from typing import List, Optional
from typing_extensions import Annotated


class ScanRequest(BaseModel):
    # Format is validated by the scanner so malformed input gets a structured error
    address: Annotated[str, Field(max_length=100)]
    skipCache: bool = False


class CodeScanRequest(BaseModel):
    code: str


class BatchScanRequest(BaseModel):
    addresses: List[str]


class PatternMatch(BaseModel):
    name: str
    line: int
    code: str


class TokenMetadataModel(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    compilerVersion: Optional[str] = None


class ScanResponse(BaseModel):
    isHoneypot: bool
    confidence: int
    patterns: List[PatternMatch]
    chain: str
    message: str
    tokenMetadata: Optional[TokenMetadataModel] = None
    scannedAt: str
    detectionVersion: str
    cached: bool = False
    truncated: bool = False
    incompletePatterns: List[str] = []


class CodeScanResponse(BaseModel):
    isHoneypot: bool
    confidence: int
    patterns: List[PatternMatch]
    message: str
    stats: dict
    scannedAt: str
    detectionVersion: str
    truncated: bool = False
    incompletePatterns: List[str] = []


class ErrorResponse(BaseModel):
    error: str
    code: str


class HealthResponse(BaseModel):
    status: str
    version: str
    detectionVersion: str
