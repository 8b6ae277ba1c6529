"""Error taxonomy for the scan pipeline.

Every error carries a machine readable ``code`` and the HTTP status of its
category. Messages are safe to show to end users; upstream details stay in
the logs.
"""


class ScanError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    message = "An unexpected error occurred. Please try again later."

    def __init__(self, message: str = None, cause: str = None):
        self.message = message or self.message
        self.cause = cause
        super().__init__(self.message)

    def __str__(self):
        if self.cause:
            return f"{self.message} ({self.cause})"
        return self.message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidAddressError(ScanError):
    code = "INVALID_ADDRESS"
    status_code = 400
    message = "Invalid contract address format"


class InvalidCodeError(ScanError):
    code = "INVALID_CODE"
    status_code = 400
    message = "Invalid contract source code"


class BatchTooLargeError(ScanError):
    code = "BATCH_TOO_LARGE"
    status_code = 400
    message = "Too many addresses in batch request"


class ContractNotFoundError(ScanError):
    code = "CONTRACT_NOT_FOUND"
    status_code = 404
    message = ("Contract not found on supported chains (Ethereum, Polygon, Arbitrum). "
               "Please verify the address is correct and the contract is deployed.")


class SourceNotVerifiedError(ScanError):
    code = "SOURCE_NOT_VERIFIED"
    status_code = 404
    message = ("Contract source code is not verified on block explorer. "
               "Only verified contracts can be scanned.")


class SourceNotAnalyzableError(ScanError):
    code = "SOURCE_NOT_ANALYZABLE"
    status_code = 422
    message = "Verified source could not be analyzed"


class ChainDetectionError(ScanError):
    code = "CHAIN_DETECTION_FAILED"
    status_code = 503
    message = "Failed to detect contract chain. Please try again."


class SourceFetchError(ScanError):
    code = "SOURCE_FETCH_FAILED"
    status_code = 503
    message = "Failed to fetch contract source code. Please try again later."


class UpstreamRateLimitError(SourceFetchError):
    code = "EXTERNAL_RATE_LIMIT"
    message = "External API rate limit reached. Please wait a moment and try again."


class UpstreamTimeoutError(SourceFetchError):
    code = "SOURCE_FETCH_TIMEOUT"
    status_code = 504
    message = "Request timed out while fetching contract source. Please try again."


class NoApiKeysError(SourceFetchError):
    code = "NO_API_KEYS"
    message = "Source fetching is not configured on this server."
