"""
Honeypot pattern catalog.

The first five patterns follow SmartContractPatternFinder (SCPF); the rest
extend coverage to tx.origin authentication and structural sell blocking.
Every quantifier is bounded so a match stays local to one function body.
Whitespace runs written as ``\\s*`` / ``\\s+`` are capped when compiled.

Changing this catalog requires bumping ``settings.DETECTION_VERSION``.
"""

import re
from typing import Dict, Tuple

from ..models.contract_models import ChainConfig, HoneypotPattern, PatternExplanation, Severity
from .regex_timeout import is_safe_pattern

MAX_WHITESPACE_RUN = 64

_ORIGIN = r"(?:tx\.origin|origin\(\))"


def _bounded(source: str) -> str:
    return (source
            .replace(r"\s*", r"\s{0,%d}" % MAX_WHITESPACE_RUN)
            .replace(r"\s+", r"\s{1,%d}" % MAX_WHITESPACE_RUN))


def _pattern(name: str, source: str) -> HoneypotPattern:
    source = _bounded(source)
    safe, reason = is_safe_pattern(source)
    if not safe:
        raise ValueError(f"Pattern {name} rejected: {reason}")
    return HoneypotPattern(name=name, regex=re.compile(source, re.S))


HONEYPOT_PATTERNS: Tuple[HoneypotPattern, ...] = (
    # ERC20 functions with tx.origin abuse
    _pattern("balance_tx_origin", r"function\s+balanceOf[^}]{0,500}?" + _ORIGIN),
    _pattern("allowance_tx_origin", r"function\s+allowance[^}]{0,500}?" + _ORIGIN),
    _pattern("transfer_tx_origin", r"function\s+transfer[^}]{0,500}?" + _ORIGIN),

    # Known honeypot helpers
    _pattern("hidden_fee_taxPayer", r"function\s+_taxPayer[^}]{0,300}?" + _ORIGIN),
    _pattern("isSuper_tx_origin", r"function\s+_isSuper[^}]{0,200}?" + _ORIGIN),

    # tx.origin used for authentication or bookkeeping
    _pattern("tx_origin_require", r"require\s*\([^;]{0,200}?tx\.origin"),
    _pattern("tx_origin_if_auth", r"if\s*\([^)]{0,200}?tx\.origin\s*[!=]="),
    _pattern("tx_origin_assert", r"assert\s*\([^;]{0,200}?tx\.origin"),
    _pattern("tx_origin_mapping", r"\w{1,64}\s*\[\s*tx\.origin\s*\]"),

    # Structural sell blocking
    _pattern("sell_block_pattern", r"if\s*\(\s*_isSuper\s*\(\s*recipient\s*\)\s*\)\s*return\s+false"),
    _pattern("asymmetric_transfer_logic", r"function\s+_canTransfer[^}]{0,500}?return\s+false"),
    _pattern("transfer_whitelist_only",
             r"require\s*\(\s*_whitelist\[[^\]]{0,100}?\]\s*\|\|\s*_whitelist\[[^\]]{0,100}?\]\s*,"),
    _pattern("hidden_sell_tax",
             r"if\s*\([^)]{0,200}?pair[^)]{0,100}?\)[^{]{0,100}?\{[^}]{0,300}?sellTax\s*=\s*(?:100|9[5-9])\b"),
)


CHAIN_CONFIGS: Dict[str, ChainConfig] = {
    "ethereum": ChainConfig(name="ethereum", chain_id=1, display_name="Ethereum"),
    "polygon": ChainConfig(name="polygon", chain_id=137, display_name="Polygon"),
    "arbitrum": ChainConfig(name="arbitrum", chain_id=42161, display_name="Arbitrum"),
}


def _explain(name, title, severity, description, how_it_works, protection):
    return name, PatternExplanation(
        name=name,
        title=title,
        description=description,
        severity=severity,
        how_it_works=how_it_works,
        protection=protection,
    )


PATTERN_EXPLANATIONS: Dict[str, PatternExplanation] = dict([
    _explain(
        "balance_tx_origin", "Balance Check with tx.origin", Severity.CRITICAL,
        "The balanceOf function uses tx.origin to manipulate balance reporting.",
        "Wallets and DEX front ends may show an inflated balance, but when you sell "
        "the contract checks tx.origin and reports your real (often zero) balance.",
        "Always verify balances directly on a block explorer before trading.",
    ),
    _explain(
        "allowance_tx_origin", "Allowance Manipulation via tx.origin", Severity.CRITICAL,
        "The allowance function behaves differently based on tx.origin.",
        "Approvals appear to work, but when a DEX router spends tokens on your behalf "
        "the allowance check fails because tx.origin differs.",
        "Test with a tiny amount before making larger purchases.",
    ),
    _explain(
        "transfer_tx_origin", "Transfer Restriction via tx.origin", Severity.CRITICAL,
        "Transfer function checks tx.origin to selectively block transactions.",
        "Only the deployer or whitelisted addresses can transfer. Regular users get "
        "their sell transactions reverted.",
        "Avoid tokens that behave differently between direct and DEX transfers.",
    ),
    _explain(
        "hidden_fee_taxPayer", "Hidden Tax Mechanism", Severity.HIGH,
        "Contract contains a hidden _taxPayer function using tx.origin.",
        "A concealed function applies excessive fees (often 99-100%) to "
        "non-whitelisted sellers, draining all value during sells.",
        "Check contract source for fee-related functions and their tax rates.",
    ),
    _explain(
        "isSuper_tx_origin", "Super User Check", Severity.HIGH,
        "Contract has a _isSuper function that grants special privileges.",
        "Some addresses are marked as super users who bypass restrictions. Regular "
        "holders cannot sell while super users drain liquidity.",
        "Look for whitelist or privilege-granting functions in the contract.",
    ),
    _explain(
        "tx_origin_require", "tx.origin in Require Statement", Severity.CRITICAL,
        "A require statement uses tx.origin for access control.",
        "Transactions are blocked unless tx.origin matches a specific address. DEX "
        "sells fail because the router becomes msg.sender.",
        "tx.origin checks in access control are a major red flag.",
    ),
    _explain(
        "tx_origin_if_auth", "Conditional tx.origin Authentication", Severity.HIGH,
        "Authentication logic uses tx.origin in if statements.",
        "The contract conditionally reverts based on tx.origin, making it impossible "
        "to interact through standard DeFi protocols.",
        "Legitimate tokens never use tx.origin for authentication.",
    ),
    _explain(
        "tx_origin_assert", "tx.origin Assertion", Severity.CRITICAL,
        "An assert statement checks tx.origin.",
        "Assert failures revert the transaction, making sells fail for everyone "
        "except the expected origin.",
        "Assert with tx.origin is almost always malicious.",
    ),
    _explain(
        "tx_origin_mapping", "tx.origin Tracking", Severity.MEDIUM,
        "The contract records tx.origin in a mapping.",
        "Origins of buyers are tracked so the contract can later treat them "
        "differently from the deployer, for example by blocking their sells.",
        "Be wary of contracts that track who originated each transaction.",
    ),
    _explain(
        "sell_block_pattern", "Direct Sell Block", Severity.CRITICAL,
        "Transfers to a super-user recipient (the liquidity pair) return false.",
        "Sending tokens to the trading pair is how selling works; this check makes "
        "every sell silently fail.",
        "Never buy a token whose transfer logic special-cases the recipient.",
    ),
    _explain(
        "asymmetric_transfer_logic", "Asymmetric Transfer Rules", Severity.HIGH,
        "A _canTransfer helper can refuse transfers.",
        "Buys pass the check while sells hit a branch that returns false.",
        "Read the transfer guard conditions before trading.",
    ),
    _explain(
        "transfer_whitelist_only", "Whitelist-Only Transfers", Severity.HIGH,
        "Transfers require the sender or recipient to be whitelisted.",
        "Only addresses chosen by the owner can move tokens; everyone else is stuck.",
        "Check whether the whitelist can be disabled and who controls it.",
    ),
    _explain(
        "hidden_sell_tax", "Confiscatory Sell Tax", Severity.CRITICAL,
        "A 95-100% sell tax is applied when the recipient is the trading pair.",
        "Buys go through at normal fees, but selling hands nearly all proceeds to "
        "the contract owner.",
        "Inspect every fee assignment that depends on the pair address.",
    ),
])
