"""
moneyminder - turn bank SMS and e-mail alerts into transactions.

The core is a small rule engine: parser rules (sender gates, amount regexes,
merchant markers, skip conditions) are evaluated in priority order against a
message and the first rule that recognises it produces a Transaction.
"""

from ._version import VERSION
from .merchant_extract import (
    DEFAULT_MERCHANT,
    MerchantExtraction,
    extract_merchant_advanced,
    extract_merchant_name,
    merchant_from_sender,
    try_merchant_extractions,
)
from .pattern_suggest import suggest_patterns_from_sms
from .rule_engine import (
    NO_MATCH,
    MatchResult,
    NoMatch,
    ParserRule,
    RuleEngine,
    RuleWarning,
    Transaction,
    match_message,
)

__version__ = VERSION

__all__ = [
    'DEFAULT_MERCHANT',
    'MatchResult',
    'MerchantExtraction',
    'NO_MATCH',
    'NoMatch',
    'ParserRule',
    'RuleEngine',
    'RuleWarning',
    'Transaction',
    'extract_merchant_advanced',
    'extract_merchant_name',
    'match_message',
    'merchant_from_sender',
    'suggest_patterns_from_sms',
    'try_merchant_extractions',
]
