"""
Parser rule engine for SMS and e-mail transaction alerts.

A parser rule describes one family of bank messages: which senders it applies
to, which regexes capture the amount, how to carve out the merchant name and
which phrases mark a message as "not a transaction" (OTPs, offers, ...).

Rules are evaluated in descending priority order (ties keep input order).
The first enabled rule that passes its sender, subject and skip gates and
yields an amount produces the transaction; later rules are never consulted
for that message.

Rule example (JSON export form):
    {
      "name": "HDFC Bank Credit Card",
      "senderMatch": ["HDFCBK", "HDFC-VM"],
      "amountRegex": ["Rs\\\\.?\\\\s*([\\\\d,]+\\\\.?\\\\d*)"],
      "merchantExtractions": [{"startText": "at", "endText": "on", "startIndex": 1}],
      "merchantCommonPatterns": ["^(.+?)\\\\s+on\\\\s+\\\\d+"],
      "skipCondition": ["OTP", "/offer|cashback/i"],
      "paymentBank": "HDFC Bank",
      "priority": 20,
      "transactionType": "expense"
    }

Skip conditions are plain case-insensitive substrings, or regex literals
written as /pattern/flags.

E-mail rules can additionally gate on the subject line (subjectMatch), take
the merchant from the subject (extractMerchantFromSubject) and mark messages
that should be consumed without producing an amount (noExtractCondition).
When no merchant is found, an e-mail sender's display name or domain is used.
"""

import math
import re
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple, Union

from .merchant_extract import (
    DEFAULT_MERCHANT,
    MerchantExtraction,
    merchant_from_sender,
    try_merchant_extractions,
)
from .parsers import parse_amount, parse_message_date, to_naive_utc

NO_EXTRACT_PREFIX = 'Processed - No Extract'

TRANSACTION_TYPES = ('expense', 'income')
DEFAULT_CATEGORY = 'other'
DEFAULT_CURRENCY = 'INR'
DEFAULT_PAYMENT_METHOD = 'Unknown Bank'

_REGEX_LITERAL_RE = re.compile(r'^/(.+)/([imsx]*)$', re.DOTALL)
_REGEX_FLAGS = {'i': re.IGNORECASE, 'm': re.MULTILINE, 's': re.DOTALL, 'x': re.VERBOSE}


class RuleWarning(UserWarning):
    """A parser rule could not be evaluated (e.g. malformed regex)."""


class RulePatternError(ValueError):
    """A pattern in a parser rule is not a valid regular expression."""

    def __init__(self, rule_name: str, field_name: str, pattern: str, error: Exception):
        self.rule_name = rule_name
        self.field_name = field_name
        self.pattern = pattern
        super().__init__(f"Invalid {field_name} pattern {pattern!r}: {error}")


@dataclass
class CompiledPatterns:
    """Pattern fields of one rule, compiled once."""

    skip: List[Union[str, Pattern]]  # lowercased substrings or compiled regexes
    amount: List[Pattern]
    merchant_condition: List[Pattern]
    merchant_cleaning: List[Pattern]
    date: List[Pattern]
    no_extract: List[Pattern] = field(default_factory=list)


def _compile(rule_name: str, field_name: str, pattern: str, flags: int = re.IGNORECASE) -> Pattern:
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise RulePatternError(rule_name, field_name, pattern, e)


def _compile_skip(rule_name: str, condition: str) -> Union[str, Pattern]:
    literal = _REGEX_LITERAL_RE.match(condition.strip())
    if literal:
        body, flag_chars = literal.groups()
        flags = 0
        for char in flag_chars or 'i':
            flags |= _REGEX_FLAGS[char]
        return _compile(rule_name, 'skipCondition', body, flags)
    return condition.lower()


@dataclass
class ParserRule:
    """A user-authored rule for recognising one class of transaction messages."""

    name: str
    id: str = ''
    enabled: bool = True
    sender_match: List[str] = field(default_factory=list)
    amount_regex: List[str] = field(default_factory=list)
    merchant_condition: List[str] = field(default_factory=list)
    merchant_common_patterns: List[str] = field(default_factory=list)
    merchant_extractions: List[MerchantExtraction] = field(default_factory=list)
    skip_condition: List[str] = field(default_factory=list)
    date_regex: List[str] = field(default_factory=list)
    subject_match: List[str] = field(default_factory=list)
    no_extract_condition: List[str] = field(default_factory=list)
    extract_merchant_from_subject: bool = False
    payment_bank: str = ''
    priority: int = 0  # Higher priority = evaluated first
    transaction_type: str = 'expense'
    created_at: str = ''
    updated_at: str = ''
    last_error: str = ''
    success_count: int = 0
    _compiled: Optional[CompiledPatterns] = field(default=None, init=False, repr=False, compare=False)
    _compile_failed: bool = field(default=False, init=False, repr=False, compare=False)

    def compile(self) -> Optional[CompiledPatterns]:
        """Compile the rule's pattern fields on first use.

        Returns None when any pattern is malformed; the error is kept in
        last_error and reported once as a RuleWarning.
        """
        if self._compiled is not None or self._compile_failed:
            return self._compiled
        try:
            self._compiled = CompiledPatterns(
                skip=[_compile_skip(self.name, c) for c in _non_blank(self.skip_condition)],
                amount=[_compile(self.name, 'amountRegex', p) for p in _non_blank(self.amount_regex)],
                merchant_condition=[
                    _compile(self.name, 'merchantCondition', p) for p in _non_blank(self.merchant_condition)
                ],
                merchant_cleaning=[
                    _compile(self.name, 'merchantCommonPatterns', p)
                    for p in _non_blank(self.merchant_common_patterns)
                ],
                date=[_compile(self.name, 'dateRegex', p) for p in _non_blank(self.date_regex)],
                no_extract=[
                    _compile(self.name, 'noExtractCondition', p) for p in _non_blank(self.no_extract_condition)
                ],
            )
        except RulePatternError as e:
            self._compile_failed = True
            self.last_error = str(e)
            warnings.warn(
                f"Rule [{self.name}] {e}\n"
                f"  Skipping this rule until it is fixed.",
                RuleWarning,
                stacklevel=3,
            )
        return self._compiled

    def reset_patterns(self) -> None:
        """Forget compiled patterns (call after editing pattern fields in place)."""
        self._compiled = None
        self._compile_failed = False

    @property
    def senders(self) -> List[str]:
        return _non_blank(self.sender_match)

    @property
    def subjects(self) -> List[str]:
        return _non_blank(self.subject_match)

    @property
    def extractions(self) -> List[MerchantExtraction]:
        """Extractions that actually carry a marker."""
        return [e for e in self.merchant_extractions if not e.is_placeholder]


def _non_blank(values: Iterable[str]) -> List[str]:
    return [v for v in values if v and v.strip()]


@dataclass
class Transaction:
    """A transaction produced from a message. Amount is never negative; type carries the sign.

    extracted is False for messages a rule consumed through its
    noExtractCondition: the record only marks the message as processed.
    """

    amount: float
    merchant_name: str = DEFAULT_MERCHANT
    date: Optional[datetime] = None
    category: str = DEFAULT_CATEGORY
    payment_method: str = DEFAULT_PAYMENT_METHOD
    notes: str = ''
    type: str = 'expense'
    currency: str = DEFAULT_CURRENCY
    sender: str = ''
    rule_id: str = ''
    rule_name: str = ''
    message_id: str = ''
    description: str = ''
    extracted: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'amount': self.amount,
            'date': self.date.isoformat() if self.date else None,
            'merchantName': self.merchant_name,
            'category': self.category,
            'paymentMethod': self.payment_method,
            'notes': self.notes,
            'type': self.type,
            'currency': self.currency,
            'sender': self.sender,
            'ruleId': self.rule_id,
            'ruleName': self.rule_name,
            'messageId': self.message_id,
            'description': self.description,
            'extracted': self.extracted,
        }


class NoMatch:
    """Sentinel for "no rule recognised this message". Falsy; use NO_MATCH."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return 'NO_MATCH'


NO_MATCH = NoMatch()


@dataclass
class RuleTrace:
    """Why one rule did or did not produce a transaction for a message."""

    rule_name: str
    outcome: str  # disabled | sender | subject | skipped | no_amount | error | no_extract | matched
    detail: str = ''


@dataclass
class MatchResult:
    """Result of matching one message against the rules."""

    matched: bool = False
    transaction: Optional[Transaction] = None
    rule: Optional[ParserRule] = None
    trace: List[RuleTrace] = field(default_factory=list)  # Filled when explain=True

    @property
    def outcome(self) -> Union[Transaction, NoMatch]:
        return self.transaction if self.matched else NO_MATCH


class RuleEngine:
    """
    Engine for matching messages against a snapshot of parser rules.

    The rule list is filtered and ordered once at construction, so one engine
    can be reused for a whole batch of messages. Matching keeps no state
    between messages other than each rule's compiled patterns.
    """

    def __init__(
        self,
        rules: Iterable[ParserRule],
        currency: str = DEFAULT_CURRENCY,
        default_category: str = DEFAULT_CATEGORY,
    ):
        if rules is None:
            raise TypeError('rules must be an iterable of ParserRule, not None')
        self.rules: List[ParserRule] = list(rules)
        self.currency = currency
        self.default_category = default_category
        # sorted() is stable, so equal priorities keep their input order
        self._ordered = sorted((r for r in self.rules if r.enabled), key=lambda r: -r.priority)

    @property
    def active_rules(self) -> List[ParserRule]:
        """Enabled rules in evaluation order."""
        return list(self._ordered)

    def match(
        self,
        text: str,
        sender: str = '',
        received_at: Optional[datetime] = None,
        message_id: str = '',
        subject: str = '',
        explain: bool = False,
    ) -> MatchResult:
        """
        Match one message against the rules.

        Args:
            text: Message body
            sender: Sender address / SMS header (e.g. "VM-HDFCBK" or
                "Amazon <orders@amazon.in>")
            received_at: Used as the transaction date when the rule has no
                dateRegex or it does not match
            message_id: Copied onto the transaction for duplicate detection
            subject: E-mail subject line (empty for SMS)
            explain: Record a per-rule trace in the result
        """
        if text is None:
            raise TypeError('text must be a string, not None')
        result = MatchResult()
        sender = sender or ''
        subject = subject or ''
        lower_text = text.lower()

        if explain:
            for rule in self.rules:
                if not rule.enabled:
                    result.trace.append(RuleTrace(rule.name, 'disabled'))

        for rule in self._ordered:
            outcome, detail, transaction = self._evaluate(rule, text, lower_text, sender, subject)
            if explain:
                result.trace.append(RuleTrace(rule.name, outcome, detail))
            if transaction is None:
                continue

            transaction.sender = sender
            transaction.message_id = message_id or ''
            if transaction.date is None:
                transaction.date = to_naive_utc(received_at)
            result.matched = True
            result.transaction = transaction
            result.rule = rule
            break

        return result

    def match_all(self, messages: Iterable[Tuple[str, str]]) -> List[MatchResult]:
        """Match multiple (text, sender) pairs."""
        return [self.match(text, sender) for text, sender in messages]

    def _evaluate(
        self, rule: ParserRule, text: str, lower_text: str, sender: str, subject: str
    ) -> Tuple[str, str, Optional[Transaction]]:
        senders = rule.senders
        if senders and not any(s.lower() in sender.lower() for s in senders):
            return 'sender', f"sender does not contain any of: {', '.join(senders)}", None

        subjects = rule.subjects
        if subjects and not any(s.lower() in subject.lower() for s in subjects):
            return 'subject', f"subject does not contain any of: {', '.join(subjects)}", None

        patterns = rule.compile()
        if patterns is None:
            return 'error', rule.last_error, None

        for condition in patterns.skip:
            if isinstance(condition, str):
                hit = condition in lower_text
            else:
                hit = condition.search(text) is not None
            if hit:
                shown = condition if isinstance(condition, str) else condition.pattern
                return 'skipped', f"skip condition matched: {shown}", None

        amount = None
        amount_pattern = ''
        for pattern in patterns.amount:
            value = _first_group(pattern.search(text))
            if not value:
                continue
            try:
                parsed = parse_amount(value)
            except ValueError:
                continue
            if math.isfinite(parsed):
                amount = abs(parsed)
                amount_pattern = pattern.pattern
                break
        if amount is None:
            return 'no_amount', 'no amount pattern matched', None

        source = subject if rule.extract_merchant_from_subject else text
        merchant = self._extract_merchant(rule, patterns, source) or merchant_from_sender(sender)
        txn_date = self._extract_date(patterns, text)
        txn_type = rule.transaction_type if rule.transaction_type in TRANSACTION_TYPES else 'expense'

        transaction = Transaction(
            amount=amount,
            merchant_name=merchant,
            date=txn_date,
            category=self.default_category,
            payment_method=rule.payment_bank or DEFAULT_PAYMENT_METHOD,
            type=txn_type,
            currency=self.currency,
            rule_id=rule.id,
            rule_name=rule.name,
            description=subject,
        )

        for pattern in patterns.no_extract:
            if pattern.search(text):
                transaction.amount = 0.0
                transaction.extracted = False
                transaction.description = f"{NO_EXTRACT_PREFIX}: {subject}"
                return 'no_extract', f"no-extract condition matched: {pattern.pattern}", transaction

        return 'matched', f"amount via {amount_pattern}", transaction

    def _extract_merchant(self, rule: ParserRule, patterns: CompiledPatterns, text: str) -> str:
        """Merchant from marker extractions, then merchantCondition, then cleaned; '' if none."""
        merchant = try_merchant_extractions(text, rule.extractions)

        if not merchant:
            for pattern in patterns.merchant_condition:
                value = _first_group(pattern.search(text), require_group=True)
                if value and value.strip():
                    merchant = value.strip()
                    break

        if merchant:
            # Cleaning patterns run in sequence, each narrowing to its capture
            for pattern in patterns.merchant_cleaning:
                value = _first_group(pattern.search(merchant), require_group=True)
                if value and value.strip():
                    merchant = value.strip()

        return merchant

    def _extract_date(self, patterns: CompiledPatterns, text: str) -> Optional[datetime]:
        for pattern in patterns.date:
            parsed = parse_message_date(_first_group(pattern.search(text)))
            if parsed is not None:
                return parsed
        return None


def _first_group(match, require_group: bool = False) -> Optional[str]:
    """Capture group 1, or the whole match for group-less patterns."""
    if match is None:
        return None
    if match.re.groups:
        return match.group(1)
    return None if require_group else match.group(0)


def match_message(
    text: str,
    sender: str,
    rules: Iterable[ParserRule],
    received_at: Optional[datetime] = None,
    subject: str = '',
) -> Union[Transaction, NoMatch]:
    """Match one message; returns a Transaction or NO_MATCH."""
    return RuleEngine(rules).match(text, sender, received_at=received_at, subject=subject).outcome
