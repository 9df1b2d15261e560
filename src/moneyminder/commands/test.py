"""
moneyminder 'test' command - Show how the rules treat one message.
"""

import sys
import warnings

from ..cli import C, load_workspace
from ..rule_engine import RuleEngine, RuleWarning

OUTCOME_LABELS = {
    'matched': 'MATCH',
    'disabled': 'disabled',
    'sender': 'sender',
    'subject': 'subject',
    'skipped': 'skipped',
    'no_amount': 'no amount',
    'error': 'ERROR',
    'no_extract': 'NO EXTRACT',
}


def cmd_test(args):
    """Handle the 'test' subcommand - per-rule trace for a single message."""
    config, store = load_workspace(args)

    if args.rule:
        rule = store.find_rule(args.rule)
        if rule is None:
            print(f"Error: No rule with id or name '{args.rule}'", file=sys.stderr)
            sys.exit(1)
        # A disabled rule is still worth testing on its own
        rule.enabled = True
        rules = [rule]
    else:
        rules = store.list_rules()

    engine = RuleEngine(rules, currency=config['currency'], default_category=config['default_category'])
    with warnings.catch_warnings():
        # The trace already shows the error
        warnings.simplefilter('ignore', RuleWarning)
        result = engine.match(args.text, args.sender, subject=args.subject, explain=True)

    print(f"{C.BOLD}Message:{C.RESET} {args.text}")
    print(f"{C.BOLD}Sender:{C.RESET}  {args.sender or '(none)'}")
    if args.subject:
        print(f"{C.BOLD}Subject:{C.RESET} {args.subject}")
    print()
    for step in result.trace:
        label = OUTCOME_LABELS.get(step.outcome, step.outcome)
        if step.outcome in ('matched', 'no_extract'):
            color = C.GREEN
        elif step.outcome == 'error':
            color = C.RED
        else:
            color = C.DIM
        detail = f"  {C.DIM}{step.detail}{C.RESET}" if step.detail else ''
        print(f"  {color}{label:<10}{C.RESET} {step.rule_name}{detail}")
    print()

    if not result.matched:
        print(f"{C.YELLOW}No rule recognised this message.{C.RESET}")
        sys.exit(1)

    txn = result.transaction
    print(f"{C.GREEN}✓ {result.rule.name}{C.RESET}")
    print(f"  amount:   {txn.amount:,.2f} {txn.currency}")
    print(f"  type:     {txn.type}")
    print(f"  merchant: {txn.merchant_name}")
    print(f"  category: {txn.category}")
    print(f"  bank:     {txn.payment_method}")
    if txn.date:
        print(f"  date:     {txn.date.isoformat()}")
    if not txn.extracted:
        print(f"  {C.YELLOW}{txn.description}{C.RESET}")
