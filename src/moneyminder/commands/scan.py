"""
moneyminder 'scan' command - Extract transactions from a CSV of messages.
"""

import csv
import json
import sys
import warnings

from ..cli import C, load_workspace
from ..enricher import index_merchant_notes
from ..parsers import load_messages_csv
from ..rule_engine import RuleWarning
from ..scanner import scan_messages

TRANSACTION_COLUMNS = [
    'date', 'amount', 'currency', 'type', 'merchantName', 'category',
    'paymentMethod', 'notes', 'description', 'sender', 'ruleName', 'messageId',
]


def _print_table(report, show_unmatched):
    for txn in report.transactions:
        date_str = txn.date.strftime('%Y-%m-%d') if txn.date else '----------'
        sign = '+' if txn.type == 'income' else '-'
        color = C.GREEN if txn.type == 'income' else C.RESET
        print(
            f"{date_str}  {color}{sign}{txn.amount:>10,.2f} {txn.currency}{C.RESET}  "
            f"{txn.merchant_name:<30} {C.DIM}{txn.category:<12} {txn.payment_method}{C.RESET}"
        )

    print()
    print(
        f"{C.BOLD}{len(report.transactions)}{C.RESET} transactions, "
        f"{len(report.duplicates)} duplicates, {len(report.unmatched)} unmatched "
        f"(of {report.total} messages)"
    )
    if report.processed:
        print(f"{C.DIM}{len(report.processed)} processed without extracting a transaction{C.RESET}")
    if report.enriched:
        print(f"{C.DIM}{report.enriched} categorised from merchant notes / history{C.RESET}")

    if show_unmatched and report.unmatched:
        print()
        print(f"{C.YELLOW}Unmatched messages:{C.RESET}")
        for message in report.unmatched:
            print(f"  {C.DIM}[{message.sender or '?'}]{C.RESET} {message.body[:100]}")


def cmd_scan(args):
    """Handle the 'scan' subcommand."""
    config, store = load_workspace(args)

    messages_path = args.messages or config.get('_messages_file')
    if not messages_path:
        print("Error: No messages file given and no messages_file in settings.yaml", file=sys.stderr)
        sys.exit(1)

    try:
        messages = load_messages_csv(messages_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    rules = store.list_rules()
    notes = index_merchant_notes(store.list_merchant_notes())

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always', RuleWarning)
        report = scan_messages(
            messages,
            rules,
            window_seconds=config['duplicate_window_seconds'],
            currency=config['currency'],
            default_category=config['default_category'],
            notes=notes,
        )
    for warning in caught:
        print(f"{C.YELLOW}Warning:{C.RESET} {warning.message}", file=sys.stderr)

    if args.record:
        for rule_id, count in report.rule_counts.items():
            store.record_match(rule_id, count)
        for rule_id, error in report.rule_errors.items():
            store.record_error(rule_id, error)

    if args.format == 'json':
        print(json.dumps({
            'transactions': [t.to_dict() for t in report.transactions],
            'duplicates': len(report.duplicates),
            'unmatched': len(report.unmatched),
            'processed': len(report.processed),
            'ruleErrors': report.rule_errors,
        }, indent=2))
    elif args.format == 'csv':
        writer = csv.DictWriter(sys.stdout, fieldnames=TRANSACTION_COLUMNS, extrasaction='ignore', lineterminator='\n')
        writer.writeheader()
        for txn in report.transactions:
            writer.writerow(txn.to_dict())
    else:
        _print_table(report, args.show_unmatched)
