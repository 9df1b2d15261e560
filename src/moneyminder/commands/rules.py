"""
moneyminder 'rules' command - List, import, export and toggle parser rules.
"""

import os
import sys

from ..cli import C, load_workspace
from ..events import DataEvent
from ..rules_io import export_rules_csv, export_rules_json, import_rules


def _print_rule(rule, verbose):
    status = f"{C.GREEN}on {C.RESET}" if rule.enabled else f"{C.DIM}off{C.RESET}"
    error = f"  {C.RED}error: {rule.last_error}{C.RESET}" if rule.last_error else ''
    print(
        f"  {status} {rule.priority:>4}  {C.BOLD}{rule.name}{C.RESET}  "
        f"{C.DIM}{rule.payment_bank or '-'} / {rule.transaction_type} / {rule.success_count} matches{C.RESET}{error}"
    )
    if not verbose:
        return
    print(f"        {C.DIM}id:{C.RESET} {rule.id}")
    if rule.sender_match:
        print(f"        {C.DIM}senders:{C.RESET} {', '.join(rule.sender_match)}")
    for pattern in rule.amount_regex:
        print(f"        {C.DIM}amount:{C.RESET} {pattern}")
    for extraction in rule.merchant_extractions:
        print(
            f"        {C.DIM}merchant:{C.RESET} after {extraction.start_text!r} "
            f"(#{extraction.start_index}) until {extraction.end_text!r}"
        )
    for pattern in rule.merchant_condition:
        print(f"        {C.DIM}merchant regex:{C.RESET} {pattern}")
    for pattern in rule.merchant_common_patterns:
        print(f"        {C.DIM}cleanup:{C.RESET} {pattern}")
    for condition in rule.skip_condition:
        print(f"        {C.DIM}skip:{C.RESET} {condition}")
    if rule.subject_match:
        print(f"        {C.DIM}subjects:{C.RESET} {', '.join(rule.subject_match)}")
    if rule.extract_merchant_from_subject:
        print(f"        {C.DIM}merchant from subject{C.RESET}")
    for pattern in rule.no_extract_condition:
        print(f"        {C.DIM}no extract:{C.RESET} {pattern}")


def _resolve(store, key):
    rule = store.find_rule(key)
    if rule is None:
        print(f"Error: No rule with id or name '{key}'", file=sys.stderr)
        sys.exit(1)
    return rule


def cmd_rules(args):
    """Handle the 'rules' subcommand."""
    _, store = load_workspace(args)
    action = args.rules_command

    if action == 'list':
        rules = store.list_rules()
        if not rules:
            print("No parser rules. Run 'moneyminder rules seed' or 'moneyminder rules import <file>'.")
            return
        print(f"{C.BOLD}{len(rules)} parser rules{C.RESET} (evaluation order)")
        for rule in rules:
            _print_rule(rule, args.verbose)

    elif action == 'import':
        try:
            report = import_rules(args.file, existing_names=store.rule_names())
            stored = store.add_rules(report.rules, event=DataEvent.RULES_IMPORTED)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"{C.GREEN}✓{C.RESET} {report.summary()}")
        for rule in stored:
            print(f"  + {rule.name}")
        for error in report.errors:
            print(f"  {C.YELLOW}skipped:{C.RESET} {error}", file=sys.stderr)

    elif action == 'export':
        rules = store.list_rules()
        if not rules:
            print("Error: There are no parser rules to export", file=sys.stderr)
            sys.exit(1)
        if os.path.splitext(args.file)[1].lower() == '.json':
            export_rules_json(rules, args.file)
        else:
            export_rules_csv(rules, args.file)
        print(f"{C.GREEN}✓{C.RESET} Exported {len(rules)} rules to {args.file}")

    elif action in ('enable', 'disable'):
        rule = _resolve(store, args.rule)
        store.set_enabled(rule.id, action == 'enable')
        print(f"{C.GREEN}✓{C.RESET} {action.capitalize()}d: {rule.name}")

    elif action == 'delete':
        rule = _resolve(store, args.rule)
        store.delete_rule(rule.id)
        print(f"{C.GREEN}✓{C.RESET} Deleted: {rule.name}")

    elif action == 'seed':
        added = store.ensure_default_rules()
        if added:
            print(f"{C.GREEN}✓{C.RESET} Added {len(added)} built-in rules")
        else:
            print("Rules database is not empty; nothing added.")
