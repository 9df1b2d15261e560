"""
moneyminder 'suggest' command - Help write a rule from a sample message.
"""

import json
import os

from ..cli import C, find_config_dir
from ..config_loader import load_config
from ..merchant_extract import extract_merchant_advanced
from ..pattern_suggest import suggest_patterns_from_sms


def _configured_pick(args):
    """merchant_pick from settings.yaml when a config directory is available."""
    config_dir = os.path.abspath(args.config) if args.config else find_config_dir()
    if not config_dir or not os.path.isdir(config_dir):
        return 'last'
    try:
        config = load_config(config_dir, args.settings)
    except FileNotFoundError:
        return 'last'
    return config['merchant_pick']


def cmd_suggest(args):
    """Handle the 'suggest' subcommand."""
    pick = args.pick or _configured_pick(args)
    suggestions = suggest_patterns_from_sms(args.text)
    merchant = extract_merchant_advanced(args.text, args.merchant, pick=pick)

    if args.format == 'json':
        data = suggestions.to_dict()
        extraction = merchant.to_extraction()
        data['merchant'] = {
            'name': merchant.merchant,
            'candidates': merchant.candidates,
            'extraction': extraction.to_dict() if extraction else None,
        }
        print(json.dumps(data, indent=2))
        return

    print(f"{C.BOLD}Amount patterns{C.RESET}")
    for pattern in suggestions.amount_patterns:
        print(f"  {pattern}")

    print(f"\n{C.BOLD}Merchant patterns{C.RESET}")
    for pattern in suggestions.merchant_patterns or ['(none)']:
        print(f"  {pattern}")

    print(f"\n{C.BOLD}Merchant cleaning patterns{C.RESET}")
    for pattern in suggestions.merchant_cleaning_patterns or ['(none)']:
        print(f"  {pattern}")

    print(f"\n{C.BOLD}Merchant{C.RESET}")
    if merchant.found:
        print(f"  {C.GREEN}{merchant.merchant}{C.RESET}")
        print(
            f"  {C.DIM}markers: start={merchant.start_text!r} end={merchant.end_text!r} "
            f"index={merchant.start_index}{C.RESET}"
        )
        others = [c for c in dict.fromkeys(merchant.candidates) if c != merchant.merchant]
        if others:
            print(f"  {C.DIM}other candidates: {', '.join(others)}{C.RESET}")
    else:
        print(f"  {C.YELLOW}{merchant.merchant}{C.RESET}")
