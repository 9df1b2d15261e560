"""
moneyminder 'init' command - Create a config directory.
"""

import os

from ..cli import C
from ..rule_store import RuleStore
from ..templates import STARTER_MESSAGES, STARTER_SETTINGS


def _write_if_missing(path, content, label):
    if os.path.exists(path):
        print(f"  {C.DIM}-{C.RESET} Exists:  {label}")
        return False
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    print(f"  {C.GREEN}✓{C.RESET} Created: {label}")
    return True


def cmd_init(args):
    """Handle the 'init' subcommand - create settings, sample messages and the rules database."""
    config_dir = os.path.abspath(args.dir)
    os.makedirs(config_dir, exist_ok=True)

    print(f"Initializing {C.BOLD}{config_dir}{C.RESET}")
    _write_if_missing(os.path.join(config_dir, 'settings.yaml'), STARTER_SETTINGS, 'settings.yaml')
    _write_if_missing(os.path.join(config_dir, 'messages.csv'), STARTER_MESSAGES, 'messages.csv')

    store = RuleStore(os.path.join(config_dir, 'rules.db'))
    added = store.ensure_default_rules()
    if added:
        print(f"  {C.GREEN}✓{C.RESET} Seeded:  rules.db ({len(added)} built-in rules)")
    else:
        print(f"  {C.DIM}-{C.RESET} Exists:  rules.db")

    print()
    print("Next steps:")
    print(f"  {C.CYAN}moneyminder scan --config {args.dir}{C.RESET}")
    print(f"  {C.CYAN}moneyminder rules list --config {args.dir}{C.RESET}")
