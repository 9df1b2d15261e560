"""
moneyminder CLI - Command-line interface.

Usage:
    moneyminder init [dir]                  # Create a config directory
    moneyminder scan [messages.csv]         # Extract transactions from messages
    moneyminder test "message" --sender X   # Show how the rules treat one message
    moneyminder suggest "message"           # Suggest regexes for a new rule
    moneyminder rules list|import|export|enable|disable|delete|seed
    moneyminder notes list|set|delete|import|export
"""

import argparse
import os
import sys


# Terminal color support
def _supports_color():
    """Check if the terminal supports color output."""
    if not sys.stdout.isatty():
        return False
    if os.environ.get('NO_COLOR'):
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    term = os.environ.get('TERM', '')
    return term != 'dumb'


class _Colors:
    """ANSI color codes with automatic detection."""
    def __init__(self):
        if _supports_color():
            self.RESET = '\033[0m'
            self.BOLD = '\033[1m'
            self.DIM = '\033[2m'
            self.GREEN = '\033[32m'
            self.CYAN = '\033[36m'
            self.YELLOW = '\033[33m'
            self.RED = '\033[31m'
        else:
            self.RESET = ''
            self.BOLD = ''
            self.DIM = ''
            self.GREEN = ''
            self.CYAN = ''
            self.YELLOW = ''
            self.RED = ''

C = _Colors()

from ._version import VERSION
from .config_loader import load_config
from .rule_store import RuleStore

CONFIG_ENV_VAR = 'MONEYMINDER_CONFIG'


def find_config_dir():
    """Find the config directory.

    Resolution order:
    1. MONEYMINDER_CONFIG environment variable (if set and exists)
    2. ./config
    3. ./moneyminder/config

    Returns None if no config directory is found.
    """
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        env_path = os.path.abspath(env_config)
        if os.path.isdir(env_path):
            return env_path

    for candidate in ('config', os.path.join('moneyminder', 'config')):
        path = os.path.abspath(candidate)
        if os.path.isdir(path):
            return path

    return None


def print_config_warnings(config):
    """Print warnings collected by load_config to stderr (keeps JSON/CSV output clean)."""
    for warning in config.get('_warnings', []):
        print(f"{C.YELLOW}⚠ {warning['message']}{C.RESET}", file=sys.stderr)
        print(f"  {warning['suggestion']}", file=sys.stderr)


def load_workspace(args):
    """Resolve config dir, load settings and open the rule store.

    Exits with status 1 when the config directory or settings are missing.

    Returns:
        (config, store) tuple
    """
    config_dir = os.path.abspath(args.config) if getattr(args, 'config', None) else find_config_dir()
    if not config_dir or not os.path.isdir(config_dir):
        print("Error: Config directory not found.", file=sys.stderr)
        print(f"Looked for: ${CONFIG_ENV_VAR}, ./config and ./moneyminder/config", file=sys.stderr)
        print("\nRun 'moneyminder init' to create one.", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(config_dir, getattr(args, 'settings', 'settings.yaml'))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print_config_warnings(config)
    store = RuleStore(config['_rules_db'])
    if config['seed_default_rules']:
        store.ensure_default_rules()
    return config, store


def _add_config_args(subparser):
    subparser.add_argument(
        '--config', '-c',
        help=f'Path to config directory (default: ${CONFIG_ENV_VAR} or ./config)'
    )
    subparser.add_argument(
        '--settings', '-s',
        default='settings.yaml',
        help='Settings file name (default: settings.yaml)'
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog='moneyminder',
        description='Turn bank SMS and e-mail alerts into transactions using parser rules.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Run 'moneyminder init' to create a config directory with the built-in bank rules."
    )
    parser.add_argument('--version', action='version', version=f'moneyminder {VERSION}')

    subparsers = parser.add_subparsers(dest='command', title='commands', metavar='<command>')

    # init subcommand
    init_parser = subparsers.add_parser(
        'init',
        help='Create a config directory with starter settings and sample messages'
    )
    init_parser.add_argument(
        'dir',
        nargs='?',
        default='config',
        help='Directory to initialize (default: ./config)'
    )

    # scan subcommand
    scan_parser = subparsers.add_parser(
        'scan',
        help='Extract transactions from a CSV of messages'
    )
    scan_parser.add_argument(
        'messages',
        nargs='?',
        help='Messages CSV (default: messages_file from settings.yaml)'
    )
    _add_config_args(scan_parser)
    scan_parser.add_argument(
        '--format', '-f',
        choices=['table', 'json', 'csv'],
        default='table',
        help='Output format (default: table)'
    )
    scan_parser.add_argument(
        '--show-unmatched',
        action='store_true',
        help='List messages no rule recognised'
    )
    scan_parser.add_argument(
        '--no-record',
        dest='record',
        action='store_false',
        default=True,
        help='Do not update rule match counters in the rules database'
    )

    # test subcommand
    test_parser = subparsers.add_parser(
        'test',
        help='Show how the rules treat a single message',
        description='Runs every rule against the message and prints why each one matched or not.'
    )
    test_parser.add_argument('text', help='Message text')
    test_parser.add_argument('--sender', default='', help='Sender / SMS header (e.g. VM-HDFCBK)')
    test_parser.add_argument('--subject', default='', help='E-mail subject line')
    test_parser.add_argument('--rule', help='Only test this rule (id or name)')
    _add_config_args(test_parser)

    # suggest subcommand
    suggest_parser = subparsers.add_parser(
        'suggest',
        help='Suggest regexes and merchant markers for a new rule'
    )
    suggest_parser.add_argument('text', help='Sample message text')
    suggest_parser.add_argument(
        '--merchant', '-m',
        action='append',
        default=[],
        help='Merchant you know appears in the message (repeatable)'
    )
    suggest_parser.add_argument(
        '--pick',
        choices=['last', 'first'],
        help='Which merchant candidate to prefer (default: merchant_pick setting or last)'
    )
    suggest_parser.add_argument(
        '--format', '-f',
        choices=['text', 'json'],
        default='text',
        help='Output format (default: text)'
    )
    _add_config_args(suggest_parser)

    # rules subcommand
    rules_parser = subparsers.add_parser(
        'rules',
        help='Manage parser rules'
    )
    rules_sub = rules_parser.add_subparsers(dest='rules_command', title='rules commands', metavar='<action>')
    rules_sub.required = True

    list_parser = rules_sub.add_parser('list', help='List rules in evaluation order')
    list_parser.add_argument('--verbose', '-v', action='store_true', help='Show patterns and markers')
    _add_config_args(list_parser)

    import_parser = rules_sub.add_parser('import', help='Import rules from CSV or JSON')
    import_parser.add_argument('file', help='Rules file (.csv or .json)')
    _add_config_args(import_parser)

    export_parser = rules_sub.add_parser('export', help='Export rules to CSV or JSON')
    export_parser.add_argument('file', help='Output file (.csv or .json)')
    _add_config_args(export_parser)

    for action, help_text in (
        ('enable', 'Enable a rule'),
        ('disable', 'Disable a rule'),
        ('delete', 'Delete a rule'),
    ):
        action_parser = rules_sub.add_parser(action, help=help_text)
        action_parser.add_argument('rule', help='Rule id or name')
        _add_config_args(action_parser)

    seed_parser = rules_sub.add_parser('seed', help='Add the built-in rules if the database is empty')
    _add_config_args(seed_parser)

    # notes subcommand
    notes_parser = subparsers.add_parser(
        'notes',
        help='Manage merchant notes (category and notes per merchant)'
    )
    notes_sub = notes_parser.add_subparsers(dest='notes_command', title='notes commands', metavar='<action>')
    notes_sub.required = True

    notes_list_parser = notes_sub.add_parser('list', help='List merchant notes')
    _add_config_args(notes_list_parser)

    notes_set_parser = notes_sub.add_parser('set', help='Add or replace the note for a merchant')
    notes_set_parser.add_argument('merchant', help='Merchant name (case-insensitive)')
    notes_set_parser.add_argument('--category', default='', help='Category for this merchant')
    notes_set_parser.add_argument('--notes', default='', help='Notes copied onto its transactions')
    _add_config_args(notes_set_parser)

    notes_delete_parser = notes_sub.add_parser('delete', help='Delete the note for a merchant')
    notes_delete_parser.add_argument('merchant', help='Merchant name (case-insensitive)')
    _add_config_args(notes_delete_parser)

    notes_import_parser = notes_sub.add_parser('import', help='Import notes from CSV or JSON')
    notes_import_parser.add_argument('file', help='Notes file (.csv or .json)')
    _add_config_args(notes_import_parser)

    notes_export_parser = notes_sub.add_parser('export', help='Export notes to CSV or JSON')
    notes_export_parser.add_argument('file', help='Output file (.csv or .json)')
    _add_config_args(notes_export_parser)

    return parser


def main(argv=None):
    """Main entry point for moneyminder CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    # Dispatch to command handler
    if args.command == 'init':
        from .commands import cmd_init
        cmd_init(args)
    elif args.command == 'scan':
        from .commands import cmd_scan
        cmd_scan(args)
    elif args.command == 'test':
        from .commands import cmd_test
        cmd_test(args)
    elif args.command == 'suggest':
        from .commands import cmd_suggest
        cmd_suggest(args)
    elif args.command == 'rules':
        from .commands import cmd_rules
        cmd_rules(args)
    elif args.command == 'notes':
        from .commands import cmd_notes
        cmd_notes(args)


if __name__ == '__main__':
    main()
