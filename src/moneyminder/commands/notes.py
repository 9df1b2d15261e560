"""
moneyminder 'notes' command - Manage per-merchant categories and notes.
"""

import os
import sys

from ..cli import C, load_workspace
from ..enricher import MerchantNote
from ..notes_io import export_notes_csv, export_notes_json, import_notes


def cmd_notes(args):
    """Handle the 'notes' subcommand."""
    _, store = load_workspace(args)
    action = args.notes_command

    if action == 'list':
        notes = store.list_merchant_notes()
        if not notes:
            print("No merchant notes. Run 'moneyminder notes set <merchant> --category <name>'.")
            return
        print(f"{C.BOLD}{len(notes)} merchant notes{C.RESET}")
        for note in notes:
            notes_text = f"  {C.DIM}{note.notes}{C.RESET}" if note.notes else ''
            print(f"  {C.BOLD}{note.merchant_name:<30}{C.RESET} {note.category or '-':<14}{notes_text}")

    elif action == 'set':
        existing = store.get_merchant_note(args.merchant)
        note = MerchantNote(
            merchant_name=existing.merchant_name if existing else args.merchant.strip(),
            category=args.category,
            notes=args.notes,
        )
        if not note.merchant_name:
            print("Error: Merchant name must not be empty", file=sys.stderr)
            sys.exit(1)
        store.save_merchant_note(note)
        verb = 'Updated' if existing else 'Added'
        print(f"{C.GREEN}✓{C.RESET} {verb}: {note.merchant_name}")

    elif action == 'delete':
        note = store.get_merchant_note(args.merchant)
        if note is None:
            print(f"Error: No merchant note for '{args.merchant}'", file=sys.stderr)
            sys.exit(1)
        store.delete_merchant_note(note.id)
        print(f"{C.GREEN}✓{C.RESET} Deleted: {note.merchant_name}")

    elif action == 'import':
        try:
            report = import_notes(args.file)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        for note in report.notes:
            store.save_merchant_note(note)
        print(f"{C.GREEN}✓{C.RESET} {report.summary()}")
        for error in report.errors:
            print(f"  {C.YELLOW}skipped:{C.RESET} {error}", file=sys.stderr)

    elif action == 'export':
        notes = store.list_merchant_notes()
        if not notes:
            print("Error: There are no merchant notes to export", file=sys.stderr)
            sys.exit(1)
        if os.path.splitext(args.file)[1].lower() == '.json':
            export_notes_json(notes, args.file)
        else:
            export_notes_csv(notes, args.file)
        print(f"{C.GREEN}✓{C.RESET} Exported {len(notes)} merchant notes to {args.file}")
