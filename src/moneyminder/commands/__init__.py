"""Subcommand handlers for the moneyminder CLI."""

from .init import cmd_init
from .notes import cmd_notes
from .rules import cmd_rules
from .scan import cmd_scan
from .suggest import cmd_suggest
from .test import cmd_test
