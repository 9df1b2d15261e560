"""Version information for moneyminder."""

VERSION = '0.4.0'
