"""
Configuration loader for moneyminder.

Loads settings from a YAML config file and resolves defaults.
"""

import os

import yaml

DEFAULTS = {
    'currency': 'INR',
    'default_category': 'other',
    'merchant_pick': 'last',
    'rules_db': 'rules.db',
    'seed_default_rules': True,
    'duplicate_window_seconds': 60,
    'messages_file': None,
}

MERCHANT_PICK_POLICIES = ('last', 'first')


def load_settings(config_dir, settings_file='settings.yaml'):
    """Load main settings from settings.yaml (or specified file)."""
    settings_path = os.path.join(config_dir, settings_file)

    if not os.path.exists(settings_path):
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with open(settings_path, 'r', encoding='utf-8') as f:
        settings = yaml.safe_load(f)

    # An empty file loads as None
    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise ValueError(f"{settings_path}: expected a mapping of settings, got {type(settings).__name__}")
    return settings


def _warn(warnings, message, suggestion):
    warnings.append({
        'type': 'warning',
        'source': 'settings.yaml',
        'message': message,
        'suggestion': suggestion,
    })


def load_config(config_dir, settings_file='settings.yaml'):
    """Load configuration and resolve defaults.

    Args:
        config_dir: Path to config directory containing settings.yaml.
        settings_file: Name of the settings file to load (default: settings.yaml)

    Returns:
        dict with all configuration values. Problems that were worked around
        are listed in config['_warnings'] for the CLI to display.
    """
    config_dir = os.path.abspath(config_dir)

    if not os.path.isdir(config_dir):
        raise FileNotFoundError(f"Config directory not found: {config_dir}")

    config = load_settings(config_dir, settings_file)
    warnings = []

    for key, value in DEFAULTS.items():
        config.setdefault(key, value)

    currency = config['currency']
    if not isinstance(currency, str) or not currency.strip():
        _warn(warnings, f"Invalid currency: {currency!r}. Using 'INR'.", "Use an ISO code such as INR or USD.")
        currency = DEFAULTS['currency']
    config['currency'] = currency.strip().upper()

    category = config['default_category']
    if not isinstance(category, str) or not category.strip():
        _warn(warnings, f"Invalid default_category: {category!r}. Using 'other'.", "Use a category name.")
        category = DEFAULTS['default_category']
    config['default_category'] = category.strip()

    pick = config['merchant_pick']
    if pick not in MERCHANT_PICK_POLICIES:
        _warn(
            warnings,
            f"Invalid merchant_pick: '{pick}'. Using 'last'.",
            "Use 'last' or 'first'.",
        )
        config['merchant_pick'] = DEFAULTS['merchant_pick']

    window = config['duplicate_window_seconds']
    if isinstance(window, bool) or not isinstance(window, (int, float)) or window < 0:
        _warn(
            warnings,
            f"Invalid duplicate_window_seconds: {window!r}. Using 60.",
            "Use a number of seconds (0 disables time-based duplicate detection).",
        )
        window = DEFAULTS['duplicate_window_seconds']
    config['duplicate_window_seconds'] = window

    if not isinstance(config['seed_default_rules'], bool):
        _warn(
            warnings,
            f"Invalid seed_default_rules: {config['seed_default_rules']!r}. Using true.",
            "Use true or false.",
        )
        config['seed_default_rules'] = True

    # Paths are relative to the config directory
    config['_rules_db'] = os.path.join(config_dir, str(config['rules_db']))
    messages_file = config.get('messages_file')
    if messages_file:
        messages_path = os.path.join(config_dir, str(messages_file))
        if os.path.exists(messages_path):
            config['_messages_file'] = messages_path
        else:
            _warn(
                warnings,
                f"Messages file not found: {messages_file}",
                f"Create {messages_file} or remove messages_file from settings.yaml",
            )
            config['_messages_file'] = None
    else:
        config['_messages_file'] = None

    config['_config_dir'] = config_dir
    config['_warnings'] = warnings
    return config
