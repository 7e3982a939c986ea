"""
Identifier derivation shared by the semantic generator and every emitter

All functions are total: any input string yields a usable identifier.
"""

import keyword
import re

MACHINE_SUFFIX = 'Machine'

# Attributes of the generated model class, including those added by transitions
MODEL_ATTRIBUTES = frozenset({
    'available_events', 'context', 'dispatch', 'finished', 'history', 'machine',
    'may_trigger', 'services', 'snapshot', 'state', 'trigger',
})

# Embedded guard/action references inside edge labels, in priority order
GUARD_PATTERNS = [
    re.compile(r'guard:\s*(\w+)', re.IGNORECASE),
    re.compile(r'\[([^\]]+)\]'),
    re.compile(r'\bwhen\s+(\w+)', re.IGNORECASE),
]
ACTION_PATTERNS = [
    re.compile(r'action:\s*(\w+)', re.IGNORECASE),
    re.compile(r'\bdo:\s*(\w+)', re.IGNORECASE),
    re.compile(r'execute:\s*(\w+)', re.IGNORECASE),
]


def sanitize_machine_id(name: str) -> str:
    """Turn an arbitrary machine name into an identifier ending in 'Machine'.

    Idempotent: sanitize_machine_id(sanitize_machine_id(x)) == sanitize_machine_id(x).
    """
    stem = re.sub(r'[^A-Za-z0-9]', '', name or '').lower()
    if stem.endswith(MACHINE_SUFFIX.lower()):
        stem = stem[:-len(MACHINE_SUFFIX)]
    if stem[:1].isdigit():
        stem = f"_{stem}"
    return f"{stem}{MACHINE_SUFFIX}"


def format_display_name(name: str) -> str:
    """'account-creation' -> 'Account Creation'"""
    words = [w for w in re.split(r'[-_\s]+', name or '') if w]
    return ' '.join(w[:1].upper() + w[1:].lower() for w in words)


def to_snake_case(name: str) -> str:
    """'isAdult' -> 'is_adult', 'Main Menu' -> 'main_menu'"""
    text = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name or '')
    text = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', text)
    text = re.sub(r'[^A-Za-z0-9]+', '_', text).strip('_').lower()
    if not text:
        return '_'
    if text[0].isdigit():
        text = f"_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def model_method_name(name: str, prefix: str, taken=frozenset()) -> str:
    """Snake-case method name that leaves the model API intact.

    'dispatch' -> 'guard_dispatch' for prefix 'guard'. Names listed in
    ``taken`` get the prefix as well.
    """
    method = to_snake_case(name)
    if method in MODEL_ATTRIBUTES or method in taken or method.startswith('_'):
        method = f"{prefix}_{method.strip('_')}"
    return method


def module_name(machine_id: str) -> str:
    """Module stem for a sanitized machine id ('accountcreationMachine' -> 'accountcreation_machine')."""
    return to_snake_case(machine_id)


def class_prefix(machine_id: str) -> str:
    """PascalCase prefix for generated classes ('accountcreationMachine' -> 'AccountcreationMachine')."""
    stripped = machine_id.lstrip('_')
    if not stripped or stripped[0].isdigit():
        return f"M{stripped}"
    return stripped[0].upper() + stripped[1:]


def strip_label_references(label: str) -> str:
    """Remove guard/action references, leaving the event text of an edge label."""
    text = label or ''
    for pattern in GUARD_PATTERNS + ACTION_PATTERNS:
        text = pattern.sub(' ', text)
    return text


def normalize_event_name(label: str) -> str:
    """'Enter PIN [hasPin]' -> 'ENTER_PIN'; returns '' when nothing is left."""
    text = strip_label_references(label).upper()
    text = re.sub(r'[^A-Z0-9]', '_', text)
    text = re.sub(r'_+', '_', text)
    return text.strip('_')
