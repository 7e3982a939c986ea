"""Machine module emitter."""

from typing import Any, Dict

from ..core.ir import GeneratedMachine
from ..core.model import FileKind
from .base import Emitter, EmitterKind, register_emitter

LIBRARY_PREFIX = 'from transitions'

# Actions with a built-in body; every other action renders as a logging stub
BUILTIN_ACTIONS = (
    'log_state_entry',
    'cleanup_session',
    'validate_user_session',
    'validate_agent_credentials',
)


@register_emitter
class MachineEmitter(Emitter):
    kind = EmitterKind.MACHINE
    file_kind = FileKind.MACHINE
    template_name = 'machine.py.jinja2'
    filename_pattern = '{module}.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        field_names = [f.name for f in machine.context_fields]
        return {
            'stdlib_imports': [i for i in machine.required_imports if not i.startswith(LIBRARY_PREFIX)],
            'library_imports': [i for i in machine.required_imports if i.startswith(LIBRARY_PREFIX)],
            'field_names': field_names,
            'builtin_actions': BUILTIN_ACTIONS,
            'validates_phone': 'validate_user_session' in machine.actions and 'phone_number' in field_names,
        }
