"""Session service wrapper emitter."""

from typing import Any, Dict

from ..core.ir import GeneratedMachine
from ..core.model import FileKind
from .base import Emitter, EmitterKind, register_emitter

MAX_INPUT_LENGTH = 1000


@register_emitter
class ServiceEmitter(Emitter):
    kind = EmitterKind.SERVICE
    file_kind = FileKind.SERVICE
    template_name = 'service.py.jinja2'
    filename_pattern = '{module}_service.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        return {
            'max_input_length': self.options.get('max_input_length', MAX_INPUT_LENGTH),
            'service_class': f"{machine.class_name}Service",
        }
