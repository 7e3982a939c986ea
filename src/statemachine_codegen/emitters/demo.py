"""Interactive demo script emitter."""

from typing import Any, Dict

from ..core.ir import GeneratedMachine
from ..core.model import FileKind
from .base import Emitter, EmitterKind, register_emitter


@register_emitter
class DemoEmitter(Emitter):
    kind = EmitterKind.DEMO
    file_kind = FileKind.DEMO
    template_name = 'demo.py.jinja2'
    filename_pattern = '{module}_demo.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        # help screen lines: 'ENTER_PIN input=<text>'
        usage = []
        for event in machine.events:
            args = ' '.join(f"{f.name}=<{f.kind.value}>" for f in event.payload)
            usage.append(f"{event.name} {args}".strip())
        return {'usage': usage}
