"""
Test suite emitters - smoke, transition coverage and boundary suites

Each emitter renders a pytest module that imports the generated machine
module by its module name, so the suite runs from the machine's directory.

The transition emitter enumerates the state transition table; the boundary
emitter applies BOUNDARY_CASES to every event and context field regardless of
the machine.
"""

from collections import deque
from typing import Any, Dict, List

from ..core import naming
from ..core.ir import GeneratedMachine
from ..core.model import FileKind
from .base import Emitter, EmitterKind, register_emitter, sample_payload

# (test id, Python expression) pairs rendered verbatim into the boundary suite
BOUNDARY_CASES = [
    ('none', 'None'),
    ('empty_string', "''"),
    ('whitespace', "'   '"),
    ('oversized_string', "'x' * 10000"),
    ('max_length_string', "'y' * 1000"),
    ('zero', '0'),
    ('negative', '-1'),
    ('max_int', 'sys.maxsize'),
    ('min_int', '-sys.maxsize - 1'),
    ('infinity', "float('inf')"),
    ('nan', "float('nan')"),
    ('boolean', 'True'),
    ('markup', "'<script>alert(1)</script>'"),
    ('sql_injection', "\"'; DROP TABLE sessions; --\""),
    ('control_characters', "'\\x00\\x1b[31m\\r\\n'"),
    ('unicode', "'\\u00fcn\\u00efc\\u00f6d\\u00e9 \\U0001f389'"),
    ('nested_mapping', "{'nested': {'deep': [1, 2, 3]}}"),
    ('empty_list', '[]'),
]


def _context_assertion(default: str) -> str:
    return 'is None' if default == 'None' else f"== {default}"


@register_emitter
class SmokeTestEmitter(Emitter):
    """Basic creation and catalog checks; 'comprehensive' style adds dispatch checks."""

    kind = EmitterKind.SMOKE_TESTS
    file_kind = FileKind.TEST
    template_name = 'smoke_tests.py.jinja2'
    filename_pattern = 'test_{module}.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        initial = machine.get_state(machine.initial_state)
        initial_events = sorted({t.event for t in initial.transitions}) if initial else []
        return {
            'comprehensive': self.options.get('test_style', 'comprehensive') == 'comprehensive',
            'context_checks': [(f.name, _context_assertion(f.default)) for f in machine.context_fields],
            'initial_events': initial_events,
            'event_names': [event.name for event in machine.events],
        }


@register_emitter
class TransitionTestEmitter(Emitter):
    kind = EmitterKind.TRANSITION_TESTS
    file_kind = FileKind.TEST
    template_name = 'transition_tests.py.jinja2'
    filename_pattern = 'test_{module}_transitions.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        return {
            'scenarios': self.scenarios(machine),
            'terminal_states': [s.name for s in machine.states if not s.transitions],
            'unreachable': self.unreachable_states(machine),
        }

    def unreachable_states(self, machine: GeneratedMachine) -> List[str]:
        seen = {machine.initial_state}
        queue = deque([machine.initial_state])
        while queue:
            state = machine.get_state(queue.popleft())
            for transition in state.transitions if state else ():
                if transition.target not in seen:
                    seen.add(transition.target)
                    queue.append(transition.target)
        return [s.name for s in machine.states if s.name not in seen]

    def scenarios(self, machine: GeneratedMachine) -> List[Dict[str, Any]]:
        """One scenario per transition table entry, in table order."""
        scenarios = []
        seen = set()
        for state in machine.states:
            for transition in state.transitions:
                key = (state.name, transition.event)
                targets = []
                for candidate in state.transitions:
                    if candidate.event == transition.event and candidate.target not in targets:
                        targets.append(candidate.target)
                scenarios.append({
                    'name': (f"test_{len(scenarios) + 1:03d}_{naming.to_snake_case(state.name)}"
                             f"_{naming.to_snake_case(transition.event)}").replace('__', '_'),
                    'source': state.name,
                    'event': transition.event,
                    'target': transition.target,
                    'targets': tuple(targets),
                    'guard': transition.guard,
                    'payload': sample_payload(machine, transition.event),
                    'first': key not in seen,
                    'final': transition.target in machine.final_states,
                })
                seen.add(key)
        return scenarios


@register_emitter
class ErrorTestEmitter(Emitter):
    kind = EmitterKind.ERROR_TESTS
    file_kind = FileKind.TEST
    template_name = 'error_tests.py.jinja2'
    filename_pattern = 'test_{module}_errors.py'

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        return {
            'boundary_cases': BOUNDARY_CASES,
            'event_cases': self.event_cases(machine),
            'context_field_names': [f.name for f in machine.context_fields],
            'terminal_states': [s.name for s in machine.states if not s.transitions],
            'event_names': [event.name for event in machine.events],
        }

    def event_cases(self, machine: GeneratedMachine) -> List[Dict[str, Any]]:
        """(event, first source state, payload field) combinations to probe."""
        cases = []
        for event in machine.events:
            source = next((s.name for s in machine.states
                           if any(t.event == event.name for t in s.transitions)), None)
            if source is None:
                continue
            for name in [f.name for f in event.payload] or ['payload']:
                cases.append({'event': event.name, 'source': source, 'field': name})
        return cases
