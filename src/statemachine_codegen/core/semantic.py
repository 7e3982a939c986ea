"""
Semantic Generator - ParsedMachine to GeneratedMachine IR

Pure transformation: infers context fields, the event catalog with payload
shapes, per-state transition tables, guard/action/actor name sets and the
imports the generated machine module needs. Category drives the defaults.

KEY FUNCTIONS:
- SemanticGenerator.generate(parsed) -> GeneratedMachine
- generate_machine(parsed) -> GeneratedMachine

NAMING:
Identifiers come from core/naming.py so every emitter derives module,
class and event names the same way.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from . import naming
from .ir import (
    ContextField, EventSpec, FieldKind, GeneratedMachine, PayloadField, StateKind,
    StateSpec, TransitionSpec,
)
from .model import Edge, MachineCategory, ParsedMachine, TransitionKind

logger = logging.getLogger(__name__)

UNKNOWN_EVENT = 'UNKNOWN'
TRACE_ACTION = 'log_state_entry'
CLEANUP_ACTION = 'cleanup_session'
EXTERNAL_ACTOR = 'external_service'

CATEGORY_CONTEXT: Dict[MachineCategory, Tuple[ContextField, ...]] = {
    MachineCategory.USER: (
        ContextField('phone_number', FieldKind.TEXT, '""', doc='Caller phone number'),
        ContextField('session_id', FieldKind.TEXT, '""', doc='Session identifier'),
    ),
    MachineCategory.AGENT: (
        ContextField('agent_id', FieldKind.TEXT, '""', doc='Agent identifier'),
        ContextField('agent_verified', FieldKind.BOOL, 'False', doc='Agent credentials verified'),
    ),
    MachineCategory.INFO: (
        ContextField('current_page', FieldKind.NUMBER, '1', doc='Current information page'),
        ContextField('total_pages', FieldKind.NUMBER, '1', doc='Total information pages'),
    ),
    MachineCategory.ACCOUNT: (
        ContextField('account_id', FieldKind.TEXT, '""', doc='Account identifier'),
        ContextField('balance', FieldKind.NUMBER, '0', optional=True, doc='Account balance'),
    ),
    MachineCategory.CORE: (
        ContextField('route', FieldKind.TEXT, '""', doc='Selected route'),
    ),
}

CATEGORY_ENTRY_ACTIONS = {
    MachineCategory.USER: 'validate_user_session',
    MachineCategory.AGENT: 'validate_agent_credentials',
}
BUILTIN_ACTIONS = frozenset({TRACE_ACTION, CLEANUP_ACTION, *CATEGORY_ENTRY_ACTIONS.values()})

CATEGORY_ACTORS = {
    MachineCategory.USER: 'user_service',
    MachineCategory.AGENT: 'agent_service',
}

CATEGORY_DESCRIPTIONS = {
    MachineCategory.INFO: 'information service',
    MachineCategory.USER: 'authenticated user service',
    MachineCategory.AGENT: 'agent service',
    MachineCategory.ACCOUNT: 'account management',
    MachineCategory.CORE: 'core routing',
}

BASE_IMPORTS = (
    'import copy',
    'import logging',
    'from dataclasses import asdict, dataclass, field',
    'from typing import Any, Dict, List, Optional',
)
CATEGORY_IMPORTS = {
    MachineCategory.USER: ('import re',),
}
MACHINE_LIBRARY_IMPORTS = (
    'from transitions.extensions import HierarchicalMachine',
    'from transitions.extensions.nesting import NestedState',
)

PAYLOAD_BY_KIND = {
    TransitionKind.USER_INPUT: (PayloadField('input', FieldKind.TEXT),),
    TransitionKind.ERROR: (PayloadField('error', FieldKind.TEXT),),
    TransitionKind.EXTERNAL: (PayloadField('data', FieldKind.OPAQUE, optional=True),),
}


@dataclass
class GeneratorOptions:
    generate_context: bool = True
    infer_events: bool = True
    generate_guards: bool = True
    generate_actions: bool = True
    generate_actors: bool = True


def _unique(names) -> Tuple[str, ...]:
    seen: List[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


class SemanticGenerator:
    """Builds the GeneratedMachine IR for a ParsedMachine"""

    def __init__(self, options: Optional[GeneratorOptions] = None):
        self.options = options or GeneratorOptions()

    def generate(self, parsed: ParsedMachine) -> GeneratedMachine:
        machine_id = naming.sanitize_machine_id(parsed.id)
        states = self._build_states(parsed)
        machine = GeneratedMachine(
            id=machine_id,
            display_name=parsed.display_name or naming.format_display_name(parsed.id),
            category=parsed.category,
            module_name=naming.module_name(machine_id),
            class_name=naming.class_prefix(machine_id),
            description=self._describe(parsed),
            initial_state=parsed.initial_node_id,
            context_fields=self._build_context(parsed) if self.options.generate_context else (),
            events=self._build_events(parsed) if self.options.infer_events else (),
            states=states,
            guards=self._build_guards(parsed) if self.options.generate_guards else (),
            actions=self._build_actions(parsed, states) if self.options.generate_actions else (),
            actors=self._build_actors(parsed) if self.options.generate_actors else (),
            required_imports=self._build_imports(parsed),
            source_path=parsed.source_path,
        )
        logger.debug(f"Generated IR for {machine.id}: {len(machine.states)} states, "
                     f"{len(machine.events)} events, {len(machine.guards)} guards")
        return machine

    def _describe(self, parsed: ParsedMachine) -> str:
        kind = CATEGORY_DESCRIPTIONS.get(parsed.category, 'state')
        return (f"Auto-generated {kind} machine with {len(parsed.nodes)} states "
                f"and {len(parsed.edges)} transitions.")

    def _build_context(self, parsed: ParsedMachine) -> Tuple[ContextField, ...]:
        context = list(CATEGORY_CONTEXT.get(parsed.category, ()))
        if len(parsed.nodes) > 3:
            context.append(ContextField('current_step', FieldKind.NUMBER, '1',
                                        doc='Current step in a multi-step flow'))
        context.append(ContextField('error', FieldKind.TEXT, 'None', optional=True,
                                    nullable=True, doc='Last error message'))
        if any(edge.kind == TransitionKind.USER_INPUT for edge in parsed.edges):
            context.append(ContextField('user_input', FieldKind.TEXT, '""', optional=True,
                                        doc='Last user input'))
        return tuple(context)

    def _build_events(self, parsed: ParsedMachine) -> Tuple[EventSpec, ...]:
        events: Dict[str, EventSpec] = {}
        for edge in parsed.edges:
            name = naming.normalize_event_name(edge.label)
            if not name or name in events:
                continue
            events[name] = EventSpec(
                name=name,
                payload=PAYLOAD_BY_KIND.get(edge.kind, ()),
                doc=f"{edge.kind.value.replace('_', ' ')} event: {edge.label}",
            )
        return tuple(events.values())

    def _event_for(self, edge: Edge) -> str:
        return naming.normalize_event_name(edge.label) or UNKNOWN_EVENT

    def _build_states(self, parsed: ParsedMachine) -> Tuple[StateSpec, ...]:
        entry = [TRACE_ACTION]
        category_action = CATEGORY_ENTRY_ACTIONS.get(parsed.category)
        if category_action:
            entry.append(category_action)

        guards = set(self._build_guards(parsed))
        states = []
        for node in parsed.nodes:
            transitions = tuple(
                TransitionSpec(
                    event=self._event_for(edge),
                    target=edge.target,
                    guard=self._guard_name(edge.guard) if edge.guard else None,
                    actions=(naming.model_method_name(edge.action, 'action', guards),)
                    if edge.action else (),
                )
                for edge in parsed.outgoing(node.id)
            )
            states.append(StateSpec(
                name=node.id,
                kind=StateKind.FINAL if node.is_final else StateKind.NORMAL,
                entry=tuple(entry),
                exit=(CLEANUP_ACTION,) if node.is_final else (),
                transitions=transitions,
                doc=node.label,
            ))
        return tuple(states)

    def _guard_name(self, guard: str) -> str:
        return naming.model_method_name(guard, 'guard', BUILTIN_ACTIONS)

    def _build_guards(self, parsed: ParsedMachine) -> Tuple[str, ...]:
        guards = []
        for edge in parsed.edges:
            if edge.guard:
                guards.append(self._guard_name(edge.guard))
            if edge.kind == TransitionKind.CONDITIONAL:
                guards.append(f"is_{naming.to_snake_case(edge.source)}_valid")
        return _unique(guards)

    def _build_actions(self, parsed: ParsedMachine,
                       states: Tuple[StateSpec, ...]) -> Tuple[str, ...]:
        actions = []
        for state in states:
            actions.extend(state.entry)
            actions.extend(state.exit)
            for transition in state.transitions:
                actions.extend(transition.actions)
        return _unique(actions)

    def _build_actors(self, parsed: ParsedMachine) -> Tuple[str, ...]:
        actors = []
        if any(edge.kind == TransitionKind.EXTERNAL for edge in parsed.edges):
            actors.append(EXTERNAL_ACTOR)
        category_actor = CATEGORY_ACTORS.get(parsed.category)
        if category_actor:
            actors.append(category_actor)
        return _unique(actors)

    def _build_imports(self, parsed: ParsedMachine) -> Tuple[str, ...]:
        imports = list(BASE_IMPORTS) + list(CATEGORY_IMPORTS.get(parsed.category, ()))
        return tuple(sorted(imports, key=lambda line: (line.startswith('from'), line))) + \
            MACHINE_LIBRARY_IMPORTS


def generate_machine(parsed: ParsedMachine,
                     options: Optional[GeneratorOptions] = None) -> GeneratedMachine:
    return SemanticGenerator(options).generate(parsed)
