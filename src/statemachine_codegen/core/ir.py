"""
Generated machine IR

Immutable, emitter-agnostic description of one machine built by the semantic
generator. Every emitter reads only these types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .model import MachineCategory


class FieldKind(str, Enum):
    TEXT = 'text'
    NUMBER = 'number'
    BOOL = 'bool'
    OPAQUE = 'opaque'

    @property
    def python_type(self) -> str:
        return {
            FieldKind.TEXT: 'str',
            FieldKind.NUMBER: 'int',
            FieldKind.BOOL: 'bool',
            FieldKind.OPAQUE: 'Any',
        }[self]


class StateKind(str, Enum):
    NORMAL = 'normal'
    FINAL = 'final'
    PARALLEL = 'parallel'
    COMPOUND = 'compound'


@dataclass(frozen=True)
class ContextField:
    name: str
    kind: FieldKind
    default: str  # Python literal, e.g. '""', '0', 'None'
    optional: bool = False
    nullable: bool = False
    doc: str = ''

    @property
    def annotation(self) -> str:
        if self.nullable:
            return f"Optional[{self.kind.python_type}]"
        return self.kind.python_type


@dataclass(frozen=True)
class PayloadField:
    name: str
    kind: FieldKind
    optional: bool = False


@dataclass(frozen=True)
class EventSpec:
    name: str
    payload: Tuple[PayloadField, ...] = ()
    doc: str = ''


@dataclass(frozen=True)
class TransitionSpec:
    event: str
    target: Optional[str] = None
    guard: Optional[str] = None
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StateSpec:
    name: str
    kind: StateKind = StateKind.NORMAL
    entry: Tuple[str, ...] = ()
    exit: Tuple[str, ...] = ()
    transitions: Tuple[TransitionSpec, ...] = ()
    doc: str = ''

    @property
    def is_final(self) -> bool:
        return self.kind == StateKind.FINAL


@dataclass(frozen=True)
class GeneratedMachine:
    """Fully resolved machine, built once per ParsedMachine"""
    id: str
    display_name: str
    category: MachineCategory
    module_name: str
    class_name: str
    description: str
    initial_state: str
    context_fields: Tuple[ContextField, ...] = ()
    events: Tuple[EventSpec, ...] = ()
    states: Tuple[StateSpec, ...] = ()
    guards: Tuple[str, ...] = ()
    actions: Tuple[str, ...] = ()
    actors: Tuple[str, ...] = ()
    required_imports: Tuple[str, ...] = ()
    source_path: Optional[str] = field(default=None, compare=False)

    @property
    def final_states(self) -> Tuple[str, ...]:
        return tuple(state.name for state in self.states if state.is_final)

    @property
    def transition_count(self) -> int:
        return sum(len(state.transitions) for state in self.states)

    def get_state(self, name: str) -> Optional[StateSpec]:
        for state in self.states:
            if state.name == name:
                return state
        return None
