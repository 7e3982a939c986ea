"""
Business-Rule Validator

Checks assembled machines for structural and domain invariants after
converting them to a validator-facing shape.

Checks:
1. Metadata: id, name and an allowed category are present
2. Structure: at least one state, state/transition soft ceilings, valid initial state
3. States: no duplicates, final states have no transitions, no dead ends
4. Transitions: every target resolves
5. Reachability: BFS from the initial state, every unreachable state is named
6. Category heuristics: auth/menu states for user machines, routing for core, ...
7. Naming: PascalCase states, UPPER_SNAKE_CASE events
8. Batch: duplicate machine names, missing user or core machines

Structural violations are errors; everything advisory is a warning.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import ValidationConfig
from ..core import naming
from ..core.model import ParsedMachine
from .diagram import EVENT_NAME_RE, STATE_NAME_RE
from .results import ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_EVENT = 'NEXT'
MAX_FINAL_STATES = 5
MAX_INFO_STATES = 10

# category -> (keywords any state name should contain, warning, suggestion)
CATEGORY_STATE_RULES = {
    'user': [
        (('auth', 'login', 'session'),
         "User machine has no authentication or session state",
         "Add a state such as 'Login' or 'SessionCheck'"),
        (('menu', 'main'),
         "User machine has no menu or main navigation state",
         "Add a state such as 'MainMenu'"),
    ],
    'agent': [
        (('permission', 'authorize'),
         "Agent machine has no permission check state",
         "Add a state such as 'CheckPermission'"),
    ],
    'account': [
        (('balance', 'account', 'validate'),
         "Account machine has no balance or account validation state",
         "Add a state such as 'ValidateAccount'"),
    ],
    'core': [
        (('route', 'dispatch', 'select'),
         "Core machine has no routing or dispatch state",
         "Add a state such as 'RouteRequest'"),
    ],
}


@dataclass
class ValidationTransition:
    event: str
    target: Optional[str]


@dataclass
class ValidationState:
    name: str
    is_final: bool = False
    transitions: List[ValidationTransition] = field(default_factory=list)
    description: str = ''


@dataclass
class ValidationMachineSpec:
    id: str
    name: str
    category: str
    initial_state: str
    states: List[ValidationState] = field(default_factory=list)
    source: str = ''


def to_validation_spec(parsed: ParsedMachine) -> ValidationMachineSpec:
    """Convert an assembled machine into the shape the rules are written against."""
    states = []
    for node in parsed.nodes:
        transitions = [
            ValidationTransition(naming.normalize_event_name(edge.label) or DEFAULT_EVENT, edge.target)
            for edge in parsed.outgoing(node.id)
        ]
        states.append(ValidationState(node.id, node.is_final, transitions, node.label))
    return ValidationMachineSpec(
        id=parsed.id,
        name=parsed.display_name,
        category=parsed.category.value,
        initial_state=parsed.initial_node_id,
        states=states,
        source=parsed.source_path or '',
    )


class BusinessRuleValidator:
    """Validates machine definitions against structural and domain rules"""

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def validate_parsed(self, machines: Sequence[ParsedMachine], source: str = '') -> ValidationResult:
        return self.validate([to_validation_spec(m) for m in machines], source=source)

    def validate(self, specs: Sequence[ValidationMachineSpec], source: str = '') -> ValidationResult:
        result = ValidationResult(source=source)
        if not specs:
            result.add_warning("No machines to validate", category='no_machines')
            return result

        for spec in specs:
            self.validate_machine(spec, result)
        self._check_batch(specs, result)
        logger.debug(f"Business rules for {len(specs)} machine(s): {len(result.errors)} error(s), "
                     f"{len(result.warnings)} warning(s)")
        return result

    def validate_machine(self, spec: ValidationMachineSpec,
                         result: Optional[ValidationResult] = None) -> ValidationResult:
        if result is None:
            result = ValidationResult(source=spec.source or spec.id)
        self._check_metadata(spec, result)
        if not spec.states:
            result.add_error(f"Machine '{spec.id}' has no states",
                             suggestion="Add at least one state", category='no_states')
            return result
        self._check_structure(spec, result)
        self._check_states(spec, result)
        self._check_transitions(spec, result)
        self._check_reachability(spec, result)
        self._check_category_rules(spec, result)
        self._check_naming(spec, result)
        return result

    def _check_metadata(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        if not spec.id or not spec.id.strip():
            result.add_error("Missing machine ID", category='missing_metadata')
        if not spec.name or not spec.name.strip():
            result.add_error(f"Machine '{spec.id}' has no name", category='missing_metadata')
        if not spec.category:
            result.add_error(f"Machine '{spec.id}' has no category", category='missing_metadata')
        elif spec.category not in self.config.allowed_categories:
            result.add_error(
                f"Category '{spec.category}' of machine '{spec.id}' is not allowed",
                suggestion=f"Valid categories: {', '.join(self.config.allowed_categories)}",
                category='invalid_category',
            )

    def _check_structure(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        limit = self.config.max_states_per_machine
        if len(spec.states) > limit:
            result.add_warning(
                f"Machine '{spec.id}' has {len(spec.states)} states (recommended limit {limit})",
                suggestion="Split the flow into several machines",
                category='too_many_states',
            )
        names = {state.name for state in spec.states}
        if not spec.initial_state:
            result.add_error(f"Machine '{spec.id}' has no initial state",
                             category='missing_initial_state')
        elif spec.initial_state not in names:
            result.add_error(f"Initial state '{spec.initial_state}' is not defined in '{spec.id}'",
                             suggestion=f"Add '{spec.initial_state}' or change the initial state",
                             category='invalid_initial_state')

    def _check_states(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        seen = set()
        final_count = 0
        for state in spec.states:
            if state.name in seen:
                result.add_error(f"State '{state.name}' is defined multiple times in '{spec.id}'",
                                 category='duplicate_state')
            seen.add(state.name)

            if len(state.transitions) > self.config.max_transitions_per_state:
                result.add_warning(
                    f"State '{state.name}' has {len(state.transitions)} transitions "
                    f"(recommended limit {self.config.max_transitions_per_state})",
                    category='too_many_transitions',
                )
            if state.is_final:
                final_count += 1
                if state.transitions:
                    result.add_error(
                        f"Final state '{state.name}' should not have outgoing transitions",
                        suggestion=f"Remove the transitions or make '{state.name}' non-final",
                        category='final_state_transitions',
                    )
            elif not state.transitions:
                result.add_warning(
                    f"State '{state.name}' has no outgoing transitions and is not marked as final",
                    suggestion=f"Add a transition from '{state.name}' or mark it final (circle shape)",
                    category='dead_end_state',
                )

        if spec.category == 'user' and final_count == 0:
            result.add_warning(f"User machine '{spec.id}' has no final state",
                               suggestion="Add a final state for session completion",
                               category='no_final_state')
        if final_count > MAX_FINAL_STATES:
            result.add_warning(f"Machine '{spec.id}' has {final_count} final states",
                               suggestion="Many final states may indicate complex termination logic",
                               category='many_final_states')

    def _check_transitions(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        names = {state.name for state in spec.states}
        for state in spec.states:
            for transition in state.transitions:
                if transition.target and transition.target not in names:
                    result.add_error(
                        f"Transition from '{state.name}' targets non-existent state '{transition.target}'",
                        category='invalid_transition_target',
                    )

    def _check_reachability(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        names = [state.name for state in spec.states]
        if spec.initial_state not in names:
            return

        graph: Dict[str, set] = defaultdict(set)
        for state in spec.states:
            for transition in state.transitions:
                if transition.target:
                    graph[state.name].add(transition.target)

        reachable = {spec.initial_state}
        queue = deque([spec.initial_state])
        while queue:
            current = queue.popleft()
            for next_state in graph[current]:
                if next_state not in reachable:
                    reachable.add(next_state)
                    queue.append(next_state)

        for name in names:
            if name not in reachable:
                result.add_warning(
                    f"State '{name}' cannot be reached from initial state '{spec.initial_state}'",
                    suggestion=f"Add a transition path from '{spec.initial_state}' to '{name}'",
                    category='unreachable_state',
                )

    def _check_category_rules(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        lowered = [state.name.lower() for state in spec.states]
        for keywords, message, suggestion in CATEGORY_STATE_RULES.get(spec.category, []):
            if not any(keyword in name for name in lowered for keyword in keywords):
                result.add_warning(f"{message} ('{spec.id}')", suggestion=suggestion,
                                   category='category_rule')

        if spec.category == 'info' and len(spec.states) > MAX_INFO_STATES:
            result.add_warning(f"Information machine '{spec.id}' has {len(spec.states)} states",
                               suggestion="Information machines should stay small",
                               category='category_rule')

        if spec.category == 'user':
            self._check_user_states(spec, result)

    def _check_user_states(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        for state in spec.states:
            if 'input' in state.name.lower():
                handles_errors = any(
                    'error' in t.event.lower() or (t.target and 'error' in t.target.lower())
                    for t in state.transitions
                )
                if not handles_errors:
                    result.add_warning(f"Input state '{state.name}' has no error handling transition",
                                       category='missing_error_handling')
            if (self.config.check_navigation and not state.is_final
                    and state.name != spec.initial_state):
                has_back = any(
                    'back' in t.event.lower() or 'cancel' in t.event.lower()
                    for t in state.transitions
                )
                if not has_back:
                    result.add_warning(f"User state '{state.name}' has no back/cancel navigation",
                                       category='missing_navigation')

    def _check_naming(self, spec: ValidationMachineSpec, result: ValidationResult) -> None:
        if not self.config.validate_naming:
            return
        for state in spec.states:
            if not STATE_NAME_RE.match(state.name):
                result.add_warning(f"State name '{state.name}' should follow PascalCase convention",
                                   category='naming')
            for transition in state.transitions:
                if not EVENT_NAME_RE.match(transition.event):
                    result.add_warning(
                        f"Event '{transition.event}' should follow UPPER_SNAKE_CASE convention",
                        category='naming')

    def _check_batch(self, specs: Sequence[ValidationMachineSpec], result: ValidationResult) -> None:
        names = set()
        for spec in specs:
            if spec.name in names:
                result.add_error(f"Machine name '{spec.name}' is used by multiple machines",
                                 category='duplicate_machine')
            names.add(spec.name)

        categories = {spec.category for spec in specs}
        if 'user' not in categories:
            result.add_warning("No user-facing machine in this batch",
                               category='missing_user_machine')
        if 'core' not in categories:
            result.add_warning("No core routing machine in this batch",
                               category='missing_core_machine')
