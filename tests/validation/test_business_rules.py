"""
Tests for BusinessRuleValidator

Structural rules (errors) and advisory category/navigation rules (warnings)
on single machines and on batches.
"""
import pytest

from statemachine_codegen.config import ValidationConfig
from statemachine_codegen.core.parser import DiagramParser
from statemachine_codegen.validation.business import (
    BusinessRuleValidator, ValidationMachineSpec, ValidationState, ValidationTransition,
    to_validation_spec,
)


@pytest.fixture
def validator():
    return BusinessRuleValidator()


def parse(text, name='flow'):
    return DiagramParser().parse_text(text, machine_name=name).machines


def categories(issues):
    return [issue.category for issue in issues]


def test_sample_machine_has_no_errors(validator, sample_diagram):
    """The sample menu passes structural rules; advisory warnings remain"""
    result = validator.validate_parsed(parse(sample_diagram, 'ussd-menu'))

    assert result.is_valid
    warnings = categories(result.warnings)
    assert warnings.count('missing_navigation') == 3
    assert 'missing_core_machine' in warnings
    assert 'missing_user_machine' not in warnings
    assert 'unreachable_state' not in warnings


def test_final_state_with_transitions_is_one_error(validator):
    """A final state with an outgoing edge is reported exactly once"""
    machines = parse("flowchart TD\nStart --> Done((Done))\nDone -->|RESTART| Start")

    result = validator.validate_parsed(machines)

    assert categories(result.errors) == ['final_state_transitions']
    assert 'Done' in result.errors[0].message


def test_dead_end_warning(validator):
    """A non-final state without outgoing edges is a warning"""
    result = validator.validate_parsed(parse("flowchart LR\nStart-->Process\nProcess-->|DONE|End"))

    assert result.is_valid
    dead_ends = [w for w in result.warnings if w.category == 'dead_end_state']
    assert [w.message for w in dead_ends] == [
        "State 'End' has no outgoing transitions and is not marked as final",
    ]


def test_unreachable_state_warning(validator):
    """BFS from the initial state names every unreachable state"""
    result = validator.validate_parsed(parse("flowchart TD\nStart --> A\nOrphan --> A"))

    unreachable = [w.message for w in result.warnings if w.category == 'unreachable_state']
    assert unreachable == ["State 'Orphan' cannot be reached from initial state 'Start'"]


def test_empty_labels_use_default_event():
    """Unlabeled edges validate as NEXT"""
    [machine] = parse("flowchart TD\nA --> B")

    spec = to_validation_spec(machine)

    assert spec.states[0].transitions[0].event == 'NEXT'
    assert spec.category == 'user'


def test_invalid_category():
    """Categories outside the allowed list are errors"""
    validator = BusinessRuleValidator(ValidationConfig(allowed_categories=['core']))

    result = validator.validate_parsed(parse("flowchart TD\nA --> B"))

    assert 'invalid_category' in categories(result.errors)


def test_state_limits():
    """Soft ceilings on states and transitions per state"""
    config = ValidationConfig(max_states_per_machine=2, max_transitions_per_state=1)
    result = BusinessRuleValidator(config).validate_parsed(
        parse("flowchart TD\nA --> B\nA --> C\nB --> C")
    )

    warnings = categories(result.warnings)
    assert 'too_many_states' in warnings
    assert 'too_many_transitions' in warnings


def test_invalid_initial_and_target(validator):
    """Specs built by hand can reference states that do not exist"""
    spec = ValidationMachineSpec(
        id='broken',
        name='Broken',
        category='core',
        initial_state='Missing',
        states=[ValidationState('Route', transitions=[ValidationTransition('GO', 'Nowhere')])],
    )

    result = validator.validate_machine(spec)

    assert categories(result.errors) == ['invalid_initial_state', 'invalid_transition_target']
    assert result.source == 'broken'


def test_machine_without_states(validator):
    spec = ValidationMachineSpec(id='empty', name='Empty', category='info', initial_state='')

    result = validator.validate_machine(spec)

    assert categories(result.errors) == ['no_states']


def test_user_input_state_needs_error_handling(validator):
    result = validator.validate_parsed(parse(
        "flowchart TD\nStart --> EnterInput\nEnterInput -->|SUBMIT| Bye((Bye))"
    ))

    assert 'missing_error_handling' in categories(result.warnings)


def test_navigation_check_can_be_disabled(sample_diagram):
    validator = BusinessRuleValidator(ValidationConfig(check_navigation=False))

    result = validator.validate_parsed(parse(sample_diagram))

    assert 'missing_navigation' not in categories(result.warnings)


def test_naming_rule(validator):
    result = validator.validate_parsed(parse("flowchart TD\nstart_here --> Next"))

    assert "State name 'start_here' should follow PascalCase convention" in [
        w.message for w in result.warnings
    ]


def test_batch_rules(validator, sample_diagram):
    """Duplicate machine names are errors; a user+core batch has no category warnings"""
    core = parse("flowchart TD\nIdle --> RouteRequest\nclass Idle,RouteRequest core-machine",
                 'router')
    user = parse(sample_diagram, 'ussd-menu')
    duplicate = parse(sample_diagram, 'ussd-menu')

    mixed = validator.validate_parsed(user + core)
    duplicated = validator.validate_parsed(user + duplicate)

    assert 'missing_core_machine' not in categories(mixed.warnings)
    assert 'missing_user_machine' not in categories(mixed.warnings)
    assert categories(duplicated.errors) == ['duplicate_machine']


def test_no_machines(validator):
    result = validator.validate([])

    assert result.is_valid
    assert categories(result.warnings) == ['no_machines']
