"""
Tests for identifier derivation
"""
import keyword

import pytest

from statemachine_codegen.core import naming


@pytest.mark.parametrize('name,expected', [
    ('ussd-menu', 'ussdmenuMachine'),
    ('Account Creation', 'accountcreationMachine'),
    ('routerMachine', 'routerMachine'),
    ('2fa-flow', '_2faflowMachine'),
    ('', 'Machine'),
])
def test_sanitize_machine_id(name, expected):
    assert naming.sanitize_machine_id(name) == expected


@pytest.mark.parametrize('name', ['ussd-menu', 'Account Creation', '2fa', '', '***', 'x-machine'])
def test_sanitize_machine_id_is_idempotent(name):
    """Sanitizing twice changes nothing"""
    once = naming.sanitize_machine_id(name)
    assert naming.sanitize_machine_id(once) == once


def test_display_name():
    assert naming.format_display_name('account-creation') == 'Account Creation'
    assert naming.format_display_name('ussd_menu flow') == 'Ussd Menu Flow'


@pytest.mark.parametrize('name,expected', [
    ('isAdult', 'is_adult'),
    ('Main Menu', 'main_menu'),
    ('HTTPRequest', 'http_request'),
    ('SELECT_INFO', 'select_info'),
    ('class', 'class_'),
    ('9lives', '_9lives'),
    ('', '_'),
])
def test_to_snake_case(name, expected):
    assert naming.to_snake_case(name) == expected


@pytest.mark.parametrize('name', ['', '!!!', 'import', '123', 'a b c', 'Ünïcode', 'from-to'])
def test_to_snake_case_is_total(name):
    """Any input yields a valid, non-keyword identifier"""
    result = naming.to_snake_case(name)
    assert result.isidentifier()
    assert not keyword.iskeyword(result)


def test_module_and_class_names():
    """Module and class names derive from the sanitized id"""
    machine_id = naming.sanitize_machine_id('ussd-menu')

    assert naming.module_name(machine_id) == 'ussdmenu_machine'
    assert naming.class_prefix(machine_id) == 'UssdmenuMachine'
    assert naming.class_prefix('_2faMachine') == 'M2faMachine'


@pytest.mark.parametrize('label,expected', [
    ('Enter PIN [hasPin]', 'ENTER_PIN'),
    ('SUBMIT guard:hasPin do:recordAttempt', 'SUBMIT'),
    ('select option', 'SELECT_OPTION'),
    ('pay-now!', 'PAY_NOW'),
    ('guard:onlyGuard', ''),
    ('', ''),
])
def test_normalize_event_name(label, expected):
    assert naming.normalize_event_name(label) == expected


@pytest.mark.parametrize('name,expected', [
    ('hasPin', 'has_pin'),
    ('dispatch', 'guard_dispatch'),
    ('snapshot', 'guard_snapshot'),
    ('state', 'guard_state'),
    ('1st', 'guard_1st'),
])
def test_model_method_name(name, expected):
    assert naming.model_method_name(name, 'guard') == expected


def test_model_method_name_taken():
    assert naming.model_method_name('logStateEntry', 'guard', {'log_state_entry'}) == 'guard_log_state_entry'
