"""
Runtime tests for generated code

Generates the sample menu machine into a temporary directory, runs the
generated pytest suites in a subprocess and drives the generated service
and demo modules in-process.
"""
import importlib
import subprocess
import sys

import pytest

from statemachine_codegen.config import GeneratorConfig
from statemachine_codegen.core.compiler import CodeGenerator

MODULES = ('ussdmenu_machine', 'ussdmenu_machine_service', 'ussdmenu_machine_demo')


@pytest.fixture
def generated(tmp_path, sample_markdown, monkeypatch):
    """Directory holding the generated user-services files, importable by module name"""
    pytest.importorskip('transitions')
    source = tmp_path / 'ussd-menu.md'
    source.write_text(sample_markdown)
    config = GeneratorConfig(sources=[str(source)], output_dir=str(tmp_path / 'generated'))

    result = CodeGenerator(config).generate()
    assert result.success, [str(e) for e in result.errors]

    directory = tmp_path / 'generated' / 'user-services'
    monkeypatch.syspath_prepend(str(directory))
    for name in MODULES:
        monkeypatch.delitem(sys.modules, name, raising=False)
    yield directory
    for name in MODULES:
        sys.modules.pop(name, None)


@pytest.fixture
def machine_module(generated):
    return importlib.import_module('ussdmenu_machine')


@pytest.fixture
def service(generated):
    module = importlib.import_module('ussdmenu_machine_service')
    return module, module.UssdmenuMachineService()


@pytest.fixture
def demo(generated):
    return importlib.import_module('ussdmenu_machine_demo')


def test_generated_suites_pass(generated):
    """The smoke, transition and boundary suites pass against the generated machine"""
    names = sorted(p.name for p in generated.glob('test_*.py'))
    assert names == [
        'test_ussdmenu_machine.py',
        'test_ussdmenu_machine_errors.py',
        'test_ussdmenu_machine_transitions.py',
    ]

    completed = subprocess.run(
        [sys.executable, '-m', 'pytest', '-q', '-p', 'no:cacheprovider', str(generated)],
        cwd=str(generated),
        capture_output=True,
        text=True,
        timeout=600,
    )

    assert completed.returncode == 0, completed.stdout[-4000:] + completed.stderr[-2000:]


def test_machine_walkthrough(machine_module):
    """Dispatch follows the diagram and records context"""
    model = machine_module.create_machine()

    assert model.dispatch('DIAL') is True
    assert model.dispatch('SELECT_LOGIN', input='1') is True
    assert model.dispatch('SUBMIT') is True
    assert model.state == 'Account'
    assert model.context.user_input == '1'
    assert model.context.current_step == 4
    assert model.history == ['MainMenu', 'Login', 'Account']

    assert model.dispatch('DONE') is True
    assert model.finished
    assert model.available_events() == []


def test_machine_rejects_events_from_wrong_state(machine_module):
    model = machine_module.create_machine()

    assert model.dispatch('DONE') is False
    assert model.dispatch('NOT_AN_EVENT') is False
    assert model.state == 'Start'


def test_guard_subclass_blocks_transition(machine_module):
    """Overriding a guard on a model subclass changes behaviour"""
    class NoPin(machine_module.UssdmenuMachineModel):
        def has_pin(self, event):
            return False

    model = machine_module.create_machine(model=NoPin())
    model.machine.set_state('Login')

    assert model.dispatch('SUBMIT') is False
    assert model.state == 'Login'


def test_invalid_phone_number_flagged(machine_module):
    context = machine_module.UssdmenuMachineContext(phone_number='not-a-phone')
    model = machine_module.create_machine(context=context)

    model.dispatch('DIAL')

    assert model.context.error == 'Invalid phone number'


def test_service_session_flow(service):
    """A full session through the service wrapper"""
    module, svc = service
    started = svc.start_session(phone_number='+255700000000')

    assert started.success
    session_id = started.session_id
    assert started.state == 'Start'
    assert svc.active_sessions() == [session_id]

    for event, payload, state in [
        ('DIAL', {}, 'MainMenu'),
        ('SELECT_LOGIN', {'input': '1'}, 'Login'),
        ('SUBMIT', {}, 'Account'),
        ('DONE', {}, 'Goodbye'),
    ]:
        result = svc.send(session_id, event, **payload)
        assert result.success, result.message
        assert result.state == state

    assert result.data['context']['user_input'] == '1'
    assert result.data['context']['error'] is None

    finished = svc.send(session_id, 'DIAL')
    assert finished.error == module.ServiceError.SESSION_FINISHED

    ended = svc.end_session(session_id)
    assert ended.success
    assert svc.active_sessions() == []
    assert svc.get_session(session_id) is None


def test_service_validation_errors(service):
    """Bad requests are rejected with a typed error and never raise"""
    module, svc = service
    errors = module.ServiceError
    session_id = svc.start_session('caller-1').session_id

    assert session_id == 'caller-1'
    assert svc.start_session('caller-1').error == errors.DUPLICATE_SESSION
    assert svc.start_session('').error == errors.INVALID_INPUT
    assert svc.start_session(bogus_field=1).error == errors.INVALID_INPUT
    assert svc.send('missing', 'DIAL').error == errors.UNKNOWN_SESSION
    assert svc.send(session_id, 'NOPE').error == errors.INVALID_EVENT
    assert svc.send(session_id, 'DONE').error == errors.REJECTED

    svc.send(session_id, 'DIAL')
    assert svc.send(session_id, 'SELECT_INFO', bogus='x').error == errors.INVALID_INPUT
    assert svc.send(session_id, 'SELECT_INFO', input='x' * 5000).error == errors.INVALID_INPUT
    assert svc.send(session_id, 'SELECT_INFO', input='\x00').error == errors.INVALID_INPUT
    assert svc.get_session(session_id)['state'] == 'MainMenu'

    result = svc.send(session_id, 'NOPE').to_dict()
    assert result['success'] is False
    assert result['error'] == 'invalid_event'


def test_demo_script_mode(demo, capsys):
    exit_code = demo.main(['--script', 'DIAL', 'SELECT_INFO input=hello'])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert 'Start --DIAL--> MainMenu' in output
    assert 'MainMenu --SELECT_INFO--> KnowMore' in output
    assert '"user_input": "hello"' in output


def test_demo_script_rejects_unknown_event(demo, capsys):
    assert demo.main(['--script', 'BOGUS']) == 1
    assert 'Unknown event: BOGUS' in capsys.readouterr().out


def test_demo_interactive(demo, monkeypatch, capsys):
    lines = iter(['help', 'dial', 'state', 'reset', 'quit'])
    monkeypatch.setattr('builtins.input', lambda prompt='': next(lines))

    assert demo.interactive() == 0

    output = capsys.readouterr().out
    assert 'Available now: DIAL' in output
    assert 'Start --DIAL--> MainMenu' in output
    assert 'Reset to Start' in output


def test_demo_parse_line(demo):
    assert demo.parse_line('fail error=timeout extra') == ('FAIL', {'error': 'timeout'})


def test_generated_suites_pass_with_colliding_names(tmp_path):
    """Guards and actions named after model members keep the model API working"""
    pytest.importorskip('transitions')
    source = tmp_path / 'clash.md'
    source.write_text("flowchart TD\n"
                      "Start -->|GO guard:dispatch do:snapshot| Menu[Menu]\n"
                      "Menu -->|BACK do:history| Start\n"
                      "Menu -->|DONE| Goodbye((Goodbye))\n")
    output = tmp_path / 'generated'
    result = CodeGenerator(GeneratorConfig(sources=[str(source)], output_dir=str(output))).generate()
    assert result.success, [str(e) for e in result.errors]

    directory = output / 'user-services'
    completed = subprocess.run(
        [sys.executable, '-m', 'pytest', '-q', '-p', 'no:cacheprovider', str(directory)],
        cwd=str(directory),
        capture_output=True,
        text=True,
        timeout=600,
    )

    assert completed.returncode == 0, completed.stdout[-4000:] + completed.stderr[-2000:]
