"""
Tests for the statemachine-codegen-validate command line
"""
import pytest

from statemachine_codegen.tools.validate import main

FINAL_WITH_EXIT = "flowchart TD\nStart --> Done((Done))\nDone -->|RESTART| Start\n"


@pytest.fixture
def bad_diagram(tmp_path):
    path = tmp_path / 'bad.md'
    path.write_text(FINAL_WITH_EXIT)
    return str(path)


def test_warnings_pass(diagram_dir, capsys):
    exit_code = main([str(diagram_dir / 'ussd-menu.md'), str(diagram_dir / 'router.md'), '--no-color'])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert '[WARNING]' in output
    assert 'Warnings present but validation passed' in output


def test_strict_mode_fails_on_warnings(diagram_dir, capsys):
    exit_code = main([str(diagram_dir / 'ussd-menu.md'), '--strict', '--no-color'])

    assert exit_code == 2
    assert 'Strict mode' in capsys.readouterr().out


def test_errors_fail(bad_diagram, capsys):
    exit_code = main([bad_diagram, '--no-color'])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert '[ERROR]' in output
    assert 'Validation failed' in output


def test_missing_file_fails(tmp_path, capsys):
    assert main([str(tmp_path / 'missing.md')]) == 1


def test_syntax_only(bad_diagram, capsys):
    assert main([bad_diagram, '--no-business-rules']) == 0


def test_quiet_hides_warnings(diagram_dir, capsys):
    exit_code = main([str(diagram_dir / 'ussd-menu.md'), '--quiet'])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert '[WARNING]' not in output
    assert 'Warnings: ' in output


def test_color_toggle(bad_diagram, capsys):
    main([bad_diagram])
    colored = capsys.readouterr().out
    main([bad_diagram, '--no-color'])
    plain = capsys.readouterr().out

    assert '\033[91m' in colored
    assert '\033[' not in plain


def test_issue_lines_and_suggestions(tmp_path, capsys):
    path = tmp_path / 'broken.md'
    path.write_text("flowchart TD\n    A[Open --> B\n")

    assert main([str(path), '--no-color']) == 1
    output = capsys.readouterr().out
    assert '  [ERROR] line 2: Unbalanced brackets' in output
    assert "💡 Close every '[', '(' and '{' in node labels" in output
