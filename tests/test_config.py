"""
Tests for YAML configuration loading
"""
from pathlib import Path

import pytest

from statemachine_codegen.config import (
    GeneratorConfig, ParserConfig, ValidationConfig, load_config, load_yaml,
)
from statemachine_codegen.errors import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'codegen.yaml'
    path.write_text("""
sources:
  - docs/diagrams/*.md
output_dir: build/machines
test_style: smoke
generate_demos: false
parser:
  placeholder_for_empty: false
validation:
  strict_mode: true
  max_states_per_machine: 10
""")
    return path


def test_load_config(config_file):
    config = load_config(str(config_file))

    assert config.sources == ['docs/diagrams/*.md']
    assert config.output_dir == 'build/machines'
    assert config.test_style == 'smoke'
    assert config.generate_demos is False
    assert config.parser.placeholder_for_empty is False
    assert config.validation.strict_mode is True
    assert config.validation.max_states_per_machine == 10
    assert config.validation.check_business_rules is True


def test_defaults():
    config = GeneratorConfig()

    assert config.output_dir == 'generated'
    assert config.test_style == 'comprehensive'
    assert config.incremental
    assert config.resolved_manifest_path == Path('generated/.generation-manifest.json')
    assert GeneratorConfig(manifest_path='m.json').resolved_manifest_path == Path('m.json')


def test_single_source_string_is_wrapped():
    assert GeneratorConfig(sources='docs/a.md').sources == ['docs/a.md']


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text("output_dir: out\nemit_rust: true\n")

    with pytest.raises(ConfigurationError, match='emit_rust'):
        load_config(str(path))


def test_unknown_nested_key_rejected():
    with pytest.raises(ConfigurationError, match="'validation'"):
        GeneratorConfig.from_dict({'validation': {'strictness': 11}})


def test_bad_test_style():
    with pytest.raises(ConfigurationError, match='test_style'):
        GeneratorConfig(test_style='exhaustive')


def test_non_positive_limits_rejected():
    with pytest.raises(ConfigurationError):
        ValidationConfig.from_dict({'max_transitions_per_state': 0})


def test_section_must_be_mapping():
    with pytest.raises(ConfigurationError):
        ParserConfig.from_dict(['placeholder_for_empty'])


def test_missing_file():
    with pytest.raises(ConfigurationError, match='not found'):
        load_yaml('/nonexistent/codegen.yaml')


def test_invalid_yaml(tmp_path):
    path = tmp_path / 'broken.yaml'
    path.write_text("sources: [unclosed\n")

    with pytest.raises(ConfigurationError, match='YAML parse error'):
        load_yaml(str(path))


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')

    assert load_config(str(path)) == GeneratorConfig()
