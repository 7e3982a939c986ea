"""Compiler Configuration

Dataclass configuration for the parser, validators, emitters and
orchestrator, loadable from a YAML file.

CLASSES:
- ParserConfig: diagram parser switches
- ValidationConfig: diagram and business-rule validator settings
- GeneratorConfig: orchestrator settings (sources, output, toggles)

FUNCTIONS:
- load_yaml(file_path) -> Dict: Load a YAML mapping (raises ConfigurationError)
- load_config(file_path) -> GeneratorConfig

YAML LAYOUT:
    sources:
      - docs/diagrams/*.md
    output_dir: generated
    generate_tests: true
    test_style: comprehensive
    parser:
      placeholder_for_empty: true
    validation:
      strict_mode: false
      max_states_per_machine: 50

USAGE:
    config = load_config('codegen.yaml')
    generator = CodeGenerator(config)
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = '.generation-manifest.json'
ALL_CATEGORIES = ['info', 'user', 'agent', 'account', 'core']
TEST_STYLES = ('smoke', 'comprehensive')


def _build(cls, data: Optional[Dict[str, Any]], section: str):
    """Instantiate a config dataclass from a mapping, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{section}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown option(s) in '{section}': {', '.join(unknown)}")
    return cls(**data)


@dataclass
class ParserConfig:
    # Emit a single-state machine for a diagram block without nodes
    placeholder_for_empty: bool = True
    max_label_length: int = 50

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ParserConfig':
        return _build(cls, data, 'parser')


@dataclass
class ValidationConfig:
    strict_mode: bool = False
    check_business_rules: bool = True
    validate_naming: bool = True
    check_navigation: bool = True
    max_states_per_machine: int = 50
    max_transitions_per_state: int = 20
    allowed_categories: List[str] = field(default_factory=lambda: list(ALL_CATEGORIES))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ValidationConfig':
        config = _build(cls, data, 'validation')
        if config.max_states_per_machine < 1 or config.max_transitions_per_state < 1:
            raise ConfigurationError("validation limits must be positive integers")
        return config


@dataclass
class GeneratorConfig:
    sources: List[str] = field(default_factory=list)
    output_dir: str = 'generated'
    manifest_path: Optional[str] = None
    generate_tests: bool = True
    include_transition_tests: bool = True
    include_error_tests: bool = True
    generate_demos: bool = True
    generate_services: bool = True
    test_style: str = 'comprehensive'
    overwrite: bool = True
    backup: bool = False
    dry_run: bool = False
    incremental: bool = True
    validate_business_rules: bool = True
    block_on_errors: bool = False
    check_generated_code: bool = True
    parser: ParserConfig = field(default_factory=ParserConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    def __post_init__(self):
        if self.test_style not in TEST_STYLES:
            raise ConfigurationError(
                f"test_style must be one of {', '.join(TEST_STYLES)}, got '{self.test_style}'"
            )
        if isinstance(self.sources, str):
            self.sources = [self.sources]

    @property
    def resolved_manifest_path(self) -> Path:
        if self.manifest_path:
            return Path(self.manifest_path)
        return Path(self.output_dir) / DEFAULT_MANIFEST_NAME

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GeneratorConfig':
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
        data = dict(data)
        parser = ParserConfig.from_dict(data.pop('parser', None))
        validation = ValidationConfig.from_dict(data.pop('validation', None))
        config = _build(cls, data, 'generator')
        config.parser = parser
        config.validation = validation
        return config


def load_yaml(file_path: str) -> Dict[str, Any]:
    """Load a YAML configuration file."""
    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {file_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML parse error in {file_path}: {e}")
    return data or {}


def load_config(file_path: str) -> GeneratorConfig:
    """Load a GeneratorConfig from YAML."""
    data = load_yaml(file_path)
    config = GeneratorConfig.from_dict(data)
    logger.debug(f"Loaded configuration from {file_path}: {len(config.sources)} source pattern(s)")
    return config
