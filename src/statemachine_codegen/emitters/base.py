"""
Emitter base - Jinja2 environment, Emitter interface and registry

Every artifact kind is produced by one Emitter subclass rendering one
template from emitters/templates/. Emitters read only the GeneratedMachine
IR, keep no state between renders and return complete text blobs.

KEY FUNCTIONS:
- create_environment(template_dir) -> jinja2.Environment with codegen filters
- Emitter.render(machine) -> str
- Emitter.emit(machine, output_dir) -> GeneratedFile
- get_emitter(kind, **options) / create_emitters(kinds, **options)
- category_directory(category) -> output subdirectory name
"""

import logging
from abc import ABC
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..core import naming
from ..core.ir import GeneratedMachine
from ..core.model import FileKind, GeneratedFile, MachineCategory
from ..errors import EmitterError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / 'templates'

CATEGORY_DIRECTORIES = {
    MachineCategory.INFO: 'information',
    MachineCategory.USER: 'user-services',
    MachineCategory.ACCOUNT: 'user-services',
    MachineCategory.AGENT: 'agent',
    MachineCategory.CORE: 'core',
}


class EmitterKind(str, Enum):
    MACHINE = 'machine'
    SMOKE_TESTS = 'smoke_tests'
    TRANSITION_TESTS = 'transition_tests'
    ERROR_TESTS = 'error_tests'
    DEMO = 'demo'
    SERVICE = 'service'


def category_directory(category: MachineCategory) -> str:
    return CATEGORY_DIRECTORIES[category]


def escape_docstring(text: str) -> str:
    """Make text safe inside a triple-quoted docstring."""
    return (text or '').replace('\\', '\\\\').replace('"""', '\\"\\"\\"')


def comment_text(text: str) -> str:
    """Collapse text onto one line for a '#' comment."""
    return ' '.join((text or '').split())


def basename(path: Optional[str]) -> str:
    return Path(path).name if path else ''


def create_environment(template_dir: Optional[Path] = None) -> Environment:
    """Jinja2 environment used by every emitter."""
    env = Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters['pyrepr'] = repr
    env.filters['snake'] = naming.to_snake_case
    env.filters['docstring'] = escape_docstring
    env.filters['comment'] = comment_text
    env.filters['basename'] = basename
    return env


_default_env: Optional[Environment] = None


def default_environment() -> Environment:
    global _default_env
    if _default_env is None:
        _default_env = create_environment()
    return _default_env


class Emitter(ABC):
    """Renders one artifact kind from a GeneratedMachine"""

    kind: EmitterKind
    file_kind: FileKind
    template_name: str
    filename_pattern: str  # formatted with module=<machine.module_name>

    def __init__(self, env: Optional[Environment] = None, **options: Any):
        self.env = env or default_environment()
        self.options = options

    def template_context(self, machine: GeneratedMachine) -> Dict[str, Any]:
        """Extra template variables; subclasses add scenario tables here."""
        return {}

    def render(self, machine: GeneratedMachine) -> str:
        try:
            template = self.env.get_template(self.template_name)
            return template.render(machine=machine, **self.template_context(machine))
        except TemplateError as e:
            raise EmitterError(self.kind.value, machine.id, str(e))

    def filename(self, machine: GeneratedMachine) -> str:
        return self.filename_pattern.format(module=machine.module_name)

    def output_path(self, machine: GeneratedMachine, output_dir: str) -> Path:
        return Path(output_dir) / category_directory(machine.category) / self.filename(machine)

    def emit(self, machine: GeneratedMachine, output_dir: str) -> GeneratedFile:
        content = self.render(machine)
        path = self.output_path(machine, output_dir)
        logger.debug(f"Rendered {self.kind.value} for {machine.id}: {path}")
        return GeneratedFile(
            path=str(path),
            kind=self.file_kind,
            content=content,
            machine_id=machine.id,
            emitter=self.kind.value,
        )


EMITTERS: Dict[EmitterKind, Type[Emitter]] = {}


def register_emitter(cls: Type[Emitter]) -> Type[Emitter]:
    EMITTERS[cls.kind] = cls
    return cls


def get_emitter(kind, env: Optional[Environment] = None, **options: Any) -> Emitter:
    kind = EmitterKind(kind)
    if kind not in EMITTERS:
        raise KeyError(f"No emitter registered for '{kind.value}'")
    return EMITTERS[kind](env=env, **options)


def create_emitters(kinds: Optional[Iterable] = None, env: Optional[Environment] = None,
                    **options: Any) -> List[Emitter]:
    """Instantiate emitters in EmitterKind order (all kinds by default)."""
    selected = {EmitterKind(k) for k in kinds} if kinds is not None else set(EmitterKind)
    return [get_emitter(kind, env=env, **options) for kind in EmitterKind if kind in selected]


# Sample payload values used by generated tests and the demo
SAMPLE_VALUES: Dict[str, Callable[[str], Any]] = {
    'text': lambda name: f"sample {name}",
    'number': lambda name: 1,
    'bool': lambda name: True,
    'opaque': lambda name: {'value': name},
}


def sample_payload(machine: GeneratedMachine, event_name: str) -> Dict[str, Any]:
    for event in machine.events:
        if event.name == event_name:
            return {f.name: SAMPLE_VALUES[f.kind.value](f.name) for f in event.payload}
    return {}
