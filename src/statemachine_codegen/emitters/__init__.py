"""Template-driven emitters, one per generated artifact kind"""

from .base import (
    EMITTERS, Emitter, EmitterKind, category_directory, create_emitters, create_environment,
    get_emitter,
)
from .demo import DemoEmitter
from .machine import MachineEmitter
from .service import ServiceEmitter
from .suites import ErrorTestEmitter, SmokeTestEmitter, TransitionTestEmitter

__all__ = [
    'EMITTERS',
    'Emitter',
    'EmitterKind',
    'category_directory',
    'create_emitters',
    'create_environment',
    'get_emitter',
    'DemoEmitter',
    'ErrorTestEmitter',
    'MachineEmitter',
    'ServiceEmitter',
    'SmokeTestEmitter',
    'TransitionTestEmitter',
]
