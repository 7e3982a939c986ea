"""State Machine Codegen - flowchart diagrams to hierarchical state machines"""

__version__ = "0.1.0"

from .config import GeneratorConfig, load_config
from .core.compiler import CodeGenerator, GenerationResult
from .core.parser import DiagramParser
from .core.semantic import SemanticGenerator
from .validation.business import BusinessRuleValidator
from .validation.diagram import DiagramValidator

__all__ = [
    "BusinessRuleValidator",
    "CodeGenerator",
    "DiagramParser",
    "DiagramValidator",
    "GenerationResult",
    "GeneratorConfig",
    "SemanticGenerator",
    "load_config",
]
