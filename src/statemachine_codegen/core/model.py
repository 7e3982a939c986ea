"""
Diagram model - nodes, edges, parsed machines and diagnostics

Data produced by the diagram parser and graph assembler and consumed by the
validators and the semantic generator.

KEY TYPES:
- NodeShape, TransitionKind, MachineCategory, Severity: closed enums
- Node / Edge: graph vertices and labeled connections
- ParsedMachine: one assembled diagram block
- Diagnostic: {message, line, severity, suggestion, category} record shared by
  the parser, both validators and the orchestrator
- Diagnostics: explicit builder threaded through parse/validate calls
- ParseResult: machines plus diagnostics for one parsed source
- GeneratedFile: {path, kind, content, size} record handed to the file writer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeShape(str, Enum):
    RECTANGLE = 'rectangle'
    ROUNDED = 'rounded'
    CIRCLE = 'circle'
    DIAMOND = 'diamond'
    HEXAGON = 'hexagon'
    STADIUM = 'stadium'

    @classmethod
    def from_directive(cls, value: str) -> Optional['NodeShape']:
        """Map a styling directive shape name (rect, circle, hex, ...) to a shape."""
        aliases = {
            'rect': cls.RECTANGLE,
            'rectangle': cls.RECTANGLE,
            'square': cls.RECTANGLE,
            'rounded': cls.ROUNDED,
            'round': cls.ROUNDED,
            'circle': cls.CIRCLE,
            'circ': cls.CIRCLE,
            'diamond': cls.DIAMOND,
            'decision': cls.DIAMOND,
            'diam': cls.DIAMOND,
            'hexagon': cls.HEXAGON,
            'hex': cls.HEXAGON,
            'stadium': cls.STADIUM,
            'pill': cls.STADIUM,
        }
        return aliases.get(value.strip().lower())


class TransitionKind(str, Enum):
    USER_INPUT = 'user_input'
    SYSTEM_ACTION = 'system_action'
    CONDITIONAL = 'conditional'
    ERROR = 'error'
    TIMEOUT = 'timeout'
    EXTERNAL = 'external'


class MachineCategory(str, Enum):
    INFO = 'info'
    USER = 'user'
    AGENT = 'agent'
    ACCOUNT = 'account'
    CORE = 'core'

    @property
    def tag(self) -> str:
        """Class tag that selects this category in a diagram."""
        return f"{self.value}-machine"

    @classmethod
    def from_tag(cls, tag: str) -> Optional['MachineCategory']:
        """Resolve a class tag ('user-machine' or 'user') to a category."""
        name = tag.strip().lower()
        if name.endswith('-machine'):
            name = name[:-len('-machine')]
        for category in cls:
            if category.value == name:
                return category
        return None


# Tie-break order when two category tags occur equally often
CATEGORY_PRIORITY = [
    MachineCategory.INFO,
    MachineCategory.AGENT,
    MachineCategory.ACCOUNT,
    MachineCategory.USER,
    MachineCategory.CORE,
]


class Severity(str, Enum):
    ERROR = 'error'
    WARNING = 'warning'


@dataclass
class Diagnostic:
    """A parser or validator finding"""
    message: str
    severity: Severity = Severity.WARNING
    line: Optional[int] = None
    suggestion: Optional[str] = None
    category: str = ''  # e.g. 'syntax', 'dead_end_state'

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'message': self.message,
            'severity': self.severity.value,
        }
        if self.line is not None:
            data['line'] = self.line
        if self.suggestion:
            data['suggestion'] = self.suggestion
        if self.category:
            data['category'] = self.category
        return data

    def __str__(self) -> str:
        location = f"line {self.line}: " if self.line is not None else ''
        return f"[{self.severity.value.upper()}] {location}{self.message}"


@dataclass
class Diagnostics:
    """Ordered diagnostic collector passed explicitly between pipeline steps."""
    items: List[Diagnostic] = field(default_factory=list)

    def error(self, message: str, line: Optional[int] = None,
              suggestion: Optional[str] = None, category: str = '') -> Diagnostic:
        return self.add(Diagnostic(message, Severity.ERROR, line, suggestion, category))

    def warning(self, message: str, line: Optional[int] = None,
                suggestion: Optional[str] = None, category: str = '') -> Diagnostic:
        return self.add(Diagnostic(message, Severity.WARNING, line, suggestion, category))

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        self.items.append(diagnostic)
        return diagnostic

    def extend(self, diagnostics) -> None:
        for diagnostic in diagnostics:
            self.items.append(diagnostic)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.items if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.items if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class Node:
    """A diagram vertex; becomes a state in the generated machine"""
    id: str
    label: str
    shape: NodeShape = NodeShape.RECTANGLE
    css_classes: List[str] = field(default_factory=list)
    is_initial: bool = False
    is_final: bool = False
    line: Optional[int] = None
    declared: bool = True  # False when created implicitly by an edge or class statement

    def add_class(self, name: str) -> None:
        if name not in self.css_classes:
            self.css_classes.append(name)


@dataclass
class Edge:
    """A labeled directed connection between two nodes"""
    source: str
    target: str
    label: str = ''
    kind: TransitionKind = TransitionKind.SYSTEM_ACTION
    guard: Optional[str] = None
    action: Optional[str] = None
    line: Optional[int] = None


@dataclass
class ParsedMachine:
    """One assembled diagram block"""
    id: str
    display_name: str
    category: MachineCategory = MachineCategory.USER
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    initial_node_id: str = ''
    final_node_ids: List[str] = field(default_factory=list)
    class_styles: Dict[str, List[str]] = field(default_factory=dict)
    source_path: Optional[str] = None

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id: str) -> List[Edge]:
        return [edge for edge in self.edges if edge.source == node_id]

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]


@dataclass
class ParseResult:
    """Machines and diagnostics produced from one diagram source"""
    machines: List[ParsedMachine] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    source_path: Optional[str] = None
    line_count: int = 0

    @property
    def errors(self) -> List[Diagnostic]:
        return self.diagnostics.errors

    @property
    def warnings(self) -> List[Diagnostic]:
        return self.diagnostics.warnings

    @property
    def success(self) -> bool:
        return bool(self.machines)


class FileKind(str, Enum):
    MACHINE = 'machine'
    TEST = 'test'
    DEMO = 'demo'
    SERVICE = 'service'


@dataclass
class GeneratedFile:
    """Proposed artifact handed to the file writer"""
    path: str
    kind: FileKind
    content: str
    machine_id: str = ''
    emitter: str = ''

    @property
    def size(self) -> int:
        return len(self.content.encode('utf-8'))

    @property
    def line_count(self) -> int:
        return len(self.content.splitlines())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'kind': self.kind.value,
            'size': self.size,
            'machine_id': self.machine_id,
            'emitter': self.emitter,
        }
