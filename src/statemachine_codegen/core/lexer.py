"""
Diagram statement lexer

Turns one diagram line into typed statements with a small hand-written
scanner and recursive-descent rules. Recognition order:

1. classDef <name> <style,style,...>          -> ClassDef
2. class <id,id,...> <name>                   -> ClassAssign
3. <id>@{ shape: x, class: y }                -> StyleDirective
4. <node> <arrow> <node> [<arrow> <node> ...] -> EdgeDecl per arrow
5. <node>                                     -> NodeDecl

Arrow forms: A -->|label| B, A -- label --> B, A --> B, A -> B; either side
may carry an inline bracket label such as A["Start"] --> B((Bye)).
Node shapes: [rect], (rounded), ((circle)), {diamond}.

Malformed input raises DiagramSyntaxError. Invalid identifiers carry
severity 'error'; everything else is a 'warning' and the caller skips the line.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..errors import DiagramSyntaxError
from .model import NodeShape

IDENTIFIER_RE = re.compile(r'^[A-Za-z][A-Za-z0-9_-]*$')
CLASS_NAME_RE = re.compile(r'^\w+(?:-\w+)*$')

_WORD_CHARS = set('ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-')

# Opening bracket -> (closing bracket, shape); longest opener first
_SHAPE_BRACKETS = [
    ('((', '))', NodeShape.CIRCLE),
    ('([', '])', NodeShape.STADIUM),
    ('(', ')', NodeShape.ROUNDED),
    ('[', ']', NodeShape.RECTANGLE),
    ('{{', '}}', NodeShape.HEXAGON),
    ('{', '}', NodeShape.DIAMOND),
]


@dataclass
class NodeRef:
    id: str
    label: Optional[str] = None
    shape: Optional[NodeShape] = None

    @property
    def has_shape(self) -> bool:
        return self.shape is not None


@dataclass
class NodeDecl:
    node: NodeRef
    line: Optional[int] = None


@dataclass
class EdgeDecl:
    source: NodeRef
    target: NodeRef
    label: str = ''
    arrow: str = 'plain'  # labeled | dashed | plain | single
    line: Optional[int] = None


@dataclass
class ClassDef:
    name: str
    styles: List[str] = field(default_factory=list)
    line: Optional[int] = None


@dataclass
class ClassAssign:
    node_ids: List[str]
    class_name: str
    line: Optional[int] = None


@dataclass
class StyleDirective:
    node_id: str
    shape: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    line: Optional[int] = None


Statement = Union[NodeDecl, EdgeDecl, ClassDef, ClassAssign, StyleDirective]


class _Scanner:
    """Cursor over a single line of diagram text"""

    def __init__(self, text: str, line: Optional[int]):
        self.text = text
        self.pos = 0
        self.line = line

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        self.skip_ws()
        return self.pos >= len(self.text)

    def startswith(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def consume(self, token: str) -> None:
        self.pos += len(token)

    def read_word(self) -> str:
        """Read an identifier-like run; a hyphen that starts an arrow ends the word."""
        start = self.pos
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == '-' and (self.startswith('->') or self.startswith('--')):
                break
            if char not in _WORD_CHARS:
                break
            self.pos += 1
        return self.text[start:self.pos]

    def read_until(self, closer: str, what: str) -> str:
        end = self.text.find(closer, self.pos)
        if end == -1:
            raise self.error(f"Unbalanced brackets in {what}: missing '{closer}'",
                             suggestion=f"Close the {what} with '{closer}'")
        value = self.text[self.pos:end]
        self.pos = end + len(closer)
        return value

    def rest(self) -> str:
        return self.text[self.pos:]

    def error(self, message: str, severity: str = 'warning',
              suggestion: Optional[str] = None) -> DiagramSyntaxError:
        return DiagramSyntaxError(message, line=self.line, severity=severity,
                                  suggestion=suggestion)


def clean_label(text: str) -> str:
    """Strip whitespace and one pair of surrounding quotes."""
    value = text.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        value = value[1:-1].strip()
    return value


def _check_identifier(scanner: _Scanner, ident: str) -> str:
    if not ident:
        raise scanner.error(f"Expected a node identifier at '{scanner.rest().strip()[:20]}'")
    if not IDENTIFIER_RE.match(ident):
        raise scanner.error(
            f"Invalid state name '{ident}'",
            severity='error',
            suggestion="State names must start with a letter and contain only letters, digits, '_' or '-'",
        )
    return ident


def _parse_node_ref(scanner: _Scanner) -> NodeRef:
    scanner.skip_ws()
    ident = _check_identifier(scanner, scanner.read_word())
    for opener, closer, shape in _SHAPE_BRACKETS:
        if scanner.startswith(opener):
            scanner.consume(opener)
            label = scanner.read_until(closer, f"label of '{ident}'")
            return NodeRef(ident, clean_label(label), shape)
    return NodeRef(ident)


def _parse_pipe_label(scanner: _Scanner) -> Optional[str]:
    scanner.skip_ws()
    if scanner.startswith('|'):
        scanner.consume('|')
        return clean_label(scanner.read_until('|', 'edge label'))
    return None


def _parse_arrow(scanner: _Scanner):
    """Return (label, arrow form) for the arrow at the cursor."""
    scanner.skip_ws()
    if scanner.startswith('-->'):
        scanner.consume('-->')
        label = _parse_pipe_label(scanner)
        return (label or '', 'labeled' if label is not None else 'plain')
    if scanner.startswith('--'):
        scanner.consume('--')
        label = scanner.read_until('-->', 'dashed edge label')
        return (clean_label(label), 'dashed')
    if scanner.startswith('->'):
        scanner.consume('->')
        label = _parse_pipe_label(scanner)
        return (label or '', 'single')
    raise scanner.error(
        f"Unexpected text '{scanner.rest().strip()[:30]}'",
        suggestion="Use 'A --> B', 'A -->|label| B' or 'A -- label --> B'",
    )


def _parse_style_directive(scanner: _Scanner, node_id: str) -> StyleDirective:
    scanner.consume('@{')
    body = scanner.read_until('}', f"style directive of '{node_id}'")
    if not scanner.at_end():
        raise scanner.error(f"Unexpected text after style directive of '{node_id}'")
    directive = StyleDirective(node_id, line=scanner.line)
    shape = re.search(r'shape:\s*(\w+)', body)
    if shape:
        directive.shape = shape.group(1)
    classes = re.search(r'class:\s*([^,;]+)', body)
    if classes:
        directive.classes = [c for c in classes.group(1).split() if c]
    return directive


def _parse_class_def(scanner: _Scanner) -> ClassDef:
    scanner.consume('classDef')
    scanner.skip_ws()
    name = scanner.read_word()
    if not name or not CLASS_NAME_RE.match(name):
        raise scanner.error(f"Invalid class name in classDef: '{name}'")
    styles = [s.strip() for s in scanner.rest().split(',') if s.strip()]
    if not styles:
        raise scanner.error(f"classDef '{name}' has no styles",
                            suggestion=f"classDef {name} fill:#fff")
    return ClassDef(name, styles, scanner.line)


def _parse_class_assign(scanner: _Scanner) -> ClassAssign:
    scanner.consume('class')
    parts = scanner.rest().strip().rsplit(None, 1)
    if len(parts) != 2:
        raise scanner.error("Class assignment needs node ids and a class name",
                            suggestion="class Start,Menu user-machine")
    id_text, class_name = parts
    if not CLASS_NAME_RE.match(class_name):
        raise scanner.error(f"Invalid class name '{class_name}'")
    node_ids = [part for part in re.split(r'[,\s]+', id_text) if part]
    for node_id in node_ids:
        _check_identifier(scanner, node_id)
    return ClassAssign(node_ids, class_name, scanner.line)


def _parse_chain(scanner: _Scanner) -> List[Statement]:
    first = _parse_node_ref(scanner)
    if not first.has_shape and scanner.startswith('@{'):
        return [_parse_style_directive(scanner, first.id)]

    statements: List[Statement] = []
    current = first
    while not scanner.at_end():
        label, arrow = _parse_arrow(scanner)
        if scanner.at_end():
            raise scanner.error(f"Edge from '{current.id}' has no target")
        target = _parse_node_ref(scanner)
        statements.append(EdgeDecl(current, target, label, arrow, scanner.line))
        current = target

    if not statements:
        return [NodeDecl(first, scanner.line)]
    return statements


def tokenize_line(text: str, line: Optional[int] = None) -> List[Statement]:
    """Parse one stripped, non-comment diagram line into statements."""
    scanner = _Scanner(text.strip().rstrip(';').rstrip(), line)
    if scanner.at_end():
        return []
    if re.match(r'classDef\s', scanner.text):
        return [_parse_class_def(scanner)]
    if re.match(r'class\s+[A-Za-z]', scanner.text):
        return [_parse_class_assign(scanner)]
    return _parse_chain(scanner)
