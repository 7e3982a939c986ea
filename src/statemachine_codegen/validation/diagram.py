"""
Diagram Validator

Static lint for raw diagram text. Works on the text itself rather than on
parsed machines, so it can run standalone before code generation.

Checks:
1. Fences: nested, unterminated and empty ```mermaid blocks
2. Declaration: exactly one 'flowchart <DIR>' / 'graph <DIR>' line per block
3. Statements: transitions, node definitions, classDef, class assignments,
   style directives; anything else is unrecognized syntax
4. Brackets: node labels must close every bracket they open
5. Naming: PascalCase states, UPPER_SNAKE_CASE events, reserved and overlong
   state names (warnings; errors in strict mode)
6. Classes: valid class names, CSS-like style lists

Text without ```mermaid fences is validated as one bare diagram starting at
its first declaration line.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

from ..config import ValidationConfig
from ..core import naming
from .results import ValidationResult

logger = logging.getLogger(__name__)

FENCE_OPEN = '```mermaid'
FENCE_CLOSE = '```'
DECLARATION_RE = re.compile(r'^(flowchart|graph)\b')
VALID_DECLARATION_RE = re.compile(r'^(flowchart|graph)\s+(TD|TB|BT|RL|LR)\s*;?$')
NODE_RE = re.compile(
    r'(?P<id>[A-Za-z0-9_]+(?:-[A-Za-z0-9_]+)*)'
    r'(?P<shape>\(\(.*?\)\)|\(\[.*?\]\)|\[\[.*?\]\]|\[.*?\]|\(.*?\)|\{\{.*?\}\}|\{.*?\}|>.*?\])?'
)
ARROW_RE = re.compile(
    r'\s*(?:-->\s*(?:\|(?P<pipe>[^|]*)\|)?'
    r'|--\s*(?P<dashed>.*?)\s*-->'
    r'|->\s*(?:\|(?P<single>[^|]*)\|)?)\s*'
)
CLASSDEF_RE = re.compile(r'^classDef\s+(\S+)\s+(.+)$')
CLASS_RE = re.compile(r'^class\s+(.+?)\s+(\S+)$')
STYLE_DIRECTIVE_RE = re.compile(r'^[A-Za-z0-9_-]+@\{[^}]*\}$')
SUBGRAPH_RE = re.compile(r'^subgraph\b')
UNSUPPORTED_RE = re.compile(r'^(style|linkStyle|click|direction)\b')
IDENTIFIER_RE = re.compile(r'^[A-Za-z][A-Za-z0-9_-]*$')
STATE_NAME_RE = re.compile(r'^[A-Z][a-zA-Z0-9]*$')
EVENT_NAME_RE = re.compile(r'^[A-Z_][A-Z0-9_]*$')
CLASS_NAME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9_-]*$')
STYLE_ITEM_RE = re.compile(r'^[a-zA-Z0-9_-]+:[^:]+$')

RESERVED_NAMES = ('start', 'end', 'initial', 'final', 'error', 'done')
MAX_NAME_LENGTH = 50
BRACKET_PAIRS = {'[': ']', '(': ')', '{': '}'}


def _brackets_balanced(text: str) -> bool:
    """Check bracket nesting, ignoring text inside |pipe| labels and quotes."""
    stack = []
    in_pipe = False
    in_quote = False
    for char in text:
        if char == '"' and not in_pipe:
            in_quote = not in_quote
            continue
        if char == '|' and not in_quote:
            in_pipe = not in_pipe
            continue
        if in_pipe or in_quote:
            continue
        if char in BRACKET_PAIRS:
            stack.append(BRACKET_PAIRS[char])
        elif char in BRACKET_PAIRS.values():
            if not stack or stack.pop() != char:
                return False
    return not stack and not in_quote


class DiagramValidator:
    """Validates diagram source text"""

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def validate_file(self, path) -> ValidationResult:
        result = ValidationResult(source=str(path))
        try:
            content = Path(path).read_text(encoding='utf-8')
        except FileNotFoundError:
            result.add_error(f"File not found: {path}", line=0, category='file_not_found')
            return result
        except (OSError, UnicodeDecodeError) as e:
            result.add_error(f"Failed to read file: {e}", line=0, category='file_read_error')
            return result
        return self.validate_content(content, source=str(path))

    def validate_content(self, content: str, source: str = '<text>') -> ValidationResult:
        result = ValidationResult(source=source)
        blocks = self._extract_blocks(content, result)
        if not blocks:
            result.add_warning("No diagram content found", line=1,
                               suggestion="Add a ```mermaid block starting with 'flowchart TD'",
                               category='no_content')
        for start_line, lines in blocks:
            self._validate_block(lines, start_line, result)
        logger.debug(f"Validated {source}: {len(result.errors)} error(s), "
                     f"{len(result.warnings)} warning(s)")
        return result

    def _extract_blocks(self, content: str, result: ValidationResult) -> List[Tuple[int, List[Tuple[int, str]]]]:
        lines = content.splitlines()
        stripped = [line.strip() for line in lines]

        if FENCE_OPEN not in stripped:
            for index, line in enumerate(stripped):
                if DECLARATION_RE.match(line):
                    return [(index + 1, [(n + 1, stripped[n]) for n in range(index, len(lines))])]
            return []

        blocks = []
        current: Optional[List[Tuple[int, str]]] = None
        start_line = 0
        for index, line in enumerate(stripped):
            number = index + 1
            if line == FENCE_OPEN:
                if current is not None:
                    result.add_error("Nested diagram blocks", line=number,
                                     suggestion="Close the previous block with ``` first",
                                     category='nested_block')
                current = []
                start_line = number
            elif line == FENCE_CLOSE and current is not None:
                if any(text for _, text in current):
                    blocks.append((start_line, current))
                else:
                    result.add_error("Empty diagram block", line=start_line,
                                     suggestion="Add a flowchart declaration and states",
                                     category='empty_block')
                current = None
            elif current is not None:
                current.append((number, line))

        if current is not None:
            result.add_error("Unterminated diagram block", line=start_line,
                             suggestion="Close the block with ```",
                             category='unterminated_block')
            if any(text for _, text in current):
                blocks.append((start_line, current))
        return blocks

    def _validate_block(self, lines: List[Tuple[int, str]], start_line: int,
                        result: ValidationResult) -> None:
        content = [(number, text) for number, text in lines if text and not text.startswith('%%')]
        if not content:
            return

        first_number, first_line = content[0]
        if not VALID_DECLARATION_RE.match(first_line):
            result.add_error(
                f"Invalid flowchart declaration: expected 'flowchart TD|TB|BT|RL|LR', got: {first_line}",
                line=first_number,
                suggestion="Use 'flowchart LR' for left-to-right or 'flowchart TD' for top-down",
                category='declaration',
            )
        body = content[1:] if DECLARATION_RE.match(first_line) else content

        for number, line in body:
            if DECLARATION_RE.match(line):
                result.add_error("Multiple diagram declarations in one block", line=number,
                                 suggestion="Put each diagram in its own ```mermaid block",
                                 category='declaration')
                continue
            self._validate_line(line.rstrip(';').rstrip(), number, result)

    def _validate_line(self, line: str, number: int, result: ValidationResult) -> None:
        if CLASSDEF_RE.match(line):
            self._validate_class_def(line, number, result)
        elif CLASS_RE.match(line) and '->' not in line:
            self._validate_class_assign(line, number, result)
        elif '->' in line or re.search(r'\s--\s', line):
            self._validate_transition(line, number, result)
        elif STYLE_DIRECTIVE_RE.match(line):
            self._validate_state_name(line.split('@', 1)[0], number, result, 'styled node')
        elif SUBGRAPH_RE.match(line) or line == 'end':
            result.add_warning("Subgraph usage: subgraphs are flattened, not converted to states",
                               line=number, category='subgraph')
        elif UNSUPPORTED_RE.match(line):
            result.add_warning(f"Unsupported statement ignored: {line}", line=number,
                               category='unsupported')
        elif NODE_RE.fullmatch(line):
            self._validate_node(line, number, result)
        elif not _brackets_balanced(line):
            result.add_error(f"Unbalanced brackets: {line}", line=number,
                             suggestion="Close every '[', '(' and '{' in the node label",
                             category='unbalanced_brackets')
        else:
            result.add_error(f"Unrecognized syntax: {line}", line=number,
                             suggestion="Use 'A --> B', 'A -->|EVENT| B', 'A[Label]' or 'classDef name styles'",
                             category='syntax')

    def _validate_transition(self, line: str, number: int, result: ValidationResult) -> None:
        if not _brackets_balanced(line):
            result.add_error(f"Unbalanced brackets: {line}", line=number,
                             suggestion="Close every '[', '(' and '{' in node labels",
                             category='unbalanced_brackets')
            return

        node = NODE_RE.match(line)
        if not node:
            self._invalid_transition(line, number, result)
            return
        names = [node.group('id')]
        labels = []
        pos = node.end()
        while pos < len(line):
            arrow = ARROW_RE.match(line, pos)
            if not arrow or arrow.end() == pos:
                self._invalid_transition(line, number, result)
                return
            target = NODE_RE.match(line, arrow.end())
            if not target:
                self._invalid_transition(line, number, result)
                return
            label = next((g for g in arrow.group('pipe', 'dashed', 'single') if g is not None), None)
            if label is not None:
                labels.append(label.strip())
            names.append(target.group('id'))
            pos = target.end()

        if len(names) < 2:
            self._invalid_transition(line, number, result)
            return
        for index, name in enumerate(names):
            self._validate_state_name(name, number, result,
                                      'source state' if index == 0 else 'target state')
        for label in labels:
            self._validate_event_label(label, number, result)

    def _invalid_transition(self, line: str, number: int, result: ValidationResult) -> None:
        result.add_error(f"Invalid transition syntax: {line}", line=number,
                         suggestion="Use format: StateA --> StateB or StateA -->|EVENT| StateB",
                         category='transition_syntax')

    def _validate_node(self, line: str, number: int, result: ValidationResult) -> None:
        match = NODE_RE.fullmatch(line)
        self._validate_state_name(match.group('id'), number, result, 'node')
        shape = match.group('shape')
        if shape and not _brackets_balanced(shape):
            result.add_error(f"Unbalanced brackets in node label: {shape}", line=number,
                             category='unbalanced_brackets')

    def _validate_class_def(self, line: str, number: int, result: ValidationResult) -> None:
        class_name, styles = CLASSDEF_RE.match(line).groups()
        self._validate_class_name(class_name, number, result)
        items = [item.strip() for item in re.split(r'[,;]', styles) if item.strip()]
        if not items or not all(STYLE_ITEM_RE.match(item.replace(' ', '')) for item in items):
            result.add_warning(f"Class styles may not be valid CSS: {styles}", line=number,
                               suggestion="Use 'key:value' pairs such as 'fill:#fff,stroke:#333'",
                               category='class_styles')

    def _validate_class_assign(self, line: str, number: int, result: ValidationResult) -> None:
        node_list, class_name = CLASS_RE.match(line).groups()
        for node in [n for n in re.split(r'[,\s]+', node_list) if n]:
            self._validate_state_name(node, number, result, 'class target node')
        self._validate_class_name(class_name, number, result)

    def _validate_class_name(self, class_name: str, number: int, result: ValidationResult) -> None:
        if not CLASS_NAME_RE.match(class_name):
            result.add_error(f"Invalid class name '{class_name}'", line=number,
                             suggestion="Class names start with a letter and use letters, digits, '_' or '-'",
                             category='class_name')

    def _naming_issue(self, message: str, number: int, suggestion: str,
                      result: ValidationResult) -> None:
        if self.config.strict_mode:
            result.add_error(message, line=number, suggestion=suggestion, category='naming')
        else:
            result.add_warning(message, line=number, suggestion=suggestion, category='naming')

    def _validate_state_name(self, name: str, number: int, result: ValidationResult,
                             context: str) -> None:
        if not name:
            result.add_error(f"Empty {context} name", line=number, category='state_name')
            return
        if not IDENTIFIER_RE.match(name):
            result.add_error(f"Invalid {context} name '{name}'", line=number,
                             suggestion="State names must start with a letter",
                             category='state_name')
            return
        if self.config.validate_naming and not STATE_NAME_RE.match(name):
            self._naming_issue(f"{context.capitalize()} '{name}' should follow PascalCase convention",
                               number,
                               "Use PascalCase for state names (e.g. 'MainMenu', 'EnterPin')",
                               result)
        if name.lower() in RESERVED_NAMES:
            result.add_warning(f"{context.capitalize()} '{name}' is a reserved keyword and may cause conflicts",
                               line=number, category='reserved_name')
        if len(name) > MAX_NAME_LENGTH:
            result.add_warning(f"{context.capitalize()} '{name}' is very long ({len(name)} characters)",
                               line=number, category='long_name')

    def _validate_event_label(self, label: str, number: int, result: ValidationResult) -> None:
        if not label:
            result.add_warning("Transition label is empty", line=number, category='event_name')
            return
        event = naming.strip_label_references(label).strip()
        if event and self.config.validate_naming and not EVENT_NAME_RE.match(event):
            self._naming_issue(f"Event '{event}' should follow UPPER_SNAKE_CASE convention",
                               number,
                               "Use UPPER_SNAKE_CASE for events (e.g. 'SUBMIT', 'PIN_ENTERED')",
                               result)


def validate_diagram(content: str, config: Optional[ValidationConfig] = None) -> ValidationResult:
    return DiagramValidator(config).validate_content(content)
