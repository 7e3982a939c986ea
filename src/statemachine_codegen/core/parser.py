"""
Diagram Parser - flowchart text to ParsedMachine values

Scans diagram source line by line: finds diagram blocks, lexes each line
into statements and hands them to the GraphAssembler. Recoverable problems
are recorded as diagnostics; only an unreadable source file raises.

KEY FILES:
- core/lexer.py - statement lexer (NodeDecl, EdgeDecl, ClassDef, ...)
- core/assembler.py - draft graph to ParsedMachine

KEY FUNCTIONS:
- extract_diagram_blocks(text) -> List[DiagramBlock]
- DiagramParser.parse_text(text, machine_name, source_path) -> ParseResult
- DiagramParser.parse_file(path) -> ParseResult

BLOCKS:
    ```mermaid
    flowchart TD
        Start --> Menu
    ```
A block starts at a 'flowchart <DIR>' or 'graph <DIR>' line and ends at the
closing fence, the next start line, or end of input. Every block becomes one
machine; the first takes the source file stem as id, later ones get _2, _3...
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ..config import ParserConfig
from ..errors import DiagramSyntaxError, SourceReadError
from .assembler import GraphAssembler
from .lexer import Statement, tokenize_line
from .model import Diagnostic, Diagnostics, ParseResult, Severity

logger = logging.getLogger(__name__)

START_RE = re.compile(r'^(flowchart|graph)\b\s*([A-Za-z]*)\s*;?\s*$')
SUBGRAPH_RE = re.compile(r'^subgraph\b')
UNSUPPORTED_RE = re.compile(r'^(style|linkStyle|click|direction)\b')
COMMENT_PREFIXES = ('%%', '//', '#')
DEFAULT_MACHINE_NAME = 'diagram'


@dataclass
class DiagramBlock:
    start_line: int
    keyword: str
    direction: str = ''
    lines: List[Tuple[int, str]] = field(default_factory=list)


def is_comment(line: str) -> bool:
    return line.startswith(COMMENT_PREFIXES)


def extract_diagram_blocks(text: str) -> List[DiagramBlock]:
    """Split source text into diagram blocks with absolute line numbers."""
    blocks: List[DiagramBlock] = []
    current: Optional[DiagramBlock] = None

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line.startswith('```'):
            if current is not None:
                blocks.append(current)
                current = None
            continue
        match = START_RE.match(line)
        if match:
            if current is not None:
                blocks.append(current)
            current = DiagramBlock(number, match.group(1), match.group(2))
            continue
        if current is not None:
            current.lines.append((number, raw))

    if current is not None:
        blocks.append(current)
    return blocks


class DiagramParser:
    """Parses flowchart diagram text into machines"""

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self.assembler = GraphAssembler(self.config)

    def parse_file(self, path) -> ParseResult:
        """Parse a diagram file; raises SourceReadError if it cannot be read."""
        source = Path(path)
        try:
            text = source.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise SourceReadError(str(path), 'file not found')
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(str(path), str(e))
        return self.parse_text(text, machine_name=source.stem, source_path=str(path))

    def parse_text(self, text: str, machine_name: Optional[str] = None,
                   source_path: Optional[str] = None) -> ParseResult:
        diagnostics = Diagnostics()
        result = ParseResult(diagnostics=diagnostics, source_path=source_path,
                             line_count=len(text.splitlines()))
        base_name = machine_name or DEFAULT_MACHINE_NAME

        blocks = extract_diagram_blocks(text)
        if not blocks:
            diagnostics.warning("No flowchart diagram found",
                                suggestion="Start the diagram with a line such as 'flowchart TD'",
                                category='no_diagram')
            return result

        for index, block in enumerate(blocks):
            machine_id = base_name if index == 0 else f"{base_name}_{index + 1}"
            statements = self._lex_block(block, diagnostics)
            machine = self.assembler.assemble(statements, machine_id, diagnostics,
                                              source_path=source_path,
                                              start_line=block.start_line)
            if machine is not None:
                result.machines.append(machine)

        logger.info(f"Parsed {source_path or base_name}: {len(result.machines)} machine(s), "
                    f"{len(diagnostics.errors)} error(s), {len(diagnostics.warnings)} warning(s)")
        return result

    def _lex_block(self, block: DiagramBlock, diagnostics: Diagnostics) -> List[Statement]:
        statements: List[Statement] = []
        subgraph_depth = 0
        for number, raw in block.lines:
            line = raw.strip()
            if not line or is_comment(line):
                continue
            if SUBGRAPH_RE.match(line):
                subgraph_depth += 1
                diagnostics.warning("Subgraphs are flattened into the parent machine",
                                    line=number, category='subgraph')
                continue
            if line == 'end' and subgraph_depth:
                subgraph_depth -= 1
                continue
            if UNSUPPORTED_RE.match(line):
                diagnostics.warning(f"Unsupported statement ignored: {line}", line=number,
                                    category='syntax')
                continue
            try:
                statements.extend(tokenize_line(line, number))
            except DiagramSyntaxError as e:
                diagnostics.add(Diagnostic(
                    message=e.message,
                    severity=Severity(e.severity),
                    line=number,
                    suggestion=e.suggestion,
                    category='syntax',
                ))
        return statements


def parse_text(text: str, machine_name: Optional[str] = None,
               config: Optional[ParserConfig] = None) -> ParseResult:
    return DiagramParser(config).parse_text(text, machine_name=machine_name)


def parse_file(path, config: Optional[ParserConfig] = None) -> ParseResult:
    return DiagramParser(config).parse_file(path)
