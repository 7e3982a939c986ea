"""
Graph Assembler - resolve lexed statements into a ParsedMachine

Applies statements in source order to a draft graph, then derives the
initial node, final nodes and machine category.

KEY FUNCTIONS:
- GraphAssembler.assemble(statements, machine_id, diagnostics) -> ParsedMachine
- classify_transition(label) -> TransitionKind
- extract_guard(label) / extract_action(label)

RULES:
- Nodes keep first-mention order; edge endpoints and class targets that are
  not declared yet are created implicitly as rectangles labeled with their id
- An explicit declaration upgrades an implicit node; a second explicit
  declaration is a warning and the first one is kept
- Declared nodes are final when the label holds a final keyword or the shape
  is a circle; implicit nodes are never keyword-finalised
- Initial node: first node named start/idle/initial/begin, else the first node
- Category: most frequent category tag, ties by CATEGORY_PRIORITY, default user
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import ParserConfig
from . import naming
from .lexer import (
    ClassAssign, ClassDef, EdgeDecl, NodeDecl, NodeRef, Statement, StyleDirective,
)
from .model import (
    CATEGORY_PRIORITY, Diagnostics, Edge, MachineCategory, Node, NodeShape,
    ParsedMachine, TransitionKind,
)

logger = logging.getLogger(__name__)

INITIAL_NAMES = ('start', 'idle', 'initial', 'begin')
FINAL_KEYWORDS = ('end', 'final', 'close', 'exit', 'goodbye', 'session')
SPECIAL_CHARS_RE = re.compile(r'[<>{}\[\]\\]')
PLACEHOLDER_ID = 'EmptyState'
PLACEHOLDER_LABEL = 'Empty State'

# Keyword groups checked in order; first group with a hit decides the kind
TRANSITION_KEYWORDS = [
    (TransitionKind.USER_INPUT, ('input', 'select')),
    (TransitionKind.ERROR, ('error', 'fail')),
    (TransitionKind.TIMEOUT, ('timeout',)),
    (TransitionKind.EXTERNAL, ('verify', 'check')),
    (TransitionKind.CONDITIONAL, ('yes', 'no', 'if')),
]


def classify_transition(label: str) -> TransitionKind:
    text = (label or '').lower()
    for kind, keywords in TRANSITION_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return kind
    return TransitionKind.SYSTEM_ACTION


def _first_match(patterns, label: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(label or '')
        if match:
            return match.group(1).strip()
    return None


def extract_guard(label: str) -> Optional[str]:
    return _first_match(naming.GUARD_PATTERNS, label)


def extract_action(label: str) -> Optional[str]:
    return _first_match(naming.ACTION_PATTERNS, label)


def is_final_label(label: str) -> bool:
    text = (label or '').lower()
    return any(keyword in text for keyword in FINAL_KEYWORDS)


@dataclass
class _DraftGraph:
    """Mutable graph for a single assemble() call"""
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    class_styles: Dict[str, List[str]] = field(default_factory=dict)


class GraphAssembler:
    """Builds ParsedMachine values from lexed statements"""

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()

    def assemble(self, statements: List[Statement], machine_id: str,
                 diagnostics: Diagnostics, source_path: Optional[str] = None,
                 start_line: Optional[int] = None) -> Optional[ParsedMachine]:
        """Assemble one diagram block.

        Returns None only for an empty block when placeholders are disabled.
        """
        graph = _DraftGraph()
        for statement in statements:
            if isinstance(statement, NodeDecl):
                self._declare(graph, statement.node, statement.line, diagnostics)
            elif isinstance(statement, EdgeDecl):
                self._add_edge(graph, statement, diagnostics)
            elif isinstance(statement, ClassDef):
                graph.class_styles[statement.name] = list(statement.styles)
            elif isinstance(statement, ClassAssign):
                for node_id in statement.node_ids:
                    self._ensure(graph, node_id, statement.line).add_class(statement.class_name)
            elif isinstance(statement, StyleDirective):
                self._apply_style(graph, statement, diagnostics)

        if not graph.nodes:
            if not self.config.placeholder_for_empty:
                diagnostics.warning(f"Diagram '{machine_id}' has no states", line=start_line,
                                    category='empty_diagram')
                return None
            diagnostics.warning(
                f"Diagram '{machine_id}' has no states; generated placeholder state '{PLACEHOLDER_ID}'",
                line=start_line,
                suggestion="Add at least one node or edge to the diagram",
                category='empty_diagram',
            )
            graph.nodes[PLACEHOLDER_ID] = Node(PLACEHOLDER_ID, PLACEHOLDER_LABEL, line=start_line)

        self._check_edges(graph, diagnostics)
        nodes = list(graph.nodes.values())
        initial = self._pick_initial(nodes)
        initial.is_initial = True

        machine = ParsedMachine(
            id=machine_id,
            display_name=naming.format_display_name(machine_id),
            category=self._pick_category(nodes),
            nodes=nodes,
            edges=graph.edges,
            initial_node_id=initial.id,
            final_node_ids=[node.id for node in nodes if node.is_final],
            class_styles=graph.class_styles,
            source_path=source_path,
        )
        logger.debug(f"Assembled {machine.id}: {len(nodes)} nodes, {len(graph.edges)} edges, "
                     f"category={machine.category.value}")
        return machine

    def _ensure(self, graph: _DraftGraph, node_id: str, line: Optional[int]) -> Node:
        node = graph.nodes.get(node_id)
        if node is None:
            node = Node(node_id, node_id, line=line, declared=False)
            graph.nodes[node_id] = node
        return node

    def _declare(self, graph: _DraftGraph, ref: NodeRef, line: Optional[int],
                 diagnostics: Diagnostics) -> Node:
        existing = graph.nodes.get(ref.id)
        label = ref.label if ref.label is not None else ref.id
        shape = ref.shape or NodeShape.RECTANGLE
        if existing is not None and existing.declared:
            if ref.has_shape:
                diagnostics.warning(
                    f"Duplicate state definition: {ref.id}",
                    line=line,
                    suggestion=f"Keep a single definition of '{ref.id}' (first definition kept)",
                    category='duplicate_state',
                )
            return existing

        if not label:
            diagnostics.warning(f"State '{ref.id}' has an empty label", line=line,
                                suggestion="Give the state a descriptive label",
                                category='state_label')
            label = ref.id
        elif len(label) > self.config.max_label_length:
            diagnostics.warning(
                f"State label too long ({len(label)} characters): {label[:20]}...",
                line=line,
                suggestion=f"Keep labels under {self.config.max_label_length} characters",
                category='state_label',
            )
        if SPECIAL_CHARS_RE.search(label):
            diagnostics.warning(f"State label contains special characters: {label}", line=line,
                                suggestion="Avoid <, >, {, }, [, ] and backslashes in labels",
                                category='state_label')

        node = Node(
            id=ref.id,
            label=label,
            shape=shape,
            is_final=shape == NodeShape.CIRCLE or is_final_label(label),
            line=line,
        )
        if existing is not None:
            # Upgrade an implicit node, keeping its position and classes
            node.css_classes = existing.css_classes
            node.line = existing.line
        graph.nodes[ref.id] = node
        return node

    def _add_edge(self, graph: _DraftGraph, statement: EdgeDecl, diagnostics: Diagnostics) -> None:
        for ref in (statement.source, statement.target):
            if ref.has_shape:
                self._declare(graph, ref, statement.line, diagnostics)
            else:
                self._ensure(graph, ref.id, statement.line)

        label = statement.label
        graph.edges.append(Edge(
            source=statement.source.id,
            target=statement.target.id,
            label=label,
            kind=classify_transition(label),
            guard=extract_guard(label),
            action=extract_action(label),
            line=statement.line,
        ))

    def _apply_style(self, graph: _DraftGraph, directive: StyleDirective,
                     diagnostics: Diagnostics) -> None:
        node = self._ensure(graph, directive.node_id, directive.line)
        if directive.shape:
            shape = NodeShape.from_directive(directive.shape)
            if shape is None:
                diagnostics.warning(f"Unknown shape '{directive.shape}' for state '{node.id}'",
                                    line=directive.line, category='style_directive')
            else:
                node.shape = shape
                if shape == NodeShape.CIRCLE:
                    node.is_final = True
        for class_name in directive.classes:
            node.add_class(class_name)

    def _check_edges(self, graph: _DraftGraph, diagnostics: Diagnostics) -> None:
        for edge in graph.edges:
            if edge.source == edge.target:
                diagnostics.warning(f"Self-transition detected: {edge.source} -> {edge.target}",
                                    line=edge.line,
                                    suggestion="Make sure the loop is intentional",
                                    category='self_transition')
            source = graph.nodes.get(edge.source)
            if source is not None and source.is_final:
                diagnostics.warning(f"Transition from final state: {edge.source} -> {edge.target}",
                                    line=edge.line,
                                    suggestion=f"Remove the transition or make '{edge.source}' non-final",
                                    category='final_state_transition')

    def _pick_initial(self, nodes: List[Node]) -> Node:
        for node in nodes:
            if node.id.lower() in INITIAL_NAMES:
                return node
        return nodes[0]

    def _pick_category(self, nodes: List[Node]) -> MachineCategory:
        counts = Counter()
        for node in nodes:
            for css_class in node.css_classes:
                category = MachineCategory.from_tag(css_class)
                if category is not None:
                    counts[category] += 1
        if not counts:
            return MachineCategory.USER
        best = max(counts.values())
        for category in CATEGORY_PRIORITY:
            if counts[category] == best:
                return category
        return MachineCategory.USER
