"""
C Front End — walks a translation unit with tree-sitter and produces events.

For one main file it emits:
  • IncludeDirective   for every #include written in the main file
  • DeclarationRecord  for every function, variable, typedef, tag and
                       enum constant declared by the headers it reaches
  • UsageEvent         for names the main file references, defines,
                       or uses as types
  • MacroUse           for macros from other files expanded in the main file

The analysis core never sees a syntax tree; this module is the only
place that knows about tree-sitter.
"""

import os
import re
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

import tree_sitter_c as tsc
from tree_sitter import Language, Parser, Node

from include_cleaner.analysis_state import AnalysisState
from include_cleaner.config import AnalyzerConfig
from include_cleaner.diagnostics import Diagnostic, DiagnosticSink
from include_cleaner.events import (
    DeclarationKind, DeclarationRecord, EndOfTranslationUnit, Event,
    IncludeAnnotations, IncludeDirective, MacroUse, SourceLocation,
    UsageEvent, UsageKind,
)
from include_cleaner.include_resolver import IncludeResolver
from include_cleaner.liveness import IncludeVerdict
from include_cleaner.paths import canonical_file_id, under_prefix
from include_cleaner.preprocessor import PreprocessorEngine, PreprocessResult

logger = logging.getLogger(__name__)

C_LANGUAGE = Language(tsc.language())
_parser = Parser(C_LANGUAGE)

_TAG_SPECIFIERS = {
    "struct_specifier": "struct",
    "union_specifier": "union",
    "enum_specifier": "enum",
}

# Nodes whose children are file-scope items
_CONTAINERS = {
    "translation_unit", "preproc_if", "preproc_ifdef", "preproc_elif",
    "preproc_elifdef", "preproc_else", "linkage_specification", "declaration_list",
    "ERROR",
}

_BRANCHES = {"preproc_if", "preproc_ifdef", "preproc_elif", "preproc_elifdef", "preproc_else"}

# Parents whose "name" field introduces a name rather than using one
_NAMING_PARENTS = {
    "enumerator", "preproc_def", "preproc_function_def", "preproc_ifdef",
    "preproc_elifdef", "struct_specifier", "union_specifier", "enum_specifier",
}

_NAME_TYPES = {"identifier", "type_identifier", "field_identifier"}

# Tokens of a #define body; the body is raw text in the syntax tree
_MACRO_LITERAL_RE = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|/\*.*?\*/|//[^\n]*', re.S)
_MACRO_TAG_RE = re.compile(r"\b(struct|union|enum)\s+([A-Za-z_]\w*)")
_MACRO_IDENT_RE = re.compile(r"\b[A-Za-z_]\w*\b")

_C_KEYWORDS = {
    "auto", "break", "case", "char", "const", "continue", "default", "do", "double",
    "else", "enum", "extern", "float", "for", "goto", "if", "inline", "int", "long",
    "register", "restrict", "return", "short", "signed", "sizeof", "static", "struct",
    "switch", "typedef", "union", "unsigned", "void", "volatile", "while", "_Bool",
    "_Static_assert", "_Alignof", "_Generic", "defined", "__VA_ARGS__",
}


class AnalysisError(Exception):
    """The main file of a translation unit could not be analyzed."""


# ═══════════════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class HeaderSummary:
    """Everything a header contributes to the units that include it."""
    path: str                                   # absolute
    declarations: List[DeclarationRecord] = field(default_factory=list)
    macros: List[str] = field(default_factory=list)
    includes: List[Tuple[str, bool]] = field(default_factory=list)  # (spelling, angled)
    var_types: Dict[str, str] = field(default_factory=dict)         # variable -> type spelling
    typedef_tags: Dict[str, str] = field(default_factory=dict)      # typedef -> "struct foo"


@dataclass
class AnalysisResult:
    file_id: str
    diagnostics: List[Diagnostic]
    verdicts: List[IncludeVerdict]


# ═══════════════════════════════════════════════════════════════════════
#  Tree helpers
# ═══════════════════════════════════════════════════════════════════════

def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _walk_all(node: Node):
    """Yield all descendant nodes."""
    cursor = node.walk()
    visited = False
    while True:
        if not visited:
            yield cursor.node
        if not visited and cursor.goto_first_child():
            visited = False
            continue
        if cursor.goto_next_sibling():
            visited = False
            continue
        if cursor.goto_parent():
            visited = True
            continue
        break


def _top_level_items(node: Node):
    """Yield file-scope items, looking through #if blocks and extern "C"."""
    for child in node.children:
        if child.type in _CONTAINERS:
            yield from _top_level_items(child)
        else:
            yield child


def _find_enclosing(node: Node, types: Set[str]) -> Optional[Node]:
    current = node.parent
    while current:
        if current.type in types:
            return current
        current = current.parent
    return None


def _is_field(parent: Node, field_name: str, node: Node) -> bool:
    child = parent.child_by_field_name(field_name)
    return child is not None and child.id == node.id


def _declared_name(declarator: Node) -> Tuple[Optional[Node], bool]:
    """Unwrap a declarator to its name; also report whether it declares a function.

    ``int *f(void)`` declares a function, ``int (*f)(void)`` a pointer.
    """
    node = declarator
    nearest = None
    while node is not None and node.type not in _NAME_TYPES:
        if node.type not in ("parenthesized_declarator", "attributed_declarator"):
            nearest = node.type
        inner = node.child_by_field_name("declarator")
        if inner is None:
            inner = next(
                (c for c in node.named_children
                 if c.type in _NAME_TYPES or c.type.endswith("declarator")),
                None,
            )
        node = inner
    return node, nearest == "function_declarator"


def _is_declared_name(node: Node) -> bool:
    """True if ``node`` is the name being declared, not a use of it."""
    parent = node.parent
    if parent is None:
        return False
    if parent.type in _NAMING_PARENTS and _is_field(parent, "name", node):
        return True
    if parent.type in ("preproc_params", "preproc_defined"):
        return True
    return any(c.id == node.id for c in parent.children_by_field_name("declarator"))


def _in_preproc_condition(node: Node) -> bool:
    current = node
    while current.parent is not None:
        parent = current.parent
        if parent.type in ("preproc_if", "preproc_elif") and _is_field(parent, "condition", current):
            return True
        current = parent
    return False


def _type_spelling(type_node: Optional[Node], source: bytes) -> Optional[str]:
    """Canonical spelling of a declaration's type: "struct foo" or a typedef name."""
    if type_node is None:
        return None
    if type_node.type in _TAG_SPECIFIERS:
        name = type_node.child_by_field_name("name")
        if name is None:
            return None
        return f"{_TAG_SPECIFIERS[type_node.type]} {_node_text(name, source)}"
    if type_node.type == "type_identifier":
        return _node_text(type_node, source)
    return None


def _has_storage_class(node: Node, source: bytes, keyword: str) -> bool:
    return any(
        c.type == "storage_class_specifier" and _node_text(c, source) == keyword
        for c in node.children
    )


def _include_spelling(node: Node, source: bytes) -> Optional[Tuple[str, bool, Node]]:
    """(spelling, is_angled, path_node) of a preproc_include, if literal."""
    path = node.child_by_field_name("path")
    if path is None:
        return None
    text = _node_text(path, source).strip()
    if path.type == "system_lib_string":
        return text[1:-1], True, path
    if path.type == "string_literal":
        return text[1:-1], False, path
    # #include MACRO — resolved by the preprocessor only
    return None


def check_include_annotations(source: bytes, offset: int, config: AnalyzerConfig) -> IncludeAnnotations:
    """Look for the annotation markers right after an include's filename."""
    def follows(marker: str) -> bool:
        m = marker.encode("utf-8")
        return bool(m) and source[offset:offset + len(m)] == m

    return IncludeAnnotations(
        allowed=follows(config.allowed_marker),
        optional=follows(config.optional_marker),
    )


# ═══════════════════════════════════════════════════════════════════════
#  Header indexing
# ═══════════════════════════════════════════════════════════════════════

def summarize_header(path: str, source: bytes, file_id: Optional[str] = None) -> HeaderSummary:
    """Extract declarations, macros and includes from one header.

    Declarations are attributed to ``file_id``, or to ``path`` if not given.
    """
    summary = HeaderSummary(path=path)
    file_id = file_id or path
    root = _parser.parse(source).root_node

    def declare(kind: DeclarationKind, name: str, external: bool = False):
        summary.declarations.append(DeclarationRecord(name, file_id, kind, external))

    for item in _top_level_items(root):
        if item.type == "function_definition":
            name, _ = _declared_name(item.child_by_field_name("declarator"))
            if name is not None:
                declare(DeclarationKind.FUNCTION, _node_text(name, source))

        elif item.type == "declaration":
            external = _has_storage_class(item, source, "extern")
            spelling = _type_spelling(item.child_by_field_name("type"), source)
            for decl in item.children_by_field_name("declarator"):
                name, is_function = _declared_name(decl)
                if name is None:
                    continue
                text = _node_text(name, source)
                if is_function:
                    declare(DeclarationKind.FUNCTION, text, external)
                else:
                    declare(DeclarationKind.VARIABLE, text, external)
                    if spelling:
                        summary.var_types[text] = spelling

        elif item.type == "type_definition":
            type_node = item.child_by_field_name("type")
            tag = None
            if type_node is not None and type_node.type in _TAG_SPECIFIERS:
                tag = _type_spelling(type_node, source)
            if tag and type_node.child_by_field_name("body") is None:
                # typedef struct foo foo_t; also declares the opaque tag
                declare(DeclarationKind.TAG, tag)
            for decl in item.children_by_field_name("declarator"):
                name, _ = _declared_name(decl)
                if name is None:
                    continue
                alias = _node_text(name, source)
                declare(DeclarationKind.TYPEDEF, alias)
                if tag:
                    summary.typedef_tags[alias] = tag

        elif item.type in _TAG_SPECIFIERS and item.child_by_field_name("body") is None:
            # forward declaration: struct foo;
            tag = _type_spelling(item, source)
            if tag:
                declare(DeclarationKind.TAG, tag)

    for node in _walk_all(root):
        if node.type in _TAG_SPECIFIERS and node.child_by_field_name("body") is not None:
            tag = _type_spelling(node, source)
            if tag:
                declare(DeclarationKind.TAG, tag)
        elif node.type == "enumerator":
            name = node.child_by_field_name("name")
            if name is not None:
                declare(DeclarationKind.ENUM_CONSTANT, _node_text(name, source))
        elif node.type in ("preproc_def", "preproc_function_def"):
            name = node.child_by_field_name("name")
            if name is not None:
                summary.macros.append(_node_text(name, source))
        elif node.type == "preproc_include":
            spelled = _include_spelling(node, source)
            if spelled is not None:
                summary.includes.append((spelled[0], spelled[1]))

    return summary


# ═══════════════════════════════════════════════════════════════════════
#  Main-file scopes
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class _Scope:
    names: Set[str] = field(default_factory=set)
    var_types: Dict[str, str] = field(default_factory=dict)

    def add_declaration(self, decl_node: Node, source: bytes):
        spelling = _type_spelling(decl_node.child_by_field_name("type"), source)
        for decl in decl_node.children_by_field_name("declarator"):
            name, _ = _declared_name(decl)
            if name is None:
                continue
            text = _node_text(name, source)
            self.names.add(text)
            if spelling:
                self.var_types[text] = spelling


def _function_scope(fn: Node, source: bytes) -> _Scope:
    """Parameters and block-scope declarations of a function definition."""
    scope = _Scope()
    for node in _walk_all(fn):
        if node.type in ("parameter_declaration", "declaration") and node.id != fn.id:
            scope.add_declaration(node, source)
    return scope


# ═══════════════════════════════════════════════════════════════════════
#  Front end
# ═══════════════════════════════════════════════════════════════════════

class CFrontEnd:
    """Turns a C translation unit on disk into analyzer events."""

    def __init__(self, config: Optional[AnalyzerConfig] = None,
                 preprocessor: Optional[PreprocessorEngine] = None):
        self.config = config or AnalyzerConfig()
        self.workspace_root = self.config.resolved_root()
        self.resolver = IncludeResolver(self.config)
        if preprocessor is None and self.config.use_preprocessor:
            preprocessor = PreprocessorEngine(self.workspace_root, self.config.defines)
        self.preprocessor = preprocessor
        self._headers: Dict[str, Optional[HeaderSummary]] = {}

    def file_id(self, path: str) -> str:
        return canonical_file_id(self.absolute(path), self.workspace_root)

    # ────────────────────────────────────────────────────────────────
    #  File access
    # ────────────────────────────────────────────────────────────────

    def absolute(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.abspath(os.path.join(self.workspace_root, path))

    @staticmethod
    def _read(path: str) -> Optional[bytes]:
        try:
            with open(path, "rb") as f:
                source = f.read()
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            return None
        if b"\x00" in source[:8192]:
            logger.warning("Skipping binary file: %s", path)
            return None
        return source

    def header_summary(self, path: str) -> Optional[HeaderSummary]:
        """Parse a header once and cache what it declares."""
        if path not in self._headers:
            source = self._read(path)
            self._headers[path] = summarize_header(path, source, self.file_id(path)) if source is not None else None
        return self._headers[path]

    # ────────────────────────────────────────────────────────────────
    #  Event production
    # ────────────────────────────────────────────────────────────────

    def scan(self, main_file: str) -> Iterator[Event]:
        """Yield every event for the unit rooted at ``main_file``."""
        main_path = self.absolute(main_file)
        source = self._read(main_path)
        if source is None:
            raise AnalysisError(f"Cannot read {main_file}")

        main_id = self.file_id(main_path)
        tree = _parser.parse(source)
        pp = self._preprocess(main_path)

        # 1. Includes of the main file
        direct: List[str] = []
        for node in _walk_all(tree.root_node):
            if node.type != "preproc_include":
                continue
            event = self._include_event(node, source, main_path, main_id, pp)
            if event is None:
                continue
            yield event
            if event.resolved:
                direct.append(self.absolute(event.file_id))

        # 2. Declarations from everything those includes reach
        headers = self._reachable_headers(direct, main_path)
        macros: Dict[str, str] = {}
        var_types: Dict[str, str] = {}
        typedef_tags: Dict[str, str] = {}
        for summary in headers:
            yield from summary.declarations
            for name in summary.macros:
                macros.setdefault(name, self.file_id(summary.path))
            var_types.update(summary.var_types)
            typedef_tags.update(summary.typedef_tags)

        # 3. Usages in the main file
        yield from self._usages(tree.root_node, source, main_id, pp, macros, var_types, typedef_tags)
        yield EndOfTranslationUnit()

    def _preprocess(self, main_path: str) -> Optional[PreprocessResult]:
        if self.preprocessor is None or not self.config.use_preprocessor:
            return None
        return self.preprocessor.preprocess(main_path, self.resolver.include_dirs)

    def _include_event(self, node: Node, source: bytes, main_path: str, main_id: str,
                       pp: Optional[PreprocessResult]) -> Optional[IncludeDirective]:
        line = node.start_point[0] + 1
        if pp is not None and line not in pp.include_lines:
            logger.debug("Skipping inactive include at %s:%d", main_id, line)
            return None
        spelled = _include_spelling(node, source)
        if spelled is None:
            logger.debug("Skipping computed include at %s:%d", main_id, line)
            return None
        spelling, angled, path_node = spelled
        location = SourceLocation(main_id, line, node.start_point[1] + 1)
        resolved = self.resolver.resolve(spelling, angled, main_path)
        if resolved is None:
            return IncludeDirective(spelling, location, angled, resolved=False)
        return IncludeDirective(
            file_id=self.file_id(resolved),
            location=location,
            is_angled=angled,
            resolved=True,
            annotations=check_include_annotations(source, path_node.end_byte, self.config),
        )

    def _reachable_headers(self, direct: List[str], main_path: str) -> List[HeaderSummary]:
        """BFS over includes starting from the main file's direct includes."""
        visited: Set[str] = {main_path}
        queue = deque(direct)
        summaries = []
        while queue:
            path = queue.popleft()
            if path in visited:
                continue
            visited.add(path)
            if under_prefix(self.file_id(path), self.config.system_prefixes):
                continue
            summary = self.header_summary(path)
            if summary is None:
                continue
            summaries.append(summary)
            for spelling, angled in summary.includes:
                resolved = self.resolver.resolve(spelling, angled, path)
                if resolved is not None and resolved not in visited:
                    queue.append(resolved)
        return summaries

    def _usages(self, root: Node, source: bytes, main_id: str, pp: Optional[PreprocessResult],
                macros: Dict[str, str], var_types: Dict[str, str],
                typedef_tags: Dict[str, str]) -> Iterator[Event]:
        file_scope = _Scope(var_types=dict(var_types))
        main_typedefs: Set[str] = set()
        main_macros: Set[str] = set()
        typedef_tags = dict(typedef_tags)

        # File-scope declarations of the main file are definitions
        for item in _top_level_items(root):
            if not self._is_active(item, pp):
                continue
            if item.type == "function_definition":
                name, _ = _declared_name(item.child_by_field_name("declarator"))
                if name is not None:
                    text = _node_text(name, source)
                    file_scope.names.add(text)
                    yield UsageEvent(text, UsageKind.DEFINITION)
            elif item.type == "declaration":
                file_scope.add_declaration(item, source)
                for decl in item.children_by_field_name("declarator"):
                    name, _ = _declared_name(decl)
                    if name is not None:
                        yield UsageEvent(_node_text(name, source), UsageKind.DEFINITION)
            elif item.type == "type_definition":
                tag = _type_spelling(item.child_by_field_name("type"), source)
                for decl in item.children_by_field_name("declarator"):
                    name, _ = _declared_name(decl)
                    if name is not None:
                        alias = _node_text(name, source)
                        main_typedefs.add(alias)
                        if tag and tag.split(" ", 1)[0] in _TAG_SPECIFIERS.values():
                            typedef_tags[alias] = tag

        scopes: Dict[int, _Scope] = {}

        def scope_of(node: Node) -> Optional[_Scope]:
            fn = _find_enclosing(node, {"function_definition"})
            if fn is None:
                return None
            if fn.id not in scopes:
                scopes[fn.id] = _function_scope(fn, source)
            return scopes[fn.id]

        def location(node: Node) -> SourceLocation:
            return SourceLocation(main_id, node.start_point[0] + 1, node.start_point[1] + 1)

        for node in _walk_all(root):
            if node.type in ("preproc_def", "preproc_function_def"):
                name = node.child_by_field_name("name")
                if name is not None:
                    main_macros.add(_node_text(name, source))

        for node in _walk_all(root):
            if node.type in ("preproc_def", "preproc_function_def"):
                if self._is_active(node, pp):
                    yield from self._macro_body_usages(
                        node, source, main_id, macros, main_macros, file_scope)
                continue

            if node.type not in ("identifier", "type_identifier", "field_expression") \
                    and node.type not in _TAG_SPECIFIERS:
                continue
            if not self._is_active(node, pp):
                continue

            if node.type in _TAG_SPECIFIERS:
                tag = _type_spelling(node, source)
                if tag:
                    yield UsageEvent(tag, UsageKind.TAG_USAGE)
                continue

            if node.type == "field_expression":
                record = self._member_owner(node, source, scope_of(node), file_scope, typedef_tags)
                if record:
                    yield UsageEvent(record, UsageKind.MEMBER_ACCESS)
                continue

            if _is_declared_name(node):
                continue
            text = _node_text(node, source)

            if text in macros and text not in main_macros:
                yield MacroUse(macros[text], location(node))

            if node.type == "type_identifier":
                if text in main_typedefs:
                    continue
                yield UsageEvent(text, UsageKind.TAG_USAGE)
                if text in typedef_tags:
                    yield UsageEvent(typedef_tags[text], UsageKind.TAG_USAGE)
                continue

            if _in_preproc_condition(node):
                continue
            local = scope_of(node)
            if local is not None and text in local.names:
                continue
            if text in file_scope.names:
                continue
            yield UsageEvent(text, UsageKind.REFERENCE)

    @staticmethod
    def _macro_body_usages(node: Node, source: bytes, main_id: str, macros: Dict[str, str],
                           main_macros: Set[str], file_scope: _Scope) -> Iterator[Event]:
        """Names used in the body of a main-file #define.

        The body is not parsed, so a name could be either a value or a type
        and is offered as both.
        """
        value = node.child_by_field_name("value")
        if value is None:
            return
        params: Set[str] = set()
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            params = {_node_text(p, source) for p in parameters.named_children if p.type == "identifier"}

        body = _MACRO_LITERAL_RE.sub(" ", _node_text(value, source))
        where = SourceLocation(main_id, value.start_point[0] + 1, value.start_point[1] + 1)
        for match in _MACRO_TAG_RE.finditer(body):
            yield UsageEvent(f"{match.group(1)} {match.group(2)}", UsageKind.TAG_USAGE)
        for match in _MACRO_IDENT_RE.finditer(body):
            text = match.group(0)
            if text in params or text in _C_KEYWORDS or text in main_macros:
                continue
            if text in macros:
                yield MacroUse(macros[text], where)
                continue
            if text in file_scope.names:
                continue
            yield UsageEvent(text, UsageKind.REFERENCE)
            yield UsageEvent(text, UsageKind.TAG_USAGE)

    @staticmethod
    def _member_owner(node: Node, source: bytes, local: Optional[_Scope], file_scope: _Scope,
                      typedef_tags: Dict[str, str]) -> Optional[str]:
        """Record type owning the field in ``x.f`` / ``x->f``, when ``x`` is a plain name."""
        argument = node.child_by_field_name("argument")
        if argument is None or argument.type != "identifier":
            return None
        name = _node_text(argument, source)
        spelling = None
        if local is not None:
            spelling = local.var_types.get(name)
        if spelling is None:
            spelling = file_scope.var_types.get(name)
        if spelling is None:
            return None
        return typedef_tags.get(spelling, spelling)

    @staticmethod
    def _is_active(node: Node, pp: Optional[PreprocessResult]) -> bool:
        """False if ``node`` sits in a conditional branch the preprocessor dropped."""
        if pp is None:
            return True
        branch = _find_enclosing(node, _BRANCHES)
        if branch is None:
            return True
        start = branch.start_point[0] + 1
        alternative = branch.child_by_field_name("alternative")
        end = alternative.start_point[0] if alternative is not None else branch.end_point[0] + 1
        return pp.is_range_active(start + 1, end)


# ═══════════════════════════════════════════════════════════════════════
#  Entry point
# ═══════════════════════════════════════════════════════════════════════

def analyze_file(path: str, config: Optional[AnalyzerConfig] = None,
                 sink: Optional[DiagnosticSink] = None,
                 front_end: Optional[CFrontEnd] = None) -> AnalysisResult:
    """Analyze one translation unit and return its diagnostics and verdicts."""
    front_end = front_end or CFrontEnd(config)
    # FileIds from the front end are already relative to this root
    config = front_end.config.model_copy(update={"workspace_root": front_end.workspace_root})
    main_id = front_end.file_id(path)
    state = AnalysisState(main_id, config, sink=sink)
    state.feed(front_end.scan(path))
    diagnostics = state.finalize()
    return AnalysisResult(main_id, diagnostics, state.verdicts)
