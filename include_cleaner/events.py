"""
Event Model — the data contract between a front end and the analyzer.

A front end walks one translation unit and produces a stream of these
events.  The analyzer never looks at source code itself; everything it
knows arrives through:

  • DeclarationRecord   — a symbol declared in some file
  • UsageEvent          — a symbol used from inside the main file
  • IncludeDirective    — a #include written in the main file
  • MacroUse            — a macro expanded inside the main file
  • EndOfTranslationUnit
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Union


# ═══════════════════════════════════════════════════════════════════════
#  Kinds
# ═══════════════════════════════════════════════════════════════════════

class DeclarationKind(Enum):
    FUNCTION = "function"
    VARIABLE = "variable"
    TYPE = "type"
    TYPEDEF = "typedef"
    ENUM_CONSTANT = "enum_constant"
    TAG = "tag"


class UsageKind(Enum):
    REFERENCE = "reference"
    MEMBER_ACCESS = "member_access"
    DEFINITION = "definition"
    TAG_USAGE = "tag_usage"


# ═══════════════════════════════════════════════════════════════════════
#  Locations & annotations
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A point in a source file (1-indexed line and column)."""
    file: str
    line: int
    column: int = 1

    def __str__(self):
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class IncludeAnnotations:
    """Trailing-comment markers found after an include's filename."""
    allowed: bool = False
    optional: bool = False


# ═══════════════════════════════════════════════════════════════════════
#  Events
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DeclarationRecord:
    name: str
    file_id: str
    kind: DeclarationKind
    is_external_storage: bool = False


@dataclass(frozen=True)
class UsageEvent:
    name: str
    kind: UsageKind


@dataclass(frozen=True)
class IncludeDirective:
    file_id: str
    location: SourceLocation
    is_angled: bool = False
    resolved: bool = True
    annotations: IncludeAnnotations = IncludeAnnotations()


@dataclass(frozen=True)
class MacroUse:
    definition_file_id: str
    location: SourceLocation


@dataclass(frozen=True)
class EndOfTranslationUnit:
    pass


Event = Union[DeclarationRecord, UsageEvent, IncludeDirective, MacroUse, EndOfTranslationUnit]


# ═══════════════════════════════════════════════════════════════════════
#  Per-include bookkeeping
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class IncludeRecord:
    """A tracked #include of the main file and the credit it received."""
    file_id: str
    location: SourceLocation
    usage_count: int = 0
    marked_allowed: bool = False
    marked_optional: bool = False
    credited_by: List[str] = field(default_factory=list)  # e.g. "reference:helper"

    def credit(self, reason: str, amount: int = 1):
        self.usage_count += amount
        self.credited_by.append(reason)
