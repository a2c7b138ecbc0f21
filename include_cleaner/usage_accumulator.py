"""
Usage Accumulator — the names the main file actually uses.

Three sets, one per usage domain.  Filtering to main-file locations is the
front end's job; everything that reaches here is trusted.
"""

import logging
from typing import Set

from include_cleaner.events import UsageKind

logger = logging.getLogger(__name__)


class UsageAccumulator:

    def __init__(self):
        self.references: Set[str] = set()
        self.definitions: Set[str] = set()
        self.tag_usages: Set[str] = set()

    def note_reference(self, name: str):
        self.references.add(name)

    def note_definition(self, name: str):
        self.definitions.add(name)

    def note_tag_usage(self, name: str):
        self.tag_usages.add(name)

    def note(self, kind: UsageKind, name: str):
        """Route a usage event to its set."""
        logger.debug("Usage (%s): %s", kind, name)
        if kind == UsageKind.REFERENCE:
            self.note_reference(name)
        elif kind == UsageKind.DEFINITION:
            self.note_definition(name)
        elif kind in (UsageKind.TAG_USAGE, UsageKind.MEMBER_ACCESS):
            # a member access uses the record type that owns the field
            self.note_tag_usage(name)
        else:
            raise ValueError(f"Unknown usage kind: {kind!r}")

    def __len__(self):
        return len(self.references) + len(self.definitions) + len(self.tag_usages)
