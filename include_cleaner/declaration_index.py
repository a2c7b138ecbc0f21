"""
Declaration Index — which files declare which names.

Declarations are partitioned into three buckets, each mapping a name to
the ordered list of files that declare it:

  • GENERAL — anything a plain reference can resolve to
  • EXTERN  — declarations a definition in the main file may be
              implementing (extern variables, every function)
  • TAG     — struct/union/enum tags and typedef names

Duplicates are kept: a name declared twice in one header, or in several
headers, credits every declaring file.
"""

import logging
from enum import Enum
from typing import Dict, List, Tuple

from include_cleaner.events import DeclarationKind, DeclarationRecord

logger = logging.getLogger(__name__)


class Bucket(Enum):
    GENERAL = "general"
    EXTERN = "extern"
    TAG = "tag"


# Buckets a declaration lands in, ignoring the extern-storage flag.
# Functions are always extern-eligible: a function is commonly declared in
# one header and defined by a unit that includes a different one.
_BASE_BUCKETS: Dict[DeclarationKind, Tuple[Bucket, ...]] = {
    DeclarationKind.FUNCTION: (Bucket.GENERAL, Bucket.EXTERN),
    DeclarationKind.VARIABLE: (Bucket.GENERAL,),
    DeclarationKind.ENUM_CONSTANT: (Bucket.GENERAL,),
    DeclarationKind.TYPE: (Bucket.TAG,),
    DeclarationKind.TYPEDEF: (Bucket.TAG,),
    DeclarationKind.TAG: (Bucket.TAG,),
}


def buckets_for(kind: DeclarationKind, is_external_storage: bool = False) -> Tuple[Bucket, ...]:
    """Buckets a declaration of ``kind`` is recorded in."""
    buckets = _BASE_BUCKETS[kind]
    if kind == DeclarationKind.VARIABLE and is_external_storage:
        buckets = buckets + (Bucket.EXTERN,)
    return buckets


class DeclarationIndex:
    """Name → declaring files, per bucket."""

    def __init__(self):
        self._buckets: Dict[Bucket, Dict[str, List[str]]] = {b: {} for b in Bucket}

    def record(self, bucket: Bucket, name: str, file_id: str):
        self._buckets[bucket].setdefault(name, []).append(file_id)

    def record_declaration(self, kind: DeclarationKind, name: str, file_id: str,
                           is_external_storage: bool = False):
        for bucket in buckets_for(kind, is_external_storage):
            self.record(bucket, name, file_id)
        logger.debug("%s declaration: %s in %s", kind.value, name, file_id)

    def add(self, decl: DeclarationRecord):
        self.record_declaration(decl.kind, decl.name, decl.file_id, decl.is_external_storage)

    def lookup(self, bucket: Bucket, name: str) -> Tuple[str, ...]:
        """Declaring files for ``name``, empty if the name is unknown."""
        return tuple(self._buckets[bucket].get(name, ()))

    def names(self, bucket: Bucket) -> List[str]:
        return list(self._buckets[bucket])

    @property
    def total_entries(self) -> int:
        return sum(len(files) for b in self._buckets.values() for files in b.values())
