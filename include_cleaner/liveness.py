"""
Include Liveness Engine — decides which tracked includes were needed.

Runs once per translation unit, after all events have been accumulated:

  1. Seeding        — <stem>.h and <stem>_api.h are assumed used by <stem>.c
  2. Cross-matching — references ↔ general declarations,
                      definitions ↔ extern declarations,
                      tag usages  ↔ tag declarations,
                      plus macro uses, each crediting the declaring file
  3. Propagation    — a used foo_private.h makes foo_api.h used (one hop)
  4. Verdict        — live / dead / allowed / redundantly allowed
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Set

from include_cleaner.config import AnalyzerConfig
from include_cleaner.declaration_index import Bucket, DeclarationIndex
from include_cleaner.events import IncludeRecord
from include_cleaner.paths import strip_suffix
from include_cleaner.usage_accumulator import UsageAccumulator

logger = logging.getLogger(__name__)


class Verdict(Enum):
    LIVE = "live"
    DEAD = "dead"
    ALLOWED = "allowed"                      # unused but annotated allowed
    REDUNDANT_ALLOWED = "redundant_allowed"  # annotated allowed, yet used

    @property
    def is_live(self) -> bool:
        return self in (Verdict.LIVE, Verdict.REDUNDANT_ALLOWED)


@dataclass(frozen=True)
class IncludeVerdict:
    file_id: str
    verdict: Verdict
    record: IncludeRecord

    @property
    def usage_count(self) -> int:
        return self.record.usage_count


def verdict_for(record: IncludeRecord) -> Verdict:
    live = record.usage_count > 0 or record.marked_optional
    if live:
        return Verdict.REDUNDANT_ALLOWED if record.marked_allowed else Verdict.LIVE
    return Verdict.ALLOWED if record.marked_allowed else Verdict.DEAD


class IncludeLivenessEngine:

    def __init__(self, config: AnalyzerConfig):
        self.config = config

    def run(self, main_file_id: str, records: Dict[str, IncludeRecord],
            index: DeclarationIndex, usages: UsageAccumulator,
            macro_uses: Iterable[str] = ()) -> List[IncludeVerdict]:
        """Credit ``records`` in place and return verdicts in insertion order."""
        self._seed_self_headers(main_file_id, records)

        self._cross_match(usages.references, index, Bucket.GENERAL, records, "reference")
        self._cross_match(usages.definitions, index, Bucket.EXTERN, records, "definition")
        self._cross_match(usages.tag_usages, index, Bucket.TAG, records, "tag")
        for file_id in macro_uses:
            if file_id in records:
                records[file_id].credit("macro")
                logger.debug("Found usage of: %s (macro)", file_id)

        self._propagate_private_to_public(records)

        verdicts = [IncludeVerdict(fid, verdict_for(rec), rec) for fid, rec in records.items()]
        for v in verdicts:
            logger.debug("%s => %d (%s)", v.file_id, v.usage_count, v.verdict.value)
        return verdicts

    # ────────────────────────────────────────────────────────────────
    #  Steps
    # ────────────────────────────────────────────────────────────────

    def _seed_self_headers(self, main_file_id: str, records: Dict[str, IncludeRecord]):
        stem = strip_suffix(main_file_id, self.config.source_suffixes)
        if stem is None:
            return
        for suffix in self.config.self_header_suffixes:
            rec = records.get(stem + suffix)
            if rec is not None and rec.usage_count < 1:
                rec.credit("self-header", 1 - rec.usage_count)
                logger.debug("Seeded self header: %s", rec.file_id)

    @staticmethod
    def _cross_match(used: Set[str], index: DeclarationIndex, bucket: Bucket,
                     records: Dict[str, IncludeRecord], label: str):
        # sorted so credited_by order does not depend on set iteration
        for name in sorted(used):
            for file_id in index.lookup(bucket, name):
                rec = records.get(file_id)
                if rec is None:
                    continue
                rec.credit(f"{label}:{name}")
                logger.debug("Found usage of: %s (%s %s)", file_id, label, name)

    def _propagate_private_to_public(self, records: Dict[str, IncludeRecord]):
        siblings = []
        for file_id, rec in records.items():
            prefix = strip_suffix(file_id, [self.config.private_suffix])
            if prefix is None or rec.usage_count <= 0:
                continue
            siblings.append((prefix + self.config.public_suffix, file_id))

        for api, private in siblings:
            rec = records.get(api)
            if rec is not None:
                rec.credit(f"private:{private}")
                logger.debug("Allowing %s because %s is used", api, private)
