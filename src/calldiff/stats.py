from __future__ import annotations

import logging
import types
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .models import (
    MISMATCH_ALLELES,
    MISMATCH_GENOTYPE,
    AlignmentOutcome,
    Call,
    Classification,
    VariantType,
    is_symbolic,
)

logger = logging.getLogger(__name__)


def variant_type(calls: Sequence[Call]) -> VariantType:
    """Infer the variant type of a group of calls from its called alternate alleles."""
    alts = set()
    for c in calls:
        for i in c.genotype:
            if i > 0:
                alts.add((c.ref, c.alleles[i]))
    if not alts:
        return VariantType.REFERENCE
    if len({alt for _, alt in alts}) > 1:
        return VariantType.MULTI_ALLELIC
    ref, alt = next(iter(alts))
    if is_symbolic(alt):
        return VariantType.SYMBOLIC
    if len(ref) == len(alt):
        return VariantType.SNP if len(ref) == 1 else VariantType.MNP
    return VariantType.INSERTION if len(alt) > len(ref) else VariantType.DELETION


def outcome_variant_type(outcome: AlignmentOutcome) -> VariantType:
    if not outcome.rhs:
        return variant_type(outcome.lhs)
    if not outcome.lhs:
        return variant_type(outcome.rhs)
    lt = variant_type(outcome.lhs)
    rt = variant_type(outcome.rhs)
    return lt if lt == rt else VariantType.MIXED


def mismatch_kind(outcome: AlignmentOutcome) -> str:
    """``genotype`` when both sides list the same alleles but select differently.

    The kind decided by the comparison rule wins; raw allele strings are only
    compared for outcomes built without one.
    """
    if outcome.mismatch_kind is not None:
        return outcome.mismatch_kind

    def allele_sets(calls: Sequence[Call]):
        return frozenset(tuple(sorted(a.upper() for a in c.alleles)) for c in calls)

    if allele_sets(outcome.lhs) == allele_sets(outcome.rhs):
        return MISMATCH_GENOTYPE
    return MISMATCH_ALLELES


def _ratio(num: int, denom: int) -> Optional[float]:
    if denom == 0:
        return None
    return num / float(denom)


@dataclass(frozen=True)
class DiffStats:
    """Final concordance statistics of one diff run."""

    counts: Mapping[Classification, int]
    by_type: Mapping[Tuple[Classification, VariantType], int]
    mismatch_kinds: Mapping[str, int]
    reference_inconsistent: int = 0
    truncated: bool = False

    def count(self, cls: Classification) -> int:
        return int(self.counts.get(cls, 0))

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def concordance(self) -> Optional[float]:
        """MATCH / (MATCH + MISMATCH) over positions called on both sides."""
        both = self.count(Classification.MATCH) + self.count(Classification.MISMATCH)
        return _ratio(self.count(Classification.MATCH), both)

    @property
    def overlap(self) -> Optional[float]:
        """Fraction of visited positions called on both sides."""
        both = self.count(Classification.MATCH) + self.count(Classification.MISMATCH)
        return _ratio(both, self.total)

    def to_dict(self) -> Dict[str, Any]:
        by_type: Dict[str, Dict[str, int]] = {}
        for (cls, vt), n in sorted(self.by_type.items(), key=lambda kv: (kv[0][0].value, kv[0][1].value)):
            by_type.setdefault(cls.value, {})[vt.value] = int(n)
        return {
            "counts": {cls.value: self.count(cls) for cls in Classification},
            "total": self.total,
            "by_variant_type": by_type,
            "mismatch_kinds": {k: int(v) for k, v in sorted(self.mismatch_kinds.items())},
            "reference_inconsistent": int(self.reference_inconsistent),
            "concordance": self.concordance,
            "overlap": self.overlap,
            "truncated": self.truncated,
        }


@dataclass
class DiffStatsBuilder:
    """Mutable fold state; call :meth:`add` once per outcome, then :meth:`build`."""

    counts: Dict[Classification, int] = field(default_factory=lambda: {c: 0 for c in Classification})
    by_type: Dict[Tuple[Classification, VariantType], int] = field(default_factory=dict)
    mismatch_kinds: Dict[str, int] = field(
        default_factory=lambda: {MISMATCH_GENOTYPE: 0, MISMATCH_ALLELES: 0}
    )
    reference_inconsistent: int = 0
    truncated: bool = False

    def add(self, outcome: AlignmentOutcome) -> None:
        cls = outcome.classification
        self.counts[cls] += 1
        key = (cls, outcome_variant_type(outcome))
        self.by_type[key] = self.by_type.get(key, 0) + 1
        if cls is Classification.MISMATCH:
            self.mismatch_kinds[mismatch_kind(outcome)] += 1
        if outcome.reference_consistent is False:
            self.reference_inconsistent += 1

    def build(self) -> DiffStats:
        return DiffStats(
            counts=types.MappingProxyType(dict(self.counts)),
            by_type=types.MappingProxyType(dict(self.by_type)),
            mismatch_kinds=types.MappingProxyType(dict(self.mismatch_kinds)),
            reference_inconsistent=self.reference_inconsistent,
            truncated=self.truncated,
        )


def accumulate(
    outcomes: Iterable[AlignmentOutcome],
    *,
    max_mismatches: Optional[int] = None,
) -> DiffStats:
    """Fold an outcome stream into :class:`DiffStats`.

    If ``max_mismatches`` is set, stop pulling once that many mismatches were
    seen; the stream is closed and the result is flagged ``truncated``.
    """
    builder = DiffStatsBuilder()
    it = iter(outcomes)
    try:
        for outcome in it:
            builder.add(outcome)
            if max_mismatches is not None and builder.counts[Classification.MISMATCH] >= max_mismatches:
                builder.truncated = True
                logger.warning(
                    "Stopping after %d mismatches at %s:%d",
                    builder.counts[Classification.MISMATCH],
                    outcome.contig,
                    outcome.position,
                )
                break
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()
    stats = builder.build()
    if stats.reference_inconsistent:
        logger.warning(
            "%d aligned positions carry a reference allele that disagrees with the reference FASTA. "
            "This often means a coordinate-base or genome-build mismatch.",
            stats.reference_inconsistent,
        )
    return stats
