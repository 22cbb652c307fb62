"""Rules deciding whether the calls of both sides at one locus agree.

Both rules compare a group of calls per side as a *set* of per-call keys, so
multi-allelic sites split over several records compare independently of
record order. A per-call key is

    (sorted allele multiset, sorted called alleles)

which means a MATCH needs both the alleles and the genotype selection to agree.

:class:`ReferenceEquivalence` first pads every allele with the reference bases
that follow its own reference allele up to the end of the longest reference
allele at the locus. Calls that spell the same haplotypes with different
amounts of trailing context (``A>AT`` vs ``AC>ATC``) then compare equal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Sequence, Tuple

from .errors import ConfigurationError, ReferenceMismatchError
from .models import Call, is_symbolic

logger = logging.getLogger(__name__)

CallKey = Tuple[Tuple[str, ...], Tuple[str, ...]]


@dataclass(frozen=True)
class Comparison:
    """Verdict of a rule at one locus.

    ``same_alleles`` is True when both sides list the same normalized alleles,
    whatever the genotype selection.
    """

    equivalent: bool
    reference_consistent: Optional[bool] = None
    same_alleles: Optional[bool] = None


def _call_key(call: Call, normalize: Callable[[Call, str], str]) -> CallKey:
    alleles = tuple(sorted(normalize(call, a) for a in call.alleles))
    called = tuple(sorted(normalize(call, call.alleles[i]) for i in call.genotype))
    return alleles, called


def _group_key(calls: Sequence[Call], normalize: Callable[[Call, str], str]) -> FrozenSet[CallKey]:
    return frozenset(_call_key(c, normalize) for c in calls)


def _allele_sets(calls: Sequence[Call], normalize: Callable[[Call, str], str]) -> FrozenSet[Tuple[str, ...]]:
    return frozenset(tuple(sorted(normalize(c, a) for a in c.alleles)) for c in calls)


def _compare(lhs, rhs, normalize, reference_consistent=None) -> Comparison:
    equivalent = _group_key(lhs, normalize) == _group_key(rhs, normalize)
    return Comparison(
        equivalent=equivalent,
        reference_consistent=reference_consistent,
        same_alleles=equivalent or _allele_sets(lhs, normalize) == _allele_sets(rhs, normalize),
    )


def _bases_agree(allele: str, observed: str) -> bool:
    if len(allele) != len(observed):
        return False
    for a, b in zip(allele.upper(), observed.upper()):
        if a != b and a != "N" and b != "N":
            return False
    return True


class Equivalence:
    """Base class for locus comparison rules."""

    name = "base"
    needs_reference = False

    def compare(
        self,
        reference,
        contig: str,
        position: int,
        lhs: Sequence[Call],
        rhs: Sequence[Call],
    ) -> Comparison:
        raise NotImplementedError


class ExactEquivalence(Equivalence):
    """String equality of alleles and genotype selection; never touches the reference."""

    name = "exact"

    def compare(self, reference, contig, position, lhs, rhs) -> Comparison:
        def same(call: Call, allele: str) -> str:
            return allele

        return _compare(lhs, rhs, same)


class ReferenceEquivalence(Equivalence):
    """Compare haplotypes over a shared reference window.

    Parameters
    ----------
    strict:
        Raise :class:`ReferenceMismatchError` when a call's reference allele does
        not match the reference sequence. Otherwise the disagreement is only
        reported through ``Comparison.reference_consistent``.
    """

    name = "reference"
    needs_reference = True

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    def compare(self, reference, contig, position, lhs, rhs) -> Comparison:
        span = max(len(c.ref) for c in (*lhs, *rhs))
        window = reference.fetch(contig, position, position + span)

        consistent = True
        for side, calls in (("lhs", lhs), ("rhs", rhs)):
            for c in calls:
                observed = window[: len(c.ref)]
                if _bases_agree(c.ref, observed):
                    continue
                consistent = False
                if self.strict:
                    raise ReferenceMismatchError(side, c.locus, c.ref, observed)
                logger.debug(
                    "%s reference allele %s at %s disagrees with reference %s",
                    side,
                    c.ref,
                    c.locus,
                    observed,
                )

        def pad(call: Call, allele: str) -> str:
            if is_symbolic(allele):
                return allele
            return allele.upper() + window[len(call.ref) :]

        return _compare(lhs, rhs, pad, reference_consistent=consistent)


EQUIVALENCE_RULES = ("reference", "exact")


def make_equivalence(name: str, *, strict: bool = False) -> Equivalence:
    if name == "reference":
        return ReferenceEquivalence(strict=strict)
    if name == "exact":
        if strict:
            raise ConfigurationError("--strict-reference requires --equivalence reference")
        return ExactEquivalence()
    raise ConfigurationError(f"Unknown equivalence rule '{name}'. Choose one of {list(EQUIVALENCE_RULES)}")
