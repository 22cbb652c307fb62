"""Ordered merge of two call streams into classified alignment outcomes."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from .equivalence import Equivalence, ReferenceEquivalence
from .errors import OutOfOrderInputError
from .models import MISMATCH_ALLELES, MISMATCH_GENOTYPE, AlignmentOutcome, Call, Classification
from .ordering import LEXICOGRAPHIC, CallOrder, SortKey

logger = logging.getLogger(__name__)

Group = Tuple[SortKey, Tuple[Call, ...]]


def _grouped(calls: Iterable[Call], order: CallOrder, side: str) -> Iterator[Group]:
    """Yield runs of calls sharing a (contig, position), checking the order eagerly."""
    it = iter(calls)
    current: List[Call] = []
    current_key: Optional[SortKey] = None
    try:
        for call in it:
            key = order.call_key(call)
            if current_key is not None and key < current_key:
                raise OutOfOrderInputError(side, current[-1].locus, call.locus)
            if key == current_key:
                current.append(call)
                continue
            if current:
                yield current_key, tuple(current)
            current = [call]
            current_key = key
        if current:
            yield current_key, tuple(current)
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()


def calldiff(
    reference,
    lhs: Iterable[Call],
    rhs: Iterable[Call],
    *,
    equivalence: Optional[Equivalence] = None,
    order: CallOrder = LEXICOGRAPHIC,
) -> Iterator[AlignmentOutcome]:
    """Merge two ordered call streams, one outcome per distinct (contig, position).

    Parameters
    ----------
    reference:
        Object with ``fetch(contig, start, end) -> str``; only consulted for
        positions called on both sides, and only if the equivalence rule needs it.
    lhs, rhs:
        Calls non-decreasing under ``order``. Input that goes backwards raises
        :class:`OutOfOrderInputError` as soon as the offending call is pulled.
    equivalence:
        Comparison rule for positions present on both sides
        (default :class:`ReferenceEquivalence`).

    The result is a single-pass generator. Closing it early closes both inputs,
    but only once iteration has started; before that the caller still owns them.
    """
    if equivalence is None:
        equivalence = ReferenceEquivalence()

    lhs_groups = _grouped(lhs, order, "lhs")
    rhs_groups = _grouped(rhs, order, "rhs")
    try:
        lg = next(lhs_groups, None)
        rg = next(rhs_groups, None)
        while lg is not None or rg is not None:
            if rg is None or (lg is not None and lg[0] < rg[0]):
                calls = lg[1]
                yield AlignmentOutcome(
                    contig=calls[0].contig,
                    position=calls[0].position,
                    lhs=calls,
                    rhs=(),
                    classification=Classification.LHS_ONLY,
                )
                lg = next(lhs_groups, None)
            elif lg is None or rg[0] < lg[0]:
                calls = rg[1]
                yield AlignmentOutcome(
                    contig=calls[0].contig,
                    position=calls[0].position,
                    lhs=(),
                    rhs=calls,
                    classification=Classification.RHS_ONLY,
                )
                rg = next(rhs_groups, None)
            else:
                lcalls, rcalls = lg[1], rg[1]
                contig, position = lcalls[0].contig, lcalls[0].position
                cmp = equivalence.compare(reference, contig, position, lcalls, rcalls)
                kind = None
                if not cmp.equivalent and cmp.same_alleles is not None:
                    kind = MISMATCH_GENOTYPE if cmp.same_alleles else MISMATCH_ALLELES
                yield AlignmentOutcome(
                    contig=contig,
                    position=position,
                    lhs=lcalls,
                    rhs=rcalls,
                    classification=Classification.MATCH if cmp.equivalent else Classification.MISMATCH,
                    reference_consistent=cmp.reference_consistent,
                    mismatch_kind=kind,
                )
                lg = next(lhs_groups, None)
                rg = next(rhs_groups, None)
    finally:
        lhs_groups.close()
        rhs_groups.close()
