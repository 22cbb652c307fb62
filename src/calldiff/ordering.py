from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .models import Call

logger = logging.getLogger(__name__)

SortKey = Tuple[int, str, int]


class CallOrder:
    """Total order over (contig, position).

    Contigs compare lexicographically unless an explicit contig order is given,
    in which case listed contigs come first in that order and unknown contigs
    follow, lexicographically. Positions compare numerically.
    """

    def __init__(self, contigs: Optional[Sequence[str]] = None) -> None:
        self._rank: Dict[str, int] = {}
        if contigs is not None:
            for i, name in enumerate(contigs):
                self._rank.setdefault(name, i)
        self._unknown_rank = len(self._rank)

    @classmethod
    def from_contigs(cls, contigs: Iterable[str]) -> "CallOrder":
        return cls(list(contigs))

    def key(self, contig: str, position: int) -> SortKey:
        # Lexicographic order is the special case where every contig shares rank 0.
        return (self._rank.get(contig, self._unknown_rank), contig, position)

    def call_key(self, call: Call) -> SortKey:
        return self.key(call.contig, call.position)


LEXICOGRAPHIC = CallOrder()


def order_calls(calls: Iterable[Call], order: CallOrder = LEXICOGRAPHIC) -> Iterator[Call]:
    """Return ``calls`` sorted under ``order``.

    The whole input is buffered in memory and stable-sorted, so same-position
    calls keep their source order. Errors raised by the source while it is
    being drained propagate unchanged.
    """
    buffered: List[Call] = list(calls)
    buffered.sort(key=order.call_key)
    logger.debug("Sorted %d calls", len(buffered))
    return iter(buffered)
