from __future__ import annotations

from typing import Dict, List

import pytest

from calldiff.errors import ReferenceLookupError


class DictReference:
    """In-memory stand-in for FastaReference."""

    def __init__(self, seqs: Dict[str, str]) -> None:
        self.seqs = seqs
        self.fetches: List[tuple] = []

    @property
    def contigs(self) -> List[str]:
        return list(self.seqs)

    def fetch(self, contig: str, start: int, end: int) -> str:
        self.fetches.append((contig, start, end))
        if contig not in self.seqs:
            raise ReferenceLookupError(contig, start, end, "contig not in reference index")
        seq = self.seqs[contig]
        if start < 0 or end < start or end > len(seq):
            raise ReferenceLookupError(contig, start, end, f"outside contig of length {len(seq)}")
        return seq[start:end].upper()


@pytest.fixture
def make_reference():
    return DictReference


@pytest.fixture
def reference() -> DictReference:
    # chr1: position p holds "ACGT"[p % 4]; chr2 is all A
    return DictReference({"chr1": ("ACGT" * 100)[:400], "chr2": "A" * 400})
