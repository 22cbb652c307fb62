from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple


class Classification(str, enum.Enum):
    """Outcome of aligning the calls of both sides at one locus."""

    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    LHS_ONLY = "LHS_ONLY"
    RHS_ONLY = "RHS_ONLY"


class VariantType(str, enum.Enum):
    REFERENCE = "REFERENCE"
    SNP = "SNP"
    MNP = "MNP"
    INSERTION = "INSERTION"
    DELETION = "DELETION"
    MULTI_ALLELIC = "MULTI_ALLELIC"
    SYMBOLIC = "SYMBOLIC"
    MIXED = "MIXED"


# Sub-kinds of a MISMATCH: same alleles with a different selection, or different alleles.
MISMATCH_GENOTYPE = "genotype"
MISMATCH_ALLELES = "alleles"


def is_symbolic(allele: str) -> bool:
    """True for symbolic / placeholder alleles (``<DEL>``, ``*``, breakends)."""
    return allele.startswith("<") or allele == "*" or "[" in allele or "]" in allele


@dataclass(frozen=True)
class Call:
    """A single variant call for the sample of interest.

    Coordinates are 0-based in internal representation.

    Attributes
    ----------
    contig:
        Contig name as present in the source.
    position:
        0-based position of the first base of the reference allele.
    alleles:
        Reference allele followed by the alternate alleles.
    genotype:
        Indices into ``alleles`` of the called allele(s), one per haplotype.
    """

    contig: str
    position: int
    alleles: Tuple[str, ...]
    genotype: Tuple[int, ...]

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError(f"Negative position for call on {self.contig}: {self.position}")
        if len(self.alleles) == 0:
            raise ValueError(f"Call at {self.contig}:{self.position} has no alleles")
        for idx in self.genotype:
            if not 0 <= idx < len(self.alleles):
                raise ValueError(
                    f"Genotype index {idx} out of range for alleles {list(self.alleles)} "
                    f"at {self.contig}:{self.position}"
                )

    @property
    def ref(self) -> str:
        return self.alleles[0]

    @property
    def called_alleles(self) -> Tuple[str, ...]:
        return tuple(self.alleles[i] for i in self.genotype)

    @property
    def locus(self) -> str:
        return f"{self.contig}:{self.position}"


@dataclass(frozen=True)
class AlignmentOutcome:
    """Classified result for one distinct (contig, position).

    ``lhs``/``rhs`` hold every call of that side at the position (usually one);
    an empty tuple means the side has no call there.
    ``mismatch_kind`` is set by the comparison rule for MISMATCH outcomes.
    """

    contig: str
    position: int
    lhs: Tuple[Call, ...]
    rhs: Tuple[Call, ...]
    classification: Classification
    reference_consistent: Optional[bool] = None
    mismatch_kind: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.lhs and not self.rhs:
            raise ValueError(f"Outcome at {self.contig}:{self.position} has no calls")
        if self.lhs and self.rhs:
            expected = {Classification.MATCH, Classification.MISMATCH}
        elif self.lhs:
            expected = {Classification.LHS_ONLY}
        else:
            expected = {Classification.RHS_ONLY}
        if self.classification not in expected:
            raise ValueError(
                f"Classification {self.classification.value} inconsistent with the calls "
                f"present at {self.contig}:{self.position}"
            )
        if self.mismatch_kind is not None and self.classification is not Classification.MISMATCH:
            raise ValueError(
                f"Mismatch kind given for a {self.classification.value} outcome at "
                f"{self.contig}:{self.position}"
            )

    @property
    def lhs_call(self) -> Optional[Call]:
        return self.lhs[0] if self.lhs else None

    @property
    def rhs_call(self) -> Optional[Call]:
        return self.rhs[0] if self.rhs else None
