"""calldiff: concordance statistics between two collections of variant calls.

Public API is intentionally small; most users should use the CLI:

    calldiff diff --lhs-vcf a.vcf.gz --rhs-vcf b.vcf.gz --reference-fasta ref.fa

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
