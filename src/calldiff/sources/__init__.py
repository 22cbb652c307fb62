"""Call sources: where the calls of each side come from.

- :class:`VcfCallSource` reads a local VCF/BCF via pysam.
- :class:`ApiCallSource` pages through a remote call set via requests.
"""

from __future__ import annotations

__all__ = [
    "ApiCallSource",
    "CallSource",
    "GenomicsClient",
    "VcfCallSource",
]

from .api import ApiCallSource, GenomicsClient
from .base import CallSource
from .vcf import VcfCallSource
