from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import pysam

from .errors import ReferenceLookupError, SourceError

logger = logging.getLogger(__name__)


class FastaReference:
    """Random access to an indexed FASTA file.

    Coordinates are 0-based half-open, as in pysam. Bases are returned upper-case.
    No caching is done here; pysam/htslib already buffers reads of the file.
    """

    def __init__(self, fasta: str | Path, fai: Optional[str | Path] = None) -> None:
        self.fasta = str(fasta)
        self.fai = str(fai) if fai is not None else None
        self._fasta: Optional[pysam.FastaFile] = None

    def open(self) -> "FastaReference":
        try:
            self._fasta = pysam.FastaFile(self.fasta, filepath_index=self.fai)
        except (OSError, ValueError) as e:
            raise SourceError(f"Cannot open reference FASTA {self.fasta}: {e}", side="reference") from e
        logger.info("Opened reference %s (%d contigs)", self.fasta, len(self._fasta.references))
        return self

    def close(self) -> None:
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def __enter__(self) -> "FastaReference":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _handle(self) -> pysam.FastaFile:
        if self._fasta is None:
            raise RuntimeError("FastaReference is not open")
        return self._fasta

    @property
    def contigs(self) -> List[str]:
        return list(self._handle().references)

    def fetch(self, contig: str, start: int, end: int) -> str:
        fasta = self._handle()
        if contig not in fasta.references:
            raise ReferenceLookupError(contig, start, end, "contig not in reference index")
        length = fasta.get_reference_length(contig)
        if start < 0 or end < start or end > length:
            raise ReferenceLookupError(contig, start, end, f"outside contig of length {length}")
        return fasta.fetch(reference=contig, start=start, end=end).upper()
