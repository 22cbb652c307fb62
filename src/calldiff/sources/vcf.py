from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

import pysam

from ..errors import SourceError
from ..models import Call
from .base import CallSource

logger = logging.getLogger(__name__)


class VcfCallSource(CallSource):
    """Calls of one sample read from a VCF/BCF file (plain or bgzipped).

    Parameters
    ----------
    path:
        VCF file. No index is required; records are read in file order.
    sample:
        Sample name within the VCF. If None, uses the first sample.
    side:
        ``lhs`` or ``rhs``; used in error messages.
    """

    def __init__(self, path: str | Path, *, sample: Optional[str] = None, side: str = "lhs") -> None:
        self.path = str(path)
        self.sample = sample
        self.side = side
        self.stats: Dict[str, int] = {}

    def describe(self) -> str:
        if self.sample:
            return f"{self.path} (sample {self.sample})"
        return self.path

    def _resolve_sample(self, vcf: pysam.VariantFile) -> str:
        samples = list(vcf.header.samples)
        if self.sample is None:
            if len(samples) == 0:
                raise SourceError(f"VCF has no samples: {self.path}", side=self.side)
            logger.info("No sample given for %s; using first VCF sample: %s", self.side, samples[0])
            return samples[0]
        if self.sample not in samples:
            raise SourceError(
                f"Sample '{self.sample}' not found in VCF samples: {samples}", side=self.side
            )
        return self.sample

    @contextmanager
    def open(self) -> Iterator[Iterator[Call]]:
        try:
            vcf = pysam.VariantFile(self.path)
        except (OSError, ValueError) as e:
            raise SourceError(f"Cannot open VCF {self.path}: {e}", side=self.side) from e
        calls = None
        try:
            sample = self._resolve_sample(vcf)
            calls = self._iter_calls(vcf, sample)
            yield calls
        finally:
            if calls is not None:
                calls.close()
            vcf.close()

    def _iter_calls(self, vcf: pysam.VariantFile, sample: str) -> Iterator[Call]:
        self.stats = {"records_total": 0, "calls": 0, "skipped_no_call": 0, "skipped_no_alleles": 0}
        stats = self.stats
        try:
            for rec in vcf:
                stats["records_total"] += 1
                alleles = rec.alleles
                if not alleles:
                    stats["skipped_no_alleles"] += 1
                    continue
                gt = rec.samples[sample].get("GT")
                if gt is None or len(gt) == 0 or any(i is None for i in gt):
                    stats["skipped_no_call"] += 1
                    continue
                try:
                    call = Call(
                        contig=str(rec.contig),
                        position=int(rec.start),  # pysam start is 0-based
                        alleles=tuple(str(a) for a in alleles),
                        genotype=tuple(int(i) for i in gt),
                    )
                except ValueError as e:
                    raise SourceError(f"Malformed record in {self.path}: {e}", side=self.side) from e
                stats["calls"] += 1
                yield call
        except (OSError, ValueError) as e:
            raise SourceError(f"Failed reading {self.path}: {e}", side=self.side) from e
        logger.info(
            "%s: read %d records, %d calls, skipped %d no-call",
            self.side,
            stats["records_total"],
            stats["calls"],
            stats["skipped_no_call"],
        )
