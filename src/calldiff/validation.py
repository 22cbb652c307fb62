from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .errors import ConfigurationError
from .models import Call

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"

CONTIG_STYLES = ("none", "ucsc", "ensembl", "auto")


def check_reference_paths(fasta: Optional[str], fai: Optional[str] = None) -> None:
    """Ensure the reference FASTA (and its index) exist; raise ConfigurationError with fix instructions."""
    if not fasta:
        raise ConfigurationError("--reference-fasta is required")
    if not Path(fasta).exists():
        raise ConfigurationError(f"Reference FASTA does not exist: {fasta}")
    if fai is not None:
        if not Path(fai).exists():
            raise ConfigurationError(f"Reference index does not exist: {fai}")
        return
    if not Path(fasta + ".fai").exists():
        logger.info(
            "Reference FASTA has no .fai index next to it; pysam will try to build one. "
            "Run: samtools faidx %s",
            fasta,
        )


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig


def resolve_contig_style(requested: str, reference_contigs: Iterable[str]) -> str:
    """Turn ``auto`` into the reference's naming style; other values pass through."""
    if requested not in CONTIG_STYLES:
        raise ConfigurationError(f"Unknown contig style '{requested}'. Choose one of {list(CONTIG_STYLES)}")
    if requested != "auto":
        return requested
    style = detect_contig_style(reference_contigs)
    logger.info("Reference contig style: %s", style)
    return style if style != "unknown" else "none"


def remap_calls(calls: Iterable[Call], style: str) -> Iterator[Call]:
    """Lazily rename the contig of every call to ``style``."""
    if style in ("none", "unknown"):
        yield from calls
        return
    for c in calls:
        contig = remap_contig(c.contig, style)
        yield c if contig == c.contig else replace(c, contig=contig)
