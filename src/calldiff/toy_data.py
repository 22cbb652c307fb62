from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pysam

from .utils import ensure_outdir, write_json

TOY_CONTIG = "chr1"
TOY_SAMPLE = "SAMPLE"

# (0-based start, alleles, genotype)
ToyRecord = Tuple[int, Tuple[str, ...], Tuple[int, ...]]

# Every classification is represented once; position 50 spells the same
# insertion with different amounts of reference context on each side.
LHS_RECORDS: List[ToyRecord] = [
    (10, ("G", "T"), (0, 1)),
    (20, ("A", "C"), (0, 1)),
    (30, ("G", "A"), (0, 1)),
    (50, ("G", "GT"), (0, 1)),
]
RHS_RECORDS: List[ToyRecord] = [
    (10, ("G", "T"), (0, 1)),
    (20, ("A", "C"), (1, 1)),
    (40, ("A", "G"), (1, 1)),
    (50, ("GT", "GTT"), (0, 1)),
]


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _write_vcf(path: Path, contig: str, length: int, records: Sequence[ToyRecord]) -> Path:
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.add_sample(TOY_SAMPLE)
    header.contigs.add(contig, length=length)
    header.formats.add("GT", number=1, type="String", description="Genotype")

    with pysam.VariantFile(str(path), "w", header=header) as vcf:
        for start0, alleles, gt in records:
            rec = vcf.new_record(
                contig=contig,
                start=start0,
                stop=start0 + len(alleles[0]),
                alleles=alleles,
                qual=60,
                filter="PASS",
            )
            rec.samples[0]["GT"] = gt
            vcf.write(rec)

    vcf_gz = path.with_suffix(path.suffix + ".gz")
    pysam.tabix_compress(str(path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)
    return vcf_gz


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny reference and two VCFs suitable for quick demos/tests.

    The outputs include:
    - toy_ref.fa (+ .fai)
    - lhs.vcf.gz, rhs.vcf.gz (+ .tbi)

    With the default reference-aware comparison the pair yields MATCH=2,
    MISMATCH=1, LHS_ONLY=1, RHS_ONLY=1.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    ref_seq = ("ACGT" * 50)[:200]
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, TOY_CONTIG, ref_seq)
    pysam.faidx(str(ref_fa))

    lhs_vcf = _write_vcf(outdir_p / "lhs.vcf", TOY_CONTIG, len(ref_seq), LHS_RECORDS)
    rhs_vcf = _write_vcf(outdir_p / "rhs.vcf", TOY_CONTIG, len(ref_seq), RHS_RECORDS)

    summary = {
        "ref_fa": str(ref_fa),
        "lhs_vcf": str(lhs_vcf),
        "rhs_vcf": str(rhs_vcf),
        "sample": TOY_SAMPLE,
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
