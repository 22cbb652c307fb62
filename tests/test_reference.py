from pathlib import Path

import pytest

from calldiff.errors import ReferenceLookupError, SourceError
from calldiff.reference import FastaReference
from calldiff.toy_data import make_toy_data


def test_fetch_from_toy_reference(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    with FastaReference(toy["ref_fa"]) as ref:
        assert ref.contigs == ["chr1"]
        assert ref.fetch("chr1", 0, 4) == "ACGT"
        assert ref.fetch("chr1", 50, 52) == "GT"
        assert ref.fetch("chr1", 196, 200) == "ACGT"


def test_explicit_index_path(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    with FastaReference(toy["ref_fa"], toy["ref_fa"] + ".fai") as ref:
        assert ref.fetch("chr1", 10, 11) == "G"


def test_lowercase_bases_are_upper_cased(tmp_path: Path) -> None:
    fa = tmp_path / "soft.fa"
    fa.write_text(">ctg\nacgtACGT\n", encoding="utf-8")
    with FastaReference(fa) as ref:
        assert ref.fetch("ctg", 0, 8) == "ACGTACGT"


def test_lookup_errors(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    with FastaReference(toy["ref_fa"]) as ref:
        with pytest.raises(ReferenceLookupError) as exc:
            ref.fetch("chr2", 0, 1)
        assert exc.value.contig == "chr2"
        with pytest.raises(ReferenceLookupError):
            ref.fetch("chr1", 199, 201)
        with pytest.raises(ReferenceLookupError):
            ref.fetch("chr1", -1, 1)


def test_unreadable_reference_is_a_source_error(tmp_path: Path) -> None:
    with pytest.raises(SourceError) as exc:
        FastaReference(tmp_path / "missing.fa").open()
    assert exc.value.side == "reference"
