import random

import pytest

from calldiff.engine import calldiff
from calldiff.equivalence import ExactEquivalence
from calldiff.errors import OutOfOrderInputError, ReferenceLookupError
from calldiff.models import Call, Classification
from calldiff.ordering import CallOrder, order_calls
from calldiff.pipeline import diff_calls
from calldiff.stats import accumulate


def _call(contig, position, alleles, genotype):
    return Call(contig=contig, position=position, alleles=tuple(alleles), genotype=tuple(genotype))


def _summary(outcomes):
    return [(o.contig, o.position, o.classification) for o in outcomes]


def test_empty_inputs_yield_nothing(reference):
    assert list(calldiff(reference, [], [])) == []
    stats = accumulate(calldiff(reference, [], []))
    assert stats.total == 0
    assert all(stats.count(c) == 0 for c in Classification)


def test_documented_scenario(reference):
    lhs = [_call("chr1", 100, "AT", [1]), _call("chr1", 200, "GC", [0])]
    rhs = [_call("chr1", 100, "AT", [1]), _call("chr1", 150, ["C"], [0])]

    outcomes = list(calldiff(reference, lhs, rhs))
    assert _summary(outcomes) == [
        ("chr1", 100, Classification.MATCH),
        ("chr1", 150, Classification.RHS_ONLY),
        ("chr1", 200, Classification.LHS_ONLY),
    ]
    assert outcomes[1].lhs_call is None
    assert outcomes[1].rhs_call == rhs[1]

    stats = accumulate(calldiff(reference, lhs, rhs))
    assert stats.count(Classification.MATCH) == 1
    assert stats.count(Classification.RHS_ONLY) == 1
    assert stats.count(Classification.LHS_ONLY) == 1
    assert stats.count(Classification.MISMATCH) == 0


def test_same_alleles_different_genotype_is_mismatch(reference):
    lhs = [_call("chr1", 100, "AT", [0, 1])]
    rhs = [_call("chr1", 100, "AT", [1, 1])]
    (outcome,) = calldiff(reference, lhs, rhs)
    assert outcome.classification is Classification.MISMATCH


def test_reference_only_consulted_for_aligned_positions(reference):
    lhs = [_call("chr1", 4, "AC", [0, 1]), _call("chr1", 8, "AG", [1, 1])]
    rhs = [_call("chr1", 8, "AG", [1, 1])]
    list(calldiff(reference, lhs, rhs))
    assert reference.fetches == [("chr1", 8, 9)]


def test_unknown_contig_fails_the_run(reference):
    lhs = [_call("chr1", 100, "AT", [1]), _call("chrUn", 5, "AT", [1])]
    rhs = [_call("chr1", 100, "AT", [1]), _call("chrUn", 5, "AT", [1])]
    with pytest.raises(ReferenceLookupError):
        accumulate(calldiff(reference, lhs, rhs))


def test_one_sided_unknown_contig_needs_no_reference(reference):
    lhs = [_call("chrUn", 5, "AT", [1])]
    (outcome,) = calldiff(reference, lhs, [])
    assert outcome.classification is Classification.LHS_ONLY


def test_unsorted_presorted_input_is_rejected(reference):
    lhs = [_call("chr1", 200, "GC", [1]), _call("chr1", 100, "AT", [1])]
    with pytest.raises(OutOfOrderInputError) as exc:
        diff_calls(reference, lhs, [], presorted=True)
    assert exc.value.side == "lhs"
    assert "chr1:100" in str(exc.value)


def test_unsorted_rhs_detected_even_without_aligned_positions(reference):
    rhs = [_call("chr2", 1, "AC", [1]), _call("chr1", 1, "CA", [1])]
    with pytest.raises(OutOfOrderInputError) as exc:
        list(calldiff(reference, [], rhs))
    assert exc.value.side == "rhs"


def test_unsorted_input_is_fine_when_ordered_first(reference):
    lhs = [_call("chr1", 200, "GC", [1]), _call("chr1", 100, "AT", [1])]
    stats = diff_calls(reference, lhs, list(reversed(lhs)))
    assert stats.count(Classification.MATCH) == 2


def test_same_position_records_compare_as_a_set(reference):
    lhs = [_call("chr1", 100, "AT", [0, 1]), _call("chr1", 100, "AC", [0, 1])]
    rhs = [_call("chr1", 100, "AC", [0, 1]), _call("chr1", 100, "AT", [0, 1])]
    outcomes = list(calldiff(reference, lhs, rhs))
    assert len(outcomes) == 1
    assert outcomes[0].classification is Classification.MATCH
    assert len(outcomes[0].lhs) == 2


def test_partial_group_overlap_is_mismatch(reference):
    lhs = [_call("chr1", 100, "AT", [0, 1]), _call("chr1", 100, "AC", [0, 1])]
    rhs = [_call("chr1", 100, "AT", [0, 1])]
    (outcome,) = calldiff(reference, lhs, rhs)
    assert outcome.classification is Classification.MISMATCH


def _random_calls(rng, n):
    calls = []
    for _ in range(n):
        contig = rng.choice(["chr1", "chr2"])
        pos = rng.randrange(0, 60)
        ref = "ACGT"[pos % 4] if contig == "chr1" else "A"
        alt = rng.choice([b for b in "ACGT" if b != ref])
        gt = rng.choice([(0, 1), (1, 1)])
        calls.append(_call(contig, pos, (ref, alt), gt))
    return calls


def test_completeness_and_ordering(reference):
    rng = random.Random(7)
    lhs = _random_calls(rng, 40)
    rhs = _random_calls(rng, 40)
    order = CallOrder()

    outcomes = list(
        calldiff(reference, order_calls(lhs, order), order_calls(rhs, order), equivalence=ExactEquivalence())
    )
    keys = [(o.contig, o.position) for o in outcomes]
    assert keys == sorted(set(keys))
    assert set(keys) == {(c.contig, c.position) for c in lhs + rhs}


def test_symmetry_and_idempotence(reference):
    rng = random.Random(11)
    lhs = _random_calls(rng, 50)
    rhs = _random_calls(rng, 50)

    forward = diff_calls(reference, lhs, rhs)
    again = diff_calls(reference, list(lhs), list(rhs))
    backward = diff_calls(reference, rhs, lhs)

    assert forward == again
    assert forward.count(Classification.LHS_ONLY) == backward.count(Classification.RHS_ONLY)
    assert forward.count(Classification.RHS_ONLY) == backward.count(Classification.LHS_ONLY)
    assert forward.count(Classification.MATCH) == backward.count(Classification.MATCH)
    assert forward.count(Classification.MISMATCH) == backward.count(Classification.MISMATCH)


def test_early_termination_closes_inputs(reference):
    closed = []

    def source(side, calls):
        try:
            yield from calls
        finally:
            closed.append(side)

    lhs = [_call("chr1", p, ("ACGT"[p % 4], "N"), (1, 1)) for p in range(0, 40, 2)]
    rhs = [_call("chr1", p, ("ACGT"[p % 4], "N"), (0, 1)) for p in range(0, 40, 2)]

    stats = diff_calls(
        reference,
        source("lhs", lhs),
        source("rhs", rhs),
        presorted=True,
        max_mismatches=3,
    )
    assert stats.truncated
    assert stats.count(Classification.MISMATCH) == 3
    assert sorted(closed) == ["lhs", "rhs"]


def test_reference_contig_order(make_reference):
    ref = make_reference({"chr2": "A" * 10, "chr10": "A" * 10})
    order = CallOrder.from_contigs(ref.contigs)
    lhs = [_call("chr2", 1, "AC", [1]), _call("chr10", 1, "AC", [1])]

    outcomes = list(calldiff(ref, lhs, lhs, order=order))
    assert [o.contig for o in outcomes] == ["chr2", "chr10"]
    with pytest.raises(OutOfOrderInputError):
        list(calldiff(ref, lhs, lhs))
