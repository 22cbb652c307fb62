"""Wire sources, orderer, engine and accumulator into one diff run.

:func:`run_diff` is the single place where errors raised inside the lazy
pipeline are caught. It returns a :class:`DiffSuccess` or a
:class:`DiffFailure`, never both, and never a partial result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Union

import requests
from tqdm import tqdm

from .config import CallSetInput, DiffConfig, SideInput, VcfInput
from .engine import calldiff
from .equivalence import Equivalence, make_equivalence
from .errors import CallDiffError, ConfigurationError
from .models import Call
from .ordering import LEXICOGRAPHIC, CallOrder, order_calls
from .reference import FastaReference
from .sources import ApiCallSource, CallSource, GenomicsClient, VcfCallSource
from .stats import DiffStats, accumulate
from .validation import check_reference_paths, remap_calls, resolve_contig_style

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiffSuccess:
    stats: DiffStats

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class DiffFailure:
    error: CallDiffError

    @property
    def ok(self) -> bool:
        return False

    @property
    def side(self) -> Optional[str]:
        return self.error.side

    def message(self) -> str:
        prefix = f"[{self.side}] " if self.side else ""
        return f"{prefix}{self.error.__class__.__name__}: {self.error}"


DiffResult = Union[DiffSuccess, DiffFailure]


def diff_calls(
    reference,
    lhs: Iterable[Call],
    rhs: Iterable[Call],
    *,
    equivalence: Optional[Equivalence] = None,
    order: CallOrder = LEXICOGRAPHIC,
    presorted: bool = False,
    max_mismatches: Optional[int] = None,
    progress: bool = False,
) -> DiffStats:
    """Order (unless ``presorted``), merge and fold two call sequences.

    Raises :class:`CallDiffError` subclasses; see :func:`run_diff` for the
    result-returning variant.
    """
    if not presorted:
        lhs = order_calls(lhs, order)
        rhs = order_calls(rhs, order)

    outcomes = calldiff(reference, lhs, rhs, equivalence=equivalence, order=order)
    stream: Iterable = outcomes
    if progress:
        stream = tqdm(outcomes, unit="locus", desc="Comparing calls")
    try:
        return accumulate(stream, max_mismatches=max_mismatches)
    finally:
        outcomes.close()
        # A merge closed before its first step never reaches its own cleanup.
        for calls in (lhs, rhs):
            close = getattr(calls, "close", None)
            if close is not None:
                close()


def build_source(side: str, choice: SideInput, client: Optional[GenomicsClient], config: DiffConfig) -> CallSource:
    if isinstance(choice, VcfInput):
        return VcfCallSource(choice.path, sample=choice.sample, side=side)
    if isinstance(choice, CallSetInput):
        if client is None:
            raise ConfigurationError(f"No API client configured for {side} call set {choice.callset_id}")
        return ApiCallSource(
            client,
            choice.callset_id,
            variant_set_ids=config.api.variant_set_ids,
            page_size=config.api.page_size,
            side=side,
        )
    raise ConfigurationError(f"Unsupported {side} input: {choice!r}")


def _run_with_reference(
    config: DiffConfig,
    reference,
    *,
    session: Optional[requests.Session],
    progress: bool,
) -> DiffStats:
    contigs = reference.contigs
    order = CallOrder.from_contigs(contigs) if config.contig_order == "reference" else LEXICOGRAPHIC
    style = resolve_contig_style(config.contig_style, contigs)
    equivalence = make_equivalence(config.equivalence, strict=config.strict_reference)

    client: Optional[GenomicsClient] = None
    if config.uses_api:
        client = GenomicsClient(
            session,
            root_url=config.api.root_url,
            api_key=config.api.api_key,
            access_token=config.api.access_token,
            timeout=config.api.timeout,
        )
    try:
        lhs_source = build_source("lhs", config.lhs, client, config)
        rhs_source = build_source("rhs", config.rhs, client, config)
        logger.info("lhs: %s", lhs_source.describe())
        logger.info("rhs: %s", rhs_source.describe())

        def prepare(calls: Iterator[Call]) -> Iterator[Call]:
            return remap_calls(calls, style)

        return lhs_source.scan(
            lambda lhs: rhs_source.scan(
                lambda rhs: diff_calls(
                    reference,
                    prepare(lhs),
                    prepare(rhs),
                    equivalence=equivalence,
                    order=order,
                    presorted=config.presorted,
                    max_mismatches=config.max_mismatches,
                    progress=progress,
                )
            )
        )
    finally:
        if client is not None:
            client.close()


def run_diff(
    config: DiffConfig,
    *,
    session: Optional[requests.Session] = None,
    progress: bool = False,
) -> DiffResult:
    """Run one complete diff described by ``config``."""
    try:
        config.validate()
        check_reference_paths(config.reference_fasta, config.reference_fai)
        with FastaReference(config.reference_fasta, config.reference_fai) as reference:
            stats = _run_with_reference(config, reference, session=session, progress=progress)
    except CallDiffError as e:
        logger.debug("Diff run failed", exc_info=True)
        return DiffFailure(error=e)
    return DiffSuccess(stats=stats)
