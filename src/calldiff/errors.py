"""Error taxonomy for a diff run.

Every failure a user can trigger derives from :class:`CallDiffError`; the
pipeline turns these into a :class:`~calldiff.pipeline.DiffFailure` and the
CLI reports them with a non-zero exit status. A diff run is all-or-nothing.
"""

from __future__ import annotations

from typing import Optional


class CallDiffError(RuntimeError):
    """Base class for errors that abort a diff run."""

    side: Optional[str] = None


class ConfigurationError(CallDiffError):
    """Invalid or conflicting configuration, detected before any I/O."""


class SourceError(CallDiffError):
    """A call source or the reference could not be read."""

    def __init__(self, message: str, *, side: Optional[str] = None) -> None:
        super().__init__(message)
        self.side = side


class AuthenticationError(SourceError):
    """The remote call-set service rejected our credentials."""

    def __init__(
        self,
        message: str,
        *,
        side: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, side=side)
        self.status_code = status_code


class OutOfOrderInputError(CallDiffError):
    """An input declared sorted is not non-decreasing in (contig, position)."""

    def __init__(self, side: str, previous: str, current: str) -> None:
        super().__init__(
            f"{side} input is not sorted: {current} follows {previous}. "
            "Drop --presorted or sort the input."
        )
        self.side = side
        self.previous = previous
        self.current = current


class ReferenceLookupError(CallDiffError):
    """The reference cannot resolve a requested contig or interval."""

    def __init__(self, contig: str, start: int, end: int, reason: str) -> None:
        super().__init__(f"Reference lookup failed for {contig}:{start}-{end}: {reason}")
        self.contig = contig
        self.start = start
        self.end = end


class ReferenceMismatchError(CallDiffError):
    """A call's reference allele disagrees with the reference sequence."""

    def __init__(self, side: str, locus: str, allele: str, observed: str) -> None:
        super().__init__(
            f"{side} reference allele {allele!r} at {locus} does not match the reference "
            f"({observed!r}). Check that both inputs and the FASTA use the same build "
            "and coordinate base."
        )
        self.side = side
        self.locus = locus
