"""Resolved configuration of a diff run.

Each side is a tagged choice: a :class:`VcfInput` or a :class:`CallSetInput`.
Resolution from optional command-line values happens once, up front, and
raises :class:`~calldiff.errors.ConfigurationError` before any I/O.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .equivalence import EQUIVALENCE_RULES
from .errors import ConfigurationError
from .sources.api import DEFAULT_PAGE_SIZE, DEFAULT_ROOT_URL
from .validation import CONTIG_STYLES

CONTIG_ORDERS = ("lexicographic", "reference")

API_KEY_ENV = "CALLDIFF_API_KEY"
ACCESS_TOKEN_ENV = "CALLDIFF_ACCESS_TOKEN"


@dataclass(frozen=True)
class VcfInput:
    path: str
    sample: Optional[str] = None


@dataclass(frozen=True)
class CallSetInput:
    callset_id: str


SideInput = Union[VcfInput, CallSetInput]


@dataclass(frozen=True)
class ApiSettings:
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    root_url: str = DEFAULT_ROOT_URL
    timeout: Optional[float] = None
    variant_set_ids: List[str] = field(default_factory=list)
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_env(cls, **overrides) -> "ApiSettings":
        """Fill missing credentials from CALLDIFF_API_KEY / CALLDIFF_ACCESS_TOKEN."""
        if not overrides.get("api_key") and not overrides.get("access_token"):
            overrides["api_key"] = os.environ.get(API_KEY_ENV) or None
            overrides["access_token"] = os.environ.get(ACCESS_TOKEN_ENV) or None
        return cls(**{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> None:
        if bool(self.api_key) == bool(self.access_token):
            raise ConfigurationError(
                "Specify exactly one of --api-key or --access-token "
                f"(or set {API_KEY_ENV} / {ACCESS_TOKEN_ENV}) when using a call set"
            )
        if self.page_size <= 0:
            raise ConfigurationError("--page-size must be positive")


@dataclass(frozen=True)
class DiffConfig:
    lhs: SideInput
    rhs: SideInput
    reference_fasta: str
    reference_fai: Optional[str] = None
    presorted: bool = False
    equivalence: str = "reference"
    strict_reference: bool = False
    contig_order: str = "lexicographic"
    contig_style: str = "none"
    max_mismatches: Optional[int] = None
    api: ApiSettings = field(default_factory=ApiSettings)

    @property
    def uses_api(self) -> bool:
        return isinstance(self.lhs, CallSetInput) or isinstance(self.rhs, CallSetInput)

    def validate(self) -> None:
        if self.equivalence not in EQUIVALENCE_RULES:
            raise ConfigurationError(f"Unknown equivalence rule '{self.equivalence}'")
        if self.strict_reference and self.equivalence != "reference":
            raise ConfigurationError("--strict-reference requires --equivalence reference")
        if self.contig_order not in CONTIG_ORDERS:
            raise ConfigurationError(f"Unknown contig order '{self.contig_order}'")
        if self.contig_style not in CONTIG_STYLES:
            raise ConfigurationError(f"Unknown contig style '{self.contig_style}'")
        if self.max_mismatches is not None and self.max_mismatches <= 0:
            raise ConfigurationError("--max-mismatches must be positive")
        if self.uses_api:
            self.api.validate()


def resolve_input(
    side: str,
    *,
    vcf: Optional[str] = None,
    sample: Optional[str] = None,
    callset_id: Optional[str] = None,
) -> SideInput:
    """Pick the single source configured for ``side``."""
    if vcf and callset_id:
        raise ConfigurationError(f"Specify only one of --{side}-vcf or --{side}-callset-id")
    if not vcf and not callset_id:
        raise ConfigurationError(f"Specify one of --{side}-vcf or --{side}-callset-id")
    if vcf:
        return VcfInput(path=vcf, sample=sample)
    if sample:
        raise ConfigurationError(f"--{side}-sample-id only applies to --{side}-vcf")
    return CallSetInput(callset_id=callset_id)
