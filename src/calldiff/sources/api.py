"""Calls fetched page by page from a remote genomics call-set service.

The service speaks the Genomics ``variants/search`` protocol: a POST with a
JSON body selecting call sets, answered by ``{"variants": [...],
"nextPageToken": "..."}``. An empty or missing token ends the result set.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import requests

from ..errors import AuthenticationError, ConfigurationError, SourceError
from ..models import Call
from .base import CallSource

logger = logging.getLogger(__name__)

DEFAULT_ROOT_URL = "https://genomics.googleapis.com/v1"
DEFAULT_PAGE_SIZE = 1000


class GenomicsClient:
    """Minimal client for the ``variants/search`` endpoint.

    Exactly one of ``api_key`` or ``access_token`` authenticates requests.
    No retries are attempted; transport errors surface as :class:`SourceError`.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        root_url: str = DEFAULT_ROOT_URL,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if bool(api_key) == bool(access_token):
            raise ConfigurationError("Specify exactly one of --api-key or --access-token")
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.root_url = root_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def search_variants(self, body: Dict[str, Any], *, side: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.root_url}/variants/search"
        params: Dict[str, str] = {}
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            params["key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = self.session.post(url, json=body, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceError(f"Request to {url} failed: {e}", side=side) from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {url} (HTTP {response.status_code}): {_snippet(response)}",
                side=side,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise SourceError(
                f"Search request to {url} failed (HTTP {response.status_code}): {_snippet(response)}",
                side=side,
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError(f"Undecodable response from {url}: {e}", side=side) from e
        if not isinstance(payload, dict):
            raise SourceError(f"Unexpected response from {url}: {type(payload).__name__}", side=side)
        return payload


def _snippet(response: requests.Response, limit: int = 200) -> str:
    text = response.text or ""
    return text.strip()[:limit]


def variant_to_calls(variant: Dict[str, Any], callset_id: str) -> List[Call]:
    """Convert one API variant into calls for ``callset_id``.

    Genotype entries of -1 (no-call) make the call unusable; such calls are dropped.
    """
    alleles = tuple([str(variant["referenceBases"])] + [str(a) for a in variant.get("alternateBases") or []])
    out: List[Call] = []
    for c in variant.get("calls") or []:
        if c.get("callSetId") != callset_id:
            continue
        genotype = [int(g) for g in c.get("genotype") or []]
        if not genotype or any(g < 0 for g in genotype):
            continue
        out.append(
            Call(
                contig=str(variant["referenceName"]),
                position=int(variant["start"]),  # API coordinates are 0-based; int64 arrives as a string
                alleles=alleles,
                genotype=tuple(genotype),
            )
        )
    return out


class ApiCallSource(CallSource):
    """Calls of one call set, paged lazily from a :class:`GenomicsClient`."""

    def __init__(
        self,
        client: GenomicsClient,
        callset_id: str,
        *,
        variant_set_ids: Sequence[str] = (),
        page_size: int = DEFAULT_PAGE_SIZE,
        side: str = "lhs",
    ) -> None:
        self.client = client
        self.callset_id = callset_id
        self.variant_set_ids = list(variant_set_ids)
        self.page_size = int(page_size)
        self.side = side
        self.pages_fetched = 0

    def describe(self) -> str:
        return f"callset {self.callset_id}"

    def _request_body(self, page_token: Optional[str]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"callSetIds": [self.callset_id], "pageSize": self.page_size}
        if self.variant_set_ids:
            body["variantSetIds"] = self.variant_set_ids
        if page_token:
            body["pageToken"] = page_token
        return body

    def _iter_calls(self) -> Iterator[Call]:
        page_token: Optional[str] = None
        n_calls = 0
        while True:
            page = self.client.search_variants(self._request_body(page_token), side=self.side)
            self.pages_fetched += 1
            variants = page.get("variants") or []
            if not isinstance(variants, list):
                raise SourceError(
                    f"Malformed page for call set {self.callset_id}: 'variants' is {type(variants).__name__}",
                    side=self.side,
                )
            logger.debug("%s: page %d with %d variants", self.side, self.pages_fetched, len(variants))
            for variant in variants:
                try:
                    calls = variant_to_calls(variant, self.callset_id)
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    raise SourceError(f"Malformed variant in call set {self.callset_id}: {e}", side=self.side) from e
                for call in calls:
                    n_calls += 1
                    yield call
            page_token = page.get("nextPageToken")
            if not page_token:
                break
        logger.info("%s: fetched %d calls in %d pages", self.side, n_calls, self.pages_fetched)

    @contextmanager
    def open(self) -> Iterator[Iterator[Call]]:
        calls = self._iter_calls()
        try:
            yield calls
        finally:
            calls.close()
