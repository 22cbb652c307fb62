from unittest.mock import Mock

import pytest
import requests

from calldiff.errors import AuthenticationError, ConfigurationError, SourceError
from calldiff.sources import ApiCallSource, GenomicsClient
from calldiff.sources.api import variant_to_calls


def _mock_response(payload, status_code=200, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


def _variant(start, ref, alts, calls, contig="chr1"):
    return {
        "referenceName": contig,
        "start": str(start),
        "referenceBases": ref,
        "alternateBases": alts,
        "calls": calls,
    }


def _client(session, **kw):
    kw.setdefault("api_key", "k")
    return GenomicsClient(session, root_url="https://example.test/v1/", **kw)


def test_pages_until_token_is_empty():
    session = Mock(spec=requests.Session)
    session.post.side_effect = [
        _mock_response(
            {
                "variants": [
                    _variant(10, "A", ["T"], [{"callSetId": "cs1", "genotype": [0, 1]}]),
                    _variant(20, "C", ["G"], [{"callSetId": "other", "genotype": [1, 1]}]),
                ],
                "nextPageToken": "p2",
            }
        ),
        _mock_response({"variants": [_variant(30, "G", ["GA"], [{"callSetId": "cs1", "genotype": [1, 1]}])]}),
    ]
    source = ApiCallSource(_client(session), "cs1", variant_set_ids=["vs1"], page_size=2, side="rhs")

    calls = source.scan(list)
    assert [(c.contig, c.position, c.alleles, c.genotype) for c in calls] == [
        ("chr1", 10, ("A", "T"), (0, 1)),
        ("chr1", 30, ("G", "GA"), (1, 1)),
    ]
    assert source.pages_fetched == 2

    first, second = session.post.call_args_list
    assert first.args[0] == "https://example.test/v1/variants/search"
    assert first.kwargs["json"] == {"callSetIds": ["cs1"], "pageSize": 2, "variantSetIds": ["vs1"]}
    assert first.kwargs["params"] == {"key": "k"}
    assert second.kwargs["json"]["pageToken"] == "p2"


def test_next_page_fetched_only_on_demand():
    session = Mock(spec=requests.Session)
    session.post.side_effect = [
        _mock_response(
            {"variants": [_variant(10, "A", ["T"], [{"callSetId": "cs1", "genotype": [0, 1]}])], "nextPageToken": "p2"}
        ),
        _mock_response({"variants": []}),
    ]
    source = ApiCallSource(_client(session), "cs1")

    first = source.scan(lambda calls: next(calls))
    assert first.position == 10
    assert session.post.call_count == 1


def test_bearer_token_header():
    session = Mock(spec=requests.Session)
    session.post.return_value = _mock_response({})
    client = GenomicsClient(session, access_token="tok", timeout=5)

    assert ApiCallSource(client, "cs1").scan(list) == []
    kwargs = session.post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["params"] == {}
    assert kwargs["timeout"] == 5


def test_no_calls_are_skipped():
    variant = _variant(
        5,
        "A",
        ["T"],
        [{"callSetId": "cs1", "genotype": [-1, -1]}, {"callSetId": "cs1", "genotype": [0, -1]}],
    )
    assert variant_to_calls(variant, "cs1") == []


def test_authentication_failure():
    session = Mock(spec=requests.Session)
    session.post.return_value = _mock_response({}, status_code=401, text="invalid key")

    with pytest.raises(AuthenticationError) as exc:
        ApiCallSource(_client(session), "cs1", side="lhs").scan(list)
    assert exc.value.side == "lhs"
    assert exc.value.status_code == 401
    assert "invalid key" in str(exc.value)


def test_http_and_transport_failures_are_source_errors():
    session = Mock(spec=requests.Session)
    session.post.return_value = _mock_response({}, status_code=500, text="boom")
    with pytest.raises(SourceError):
        ApiCallSource(_client(session), "cs1").scan(list)

    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("unreachable")
    with pytest.raises(SourceError):
        ApiCallSource(_client(session), "cs1").scan(list)

    session = Mock(spec=requests.Session)
    response = _mock_response(None)
    response.json.side_effect = ValueError("not json")
    session.post.return_value = response
    with pytest.raises(SourceError):
        ApiCallSource(_client(session), "cs1").scan(list)


def test_malformed_variant_is_a_source_error():
    session = Mock(spec=requests.Session)
    session.post.return_value = _mock_response({"variants": [{"calls": []}]})
    with pytest.raises(SourceError):
        ApiCallSource(_client(session), "cs1").scan(list)


def test_exactly_one_credential():
    session = Mock(spec=requests.Session)
    with pytest.raises(ConfigurationError):
        GenomicsClient(session)
    with pytest.raises(ConfigurationError):
        GenomicsClient(session, api_key="k", access_token="t")


@pytest.mark.parametrize(
    "page",
    [
        {"variants": [_variant(10, "A", ["T"], ["garbage"])]},
        {"variants": ["garbage"]},
        {"variants": 7},
    ],
)
def test_malformed_page_contents_are_source_errors(page):
    session = Mock(spec=requests.Session)
    session.post.return_value = _mock_response(page)
    with pytest.raises(SourceError) as exc:
        ApiCallSource(_client(session), "cs1", side="rhs").scan(list)
    assert exc.value.side == "rhs"
