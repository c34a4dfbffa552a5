"""Unit tests for search reply parsing."""

import pytest

from ftsearch.search.query import ReplyLayout
from ftsearch.search.results import Document, document_id_positions, pairs_to_dict, parse_search_reply


pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("layout", "stride"),
    [
        (ReplyLayout(), 2),
        (ReplyLayout(with_scores=True), 3),
        (ReplyLayout(with_scores=True, with_payloads=True), 4),
        (ReplyLayout(no_content=True), 1),
        (ReplyLayout(with_scores=True, no_content=True), 2),
    ],
)
def test_reply_layout_stride(layout, stride):
    assert layout.stride == stride


def test_document_id_positions_follow_stride():
    reply = [2, "a", "1.5", ["f", "v"], "b", "0.5", ["f", "w"]]

    assert list(document_id_positions(reply, ReplyLayout(with_scores=True))) == [1, 4]


def test_parse_default_layout():
    reply = [2, "doc1", ["title", "Hello", "price", "10"], "doc2", ["title", "Bye"]]

    result = parse_search_reply(reply, ReplyLayout())

    assert result.total == 2
    assert result.ids == ["doc1", "doc2"]
    assert result.documents[0] == Document(id="doc1", fields={"title": "Hello", "price": "10"})


def test_parse_scores_and_payloads():
    reply = [1, b"doc1", b"0.75", b"extra", [b"title", b"Hello"]]

    result = parse_search_reply(reply, ReplyLayout(with_scores=True, with_payloads=True))

    document = result.documents[0]
    assert document.id == "doc1"
    assert document.score == 0.75
    assert document.payload == "extra"
    assert document.fields == {"title": "Hello"}


def test_parse_no_content():
    result = parse_search_reply([3, "a", "b", "c"], ReplyLayout(no_content=True))

    assert result.total == 3
    assert result.ids == ["a", "b", "c"]
    assert all(doc.fields == {} for doc in result.documents)


def test_parse_empty_reply():
    assert parse_search_reply([], ReplyLayout()).total == 0


def test_pairs_to_dict_decodes_keys():
    assert pairs_to_dict([b"num_docs", "3", "index_name", "idx"]) == {"num_docs": "3", "index_name": "idx"}
    assert pairs_to_dict(None) == {}
