"""
Tests for QueryExecutor SEARCH and SORT handling.
"""

import pytest

from imapsh.errors import PreconditionError, QueryError
from imapsh.query import QueryExecutor, parse_message_ids, split_literal


def test_parse_message_ids():
    assert parse_message_ids([b"4 10 2"]) == [4, 10, 2]
    assert parse_message_ids([b""]) == []
    assert parse_message_ids([None]) == []
    assert parse_message_ids([]) == []


def test_search_requires_selected_mailbox(session, registry):
    executor = QueryExecutor(session, registry)
    with pytest.raises(PreconditionError):
        executor.search(["ALL"])
    assert len(registry) == 0


def test_search_stores_result_in_server_order(selected_session, registry, fake_imap):
    fake_imap.results["FROM alice UNSEEN"] = [9, 3, 5]
    executor = QueryExecutor(selected_session, registry)

    handle = executor.search(["FROM", "alice", "UNSEEN"])

    assert registry.get(handle) == (9, 3, 5)
    assert fake_imap.search_calls == [("FROM", "alice", "UNSEEN")]


def test_search_empty_result_still_saved(selected_session, registry, fake_imap):
    fake_imap.results["DELETED"] = []
    handle = QueryExecutor(selected_session, registry).search(["DELETED"])
    assert registry.get(handle) == ()


def test_malformed_search_creates_no_entry(selected_session, registry, fake_imap):
    fake_imap.bad_queries.add("BOGUS")
    executor = QueryExecutor(selected_session, registry)

    with pytest.raises(QueryError) as excinfo:
        executor.search(["BOGUS"])

    assert excinfo.value.query == "BOGUS"
    assert "Invalid search criteria" in excinfo.value.server_message
    assert len(registry) == 0
    assert registry.sequence_counter == 1


def test_split_literal():
    assert split_literal(["FROM", "alice"], "UTF-8") == (["FROM", "alice"], None)
    assert split_literal(["SUBJECT", "café"], "UTF-8") == (["SUBJECT"], "café".encode("utf-8"))
    assert split_literal(["SUBJECT", '"café au lait"'], "UTF-8") == \
        (["SUBJECT"], "café au lait".encode("utf-8"))
    with pytest.raises(ValueError):
        split_literal(["SUBJECT", "café", "UNSEEN"], "UTF-8")
    with pytest.raises(ValueError):
        split_literal(["SUBJECT", "café"], "US-ASCII")


def test_search_non_ascii_term_sent_as_literal(selected_session, registry, fake_imap):
    """A non-ASCII last term is sent as a literal with the charset named."""
    fake_imap.results["SUBJECT café"] = [3]
    executor = QueryExecutor(selected_session, registry)

    handle = executor.search(["SUBJECT", "café"])

    assert registry.get(handle) == (3,)
    assert fake_imap.search_calls == [("SUBJECT",)]
    assert fake_imap.search_charsets == ["UTF-8"]
    assert fake_imap.literals[-1] == "café".encode("utf-8")
    assert fake_imap.literal is None


def test_ascii_search_sends_no_charset(selected_session, registry, fake_imap):
    QueryExecutor(selected_session, registry).search(["ALL"])
    assert fake_imap.search_charsets == [None]
    assert fake_imap.literals[-1] is None


def test_non_ascii_term_before_the_end_is_rejected(selected_session, registry, fake_imap):
    executor = QueryExecutor(selected_session, registry)

    with pytest.raises(QueryError) as excinfo:
        executor.search(["SUBJECT", "café", "UNSEEN"])

    assert "non-ASCII" in excinfo.value.server_message
    assert fake_imap.search_calls == []
    assert len(registry) == 0


def test_unencodable_term_is_a_query_error(selected_session, registry, fake_imap):
    executor = QueryExecutor(selected_session, registry, sort_charset="US-ASCII")
    with pytest.raises(QueryError):
        executor.sort(["SUBJECT"], ["SUBJECT", "café"])
    assert fake_imap.sort_calls == []
    assert len(registry) == 0


def test_non_ascii_sort_key_is_a_query_error(selected_session, registry, fake_imap):
    """Terms imaplib can not encode never escape as UnicodeEncodeError."""
    with pytest.raises(QueryError):
        QueryExecutor(selected_session, registry).sort(["SÜBJECT"])
    assert len(registry) == 0
    assert fake_imap.literal is None


def test_sort_non_ascii_term_sent_as_literal(selected_session, registry, fake_imap):
    fake_imap.results["(SUBJECT) FROM müller"] = [2, 1]
    executor = QueryExecutor(selected_session, registry)

    handle = executor.sort(["SUBJECT"], ["FROM", "müller"])

    assert fake_imap.sort_calls == [("(SUBJECT)", "UTF-8", ("FROM",))]
    assert fake_imap.literals[-1] == "müller".encode("utf-8")
    assert registry.get(handle) == (2, 1)


def test_sort_defaults_to_all(selected_session, registry, fake_imap):
    executor = QueryExecutor(selected_session, registry)
    handle = executor.sort(["SUBJECT"])

    assert fake_imap.sort_calls == [("(SUBJECT)", "UTF-8", ("ALL",))]
    assert registry.get(handle) == (3, 2, 1)


def test_sort_with_search_keys_and_charset(selected_session, registry, fake_imap):
    fake_imap.results["(REVERSE DATE) SEEN"] = [8, 6]
    executor = QueryExecutor(selected_session, registry, sort_charset="US-ASCII")

    handle = executor.sort(["REVERSE", "DATE"], ["SEEN"])

    assert fake_imap.sort_calls == [("(REVERSE DATE)", "US-ASCII", ("SEEN",))]
    assert registry.get(handle) == (8, 6)


def test_malformed_sort_creates_no_entry(selected_session, registry, fake_imap):
    fake_imap.bad_queries.add("(NOPE) ALL")
    with pytest.raises(QueryError):
        QueryExecutor(selected_session, registry).sort(["NOPE"])
    assert len(registry) == 0
