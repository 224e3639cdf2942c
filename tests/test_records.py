"""Tests for the brace pseudo-record decoder."""

from apple_mcp.backends.mail import is_email_record
from apple_mcp.backends.records import decode, has_any_field, iter_candidates, parse_fields


def test_decodes_records_in_order():
    raw = "{subject:Hello, sender:a@b.com}, {subject:World, sender:c@d.com}"
    records = list(decode(raw, is_email_record))
    assert records == [
        {"subject": "Hello", "sender": "a@b.com"},
        {"subject": "World", "sender": "c@d.com"},
    ]


def test_value_keeps_colons_after_the_first():
    record = next(decode("{date:Monday 10:30:00, subject:Standup}"))
    assert record["date"] == "Monday 10:30:00"
    assert record["subject"] == "Standup"


def test_fragment_without_colon_is_ignored():
    assert parse_fields("subject:Hi, garbage, sender:x") == {"subject": "Hi", "sender": "x"}


def test_empty_key_is_ignored():
    assert parse_fields(":orphan, subject:Hi") == {"subject": "Hi"}


def test_duplicate_key_last_wins():
    assert parse_fields("subject:first, subject:second") == {"subject": "second"}


def test_keys_and_values_are_trimmed():
    assert parse_fields("  subject  :   spaced out  ") == {"subject": "spaced out"}


def test_record_without_identifying_field_is_dropped():
    raw = "{mailbox:INBOX, content:noise}, {subject:Real}"
    assert list(decode(raw, is_email_record)) == [{"subject": "Real"}]


def test_identifying_field_with_empty_value_does_not_count():
    assert list(decode("{subject:, sender:}", is_email_record)) == []


def test_without_predicate_any_field_is_enough():
    assert list(decode("{mailbox:INBOX}")) == [{"mailbox": "INBOX"}]


def test_empty_and_non_text_input_yield_nothing():
    assert list(decode("")) == []
    assert list(decode(None)) == []  # type: ignore[arg-type]
    assert list(decode("no braces at all")) == []


def test_unclosed_candidate_is_dropped():
    assert list(decode("{subject:Done}, {subject:Cut off")) == [{"subject": "Done"}]


def test_nested_open_brace_restarts_the_candidate():
    assert list(iter_candidates("{a:1, {b:2}")) == ["b:2"]


def test_stray_closing_brace_is_ignored():
    assert list(decode("} {subject:Ok} }")) == [{"subject": "Ok"}]


def test_empty_braces_are_skipped():
    assert list(iter_candidates("{} {   } {x:1}")) == ["x:1"]


def test_predicate_errors_drop_only_that_candidate():
    def flaky(record):
        if record.get("subject") == "boom":
            raise RuntimeError("bad predicate")
        return True

    assert list(decode("{subject:boom}, {subject:fine}", flaky)) == [{"subject": "fine"}]


def test_has_any_field_accepts_either_name():
    predicate = has_any_field("subject", "sender")
    assert predicate({"sender": "x"})
    assert predicate({"subject": "y"})
    assert not predicate({"mailbox": "INBOX"})


def test_decoder_is_lazy():
    records = decode("{subject:1}, {subject:2}")
    assert next(records) == {"subject": "1"}
    assert next(records) == {"subject": "2"}


def test_adjacent_records_and_truncated_tail():
    assert len(list(decode("{subject:Hello, sender:a@b.com}{subject:World, sender:c@d.com}", is_email_record))) == 2
    assert list(decode("{subject:Good}{broken", is_email_record)) == [{"subject": "Good"}]


def test_decoding_twice_gives_equal_results():
    raw = "{subject:A, sender:x}, {foo:bar}, {sender:y}"
    assert list(decode(raw, is_email_record)) == list(decode(raw, is_email_record))
