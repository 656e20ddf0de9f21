from intelligroup.grouping import merge_question_texts, merge_records, merge_scalar
from intelligroup.models import BallotRecord, VoteChoice


def test_absent_field_takes_incoming():
    merged = merge_records(BallotRecord(), BallotRecord(snils="123-456-789 01"))
    assert merged.snils == "123-456-789 01"


def test_first_reading_wins_over_later_value():
    merged = merge_records(BallotRecord(last_name="Иванов"), BallotRecord(last_name="Петров"))
    assert merged.last_name == "Иванов"


def test_error_is_replaced_by_value():
    merged = merge_records(BallotRecord(snils="ERROR"), BallotRecord(snils="123"))
    assert merged.snils == "123"


def test_error_is_not_replaced_by_empty_or_error():
    assert merge_records(BallotRecord(snils="ERROR"), BallotRecord(snils="")).snils == "ERROR"
    assert merge_records(BallotRecord(snils="ERROR"), BallotRecord(snils="ERROR")).snils == "ERROR"


def test_value_is_never_replaced_by_error():
    merged = merge_records(BallotRecord(area="54.2"), BallotRecord(area="ОШИБКА"))
    assert merged.area == "54.2"


def test_absent_field_takes_error():
    assert merge_scalar("", "ERROR") == "ERROR"


def test_votes_are_overlaid():
    target = BallotRecord(votes={"1": "ЗА", "2": "ПРОТИВ"})
    incoming = BallotRecord(votes={"2": "ВОЗДЕРЖАЛСЯ", "3": "ЗА"})

    merged = merge_records(target, incoming)

    assert merged.votes == {
        "1": VoteChoice.FOR,
        "2": VoteChoice.ABSTAIN,
        "3": VoteChoice.FOR,
    }


def test_longer_question_text_wins_in_either_order():
    short = BallotRecord(question_texts={"1": "Выбор"})
    long = BallotRecord(question_texts={"1": "Выбор председателя собрания"})

    assert merge_records(short, long).question_texts["1"] == "Выбор председателя собрания"
    assert merge_records(long, short).question_texts["1"] == "Выбор председателя собрания"


def test_equal_length_question_text_keeps_current():
    assert merge_question_texts({"1": "abc"}, {"1": "xyz"}) == {"1": "abc"}


def test_merge_is_idempotent():
    record = BallotRecord(
        last_name="Иванов",
        snils="ERROR",
        question_texts={"1": "Выбор председателя"},
        votes={"1": "ЗА"},
    )
    assert merge_records(record, record) == record


def test_merge_does_not_mutate_target():
    target = BallotRecord(votes={"1": "ЗА"})
    merge_records(target, BallotRecord(last_name="Иванов", votes={"2": "ПРОТИВ"}))

    assert target.last_name == ""
    assert target.votes == {"1": VoteChoice.FOR}


def test_incoming_mapping_is_accepted():
    merged = merge_records(BallotRecord(), {"lastName": "Иванов", "votes": {"1": "ЗА"}})
    assert merged.last_name == "Иванов"
    assert merged.votes == {"1": VoteChoice.FOR}


def test_malformed_incoming_counts_as_empty():
    target = BallotRecord(last_name="Иванов")
    assert merge_records(target, "garbage") == target
    assert merge_records(target, None) == target
