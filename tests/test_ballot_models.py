from intelligroup.models import (
    BallotRecord,
    ExtractionResult,
    FieldState,
    GroupedDocument,
    VoteChoice,
    display_name_for,
    usable,
)


def test_error_aliases_normalize_to_sentinel():
    record = BallotRecord(snils="ОШИБКА", last_name=" error ")
    assert record.snils == "ERROR"
    assert record.last_name == "ERROR"
    assert record.state_of("snils") is FieldState.ERROR


def test_null_like_values_normalize_to_empty():
    record = BallotRecord.from_dict({"lastName": "null", "firstName": None, "snils": "N/A"})
    assert record.last_name == ""
    assert record.first_name == ""
    assert record.snils == ""


def test_usable_hides_error():
    assert usable("ERROR") == ""
    assert usable("") == ""
    assert usable("Иванов") == "Иванов"


def test_full_name_keeps_illegible_parts():
    record = BallotRecord(last_name="Иванов", first_name="ERROR", middle_name="Петрович")
    assert record.full_name == "Иванов ERROR Петрович"
    assert record.name_is_legible is False
    assert BallotRecord(last_name="Иванов").name_is_legible is True
    assert BallotRecord().full_name == ""


def test_votes_parse_labels_and_names():
    assert VoteChoice.parse("за") is VoteChoice.FOR
    assert VoteChoice.parse("AGAINST") is VoteChoice.AGAINST
    assert VoteChoice.parse("did not vote") is VoteChoice.DID_NOT_VOTE
    assert VoteChoice.parse("maybe") is None
    assert VoteChoice.parse("") is None


def test_unrecognized_votes_and_empty_texts_are_dropped():
    record = BallotRecord(votes={"1": "ЗА", "2": "???"}, question_texts={"1": "Текст", "2": "", "3": "ERROR"})
    assert record.votes == {"1": VoteChoice.FOR}
    assert record.question_texts == {"1": "Текст"}


def test_record_dict_uses_wire_names():
    record = BallotRecord(last_name="Иванов", room_no="12", votes={"1": "ЗА"})
    data = record.to_dict()

    assert data["lastName"] == "Иванов"
    assert data["roomNo"] == "12"
    assert data["votes"] == {"1": "ЗА"}
    assert BallotRecord.from_dict(data) == record


def test_extraction_result_from_model_json():
    result = ExtractionResult.from_dict({"isStartPage": True, "data": {"snils": "123"}})
    assert result.is_start_page is True
    assert result.fields.snils == "123"
    assert result.failed is False


def test_extraction_result_tolerates_bad_shapes():
    assert ExtractionResult.from_dict(None).is_start_page is False
    assert ExtractionResult.from_dict({"isStartPage": "true"}).is_start_page is True
    assert ExtractionResult.from_dict({"isStartPage": "yes please"}).is_start_page is False
    assert ExtractionResult.from_dict({"data": "oops"}).fields.is_empty


def test_empty_extraction_with_error_is_failed():
    assert ExtractionResult.empty("timeout").failed is True
    assert ExtractionResult.empty().failed is False


def test_display_name():
    assert display_name_for(BallotRecord(last_name="Иванов", first_name="Иван", middle_name="Петрович"), 1) == "Иванов И.П."
    assert display_name_for(BallotRecord(last_name="Иванов"), 1) == "Иванов"
    assert display_name_for(BallotRecord(last_name="Иванов", first_name="Иван"), 1) == "Иванов И."
    assert display_name_for(BallotRecord(last_name="Иванов", first_name="ERROR", middle_name="Петрович"), 1) == "Иванов П."
    assert display_name_for(BallotRecord(last_name="ERROR"), 4) == "Document 4"


def test_page_identity_ignores_extraction(make_page):
    page = make_page(1)
    assert page.with_extraction(ExtractionResult.empty("x")) == page
    assert page.page_id == "scan.pdf#1"


def test_document_has_page_by_uid(make_page):
    page = make_page(1)
    doc = GroupedDocument(pages=[page])
    assert doc.has_page(page.with_extraction(ExtractionResult.empty()))
    assert not doc.has_page(make_page(1))
    assert make_page(1).uid != page.uid

