import csv

import fitz

from intelligroup.exporters import HEADERS, CsvExporter, PdfExporter, pdf_filename
from intelligroup.models import BallotRecord, GroupedDocument


def read_rows(path):
    with open(path, newline="", encoding="utf-8-sig") as f:
        return list(csv.reader(f, delimiter=";"))


def test_csv_header_and_row(tmp_path):
    doc = GroupedDocument(
        record=BallotRecord(
            last_name="Иванов",
            first_name="Иван",
            middle_name="Иванович",
            snils="123-456-789 01",
            address="ул. Ленина, 1",
            room_no="12",
            votes={"1": "ЗА", "3": "ПРОТИВ"},
        ),
        is_verified=True,
    )

    path = CsvExporter().export([doc], tmp_path / "out" / "registry.csv")
    header, row = read_rows(path)

    assert header == HEADERS
    assert header[0] == "Статус"
    values = dict(zip(header, row))
    assert values["Статус"] == "Проверено"
    assert values["Адрес"] == "ул. Ленина, 1"
    assert values["СНИЛС"] == "123-456-789 01"
    assert values["Вопрос 1"] == "ЗА"
    assert values["Вопрос 2"] == ""
    assert values["Вопрос 3"] == "ПРОТИВ"


def test_csv_marks_missing_identity_as_error(tmp_path):
    doc = GroupedDocument(record=BallotRecord(last_name="Иванов", snils="ERROR", area=""))

    _, row = read_rows(CsvExporter().export([doc], tmp_path / "r.csv"))
    values = dict(zip(HEADERS, row))

    assert values["Статус"] == "Черновик"
    assert values["Имя"] == "ERROR"
    assert values["Отчество"] == "ERROR"
    assert values["СНИЛС"] == "ERROR"
    assert values["Площадь"] == ""


def test_csv_is_written_with_bom(tmp_path):
    path = CsvExporter().export([], tmp_path / "r.csv")
    assert path.read_bytes().startswith(b"\xef\xbb\xbf")


def test_pdf_filename_fallbacks():
    assert pdf_filename(GroupedDocument(record=BallotRecord(last_name="Иванов", snils="123-456-789 01"))) == "Иванов_123-456-789_01.pdf"
    assert pdf_filename(GroupedDocument(record=BallotRecord(snils="ERROR"))) == "document_no_snils.pdf"


def test_pdf_export_one_file_per_document(tmp_path, make_page):
    docs = [
        GroupedDocument(pages=[make_page(1), make_page(2)], record=BallotRecord(last_name="Иванов")),
        GroupedDocument(pages=[make_page(3)], record=BallotRecord(last_name="Иванов")),
    ]

    paths = PdfExporter().export(docs, tmp_path / "pdf")

    assert [p.name for p in paths] == ["Иванов_no_snils.pdf", "Иванов_no_snils_2.pdf"]

    with fitz.open(str(paths[0])) as pdf:
        assert pdf.page_count == 2
        rect = pdf[0].rect
        assert round(rect.width, 2) == 595.28
        # 40x60 page image keeps its aspect ratio
        assert round(rect.height, 2) == round(595.28 * 60 / 40, 2)
