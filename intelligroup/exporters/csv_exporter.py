"""
CSV registry export: one row per grouped document.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List

from ..exceptions import ExportError
from ..logger import get_logger
from ..models import ERROR_SENTINEL, GroupedDocument, usable


STATUS_VERIFIED = "Проверено"
STATUS_DRAFT = "Черновик"

QUESTION_IDS = ("1", "2", "3", "4")

# Column order of the registry
HEADERS: List[str] = [
    "Статус",
    "Адрес",
    "Фамилия",
    "Имя",
    "Отчество",
    "СНИЛС",
    "№ Помещения",
    "Площадь",
    "Доля",
    "№ Рег.",
    "Дата Рег.",
    "Дата Собрания",
] + [f"Вопрос {q}" for q in QUESTION_IDS]


def document_row(doc: GroupedDocument) -> dict[str, str]:
    """
    Registry row for one document.

    Identity fields never come out blank: an unread name part or SNILS is
    written as ERROR so the operator sees it needs attention.
    """
    r = doc.record
    row = {
        "Статус": STATUS_VERIFIED if doc.is_verified else STATUS_DRAFT,
        "Адрес": r.address,
        "Фамилия": usable(r.last_name) or ERROR_SENTINEL,
        "Имя": usable(r.first_name) or ERROR_SENTINEL,
        "Отчество": usable(r.middle_name) or ERROR_SENTINEL,
        "СНИЛС": usable(r.snils) or ERROR_SENTINEL,
        "№ Помещения": r.room_no,
        "Площадь": r.area,
        "Доля": r.ownership_share,
        "№ Рег.": r.reg_number,
        "Дата Рег.": r.reg_date,
        "Дата Собрания": r.meeting_date,
    }
    for q in QUESTION_IDS:
        vote = r.votes.get(q)
        row[f"Вопрос {q}"] = vote.value if vote is not None else ""
    return row


class CsvExporter:
    """
    Writes the registry CSV.

    Semicolon-separated, UTF-8 with BOM so spreadsheet software opens the
    Cyrillic headers correctly.
    """

    def __init__(self, delimiter: str = ";"):
        self.delimiter = delimiter
        self.logger = get_logger("CsvExporter")

    def export(self, documents: Iterable[GroupedDocument], path: Path) -> Path:
        path = Path(path)
        documents = list(documents)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8-sig") as f:
                writer = csv.DictWriter(f, fieldnames=HEADERS, delimiter=self.delimiter)
                writer.writeheader()
                for doc in documents:
                    writer.writerow(document_row(doc))
        except OSError as e:
            raise ExportError(f"Failed to write CSV: {e}", file_path=str(path))

        self.logger.info(f"CSV registry ({len(documents)} documents) written to {path}")
        return path
