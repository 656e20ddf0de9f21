"""
Field merge rules.

Combines what one page reports into the record accumulated for a document.
Scalar fields keep the first real reading and only ever replace an
``ERROR`` sentinel; votes are overlaid; question texts keep the longest
transcription.
"""

from __future__ import annotations

from typing import Any

from ..models.ballot import SCALAR_FIELDS, BallotRecord, FieldState, field_state


def merge_scalar(current: str, incoming: str) -> str:
    """Resolve one scalar field."""
    state = field_state(current)
    if state is FieldState.ABSENT:
        return incoming
    if state is FieldState.ERROR and field_state(incoming) is FieldState.VALUE:
        return incoming
    return current


def merge_question_texts(current: dict[str, str], incoming: dict[str, str]) -> dict[str, str]:
    """Per question, keep the strictly longer non-empty text."""
    merged = dict(current)
    for question_id, text in incoming.items():
        if text and len(text) > len(merged.get(question_id, "")):
            merged[question_id] = text
    return merged


def merge_records(target: BallotRecord, incoming: Any) -> BallotRecord:
    """
    Merge ``incoming`` into ``target`` and return the result.

    ``target`` is left untouched. ``incoming`` may be a BallotRecord or a raw
    mapping from the model; anything malformed counts as empty.
    """
    if not isinstance(incoming, BallotRecord):
        incoming = BallotRecord.from_dict(incoming)

    merged = target.copy()
    for name in SCALAR_FIELDS:
        setattr(merged, name, merge_scalar(getattr(target, name), getattr(incoming, name)))

    merged.votes = {**target.votes, **incoming.votes}
    merged.question_texts = merge_question_texts(target.question_texts, incoming.question_texts)
    return merged
