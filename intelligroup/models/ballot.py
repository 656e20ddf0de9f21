"""
Ballot data models.

A BallotRecord accumulates the fields read from one owner's ballot across
all of its pages. Every scalar field is in exactly one FieldState:

- ABSENT: empty string, the field has not been observed yet
- ERROR:  the ``"ERROR"`` sentinel, the model saw the field but could not read it
- VALUE:  any other non-empty string
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Any, Mapping, Optional


ERROR_SENTINEL = "ERROR"

# Localized spellings the model sometimes returns instead of the sentinel
ERROR_ALIASES = {"ERROR", "ОШИБКА"}

# Values the model uses for "nothing here" despite being told not to
NULL_ALIASES = {"null", "none", "n/a"}


class FieldState(str, Enum):
    ABSENT = "absent"
    ERROR = "error"
    VALUE = "value"


def field_state(value: Optional[str]) -> FieldState:
    """Classify a scalar field value."""
    if not value:
        return FieldState.ABSENT
    if value == ERROR_SENTINEL:
        return FieldState.ERROR
    return FieldState.VALUE


def usable(value: Optional[str]) -> str:
    """Return the value when it is a real reading, else an empty string."""
    return value if field_state(value) is FieldState.VALUE else ""


def clean_scalar(value: Any) -> str:
    """Normalize a raw scalar from the model into the three-state form."""
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    text = str(value).strip()
    if text.lower() in NULL_ALIASES:
        return ""
    if text.upper() in ERROR_ALIASES:
        return ERROR_SENTINEL
    return text


class VoteChoice(str, Enum):
    """Owner's decision on one agenda question."""
    FOR = "ЗА"
    AGAINST = "ПРОТИВ"
    ABSTAIN = "ВОЗДЕРЖАЛСЯ"
    DID_NOT_VOTE = "НЕ ГОЛОСОВАЛ"
    
    @classmethod
    def parse(cls, raw: Any) -> Optional["VoteChoice"]:
        """
        Parse a vote from either the printed label or the member name.
        
        Returns None for empty or unrecognized values.
        """
        if isinstance(raw, cls):
            return raw
        if raw is None:
            return None
        text = " ".join(str(raw).strip().upper().split())
        if not text:
            return None
        for choice in cls:
            if text == choice.value or text.replace(" ", "_") == choice.name:
                return choice
        return None


# Field name on the wire (model JSON) -> attribute name
WIRE_FIELDS = {
    "lastName": "last_name",
    "firstName": "first_name",
    "middleName": "middle_name",
    "snils": "snils",
    "address": "address",
    "roomNo": "room_no",
    "area": "area",
    "ownershipShare": "ownership_share",
    "regNumber": "reg_number",
    "regDate": "reg_date",
    "meetingDate": "meeting_date",
}

SCALAR_FIELDS = tuple(WIRE_FIELDS.values())


@dataclass
class BallotRecord:
    """
    Fields of one owner's decision ballot (housing owners' meeting).
    
    ``question_texts`` and ``votes`` are keyed by question number as a
    string ("1", "2", ...).
    """
    
    # Owner identity
    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    snils: str = ""  # Russian national insurance number, 11 digits
    
    # Property
    address: str = ""
    room_no: str = ""
    area: str = ""
    ownership_share: str = ""
    reg_number: str = ""
    reg_date: str = ""
    
    # Meeting
    meeting_date: str = ""
    question_texts: dict[str, str] = field(default_factory=dict)
    votes: dict[str, VoteChoice] = field(default_factory=dict)
    
    def __post_init__(self):
        """Normalize values to the three-state form."""
        for name in SCALAR_FIELDS:
            setattr(self, name, clean_scalar(getattr(self, name)))
        
        raw_texts = self.question_texts if isinstance(self.question_texts, Mapping) else {}
        texts: dict[str, str] = {}
        for q, raw in raw_texts.items():
            text = clean_scalar(raw)
            if field_state(text) is FieldState.VALUE:
                texts[str(q).strip()] = text
        self.question_texts = texts
        
        raw_votes = self.votes if isinstance(self.votes, Mapping) else {}
        votes: dict[str, VoteChoice] = {}
        for q, raw in raw_votes.items():
            choice = VoteChoice.parse(raw)
            if choice is not None:
                votes[str(q).strip()] = choice
        self.votes = votes
    
    def state_of(self, name: str) -> FieldState:
        """FieldState of a scalar field."""
        return field_state(getattr(self, name))
    
    @property
    def full_name(self) -> str:
        """Last, first and middle name joined as read, ``ERROR`` parts included."""
        parts = (self.last_name, self.first_name, self.middle_name)
        return " ".join(p for p in parts if p).strip()

    @property
    def name_is_legible(self) -> bool:
        """True when no name part is ``ERROR``; only such names can identify an owner."""
        parts = (self.last_name, self.first_name, self.middle_name)
        return all(field_state(p) is not FieldState.ERROR for p in parts)
    
    @property
    def is_empty(self) -> bool:
        return (
            all(not getattr(self, name) for name in SCALAR_FIELDS)
            and not self.question_texts
            and not self.votes
        )
    
    def copy(self) -> "BallotRecord":
        return BallotRecord(
            **{name: getattr(self, name) for name in SCALAR_FIELDS},
            question_texts=dict(self.question_texts),
            votes=dict(self.votes),
        )
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire (camelCase) representation."""
        data: dict[str, Any] = {wire: getattr(self, attr) for wire, attr in WIRE_FIELDS.items()}
        data["questionTexts"] = dict(self.question_texts)
        data["votes"] = {q: v.value for q, v in self.votes.items()}
        return data
    
    @classmethod
    def from_dict(cls, data: Any) -> "BallotRecord":
        """
        Build a record from model output or a persisted dict.
        
        Accepts camelCase wire names and snake_case attribute names.
        Anything that is not a mapping yields an empty record.
        """
        if not isinstance(data, Mapping):
            return cls()
        
        known = {f.name for f in dataclass_fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            attr = WIRE_FIELDS.get(key, key)
            if key == "questionTexts":
                attr = "question_texts"
            elif key == "votes":
                attr = "votes"
            if attr in known:
                kwargs[attr] = value
        return cls(**kwargs)
