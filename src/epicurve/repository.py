from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

import pandas as pd

from epicurve.io.schema import CASE_FIELDS
from epicurve.preprocess.datetimes import combine, normalize_date, normalize_time
from epicurve.preprocess.values import (
    age_group_for,
    clean_text,
    normalize_age_group,
    normalize_classification,
    normalize_outcome,
    normalize_sex,
    parse_age,
)

LOGGER = logging.getLogger(__name__)

CASE_ID_FORMAT = "CASE-{:04d}"


@dataclass(frozen=True)
class CaseRecord:
    id: str
    onset_date: str | None
    onset_time: str | None
    onset_instant: pd.Timestamp | None
    classification: str = "confirmed"
    age: float | None = None
    age_group: str | None = None
    sex: str | None = None
    outcome: str | None = None
    custom: str | None = None

    def field_value(self, field_name: str) -> Any:
        return getattr(self, field_name)


class CaseObserver(Protocol):
    def cases_changed(self, cases: Sequence[CaseRecord]) -> None: ...


def _ordering_key(record: CaseRecord) -> tuple[bool, pd.Timestamp]:
    # Records without an instant sort after every dated record; sort stability keeps
    # insertion order among ties and among the undated tail.
    if record.onset_instant is None:
        return True, pd.Timestamp.min
    return False, record.onset_instant


class CaseRepository:
    """In-memory, session-scoped store of case records kept in onset order.

    Observers are notified synchronously, in subscription order, after every
    mutating call. An observer must not mutate the repository from inside
    ``cases_changed``; there is no re-entrancy guard.
    """

    def __init__(self) -> None:
        self._cases: list[CaseRecord] = []
        self._next_id = 1
        self._observers: list[CaseObserver] = []

    def subscribe(self, observer: CaseObserver) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: CaseObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self) -> None:
        snapshot = self.all()
        for observer in list(self._observers):
            observer.cases_changed(snapshot)

    def _generate_id(self) -> str:
        case_id = CASE_ID_FORMAT.format(self._next_id)
        self._next_id += 1
        return case_id

    def _build_record(self, case_input: Mapping[str, Any]) -> CaseRecord:
        case_id = clean_text(case_input.get("id"))
        if case_id is None:
            case_id = self._generate_id()
        elif any(existing.id == case_id for existing in self._cases):
            LOGGER.debug("Accepting duplicate case id %s", case_id)

        raw_date = case_input.get("onset_date")
        onset_date = normalize_date(raw_date) or clean_text(raw_date)
        onset_time = normalize_time(case_input.get("onset_time"))
        age = parse_age(case_input.get("age"))
        age_group = normalize_age_group(case_input.get("age_group")) or age_group_for(age)

        return CaseRecord(
            id=case_id,
            onset_date=onset_date,
            onset_time=onset_time,
            onset_instant=combine(onset_date, onset_time),
            classification=normalize_classification(case_input.get("classification")),
            age=age,
            age_group=age_group,
            sex=normalize_sex(case_input.get("sex")),
            outcome=normalize_outcome(case_input.get("outcome")),
            custom=clean_text(case_input.get("custom")),
        )

    def _insert(self, case_input: Mapping[str, Any]) -> CaseRecord:
        record = self._build_record(case_input)
        self._cases.append(record)
        self._cases.sort(key=_ordering_key)
        return record

    def add(self, case_input: Mapping[str, Any]) -> CaseRecord:
        record = self._insert(case_input)
        self._notify()
        return record

    def add_many(self, case_inputs: Iterable[Mapping[str, Any]]) -> list[CaseRecord]:
        """Insert every input, then notify observers once for the whole batch.

        Every record is built before any is stored, so an input that fails to build
        leaves the repository and its id counter as they were.
        """
        next_id = self._next_id
        try:
            records = [self._build_record(case_input) for case_input in case_inputs]
        except Exception:
            self._next_id = next_id
            raise
        if not records:
            return records
        self._cases.extend(records)
        self._cases.sort(key=_ordering_key)
        self._notify()
        return records

    def remove(self, case_id: str) -> int:
        before = len(self._cases)
        self._cases = [record for record in self._cases if record.id != case_id]
        removed = before - len(self._cases)
        self._notify()
        return removed

    def clear(self) -> None:
        self._cases = []
        self._next_id = 1
        self._notify()

    def all(self) -> list[CaseRecord]:
        return list(self._cases)

    def __len__(self) -> int:
        return len(self._cases)

    def unique_values(self, field_name: str) -> list[str]:
        values = {record.field_value(field_name) for record in self._cases}
        return sorted(str(value) for value in values if value not in (None, ""))

    def dated_cases(self) -> list[CaseRecord]:
        return [record for record in self._cases if record.onset_instant is not None]

    def date_range(self) -> tuple[pd.Timestamp, pd.Timestamp] | None:
        dated = self.dated_cases()
        if not dated:
            return None
        # The list is ordered by instant, so the dated head and tail are the bounds.
        return dated[0].onset_instant, dated[-1].onset_instant

    def first_case(self) -> CaseRecord | None:
        dated = self.dated_cases()
        return dated[0] if dated else None

    def has_time_data(self) -> bool:
        return any(record.onset_time is not None for record in self._cases)

    def to_frame(self) -> pd.DataFrame:
        columns = [*CASE_FIELDS, "onset_instant"]
        if not self._cases:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([asdict(record) for record in self._cases], columns=columns)
