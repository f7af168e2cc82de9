"""
scripts/contact_records.py

Contact-tracing records: the parsed record type, contact-type normalisation,
case-identifier matching, and loading a record set from CSV or Parquet.

Every downstream step works on a "record set", a DataFrame with columns:
  - case_id (str)
  - contact_id (str)
  - date (datetime64, normalised to midnight)
  - contact_type (one of the ContactType values)
  - contact_is_case (bool)
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pandas as pd

logger = logging.getLogger(__name__)

CASE_ID_PATTERN = r"CS\d+"
CASE_ID_RE = re.compile(CASE_ID_PATTERN)

RAW_COLUMNS = ("case", "contact", "date", "contact_type")
RECORD_COLUMNS = ["case_id", "contact_id", "date", "contact_type", "contact_is_case"]


class ContactType(str, Enum):
    HOUSEHOLD = "household"
    NON_HOUSEHOLD = "non-household"
    UNKNOWN = "unknown"


# Free-text labels seen in tracing exports, after lower-casing and folding
# whitespace/underscores to hyphens.
HOUSEHOLD_LABELS = {"household", "household-contact", "resident", "hh"}
NON_HOUSEHOLD_LABELS = {
    "non-household",
    "nonhousehold",
    "non-household-contact",
    "non-resident",
    "nonresident",
    "non-hh",
}


@dataclass(frozen=True)
class ContactRecord:
    case_id: str
    contact_id: str
    date: dt.date
    contact_type: ContactType
    contact_is_case: bool


def compile_case_pattern(pattern: Optional[str]) -> re.Pattern:
    if not pattern:
        return CASE_ID_RE
    return re.compile(pattern)


def is_case_id(node_id: Any, case_pattern: re.Pattern = CASE_ID_RE) -> bool:
    """True when the whole identifier matches the case pattern (no substring hits)."""
    if node_id is None or pd.isna(node_id):
        return False
    return case_pattern.fullmatch(str(node_id)) is not None


def normalise_contact_type(value: Any) -> ContactType:
    """Map a free-text contact type onto ContactType; anything unrecognised is UNKNOWN."""
    if isinstance(value, ContactType):
        return value
    if value is None or pd.isna(value):
        return ContactType.UNKNOWN
    label = re.sub(r"[\s_\-]+", "-", str(value).strip().lower()).strip("-")
    if label in HOUSEHOLD_LABELS:
        return ContactType.HOUSEHOLD
    if label in NON_HOUSEHOLD_LABELS:
        return ContactType.NON_HOUSEHOLD
    return ContactType.UNKNOWN


def make_record(
    case_id: str,
    contact_id: str,
    date: dt.date,
    contact_type: Any,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> ContactRecord:
    return ContactRecord(
        case_id=case_id,
        contact_id=contact_id,
        date=pd.Timestamp(date).date(),
        contact_type=normalise_contact_type(contact_type),
        contact_is_case=is_case_id(contact_id, case_pattern),
    )


def _clean_identifiers(raw: pd.Series, label: str) -> pd.Series:
    ids = raw.astype("string").str.strip()
    bad = ids.isna() | (ids == "")
    if bad.any():
        rows = raw.index[bad.to_numpy(dtype=bool)].tolist()
        raise ValueError(f"Empty {label} identifier in {int(bad.sum())} record(s), rows: {rows[:10]}")
    return ids.astype(str)


def _parse_dates(raw: pd.Series, dayfirst: bool) -> pd.Series:
    missing = raw.isna()
    if missing.any():
        rows = raw.index[missing.to_numpy(dtype=bool)].tolist()
        raise ValueError(f"Missing date in {int(missing.sum())} record(s), rows: {rows[:10]}")
    try:
        dates = pd.to_datetime(raw, dayfirst=dayfirst)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Unparseable record date: {e}") from e

    # blank strings and "NaT" parse to NaT without raising
    unparsed = dates.isna()
    if unparsed.any():
        rows = raw.index[unparsed.to_numpy(dtype=bool)].tolist()
        raise ValueError(f"Unparseable record date in {int(unparsed.sum())} record(s), rows: {rows[:10]}")
    return dates.dt.normalize()


def prepare_records(
    raw: pd.DataFrame,
    case_pattern: re.Pattern = CASE_ID_RE,
    dayfirst: bool = False,
) -> pd.DataFrame:
    """
    Validate and normalise a raw table with columns case, contact, date,
    contact_type into a record set.

    Raises ValueError on missing columns, empty identifiers, or missing /
    unparseable dates: a partially dropped batch would misstate network
    membership, so the whole run fails instead.
    """
    missing = set(RAW_COLUMNS) - set(raw.columns)
    if missing:
        raise ValueError(f"Missing required columns in contact records: {sorted(missing)}")

    raw = raw.reset_index(drop=True)
    out = pd.DataFrame({
        "case_id": _clean_identifiers(raw["case"], "case"),
        "contact_id": _clean_identifiers(raw["contact"], "contact"),
        "date": _parse_dates(raw["date"], dayfirst=dayfirst),
        "contact_type": [normalise_contact_type(v).value for v in raw["contact_type"]],
    })
    out["contact_is_case"] = out["contact_id"].map(lambda c: is_case_id(c, case_pattern)).astype(bool)

    n_unknown = int((out["contact_type"] == ContactType.UNKNOWN.value).sum())
    if n_unknown:
        logger.info("%d of %d records have an unknown contact type", n_unknown, len(out))

    return out[RECORD_COLUMNS]


def records_frame(records: Iterable[Any], case_pattern: re.Pattern = CASE_ID_RE) -> pd.DataFrame:
    """
    Build a record set from ContactRecord objects or plain
    (case, contact, date, contact_type) tuples.
    """
    rows = []
    for rec in records:
        if isinstance(rec, ContactRecord):
            rows.append((rec.case_id, rec.contact_id, rec.date, rec.contact_type))
        else:
            case, contact, date, contact_type = rec
            rows.append((case, contact, date, contact_type))

    raw = pd.DataFrame(rows, columns=list(RAW_COLUMNS))
    return prepare_records(raw, case_pattern=case_pattern)


def iter_records(records: pd.DataFrame) -> Iterable[ContactRecord]:
    for row in records.itertuples(index=False):
        yield ContactRecord(
            case_id=row.case_id,
            contact_id=row.contact_id,
            date=row.date.date(),
            contact_type=ContactType(row.contact_type),
            contact_is_case=bool(row.contact_is_case),
        )


def load_contact_records(
    path: Path,
    columns: Optional[Dict[str, str]] = None,
    dayfirst: bool = False,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> pd.DataFrame:
    """
    Read contact records from CSV or Parquet.

    `columns` maps the canonical names (case, contact, date, contact_type) to
    the column names used in the file.
    """
    if not path.exists():
        raise FileNotFoundError(f"Contact records file not found: {path}")

    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path, dtype=str)

    columns = {k: (columns or {}).get(k, k) for k in RAW_COLUMNS}
    absent = [src for src in columns.values() if src not in df.columns]
    if absent:
        raise ValueError(f"Missing required columns in {path}: {absent}")

    df = df.rename(columns={src: k for k, src in columns.items()})
    records = prepare_records(df[list(RAW_COLUMNS)], case_pattern=case_pattern, dayfirst=dayfirst)
    logger.info("Loaded %d contact records from %s", len(records), path)
    return records
