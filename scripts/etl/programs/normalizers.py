"""
Field normalizers for raw program records.

Every function here is pure: it takes one raw field value (string, number or
None), never raises on bad input and never mutates its argument. Results are
returned as (value, note) pairs; `note` is None when the value was taken as-is
and a short human-readable advisory when something was missing, inferred or
discarded. The pipeline turns those notes into migration report entries.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, NamedTuple, Optional

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator


class FieldResult(NamedTuple):
    value: Any
    note: Optional[str] = None


class GradeRange(NamedTuple):
    min: Optional[int]
    max: Optional[int]
    note: Optional[str] = None


GRADE_NOTE = "Refer to website for grade requirements"
DEADLINE_NOTE = "Refer to website for current deadline"

MIN_GRADE = 6
MAX_GRADE = 12
DEADLINE_YEAR_RANGE = (2020, 2030)

# Substrings that mark a deadline as "not a date"
DATE_PLACEHOLDERS = ("n/a", "tbd", "rolling", "varies", "see website", "invalid", "null", "undefined")

# Whole values that mean "no value" for free-text fields
TEXT_PLACEHOLDERS = frozenset({"", "n/a", "na", "null", "undefined", "none", "tbd", "-"})

WEBSITE_PLACEHOLDERS = TEXT_PLACEHOLDERS | {"various"}

NUMBER_PLACEHOLDERS = TEXT_PLACEHOLDERS | {"various", "varies", "unknown"}

DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)

COST_CATEGORIES = ("FREE", "FREE_PLUS_STIPEND", "FREE_PLUS_SCHOLARSHIP", "LOW_COST", "PAID")

# Checked in order; first keyword hit wins
COST_INFERENCE_RULES = (
    (("stipend",), "FREE_PLUS_STIPEND"),
    (("scholarship", "free"), "FREE_PLUS_SCHOLARSHIP"),
    (("low cost", "reduced"), "LOW_COST"),
)
DEFAULT_COST_CATEGORY = "FREE"

SELECTIVITY_TIERS = (
    (10, "elite"),
    (25, "highly_selective"),
    (50, "selective"),
)
OPEN_TIER = "open"

MIN_DURATION_WEEKS = 1
MAX_DURATION_WEEKS = 52

PROGRAM_TYPES = (
    "summer_program",
    "competition",
    "scholarship",
    "award",
    "workshop",
    "conference",
    "camp",
    "program",
)

PROGRAM_TYPE_ALIASES = {
    "summer": "summer_program",
    "summer_research_program": "summer_program",
    "summer_camp": "camp",
    "olympiad": "competition",
    "contest": "competition",
    "year_round_program": "program",
    "year_program": "program",
    "multi_year": "program",
}

# Keyword fallback over raw type + program name, in priority order
PROGRAM_TYPE_KEYWORDS = (
    (("scholarship",), "scholarship"),
    (("award", "prize"), "award"),
    (("competition", "olympiad", "contest", "challenge"), "competition"),
    (("workshop",), "workshop"),
    (("conference", "summit"), "conference"),
    (("camp",), "camp"),
    (("summer",), "summer_program"),
)

ORGANIZATION_TYPE_KEYWORDS = (
    (("university", "college"), "university"),
    (("government", "federal", "department of", "nasa", "nih", "nsf"), "government"),
    (("foundation", "nonprofit", "non-profit", "society", "center", "institute"), "nonprofit"),
)
DEFAULT_ORGANIZATION_TYPE = "organization"

_url_validator = URLValidator(schemes=["http", "https"])
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_RANGE_RE = re.compile(r"^(\d{1,2})\s*[-–]\s*(\d{1,2})$")
_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(?:weeks?|wks?)?$", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def clean_text(raw: Any) -> Optional[str]:
    """Trim and collapse whitespace; placeholder values become None."""
    if raw is None:
        return None
    s = _WS_RE.sub(" ", str(raw)).strip()
    if s.lower() in TEXT_PLACEHOLDERS:
        return None
    return s


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool)


# ---------------------------
# Grades
# ---------------------------

def parse_grade_range(raw: Any) -> GradeRange:
    """Parse a free-form grade requirement into an inclusive [min, max] range.

    Recognized forms:
    - a bare grade N (6..12), widened by one grade each way within 6..12
    - an explicit "A-B" range with 6 <= A <= B <= 12
    - text mentioning "high school" (9-12) or "middle school" (6-8)
    Anything else yields (None, None, GRADE_NOTE).
    """
    if raw is None or isinstance(raw, bool):
        return GradeRange(None, None, GRADE_NOTE)
    if _is_number(raw):
        number = Decimal(str(raw))
        if not number.is_finite() or number != number.to_integral_value():
            return GradeRange(None, None, GRADE_NOTE)
        s = str(int(number))
    else:
        s = str(raw).strip()

    if s.isdigit():
        grade = int(s)
        if MIN_GRADE <= grade <= MAX_GRADE:
            return GradeRange(max(MIN_GRADE, grade - 1), min(MAX_GRADE, grade + 1))
        return GradeRange(None, None, GRADE_NOTE)

    m = _RANGE_RE.match(s)
    if m:
        lo, hi = int(m.group(1)), int(m.group(2))
        if MIN_GRADE <= lo <= hi <= MAX_GRADE:
            return GradeRange(lo, hi)
        return GradeRange(None, None, GRADE_NOTE)

    lowered = s.lower()
    if "high school" in lowered:
        return GradeRange(9, 12)
    if "middle school" in lowered:
        return GradeRange(6, 8)
    return GradeRange(None, None, GRADE_NOTE)


def infer_target_audience(grades: GradeRange) -> str:
    if grades.max is not None and grades.max <= 8:
        return "middle_school"
    return "high_school"


# ---------------------------
# Dates
# ---------------------------

def _parse_date_text(s: str) -> Optional[date]:
    candidate = s.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def validate_date(raw: Any) -> FieldResult:
    """Return an ISO `YYYY-MM-DD` string for a plausible deadline, else None plus a note."""
    if isinstance(raw, datetime):
        parsed: Optional[date] = raw.date()
    elif isinstance(raw, date):
        parsed = raw
    else:
        s = "" if raw is None else str(raw).strip()
        lowered = s.lower()
        if not s or any(token in lowered for token in DATE_PLACEHOLDERS):
            return FieldResult(None, DEADLINE_NOTE)
        parsed = _parse_date_text(s)
        if parsed is None:
            return FieldResult(None, f"Unrecognized date {s!r}. {DEADLINE_NOTE}")

    lo, hi = DEADLINE_YEAR_RANGE
    if not (lo <= parsed.year <= hi):
        return FieldResult(None, f"Date {parsed.isoformat()} outside {lo}-{hi}. {DEADLINE_NOTE}")
    return FieldResult(parsed.isoformat())


# ---------------------------
# Websites
# ---------------------------

def normalize_website(raw: Any, validate: bool = True) -> FieldResult:
    """Trim, drop placeholders, default the scheme to https:// and optionally validate."""
    if raw is None:
        return FieldResult(None)
    s = str(raw).strip()
    if not s:
        return FieldResult(None)
    if s.lower() in WEBSITE_PLACEHOLDERS:
        return FieldResult(None, f"Website placeholder {s!r} dropped")
    if not _SCHEME_RE.match(s):
        s = "https://" + s
    if validate:
        try:
            _url_validator(s)
        except ValidationError:
            return FieldResult(None, f"Invalid website URL {s!r} dropped")
    return FieldResult(s)


# ---------------------------
# Cost
# ---------------------------

def infer_cost_category(raw: Any, financial_aid: Any = None) -> FieldResult:
    """Keep a known cost category, otherwise infer one from financial-aid text."""
    token = re.sub(r"[\s\-]+", "_", str(raw or "").strip()).upper()
    if token in COST_CATEGORIES:
        return FieldResult(token)

    aid = str(financial_aid or "").lower()
    inferred = DEFAULT_COST_CATEGORY
    for keywords, category in COST_INFERENCE_RULES:
        if any(k in aid for k in keywords):
            inferred = category
            break
    source = "financial aid text" if aid.strip() else "default"
    if token:
        return FieldResult(inferred, f"Unknown cost category {raw!r}; inferred {inferred} from {source}")
    return FieldResult(inferred, f"Cost category missing; inferred {inferred} from {source}")


# ---------------------------
# Selectivity
# ---------------------------

def parse_percentage(raw: Any) -> FieldResult:
    """Parse an acceptance-rate percentage in [0, 100]. Missing input has no note."""
    if raw is None:
        return FieldResult(None)
    if isinstance(raw, bool):
        return FieldResult(None, f"Unparseable percentage {raw!r}")
    if _is_number(raw):
        number = Decimal(str(raw))
        if not number.is_finite() or not (0 <= number <= 100):
            return FieldResult(None, f"Percentage {raw!r} outside 0-100")
        value = float(number)
    else:
        s = str(raw).strip().rstrip("%").strip()
        if s.lower() in NUMBER_PLACEHOLDERS:
            return FieldResult(None) if not s else FieldResult(None, f"Percentage placeholder {raw!r} ignored")
        try:
            value = float(s)
        except ValueError:
            return FieldResult(None, f"Unparseable percentage {raw!r}")
    if math.isnan(value) or not (0 <= value <= 100):
        return FieldResult(None, f"Percentage {raw!r} outside 0-100")
    return FieldResult(value)


def selectivity_tier(raw: Any) -> str:
    """Bucket an acceptance percentage; missing or unparseable input is `open`."""
    percent = parse_percentage(raw).value
    if percent is None:
        return OPEN_TIER
    for ceiling, tier in SELECTIVITY_TIERS:
        if percent <= ceiling:
            return tier
    return OPEN_TIER


# ---------------------------
# Duration
# ---------------------------

def parse_duration_weeks(raw: Any) -> FieldResult:
    if raw is None:
        return FieldResult(None)
    if isinstance(raw, bool):
        return FieldResult(None, f"Unparseable duration {raw!r}")
    if _is_number(raw):
        number = Decimal(str(raw))
    else:
        s = str(raw).strip()
        if s.lower() in NUMBER_PLACEHOLDERS:
            return FieldResult(None) if not s else FieldResult(None, f"Duration placeholder {raw!r} ignored")
        m = _DURATION_RE.match(s)
        if not m:
            return FieldResult(None, f"Unparseable duration {raw!r}")
        number = Decimal(m.group(1))
    if not number.is_finite():
        return FieldResult(None, f"Unparseable duration {raw!r}")
    weeks = int(number.to_integral_value(rounding=ROUND_HALF_UP))
    if not (MIN_DURATION_WEEKS <= weeks <= MAX_DURATION_WEEKS):
        return FieldResult(None, f"Duration {raw!r} outside {MIN_DURATION_WEEKS}-{MAX_DURATION_WEEKS} weeks")
    return FieldResult(weeks)


# ---------------------------
# Classification helpers
# ---------------------------

def normalize_program_type(raw: Any, name: Any = None, aliases: Optional[Mapping[str, str]] = None) -> str:
    """Map a raw type to PROGRAM_TYPES. `aliases` (lowercased raw -> type) wins over built-in mappings."""
    if aliases and raw is not None:
        override = aliases.get(str(raw).strip().lower())
        if override in PROGRAM_TYPES:
            return override
    token = re.sub(r"[\s\-]+", "_", str(raw or "").strip().lower())
    if token in PROGRAM_TYPES:
        return token
    if token in PROGRAM_TYPE_ALIASES:
        return PROGRAM_TYPE_ALIASES[token]
    haystack = f"{str(raw or '')} {str(name or '')}".lower().replace("_", " ")
    for keywords, program_type in PROGRAM_TYPE_KEYWORDS:
        if any(k in haystack for k in keywords):
            return program_type
    return "program"


def determine_organization_type(name: Any) -> str:
    lowered = str(name or "").lower()
    for keywords, org_type in ORGANIZATION_TYPE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return org_type
    return DEFAULT_ORGANIZATION_TYPE
