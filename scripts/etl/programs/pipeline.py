"""
Upsert orchestrator for raw program records.

Each record goes through Parse -> Resolve-Organization -> Upsert-Program ->
Write-Attributes -> Link-Categories, and ends as exactly one counter bump in
the run's report:

- skipped: the record cannot be parsed (no entities written)
- errors: the organization or program could not be persisted
- created / updated / unchanged: outcome of the program upsert

Attribute and category problems never fail a record; they only add report
entries. Every entity write is its own savepoint, so a run can be interrupted
between records and re-run to converge on the same state. `StoreUnavailable`
is the one failure that stops the run.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from django.db import transaction

from .attributes import AttributeWriter
from .categories import classify, link_categories
from .config import Config
from .errors import PersistenceError, RecordParseError, StoreUnavailable
from .normalizers import (
    GradeRange,
    clean_text,
    infer_cost_category,
    infer_target_audience,
    normalize_program_type,
    normalize_website,
    parse_duration_weeks,
    parse_grade_range,
    parse_percentage,
    selectivity_tier,
    validate_date,
)
from .organizations import OrganizationResolver, ResolutionCache, load_aliases, make_slug
from .registry import PROGRAM_TYPE, load_rules, seed_registry
from .report import MigrationReport, ReportBuilder
from .store import ensure_store_available, savepoint, setup_django

logger = logging.getLogger("program_etl")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

MAX_NAME_LENGTH = 255
MAX_SHORT_DESCRIPTION = 500
NAME_PLACEHOLDERS = frozenset({"unknown program", "unknown", "untitled"})
NO_AID_VALUES = frozenset({"none", "no", "not available"})


def attach_run_log(log_dir: Path) -> logging.Handler:
    """Add a per-run file handler to the pipeline logger. Caller removes it."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    handler = logging.FileHandler(log_dir / f"etl_{ts}.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    handler.close()


def record_identifier(raw: Any, index: int) -> str:
    if isinstance(raw, Mapping):
        name = clean_text(raw.get("program_name"))
        if name:
            return name[:MAX_NAME_LENGTH]
    return f"record#{index}"


@dataclass(frozen=True)
class NormalizedRecord:
    """Everything the writers need from one raw record. The raw record is left untouched."""
    identifier: str
    program_name: str
    program_slug: str
    description: str
    short_description: str
    program_type: str
    target_audience: str
    duration_weeks: Optional[int]
    grades: GradeRange
    selectivity_tier: str
    acceptance_rate: Optional[Decimal]
    website: Optional[str]
    categories: Tuple[str, ...]
    attributes: Dict[str, Any] = field(default_factory=dict)
    notes: Tuple[Tuple[str, str], ...] = ()


def compose_description(raw: Mapping[str, Any]) -> str:
    parts: List[str] = []
    benefits = clean_text(raw.get("key_benefits"))
    if benefits:
        parts.append(benefits)
    eligibility = clean_text(raw.get("special_eligibility"))
    if eligibility:
        parts.append(f"Eligibility: {eligibility}")
    subject = clean_text(raw.get("subject_area"))
    if subject and subject.lower() != "general":
        parts.append(f"Focus: {subject.replace('_', ' ')}")
    aid = clean_text(raw.get("financial_aid"))
    if aid and aid.lower() not in NO_AID_VALUES:
        parts.append(f"Financial Aid: {aid}")
    return ". ".join(parts)


def financial_aid_available(raw_aid: Any) -> Optional[bool]:
    """True/False from financial-aid text; None when nothing was published."""
    if raw_aid is None:
        return None
    aid = str(raw_aid).strip().lower()
    if aid in NO_AID_VALUES:
        return False
    return None if clean_text(aid) is None else True


def normalize_record(
    raw: Any,
    index: int = 0,
    validate_websites: bool = True,
    program_type_aliases: Optional[Mapping[str, str]] = None,
) -> NormalizedRecord:
    """Run every field normalizer over a raw record.

    Raises RecordParseError when the record has no usable program name.
    """
    identifier = record_identifier(raw, index)
    if not isinstance(raw, Mapping):
        raise RecordParseError("record", f"Expected a mapping, got {type(raw).__name__}")

    name = clean_text(raw.get("program_name"))
    if not name or name.lower() in NAME_PLACEHOLDERS:
        raise RecordParseError("program_name", "Program name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise RecordParseError("program_name", f"Program name longer than {MAX_NAME_LENGTH} characters")
    slug = make_slug(name)
    if not slug:
        raise RecordParseError("program_name", f"Program name {name!r} has no letters or digits")

    notes: List[Tuple[str, str]] = []

    def keep(field_name: str, result):
        if result.note:
            notes.append((field_name, result.note))
        return result.value

    grades = parse_grade_range(raw.get("grade_level"))
    if grades.note:
        notes.append(("grade_level", grades.note))
    deadline = keep("application_deadline", validate_date(raw.get("application_deadline")))
    website = keep("website", normalize_website(raw.get("website"), validate=validate_websites))
    cost_category = keep("cost_category", infer_cost_category(raw.get("cost_category"), raw.get("financial_aid")))
    percent = keep("selectivity_percent", parse_percentage(raw.get("selectivity_percent")))
    duration = keep("duration_weeks", parse_duration_weeks(raw.get("duration_weeks")))

    description = clean_text(raw.get("description"))
    if not description:
        description = compose_description(raw)
        if description:
            notes.append(("description", "Description composed from benefits, eligibility and focus"))
    short = clean_text(raw.get("short_description")) or clean_text(raw.get("key_benefits")) or clean_text(raw.get("special_eligibility")) or ""

    subject_area = clean_text(raw.get("subject_area"))
    attributes = {
        "cost_category": cost_category,
        "financial_aid_available": financial_aid_available(raw.get("financial_aid")),
        "financial_aid": clean_text(raw.get("financial_aid")),
        "grade_level_min": grades.min,
        "grade_level_max": grades.max,
        "duration_weeks": duration,
        "application_deadline": deadline,
        "citizenship_required": clean_text(raw.get("citizenship_required")),
        "application_requirements": clean_text(raw.get("application_requirements")),
        "key_benefits": clean_text(raw.get("key_benefits")),
        "residential_status": clean_text(raw.get("residential_status") or raw.get("residential_day")),
        "special_eligibility": clean_text(raw.get("special_eligibility")),
        "subject_area": subject_area.replace("_", " ") if subject_area else None,
        "program_website": website,
    }

    return NormalizedRecord(
        identifier=identifier,
        program_name=name,
        program_slug=slug,
        description=description or "",
        short_description=short[:MAX_SHORT_DESCRIPTION],
        program_type=normalize_program_type(raw.get("program_type"), name, program_type_aliases),
        target_audience=infer_target_audience(grades),
        duration_weeks=duration,
        grades=grades,
        selectivity_tier=selectivity_tier(raw.get("selectivity_percent")),
        acceptance_rate=Decimal(str(round(percent, 2))) if percent is not None else None,
        website=website,
        categories=tuple(classify(raw.get("subject_area"), name)),
        attributes=attributes,
        notes=tuple(notes),
    )


class ProgramImporter:
    """Imports records one at a time into the catalog, reporting into `report`."""

    def __init__(self, cfg: Config, report: ReportBuilder, cache: Optional[ResolutionCache] = None):
        self.cfg = cfg
        self.report = report
        aliases = dict(cfg.organization_aliases)
        aliases.update(load_aliases())
        self.program_type_aliases = load_rules(PROGRAM_TYPE)
        self.resolver = OrganizationResolver(cache, aliases=aliases, default_country=cfg.default_country)
        self.attributes = AttributeWriter(report)

    def import_record(self, raw: Any, index: int) -> str:
        """Process one raw record and return the counter name for its outcome.

        Anything a single record raises, except StoreUnavailable, is reported
        as an error for that record and the run moves on.
        """
        record_id = record_identifier(raw, index)
        try:
            return self._import_record(raw, index, record_id)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.exception("record %s failed", record_id)
            self.report.error(record_id, "record", f"Unexpected {type(e).__name__}: {e}")
            return "errors"

    def _import_record(self, raw: Any, index: int, record_id: str) -> str:
        try:
            rec = normalize_record(
                raw, index, validate_websites=self.cfg.validate_websites, program_type_aliases=self.program_type_aliases
            )
        except RecordParseError as e:
            logger.warning("skip %s: %s", record_id, e)
            self.report.warning(record_id, e.field, e.issue)
            return "skipped"

        for field_name, note in rec.notes:
            self.report.info(record_id, field_name, note)

        try:
            org = self.resolver.resolve(raw, website=rec.website)
        except RecordParseError as e:
            logger.warning("skip %s: %s", record_id, e)
            self.report.warning(record_id, e.field, e.issue)
            return "skipped"
        if not org.persisted:
            self.report.error(
                record_id,
                "organization",
                f"Organization {org.name!r} could not be stored; placeholder {org.placeholder} needs manual follow-up",
            )
            return "errors"

        try:
            program, outcome = self.upsert_program(org.id, rec)
        except PersistenceError as e:
            logger.warning("program %s not stored: %s", record_id, e.issue)
            self.report.error(record_id, "program", e.issue)
            return "errors"

        self.attributes.write(program, rec.attributes, record_id)
        link_categories(program, rec.categories, self.report, record_id)
        return outcome

    def upsert_program(self, organization_id: int, rec: NormalizedRecord):
        from catalog.models import Program

        values = {
            "name": rec.program_name,
            "description": rec.description,
            "short_description": rec.short_description,
            "program_type": rec.program_type,
            "target_audience": rec.target_audience,
            "duration_value": rec.duration_weeks,
            "selectivity_tier": rec.selectivity_tier,
            "estimated_acceptance_rate": rec.acceptance_rate,
            "status": "active",
            "data_source": self.cfg.data_source,
        }
        with savepoint("program"):
            program = Program.objects.filter(organization_id=organization_id, slug=rec.program_slug).first()
            if program is None:
                program = Program.objects.create(organization_id=organization_id, slug=rec.program_slug, **values)
                return program, "created"
            changed = [k for k, v in values.items() if getattr(program, k) != v]
            if not changed:
                return program, "unchanged"
            for k in changed:
                setattr(program, k, values[k])
            program.save(update_fields=changed + ["updated_at"])
            return program, "updated"


def _process(records: Sequence[Any], importer: ProgramImporter, report: ReportBuilder, sleep: Callable[[float], None]) -> None:
    batch_size = importer.cfg.batch_size
    total = len(records)
    for start in range(0, total, batch_size):
        if start and importer.cfg.batch_delay:
            sleep(importer.cfg.batch_delay)
        batch = records[start:start + batch_size]
        logger.info("import: batch %d-%d of %d", start + 1, start + len(batch), total)
        for offset, raw in enumerate(batch):
            outcome = importer.import_record(raw, start + offset)
            report.inc("total")
            report.inc(outcome)


def run_import(
    records: Sequence[Any],
    cfg: Optional[Config] = None,
    *,
    dry_run: bool = False,
    seed: bool = False,
    cache: Optional[ResolutionCache] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationReport:
    """Import raw records and return the finalized migration report.

    Raises StoreUnavailable when the database cannot be used; no report is
    produced in that case. With `dry_run` every write is rolled back at the end.
    """
    setup_django()
    cfg = cfg or Config()
    ensure_store_available()
    records = list(records)
    report = ReportBuilder(dry_run=dry_run)

    def _run() -> None:
        if seed:
            with savepoint("registry"):
                seed_registry(cfg.organization_aliases)
        importer = ProgramImporter(cfg, report, cache)
        _process(records, importer, report, sleep)

    if dry_run:
        with transaction.atomic():
            _run()
            transaction.set_rollback(True)
    else:
        _run()

    final = report.finalize()
    logger.info(
        "import: total=%d created=%d updated=%d unchanged=%d skipped=%d errors=%d%s",
        final.total,
        final.created,
        final.updated,
        final.unchanged,
        final.skipped,
        final.errors,
        " (dry run, rolled back)" if dry_run else "",
    )
    return final
