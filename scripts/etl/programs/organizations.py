"""
Organization resolution.

Raw records carry no stable organization key, only free text: an
`organization` column when the curator filled it in, otherwise just the
program name ("MIT MITES", "Stanford AI4ALL", "Fred Hutch SHIP"). The resolver
derives a display name from that text, turns it into a slug and uses the slug
as the deduplication key:

1. manual alias rules (NormalizationRule ORGANIZATION_NAME) win outright;
2. otherwise EXTRACTION_RULES are tried in order and the first candidate
   longer than two characters is used. The order is part of the contract:
   reordering changes which organization a name resolves to;
3. the slug is looked up in the run's ResolutionCache, then in the database,
   and only then inserted.

The mapping is a best-effort heuristic. Use alias rules where it is wrong.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import PersistenceError, RecordParseError
from .normalizers import clean_text, determine_organization_type
from .registry import ORGANIZATION_NAME, load_rules
from .store import savepoint

logger = logging.getLogger("program_etl")

# (name, pattern); group 1 is the candidate organization name
EXTRACTION_RULES = (
    # "MIT PRIMES" -> "MIT"
    ("leading_acronym", re.compile(r"^([A-Z]{2,5})\s+")),
    # "Harvard Summer School" -> "Harvard"
    ("name_before_keyword", re.compile(r"^(\w+)\s+(?:Summer|Program|School|Institute|Foundation|Center|Academy)", re.IGNORECASE)),
    # "Fred Hutch SHIP" -> "Fred Hutch"
    ("name_before_acronym", re.compile(r"^([^-]+?)\s+[A-Z]{2,}")),
    # "All Star Code - Summer Intensive" -> "All Star Code"
    ("leading_segment", re.compile(r"^([^-(]+)")),
)

_SUFFIX_RE = re.compile(r"\s+(?:Program|Summer|School)$", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

MIN_CANDIDATE_LENGTH = 3
FALLBACK_WORDS = 3

ORGANIZATION_PLACEHOLDERS = frozenset({"unknown organization", "unknown", "n/a", "various"})


def make_slug(text: Any) -> str:
    """Lowercase, fold to ASCII, collapse non-alphanumeric runs to '-' and trim."""
    if text is None:
        return ""
    folded = unicodedata.normalize("NFKD", str(text)).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM_RE.sub("-", folded.lower()).strip("-")


def extract_organization_name(text: Any) -> Optional[str]:
    """Apply EXTRACTION_RULES in order; fall back to the first few words."""
    s = clean_text(text)
    if not s:
        return None
    for _name, pattern in EXTRACTION_RULES:
        m = pattern.match(s)
        if not m:
            continue
        candidate = _SUFFIX_RE.sub("", m.group(1).strip())
        if len(candidate) >= MIN_CANDIDATE_LENGTH:
            return candidate
    return " ".join(s.split()[:FALLBACK_WORDS])


def organization_source_text(record: Mapping[str, Any]) -> Optional[str]:
    """Prefer the record's organization column unless it is empty or a placeholder."""
    org = clean_text(record.get("organization"))
    if org and org.lower() not in ORGANIZATION_PLACEHOLDERS:
        return org
    return clean_text(record.get("program_name"))


def load_aliases() -> Dict[str, str]:
    """Return ORGANIZATION_NAME alias rules keyed by lowercased source value."""
    return load_rules(ORGANIZATION_NAME)


class ResolutionCache:
    """slug -> Organization id for one run. Single writer; not shared between processes."""

    def __init__(self) -> None:
        self._ids: Dict[str, int] = {}

    def get(self, slug: str) -> Optional[int]:
        return self._ids.get(slug)

    def set(self, slug: str, org_id: int) -> None:
        self._ids[slug] = org_id

    def __contains__(self, slug: str) -> bool:
        return slug in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass(frozen=True)
class ResolvedOrganization:
    id: Optional[int]
    slug: str
    name: str
    created: bool = False
    persisted: bool = True
    placeholder: Optional[str] = None


class OrganizationResolver:
    def __init__(
        self,
        cache: Optional[ResolutionCache] = None,
        aliases: Optional[Mapping[str, str]] = None,
        default_country: str = "USA",
    ):
        self.cache = cache if cache is not None else ResolutionCache()
        self.aliases = {k.strip().lower(): v for k, v in (aliases or {}).items()}
        self.default_country = default_country

    def canonical_name(self, record: Mapping[str, Any]) -> Optional[str]:
        source = organization_source_text(record)
        for text in (source, clean_text(record.get("program_name"))):
            if text and text.lower() in self.aliases:
                return self.aliases[text.lower()]
        return extract_organization_name(source)

    def resolve(self, record: Mapping[str, Any], website: Optional[str] = None) -> ResolvedOrganization:
        """Find-or-create the Organization for a raw record.

        Raises RecordParseError when no usable name can be derived. A failed
        insert of a new organization yields a non-persisted placeholder instead
        of raising; the caller decides how to report it.
        """
        name = self.canonical_name(record)
        slug = make_slug(name)
        if not slug:
            # organization text with no ASCII letters or digits ("北京大学")
            name = extract_organization_name(record.get("program_name"))
            slug = make_slug(name)
        if not slug:
            raise RecordParseError("organization", "Cannot derive an organization name")
        city = clean_text(record.get("location_city")) or ""
        state = clean_text(record.get("location_state")) or ""

        cached = self.cache.get(slug)
        if cached is not None:
            self._fill_missing(cached, website, city, state)
            return ResolvedOrganization(id=cached, slug=slug, name=name)

        from catalog.models import Organization

        try:
            with savepoint("organization"):
                org = Organization.objects.filter(slug=slug).first()
                created = org is None
                if created:
                    org = Organization.objects.create(
                        name=name,
                        slug=slug,
                        type=determine_organization_type(name),
                        website=website,
                        city=city,
                        state_province=state,
                        country=self.default_country,
                    )
                    logger.info("organization created: %s (%s)", name, slug)
        except PersistenceError as e:
            logger.warning("organization insert failed for %s: %s", slug, e.issue)
            existing = None
            try:
                with savepoint("organization"):
                    existing = Organization.objects.filter(slug=slug).values_list("id", flat=True).first()
            except PersistenceError as reread:
                logger.warning("organization %s re-read failed: %s", slug, reread.issue)
            if existing is None:
                return ResolvedOrganization(
                    id=None, slug=slug, name=name, persisted=False, placeholder=f"temp-{slug}"
                )
            self.cache.set(slug, existing)
            return ResolvedOrganization(id=existing, slug=slug, name=name)

        self.cache.set(slug, org.pk)
        if not created:
            self._fill_missing(org.pk, website, city, state)
        return ResolvedOrganization(id=org.pk, slug=slug, name=name, created=created)

    def _fill_missing(self, org_id: int, website: Optional[str], city: str, state: str) -> None:
        """Set website/location on an existing organization only where it has none yet."""
        from django.db.models import Q

        from catalog.models import Organization

        qs = Organization.objects.filter(pk=org_id)
        try:
            with savepoint("organization"):
                if website:
                    qs.filter(Q(website__isnull=True) | Q(website="")).update(website=website)
                if city:
                    qs.filter(city="").update(city=city)
                if state:
                    qs.filter(state_province="").update(state_province=state)
        except PersistenceError as e:
            logger.warning("organization %s not updated: %s", org_id, e.issue)
