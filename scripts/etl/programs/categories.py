from __future__ import annotations

import logging
import re
from typing import Any, List, Sequence

from .errors import PersistenceError
from .store import savepoint

logger = logging.getLogger("program_etl")

# Evaluated in order; the first matched slug becomes the primary category
SUBJECT_RULES = (
    ("computer-science", ("computer", "coding", "programming", "ai")),
    ("mathematics", ("math",)),
    ("engineering", ("engineering",)),
)
STEM_SLUG = "stem"
STEM_KEYWORDS = ("stem",)
SECONDARY_RULES = (
    ("leadership", ("leadership",)),
    ("business", ("business", "entrepreneur")),
)
DEFAULT_CATEGORY = "high-school"

# Short keywords must start a word: "ai" hits "AI4ALL" but not "training"
WORD_START_KEYWORDS = frozenset({"ai", "stem"})

# Expected taxonomy type per slug, used when the same slug exists under several types
CATEGORY_TYPES = {
    "computer-science": "subject",
    "mathematics": "subject",
    "engineering": "subject",
    "stem": "subject",
    "leadership": "subject",
    "business": "subject",
    "high-school": "demographic",
}


def _haystack(*parts: Any) -> str:
    return " ".join(str(p) for p in parts if p).replace("_", " ").lower()


def _matches(haystack: str, keywords: Sequence[str]) -> bool:
    for k in keywords:
        if k in WORD_START_KEYWORDS:
            if re.search(rf"\b{re.escape(k)}", haystack):
                return True
        elif k in haystack:
            return True
    return False


def classify(subject_area: Any, program_name: Any = None) -> List[str]:
    """Return category slugs for a program, primary first; never empty."""
    text = _haystack(subject_area, program_name)
    slugs: List[str] = [slug for slug, keywords in SUBJECT_RULES if _matches(text, keywords)]
    if slugs or _matches(text, STEM_KEYWORDS):
        slugs.append(STEM_SLUG)
    slugs.extend(slug for slug, keywords in SECONDARY_RULES if _matches(text, keywords))
    return slugs or [DEFAULT_CATEGORY]


def link_categories(program, slugs: Sequence[str], report, record_id: str) -> int:
    """Attach `program` to the categories named by `slugs`. The first one found is primary.

    Unknown slugs and failed writes are reported as warnings; the record
    itself is never failed here.
    """
    from catalog.models import Category, ProgramCategory

    categories = []
    for slug in slugs:
        qs = Category.objects.filter(slug=slug, is_active=True)
        expected = CATEGORY_TYPES.get(slug)
        cat = (qs.filter(category_type=expected).first() if expected else None) or qs.first()
        if cat is None:
            report.warning(record_id, "category", f"Unknown category {slug!r} skipped")
            continue
        categories.append(cat)

    linked = 0
    for position, cat in enumerate(categories):
        is_primary = position == 0
        try:
            with savepoint("category"):
                if is_primary:
                    ProgramCategory.objects.filter(program=program, is_primary=True).exclude(category=cat).update(is_primary=False)
                ProgramCategory.objects.update_or_create(
                    program=program, category=cat, defaults={"is_primary": is_primary}
                )
        except PersistenceError as e:
            logger.warning("category link %s failed for %s: %s", cat.slug, record_id, e.issue)
            report.warning(record_id, "category", f"Could not link category {cat.slug!r}: {e.issue}")
            continue
        linked += 1
    return linked
