"""
Seed data for the attribute registry and the category taxonomy.

Seeding is idempotent: existing rows are left untouched, so definitions edited
by hand after the first seed survive later imports.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger("program_etl")

ORGANIZATION_NAME = "ORGANIZATION_NAME"
PROGRAM_TYPE = "PROGRAM_TYPE"

# (name, display_name, data_type, category, description)
ATTRIBUTE_DEFINITIONS = (
    ("cost_amount", "Cost Amount", "decimal", "financial", "Program cost in USD"),
    ("cost_category", "Cost Category", "string", "financial", "FREE, FREE_PLUS_STIPEND, FREE_PLUS_SCHOLARSHIP, LOW_COST or PAID"),
    ("financial_aid_available", "Financial Aid Available", "boolean", "financial", "Whether any financial aid is offered"),
    ("financial_aid", "Financial Aid", "string", "financial", "Financial aid details as published"),
    ("grade_level_min", "Minimum Grade", "integer", "eligibility", "Lowest eligible grade"),
    ("grade_level_max", "Maximum Grade", "integer", "eligibility", "Highest eligible grade"),
    ("citizenship_required", "Citizenship Required", "string", "eligibility", "Citizenship or residency requirement"),
    ("special_eligibility", "Special Eligibility", "string", "eligibility", "Additional eligibility criteria"),
    ("application_requirements", "Application Requirements", "string", "basic", "What applicants must submit"),
    ("application_deadline", "Application Deadline", "date", "basic", "Next application deadline"),
    ("key_benefits", "Key Benefits", "string", "basic", "Main benefits for participants"),
    ("residential_status", "Residential Status", "string", "basic", "Residential, commuter or online"),
    ("duration_weeks", "Duration (weeks)", "integer", "basic", "Program length in weeks"),
    ("subject_area", "Subject Area", "string", "basic", "Subject area as published"),
    ("program_website", "Program Website", "string", "basic", "Program-specific website"),
)

# (name, slug, category_type, parent_slug, description); parents come first
CATEGORIES = (
    ("STEM", "stem", "subject", None, "Science, Technology, Engineering, and Mathematics"),
    ("Computer Science", "computer-science", "subject", "stem", "Programming, AI, and computer science"),
    ("Mathematics", "mathematics", "subject", "stem", "Mathematics and quantitative reasoning"),
    ("Engineering", "engineering", "subject", "stem", "Engineering and design"),
    ("Liberal Arts", "liberal-arts", "subject", None, "Humanities, writing, and social sciences"),
    ("Business", "business", "subject", None, "Business and entrepreneurship"),
    ("Leadership", "leadership", "subject", None, "Leadership and civic engagement"),
    ("High School Students", "high-school", "demographic", None, "Programs for high school students"),
    ("College Students", "college", "demographic", None, "Programs for college students"),
    ("Ethiopian Community", "ethiopian", "demographic", None, "Programs relevant to the Ethiopian community"),
    ("Eritrean Community", "eritrean", "demographic", None, "Programs relevant to the Eritrean community"),
)


def load_rules(rule_type: str) -> Dict[str, str]:
    """Return NormalizationRule rows of one type keyed by lowercased source value."""
    from catalog.models import NormalizationRule

    rules = NormalizationRule.objects.filter(type=rule_type).values_list("source_value", "normalized_value")
    return {src.strip().lower(): dst.strip() for src, dst in rules if src and dst}


def seed_registry(aliases: Optional[Mapping[str, str]] = None) -> Dict[str, int]:
    """Create missing attribute definitions, categories and organization alias rules."""
    from catalog.models import AttributeDefinition, Category, NormalizationRule

    counts = {"definitions_created": 0, "categories_created": 0, "aliases_created": 0, "aliases_updated": 0}

    for name, display_name, data_type, category, description in ATTRIBUTE_DEFINITIONS:
        _, created = AttributeDefinition.objects.get_or_create(
            name=name,
            defaults={
                "display_name": display_name,
                "data_type": data_type,
                "category": category,
                "description": description,
                "applies_to": "programs",
            },
        )
        if created:
            counts["definitions_created"] += 1

    by_slug: Dict[str, Category] = {}
    for name, slug, category_type, parent_slug, description in CATEGORIES:
        parent = by_slug.get(parent_slug) if parent_slug else None
        cat, created = Category.objects.get_or_create(
            slug=slug,
            category_type=category_type,
            defaults={
                "name": name,
                "description": description,
                "parent": parent,
                "level": parent.level + 1 if parent else 0,
                "path": f"{parent.path}.{slug}" if parent else slug,
            },
        )
        by_slug[slug] = cat
        if created:
            counts["categories_created"] += 1

    for source, target in (aliases or {}).items():
        rule, created = NormalizationRule.objects.get_or_create(
            type=ORGANIZATION_NAME,
            source_value=source.strip(),
            defaults={"normalized_value": target.strip(), "metadata": {"source": "config"}},
        )
        if created:
            counts["aliases_created"] += 1
        elif rule.normalized_value != target.strip():
            rule.normalized_value = target.strip()
            rule.save(update_fields=["normalized_value", "updated_at"])
            counts["aliases_updated"] += 1

    logger.info(
        "seed: created %d definitions, %d categories, %d aliases (%d aliases updated)",
        counts["definitions_created"],
        counts["categories_created"],
        counts["aliases_created"],
        counts["aliases_updated"],
    )
    return counts
