from unittest.mock import MagicMock, patch

from django.db import IntegrityError, OperationalError
from django.test import TestCase

from catalog.models import (
    Category,
    NormalizationRule,
    Organization,
    Program,
    ProgramAttribute,
    ProgramCategory,
)
from scripts.etl.programs.config import Config
from scripts.etl.programs.errors import StoreUnavailable
from scripts.etl.programs.organizations import ResolutionCache
from scripts.etl.programs.pipeline import run_import
from scripts.etl.programs.registry import seed_registry


def sample_records():
    return [
        {
            "program_name": "MIT MITES Summer",
            "organization": "MIT MITES",
            "program_type": "Summer_Program",
            "grade_level": "11",
            "selectivity_percent": "8",
            "cost_category": "FREE",
            "subject_area": "Engineering",
            "website": "mitmites.mit.edu",
            "location_city": "Cambridge",
            "location_state": "MA",
            "application_deadline": "2025-02-01",
            "duration_weeks": "6",
        },
        {
            "program_name": "MIT PRIMES",
            "organization": "MIT",
            "grade_level": "9-12",
            "selectivity_percent": "20%",
            "financial_aid": "Stipend provided",
            "subject_area": "Mathematics",
        },
    ]


class ImportPipelineTests(TestCase):
    def setUp(self):
        seed_registry()
        self.cfg = Config(batch_delay=0)

    def test_acronym_variants_share_one_organization(self):
        report = run_import(sample_records(), self.cfg)

        self.assertEqual(Organization.objects.count(), 1)
        org = Organization.objects.get()
        self.assertEqual(org.slug, "mit")
        self.assertEqual(org.city, "Cambridge")
        self.assertEqual(org.website, "https://mitmites.mit.edu")
        self.assertEqual(Program.objects.filter(organization=org).count(), 2)
        self.assertEqual((report.total, report.created, report.errors), (2, 2, 0))
        self.assertTrue(report.succeeded)

    def test_program_fields_and_attributes(self):
        run_import(sample_records(), self.cfg)

        mites = Program.objects.get(slug="mit-mites-summer")
        self.assertEqual(mites.program_type, "summer_program")
        self.assertEqual(mites.selectivity_tier, "elite")
        self.assertEqual(mites.duration_value, 6)
        values = mites.attribute_values()
        self.assertEqual(values["grade_level_min"], 10)
        self.assertEqual(values["grade_level_max"], 12)
        self.assertEqual(values["cost_category"], "FREE")
        self.assertEqual(str(values["application_deadline"]), "2025-02-01")
        self.assertEqual(values["program_website"], "https://mitmites.mit.edu")

        primes = Program.objects.get(slug="mit-primes")
        self.assertEqual(primes.selectivity_tier, "highly_selective")
        values = primes.attribute_values()
        self.assertEqual(values["cost_category"], "FREE_PLUS_STIPEND")
        self.assertIs(values["financial_aid_available"], True)

    def test_categories_linked_with_single_primary(self):
        run_import(sample_records(), self.cfg)

        primes = Program.objects.get(slug="mit-primes")
        links = ProgramCategory.objects.filter(program=primes)
        self.assertEqual(sorted(l.category.slug for l in links), ["mathematics", "stem"])
        self.assertEqual(links.get(is_primary=True).category.slug, "mathematics")

    def test_rerun_is_idempotent(self):
        run_import(sample_records(), self.cfg)
        counts = (
            Organization.objects.count(),
            Program.objects.count(),
            ProgramAttribute.objects.count(),
            ProgramCategory.objects.count(),
        )

        second = run_import(sample_records(), self.cfg)

        self.assertEqual(
            counts,
            (
                Organization.objects.count(),
                Program.objects.count(),
                ProgramAttribute.objects.count(),
                ProgramCategory.objects.count(),
            ),
        )
        self.assertEqual((second.created, second.unchanged, second.updated), (0, 2, 0))

    def test_changed_record_counts_as_update(self):
        run_import(sample_records(), self.cfg)
        records = sample_records()
        records[1]["selectivity_percent"] = "60"

        report = run_import(records, self.cfg)

        self.assertEqual((report.updated, report.unchanged), (1, 1))
        self.assertEqual(Program.objects.get(slug="mit-primes").selectivity_tier, "open")

    def test_unparseable_records_are_skipped(self):
        records = [{"program_name": ""}, "garbage", {"program_name": "Valid Program"}]

        report = run_import(records, self.cfg)

        self.assertEqual((report.total, report.skipped, report.created), (3, 2, 1))
        self.assertEqual(Program.objects.count(), 1)
        self.assertEqual(Organization.objects.count(), 1)
        skipped = [i for i in report.issues if i.severity == "warning"]
        self.assertEqual({i.record_identifier for i in skipped}, {"record#0", "record#1"})

    def test_alias_rule_overrides_extraction(self):
        NormalizationRule.objects.create(
            type="ORGANIZATION_NAME", source_value="Boston Leadership Institute", normalized_value="BLI Foundation"
        )

        run_import([{"program_name": "Boston Leadership Institute"}], self.cfg)

        org = Organization.objects.get()
        self.assertEqual((org.slug, org.name, org.type), ("bli-foundation", "BLI Foundation", "nonprofit"))

    def test_config_aliases_apply(self):
        cfg = Config(batch_delay=0, organization_aliases={"Girls Who Code": "Girls Who Code Inc"})

        run_import([{"program_name": "Girls Who Code"}], cfg)

        self.assertEqual(Organization.objects.get().slug, "girls-who-code-inc")

    def test_missing_notes_are_reported_as_info(self):
        report = run_import([{"program_name": "MIT PRIMES", "grade_level": "K-12"}], self.cfg)

        fields = {i.field for i in report.issues if i.severity == "info"}
        self.assertIn("grade_level", fields)
        self.assertIn("application_deadline", fields)
        self.assertIn("cost_category", fields)
        self.assertTrue(report.succeeded)

    def test_dry_run_rolls_back(self):
        report = run_import(sample_records(), self.cfg, dry_run=True)

        self.assertTrue(report.dry_run)
        self.assertEqual(report.created, 2)
        self.assertEqual(Program.objects.count(), 0)
        self.assertEqual(Organization.objects.count(), 0)

    def test_organization_insert_failure_is_an_error(self):
        with patch.object(Organization.objects, "create", side_effect=IntegrityError("duplicate key")):
            report = run_import([{"program_name": "Fred Hutch SHIP"}], self.cfg)

        self.assertEqual((report.total, report.errors), (1, 1))
        self.assertFalse(report.succeeded)
        self.assertEqual(report.failed_records(), ["Fred Hutch SHIP"])
        self.assertIn("temp-fred-hutch", report.issues[-1].issue)
        self.assertEqual(Program.objects.count(), 0)

    def test_cache_is_threaded_through_the_run(self):
        cache = ResolutionCache()

        run_import(sample_records(), self.cfg, cache=cache)

        self.assertIn("mit", cache)
        self.assertEqual(cache.get("mit"), Organization.objects.get().pk)

    def test_batches_sleep_between_batches(self):
        sleep = MagicMock()
        records = [{"program_name": f"Stanford Program {i}"} for i in range(5)]

        report = run_import(records, Config(batch_size=2, batch_delay=0.5), sleep=sleep)

        self.assertEqual(report.total, 5)
        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(0.5)

    def test_unreachable_store_aborts(self):
        with patch(
            "django.db.backends.base.base.BaseDatabaseWrapper.ensure_connection",
            side_effect=OperationalError("could not connect"),
        ):
            with self.assertRaises(StoreUnavailable):
                run_import(sample_records(), self.cfg)
        self.assertEqual(Program.objects.count(), 0)

    def test_seed_runs_inside_import(self):
        Category.objects.all().delete()

        run_import(sample_records(), self.cfg, seed=True)

        self.assertTrue(Category.objects.filter(slug="stem").exists())
        self.assertTrue(ProgramCategory.objects.exists())

    def test_huge_numbers_do_not_abort_the_run(self):
        records = [
            {"program_name": "MIT PRIMES"},
            {"program_name": "Bad One", "selectivity_percent": int("1" + "0" * 400), "grade_level": 10**400},
            {"program_name": "Stanford AI4ALL"},
        ]

        report = run_import(records, self.cfg)

        self.assertEqual((report.total, report.created, report.errors), (3, 3, 0))
        self.assertEqual(Program.objects.count(), 3)
        self.assertEqual(Program.objects.get(name="Bad One").selectivity_tier, "open")
        primary = ProgramCategory.objects.get(program__name="Stanford AI4ALL", is_primary=True)
        self.assertEqual(primary.category.slug, "computer-science")

    def test_unexpected_failure_is_confined_to_its_record(self):
        def link(program, slugs, report, record_id):
            if program.slug == "mit-primes":
                raise RuntimeError("category index corrupt")
            return 0

        with patch("scripts.etl.programs.pipeline.link_categories", side_effect=link):
            report = run_import(sample_records(), self.cfg)

        self.assertEqual((report.total, report.created, report.errors), (2, 1, 1))
        self.assertEqual(report.failed_records(), ["MIT PRIMES"])
        issue = [i for i in report.issues if i.severity == "error"][0]
        self.assertEqual(issue.field, "record")
        self.assertIn("RuntimeError", issue.issue)

    def test_program_insert_failure_is_an_error(self):
        create = Program.objects.create

        def failing_create(**kwargs):
            if kwargs["slug"] == "mit-primes":
                raise IntegrityError("duplicate key")
            return create(**kwargs)

        with patch.object(Program.objects, "create", side_effect=failing_create):
            report = run_import(sample_records(), self.cfg)

        self.assertEqual((report.total, report.created, report.errors), (2, 1, 1))
        self.assertEqual(report.failed_records(), ["MIT PRIMES"])
        errors = [i for i in report.issues if i.severity == "error"]
        self.assertEqual([i.field for i in errors], ["program"])
        self.assertEqual(list(Program.objects.values_list("slug", flat=True)), ["mit-mites-summer"])

    def test_existing_organization_details_are_kept(self):
        run_import([
            {"program_name": "Stanford AI4ALL", "organization": "Stanford", "website": "ai4all.stanford.edu", "location_state": "CA"},
            {"program_name": "Stanford SIMR", "organization": "Stanford", "website": "simr.stanford.edu",
             "location_city": "Palo Alto", "location_state": "NY"},
        ], self.cfg)
        run_import([
            {"program_name": "Stanford OHS", "organization": "Stanford", "website": "ohs.stanford.edu",
             "location_city": "Stanford", "location_state": "WA"},
        ], self.cfg)

        org = Organization.objects.get()
        self.assertEqual(org.website, "https://ai4all.stanford.edu")
        self.assertEqual(org.city, "Palo Alto")
        self.assertEqual(org.state_province, "CA")
        self.assertEqual(Program.objects.filter(organization=org).count(), 3)

    def test_program_type_rule_applies(self):
        NormalizationRule.objects.create(
            type="PROGRAM_TYPE", source_value="Research Intensive", normalized_value="workshop"
        )

        run_import([{"program_name": "Stanford SIMR", "program_type": "Research Intensive"}], self.cfg)

        self.assertEqual(Program.objects.get().program_type, "workshop")

    def test_non_latin_organization_falls_back_to_program_name(self):
        report = run_import([{"program_name": "Peking University Summer", "organization": "北京大学"}], self.cfg)

        self.assertEqual((report.created, report.skipped), (1, 0))
        org = Organization.objects.get()
        self.assertEqual((org.slug, org.type), ("peking-university", "university"))
