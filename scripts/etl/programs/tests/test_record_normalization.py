import unittest
from decimal import Decimal

from scripts.etl.programs.errors import RecordParseError
from scripts.etl.programs.normalizers import DEADLINE_NOTE
from scripts.etl.programs.pipeline import financial_aid_available, normalize_record, record_identifier


class TestNormalizeRecord(unittest.TestCase):
    def test_full_record(self):
        raw = {
            "program_name": "MIT PRIMES",
            "organization": "MIT",
            "program_type": "Year_Round_Program",
            "grade_level": "11",
            "selectivity_percent": "5",
            "cost_category": "FREE",
            "subject_area": "Mathematics",
            "application_deadline": "Rolling",
            "website": "mit.edu/primes",
            "key_benefits": "Research mentorship",
            "duration_weeks": "52",
        }
        before = dict(raw)
        rec = normalize_record(raw)
        self.assertEqual(raw, before)
        self.assertEqual(rec.program_slug, "mit-primes")
        self.assertEqual(rec.program_type, "program")
        self.assertEqual((rec.grades.min, rec.grades.max), (10, 12))
        self.assertEqual(rec.selectivity_tier, "elite")
        self.assertEqual(rec.acceptance_rate, Decimal("5"))
        self.assertEqual(rec.website, "https://mit.edu/primes")
        self.assertEqual(rec.categories, ("mathematics", "stem"))
        self.assertEqual(rec.short_description, "Research mentorship")
        self.assertEqual(rec.attributes["grade_level_min"], 10)
        self.assertEqual(rec.attributes["duration_weeks"], 52)
        self.assertIsNone(rec.attributes["application_deadline"])
        self.assertIn(("application_deadline", DEADLINE_NOTE), rec.notes)

    def test_description_composed_when_missing(self):
        rec = normalize_record({
            "program_name": "Girls Who Code",
            "key_benefits": "Free laptop",
            "subject_area": "Computer_Science",
            "financial_aid": "None",
        })
        self.assertEqual(rec.description, "Free laptop. Focus: Computer Science")
        self.assertEqual(rec.attributes["subject_area"], "Computer Science")
        self.assertIs(rec.attributes["financial_aid_available"], False)
        self.assertIn("description", [f for f, _ in rec.notes])

    def test_unusable_records_raise(self):
        cases = [
            ({"program_name": "   "}, "program_name"),
            ({"program_name": "Unknown Program"}, "program_name"),
            ({"program_name": "x" * 256}, "program_name"),
            ({"program_name": "!!!"}, "program_name"),
            (["MIT", "PRIMES"], "record"),
        ]
        for raw, field in cases:
            with self.subTest(raw=raw):
                with self.assertRaises(RecordParseError) as ctx:
                    normalize_record(raw)
                self.assertEqual(ctx.exception.field, field)

    def test_record_identifier(self):
        self.assertEqual(record_identifier({"program_name": " MIT  PRIMES "}, 3), "MIT PRIMES")
        self.assertEqual(record_identifier({"program_name": ""}, 3), "record#3")
        self.assertEqual(record_identifier("garbage", 7), "record#7")

    def test_financial_aid_flag(self):
        self.assertIs(financial_aid_available("Need-based scholarships"), True)
        self.assertIs(financial_aid_available("No"), False)
        self.assertIsNone(financial_aid_available(None))
        self.assertIsNone(financial_aid_available("N/A"))


if __name__ == "__main__":
    unittest.main()
