import csv
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from scripts.etl.programs.config import Config, load_config
from scripts.etl.programs.readers import read_records


class TestConfig(unittest.TestCase):
    def test_from_yaml(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                "batch_size: 10\n"
                "batch_delay: 0\n"
                f"report_dir: {tmp}/reports\n"
                "organization_aliases:\n"
                "  Boston Leadership Institute: BLI Foundation\n",
                encoding="utf-8",
            )
            cfg = Config.from_yaml(path)
        self.assertEqual(cfg.batch_size, 10)
        self.assertEqual(cfg.batch_delay, 0.0)
        self.assertEqual(cfg.report_dir.name, "reports")
        self.assertEqual(cfg.organization_aliases, {"Boston Leadership Institute": "BLI Foundation"})
        self.assertEqual(cfg.default_country, "USA")

    def test_empty_yaml_uses_defaults(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("", encoding="utf-8")
            cfg = Config.from_yaml(path)
        self.assertEqual(cfg.batch_size, 50)
        self.assertTrue(cfg.validate_websites)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            Config(batch_size=0)
        with self.assertRaises(ValueError):
            Config(batch_delay=-1)
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("organization_aliases: [a, b]\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                Config.from_yaml(path)

    def test_malformed_yaml_is_a_value_error(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            for text in ("batch_size: [1\n", "- a\n- b\n", "batch_size: many\n"):
                with self.subTest(text=text):
                    path.write_text(text, encoding="utf-8")
                    with self.assertRaises(ValueError):
                        Config.from_yaml(path)

    def test_load_config_resolves_relative_paths(self):
        with TemporaryDirectory() as tmp:
            (Path(tmp) / "etl.yaml").write_text("batch_size: 7\n", encoding="utf-8")
            self.assertEqual(load_config("etl.yaml", Path(tmp)).batch_size, 7)
            self.assertEqual(load_config(str(Path(tmp) / "etl.yaml"), Path("/nonexistent")).batch_size, 7)
        self.assertEqual(load_config("", Path(tmp)), Config())


class TestReaders(unittest.TestCase):
    def test_json_list_and_wrapped(self):
        with TemporaryDirectory() as tmp:
            plain = Path(tmp) / "plain.json"
            plain.write_text(json.dumps([{"program_name": "MIT PRIMES"}]), encoding="utf-8")
            wrapped = Path(tmp) / "wrapped.json"
            wrapped.write_text(json.dumps({"programs": [{"program_name": "RSI"}]}), encoding="utf-8")
            self.assertEqual(read_records(plain), [{"program_name": "MIT PRIMES"}])
            self.assertEqual(read_records(wrapped), [{"program_name": "RSI"}])

    def test_json_without_records(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.json"
            path.write_text(json.dumps({"items": []}), encoding="utf-8")
            with self.assertRaises(ValueError):
                read_records(path)

    def test_csv_and_tsv(self):
        rows = [
            ["program_name", "organization", "grade_level"],
            ["MIT PRIMES", "MIT", "9-12"],
            ["", "", ""],
            ["Stanford AI4ALL", "Stanford University", "10"],
        ]
        with TemporaryDirectory() as tmp:
            for suffix, delimiter in ((".csv", ","), (".tsv", "\t")):
                path = Path(tmp) / f"programs{suffix}"
                with path.open("w", newline="", encoding="utf-8") as f:
                    csv.writer(f, delimiter=delimiter).writerows(rows)
                with self.subTest(suffix=suffix):
                    records = read_records(path)
                    self.assertEqual(len(records), 2)
                    self.assertEqual(records[0]["organization"], "MIT")
                    self.assertEqual(records[1]["grade_level"], "10")

    def test_unsupported_format(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "programs.xml"
            path.write_text("<programs/>", encoding="utf-8")
            with self.assertRaises(ValueError):
                read_records(path)


if __name__ == "__main__":
    unittest.main()
