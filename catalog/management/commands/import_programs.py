from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Normalize raw program records (JSON or CSV/TSV) into the catalog and write a migration report"

    def add_arguments(self, parser):
        parser.add_argument("input", help="Path to the raw records file")
        parser.add_argument("--config", default="")
        parser.add_argument("--report-dir", default="")
        parser.add_argument("--batch-size", type=int, default=None)
        parser.add_argument("--batch-delay", type=float, default=None)
        parser.add_argument("--dry-run", action="store_true")
        parser.add_argument("--no-seed", action="store_true")

    def handle(self, *args, **options):
        from scripts.etl.programs.config import load_config
        from scripts.etl.programs.errors import ProgramETLError
        from scripts.etl.programs.pipeline import attach_run_log, detach_run_log, run_import
        from scripts.etl.programs.readers import read_records
        from scripts.etl.programs.report import persist_run

        backend_dir = Path(__file__).resolve().parents[3]
        config_path = (options.get("config") or "").strip()
        dry_run = bool(options.get("dry_run"))

        try:
            cfg = load_config(config_path, backend_dir)
            overrides = {}
            if (options.get("report_dir") or "").strip():
                overrides["report_dir"] = Path(options["report_dir"]).resolve()
            if options.get("batch_size") is not None:
                overrides["batch_size"] = options["batch_size"]
            if options.get("batch_delay") is not None:
                overrides["batch_delay"] = options["batch_delay"]
            if overrides:
                cfg = replace(cfg, **overrides)
        except (OSError, ValueError) as e:
            raise CommandError(f"Invalid configuration: {e}") from e

        input_path = Path(options["input"]).resolve()
        try:
            records = read_records(input_path)
        except (OSError, ValueError) as e:
            raise CommandError(f"Cannot read {input_path}: {e}") from e

        handler = attach_run_log(cfg.report_dir)
        try:
            report = run_import(records, cfg, dry_run=dry_run, seed=not options.get("no_seed"))
        except ProgramETLError as e:
            raise CommandError(f"Import aborted: {e}") from e
        finally:
            detach_run_log(handler)

        ts = report.started_at.strftime("%Y%m%d_%H%M%S")
        report_path = report.write_json(cfg.report_dir / f"migration_report_{ts}.json")
        if not dry_run:
            persist_run(report, action="import_programs", input_path=str(input_path), report_path=str(report_path))

        counters = " ".join(f"{k}={v}" for k, v in report.counters.items())
        self.stdout.write(f"{counters}{' (dry run)' if dry_run else ''}")
        self.stdout.write(f"Report: {report_path}")
        if not report.succeeded:
            failed = ", ".join(report.failed_records())
            raise CommandError(f"{report.errors} record(s) failed: {failed}")
        self.stdout.write(self.style.SUCCESS("Import finished"))
