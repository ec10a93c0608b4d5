from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Seed attribute definitions, the category taxonomy and organization alias rules"

    def add_arguments(self, parser):
        parser.add_argument("--config", default="")

    def handle(self, *args, **options):
        from scripts.etl.programs.config import load_config
        from scripts.etl.programs.registry import seed_registry

        backend_dir = Path(__file__).resolve().parents[3]
        try:
            cfg = load_config(options.get("config") or "", backend_dir)
        except (OSError, ValueError) as e:
            raise CommandError(f"Invalid configuration: {e}") from e
        counts = seed_registry(cfg.organization_aliases)
        self.stdout.write(" ".join(f"{k}={v}" for k, v in counts.items()))
