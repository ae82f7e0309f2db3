# storefront/shop/management/commands/load_sample_data.py
from django.core.management.base import BaseCommand, CommandError

from storefront.core.exceptions import DatasetError
from storefront.shop.loader import load_dataset


class Command(BaseCommand):
    help = "Load the sample shop dataset (or another file in the same format)."

    def add_arguments(self, parser):
        parser.add_argument("--path", default=None, help="Dataset JSON file; defaults to the bundled sample.")
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete every existing shop row before loading.",
        )

    def handle(self, *args, **options):
        try:
            report = load_dataset(options["path"], reset=options["reset"])
        except DatasetError as e:
            raise CommandError(e.message)

        for model, count in report.counts.items():
            self.stdout.write(f"  {model:<18} {count}")
        self.stdout.write(self.style.SUCCESS(f"Loaded {report.total} rows from {report.path}"))
