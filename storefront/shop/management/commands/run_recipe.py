# storefront/shop/management/commands/run_recipe.py
import json

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from storefront.cookbook import list_recipes, run_recipe
from storefront.core.exceptions import StorefrontError


def parse_param(raw: str):
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise CommandError(f"Params look like key=value, got '{raw}'")
    return key.strip(), value


class Command(BaseCommand):
    help = "Run a cookbook recipe and print its result as JSON."

    def add_arguments(self, parser):
        parser.add_argument("name", nargs="?", help="Recipe name; omit together with --list to see them all.")
        parser.add_argument(
            "--param",
            "-p",
            action="append",
            default=[],
            metavar="KEY=VALUE",
            help="Recipe parameter; repeat for several.",
        )
        parser.add_argument("--list", action="store_true", help="List registered recipes.")
        parser.add_argument("--indent", type=int, default=2)

    def handle(self, *args, **options):
        if options["list"] or not options["name"]:
            for definition in list_recipes():
                self.stdout.write(f"{definition.topic.value:<13} {definition.name:<28} {definition.description}")
            return

        params = dict(parse_param(raw) for raw in options["param"])
        try:
            result = run_recipe(options["name"], **params)
        except StorefrontError as e:
            raise CommandError(f"{e.code}: {e.message}")
        except ValidationError as e:
            raise CommandError("; ".join(e.messages))

        self.stdout.write(json.dumps(result, indent=options["indent"], ensure_ascii=False))
