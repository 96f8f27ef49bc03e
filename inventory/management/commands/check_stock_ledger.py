from django.core.management.base import BaseCommand, CommandError
from inventory.selectors import ledger_discrepancies


class Command(BaseCommand):
    help = "Check that every stock row equals the sum of its stock movements."

    def add_arguments(self, parser):
        parser.add_argument("--product-id", type=int, help="Check a single product only")
        parser.add_argument(
            "--fail-on-mismatch",
            action="store_true",
            help="Exit with an error when any discrepancy is found",
        )

    def handle(self, *args, **options):
        issues = ledger_discrepancies(product_id=options.get("product_id"))
        if not issues:
            self.stdout.write(self.style.SUCCESS("Stock ledger consistent"))
            return

        for issue in issues:
            label = issue["product"] or f"product #{issue['product_id']}"
            warehouse = issue["warehouse"] or f"warehouse #{issue['warehouse_id']}"
            self.stdout.write(
                self.style.WARNING(
                    f"{label} in {warehouse}: stock={issue['stock']} ledger={issue['ledger']} "
                    f"(diff {issue['stock'] - issue['ledger']:+d})"
                )
            )
        summary = f"Stock ledger mismatches: {len(issues)}"
        if options.get("fail_on_mismatch"):
            raise CommandError(summary)
        self.stdout.write(self.style.ERROR(summary))
