"""
Django management command to report products that need restocking
"""
from django.core.management.base import BaseCommand
from backoffice.catalog.models import Product, STATUS_OK, STATUS_CRITICAL


class Command(BaseCommand):
    help = 'List active products whose stock status is low or critical'

    def add_arguments(self, parser):
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all active products, not just the ones needing restock',
        )

    def handle(self, *args, **options):
        show_all = options.get('show_all', False)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("STOCK LEVELS"))
        self.stdout.write("=" * 80)

        flagged = 0
        for product in Product.objects.filter(is_archived=False).order_by('quantity', 'name'):
            stock_status = product.stock_status
            if stock_status != STATUS_OK:
                flagged += 1
            elif not show_all:
                continue
            line = (
                f"{product.name:<40} qty={product.quantity:<6} min={product.min_quantity:<6} "
                f"{stock_status.upper()}"
            )
            if stock_status == STATUS_CRITICAL:
                self.stdout.write(self.style.ERROR(line))
            elif stock_status != STATUS_OK:
                self.stdout.write(self.style.WARNING(line))
            else:
                self.stdout.write(line)

        self.stdout.write("-" * 80)
        if flagged:
            self.stdout.write(self.style.WARNING(f"{flagged} product(s) need restocking"))
        else:
            self.stdout.write(self.style.SUCCESS("All products are above their minimum quantity"))
