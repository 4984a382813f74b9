from django.core.management.base import BaseCommand

from inventory.notify import check_all_low_stock


class Command(BaseCommand):
    help = "Evaluate every tracked item and create missing low stock alerts"

    def handle(self, *args, **options):
        result = check_all_low_stock()
        for item in result.low_stock_items:
            self.stdout.write(f"{item.name}: {item.current_quantity}/{item.min_stock_level} {item.unit}")
        self.stdout.write(
            self.style.SUCCESS(
                f"{len(result.low_stock_items)} low stock items, "
                f"{result.notifications_created} alerts created"
            )
        )
