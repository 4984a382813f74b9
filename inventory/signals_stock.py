from django.dispatch import Signal, receiver

from .models import Item
from .notify import check_item_low_stock

# sent once per affected item after a stock transaction commits; kwargs: item_id
stock_committed = Signal()


@receiver(stock_committed, sender=Item)
def low_stock_notify(sender, item_id, **kwargs):
    return check_item_low_stock(item_id)
