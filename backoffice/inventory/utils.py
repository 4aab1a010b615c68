import logging

from .models import StockHistory

logger = logging.getLogger(__name__)


def log_stock_change(product, action, user=None, details='', quantity_change=0,
                     old_quantity=None, new_quantity=None):
    """
    Append a stock history entry for a product mutation.

    Called inside the same transaction as the mutation, so a failure here
    rolls the mutation back too.
    """
    entry = StockHistory.objects.create(
        product=product,
        product_name=product.name,
        action=action,
        details=details,
        quantity_change=quantity_change,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        user=user if user is not None and user.is_authenticated else None,
        user_email=getattr(user, 'email', '') or '',
    )
    logger.debug(f"Stock history: {action} on {product.name} ({quantity_change:+d})")
    return entry
