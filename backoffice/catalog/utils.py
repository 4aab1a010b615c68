"""
Product mutations that keep the stock history in step.

Each function runs in a transaction together with its history entry, so the
product row and the log can never disagree.
"""
from django.db import transaction
from django.db.models import F
import logging

from backoffice.core.changes import notify_change
from backoffice.inventory.models import StockHistory
from backoffice.inventory.utils import log_stock_change
from .exceptions import InsufficientStockError
from .models import Product

logger = logging.getLogger(__name__)

ADJUST_ADD = 'add'
ADJUST_SUBTRACT = 'subtract'

# Fields compared when an edit is logged, in the order they are reported
TRACKED_FIELDS = ['name', 'barcode', 'supplier', 'unit', 'price', 'cost_price', 'min_quantity']


def format_money(value):
    return f"R${value:.2f}"


def describe_product_changes(old, new):
    """
    Human readable list of changed fields between two value dicts.

    Quantity is not part of the list; it is reported as the entry's delta.
    """
    changes = []
    if old['name'] != new['name']:
        changes.append(f"Name: '{old['name']}' -> '{new['name']}'")
    if (old['barcode'] or '') != (new['barcode'] or ''):
        changes.append('Barcode changed')
    if (old['supplier'] or '') != (new['supplier'] or ''):
        changes.append(f"Supplier: '{old['supplier'] or '-'}' -> '{new['supplier'] or '-'}'")
    if old['unit'] != new['unit']:
        changes.append(f"Unit: {old['unit']} -> {new['unit']}")
    if old['price'] != new['price']:
        changes.append(f"Price: {format_money(old['price'])} -> {format_money(new['price'])}")
    if old['cost_price'] != new['cost_price']:
        changes.append(f"Cost price: {format_money(old['cost_price'])} -> {format_money(new['cost_price'])}")
    if old['min_quantity'] != new['min_quantity']:
        changes.append(f"Min. quantity: {old['min_quantity']} -> {new['min_quantity']}")
    return changes


def snapshot_product(product):
    values = {field: getattr(product, field) for field in TRACKED_FIELDS}
    values['quantity'] = product.quantity
    return values


def create_product(serializer, user):
    """Save a validated ProductSerializer and log the creation"""
    with transaction.atomic():
        product = serializer.save()
        log_stock_change(
            product, StockHistory.ACTION_CREATED, user=user,
            details=f"Initial quantity: {product.quantity} {product.unit}",
            quantity_change=product.quantity,
            old_quantity=0,
            new_quantity=product.quantity,
        )
    logger.info(f"Product created: {product.name} (ID: {product.id})")
    return product


def update_product(serializer, user):
    """
    Save a validated ProductSerializer bound to an existing product.

    At most one "edited" entry is written: none when nothing changed.
    """
    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=serializer.instance.pk)
        serializer.instance = product
        old = snapshot_product(product)
        product = serializer.save()
        product.refresh_from_db()
        new = snapshot_product(product)

        changes = describe_product_changes(old, new)
        delta = new['quantity'] - old['quantity']
        if changes or delta:
            details = '; '.join(changes) if changes else 'Only the quantity was changed.'
            log_stock_change(
                product, StockHistory.ACTION_EDITED, user=user,
                details=details,
                quantity_change=delta,
                old_quantity=old['quantity'],
                new_quantity=new['quantity'],
            )
            logger.info(f"Product edited: {product.name} (ID: {product.id}) - {details}")
    return product


def adjust_product_quantity(product_id, adjust_type, amount, user=None):
    """
    Add to or subtract from the on-hand quantity.

    Subtraction is a conditional update that only matches when enough stock
    remains, so concurrent adjustments can never take the quantity below zero.
    """
    if amount <= 0:
        raise ValueError('Amount must be greater than zero.')
    if adjust_type not in (ADJUST_ADD, ADJUST_SUBTRACT):
        raise ValueError(f"Unknown adjustment type: {adjust_type}")

    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=product_id)
        old_quantity = product.quantity
        if adjust_type == ADJUST_ADD:
            Product.objects.filter(pk=product.pk).update(quantity=F('quantity') + amount)
            action = StockHistory.ACTION_QUANTITY_ADDED
            delta = amount
        else:
            updated = Product.objects.filter(pk=product.pk, quantity__gte=amount).update(
                quantity=F('quantity') - amount
            )
            if not updated:
                logger.warning(
                    f"Rejected subtraction of {amount} from {product.name}: only {product.quantity} available"
                )
                raise InsufficientStockError(product.name, product.quantity)
            action = StockHistory.ACTION_QUANTITY_REMOVED
            delta = -amount

        product.refresh_from_db()
        log_stock_change(
            product, action, user=user,
            details=f"{'Added' if delta > 0 else 'Removed'} {amount} {product.unit}",
            quantity_change=delta,
            old_quantity=old_quantity,
            new_quantity=product.quantity,
        )
        notify_change('stock')
    logger.info(f"Stock of {product.name} adjusted {old_quantity} -> {product.quantity}")
    return product


def set_archived(product, archived, user=None):
    """Archive or restore a product, logging the transition"""
    if product.is_archived == archived:
        return product
    with transaction.atomic():
        product.is_archived = archived
        product.save(update_fields=['is_archived', 'updated_at'])
        log_stock_change(
            product,
            StockHistory.ACTION_ARCHIVED if archived else StockHistory.ACTION_RESTORED,
            user=user,
            old_quantity=product.quantity,
            new_quantity=product.quantity,
        )
    logger.info(f"Product {'archived' if archived else 'restored'}: {product.name} (ID: {product.id})")
    return product


def is_product_referenced(product):
    """
    True when deleting the product would lose information.

    Line items keep a product reference and history beyond the creation entry
    records real activity; either one means the product has to be archived.
    """
    if product.order_items.exists() or product.budget_items.exists():
        return True
    return product.history.exclude(action=StockHistory.ACTION_CREATED).exists()


def delete_or_archive_product(product, user=None):
    """
    Hard delete an unreferenced product, archive a referenced one. Returns True if deleted.

    History entries outlive the product: their FK is nulled and the name snapshot stays.
    """
    if is_product_referenced(product):
        set_archived(product, True, user=user)
        return False
    product_name = product.name
    product_id = product.id
    with transaction.atomic():
        product.delete()
        # SET_NULL on the history rows is a bulk update, no model signals
        notify_change('stock_history')
    logger.info(f"Product deleted: {product_name} (ID: {product_id})")
    return True
