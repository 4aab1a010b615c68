"""
Order and budget workflows.

Creation runs as one transaction: the referenced products are locked, the
draft is rebuilt from the locked rows, the header gets a fresh sequence code
(retried on conflict), the items are inserted and, for orders, stock is
decremented with a conditional update. Any failure rolls back every step.
"""
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import F
from django.utils import timezone
import logging

from backoffice.catalog.models import Product
from backoffice.core.changes import notify_change
from backoffice.inventory.models import StockHistory
from backoffice.inventory.utils import log_stock_change
from .codes import generate_next_code
from .drafts import LineItemDraft
from .exceptions import DraftError, CodeConflictError, InsufficientStockError
from .models import Order, OrderItem, Budget, BudgetItem

logger = logging.getLogger(__name__)


def build_locked_draft(items, enforce_stock, allow_archived=False):
    """
    Lock every referenced product and build the draft from the locked rows.

    `items` is a list of {'product': id, 'quantity': n, 'unit_price'?: price}.
    Rows are locked in primary key order so concurrent workflows cannot deadlock.
    """
    if not items:
        raise DraftError('At least one item is required.')
    product_ids = sorted({item['product'] for item in items})
    products = list(Product.objects.select_for_update().filter(pk__in=product_ids).order_by('pk'))
    if not allow_archived:
        archived = [product.name for product in products if product.is_archived]
        if archived:
            raise DraftError(f"Archived products cannot be added: {', '.join(archived)}")

    draft = LineItemDraft(products, enforce_stock=enforce_stock)
    for item in items:
        draft.add_item(item['product'], item['quantity'], item.get('unit_price'))
    return draft, {product.id: product for product in products}


def create_with_code(model, prefix, fields):
    """Insert a header row under the next free code, retrying when another writer took it"""
    attempts = settings.CODE_GENERATION_ATTEMPTS
    for attempt in range(1, attempts + 1):
        code = generate_next_code(model, prefix)
        try:
            with transaction.atomic():
                return model.objects.create(code=code, **fields)
        except IntegrityError:
            logger.info(f"{model.__name__} code {code} already taken (attempt {attempt}/{attempts})")
    logger.error(f"Could not reserve a {model.__name__} code after {attempts} attempts")
    raise CodeConflictError(f"Could not generate a unique code after {attempts} attempts. Please try again.")


def decrement_stock(draft, products, order, user):
    """Take each line's quantity off the shelf and log it as a sale"""
    for line in draft:
        product = products[line.product_id]
        updated = Product.objects.filter(pk=product.pk, quantity__gte=line.quantity).update(
            quantity=F('quantity') - line.quantity
        )
        if not updated:
            product.refresh_from_db()
            raise InsufficientStockError(product.name, product.quantity)
        old_quantity = product.quantity
        product.quantity = old_quantity - line.quantity
        log_stock_change(
            product, StockHistory.ACTION_SALE, user=user,
            details=f"Order {order.code}",
            quantity_change=-line.quantity,
            old_quantity=old_quantity,
            new_quantity=product.quantity,
        )
        logger.info(f"Stock of {product.name} decremented {old_quantity} -> {product.quantity} by {order.code}")
    notify_change('stock')


def replace_order_items(order, draft):
    order.items.all().delete()
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in draft
    ])
    notify_change('order_items')


def replace_budget_items(budget, draft):
    budget.items.all().delete()
    BudgetItem.objects.bulk_create([
        BudgetItem(
            budget=budget,
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in draft
    ])
    notify_change('budget_items')


def create_order(data, user):
    """
    Persist a new order and take its items out of stock.

    `data` is validated OrderWriteSerializer data. Raises DraftError,
    InsufficientStockError or CodeConflictError; nothing is saved then.
    """
    customer = data['customer']
    delivery_fee = data.get('delivery_fee') or Decimal('0.00')
    try:
        with transaction.atomic():
            draft, products = build_locked_draft(data['items'], enforce_stock=True)
            order = create_with_code(Order, settings.ORDER_CODE_PREFIX, {
                'customer': customer,
                'customer_name': customer.name,
                'delivery_address': data.get('delivery_address') or customer.address or '',
                'delivery_date': data.get('delivery_date'),
                'delivery_time': data.get('delivery_time'),
                'payment_method': data['payment_method'],
                'delivery_fee': delivery_fee,
                'total_amount': draft.total(delivery_fee),
                'status': Order.STATUS_PENDING,
                'notes': data.get('notes', ''),
                'created_by': user,
                'employee_name': user.email,
            })
            replace_order_items(order, draft)
            decrement_stock(draft, products, order, user)
    except InsufficientStockError as e:
        logger.warning(f"Order rejected for {customer.name}: {e}")
        raise
    logger.info(f"Order {order.code} created for {order.customer_name}: total {order.total_amount}")
    return order


def check_stock_increase(draft, products, previous_quantities):
    """
    Refuse an edit that raises a line beyond what is on hand.

    Only the increase over the order's current quantity for each product is
    checked; quantities the order already holds were taken out at creation.
    """
    for line in draft:
        increase = line.quantity - previous_quantities.get(line.product_id, 0)
        product = products[line.product_id]
        if increase > 0 and increase > product.quantity:
            raise InsufficientStockError(product.name, product.quantity)


def update_order(order, data, user):
    """Replace an order's header fields and its whole item set; stock is left as it is"""
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        draft, products = build_locked_draft(data['items'], enforce_stock=False, allow_archived=True)
        previous_quantities = {}
        for item in order.items.all():
            if item.product_id is not None:
                previous_quantities[item.product_id] = previous_quantities.get(item.product_id, 0) + item.quantity
        check_stock_increase(draft, products, previous_quantities)
        customer = data['customer']
        delivery_fee = data.get('delivery_fee') or Decimal('0.00')
        order.customer = customer
        order.customer_name = customer.name
        order.delivery_address = data.get('delivery_address') or customer.address or ''
        order.delivery_date = data.get('delivery_date')
        order.delivery_time = data.get('delivery_time')
        order.payment_method = data['payment_method']
        order.delivery_fee = delivery_fee
        order.notes = data.get('notes', '')
        if data.get('status'):
            order.status = data['status']
        order.total_amount = draft.total(delivery_fee)
        order.save()
        replace_order_items(order, draft)
    logger.info(f"Order {order.code} updated by {user.email}: total {order.total_amount}")
    return order


def update_order_status(order, new_status, user):
    old_status = order.status
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Order {order.code} status {old_status} -> {new_status} by {user.email}")
    return order


def delete_order(order, user):
    """Hard delete. Stock taken by the order is not given back."""
    code = order.code
    with transaction.atomic():
        order.delete()
    logger.info(f"Order {code} deleted by {user.email} (stock not restored)")


def create_budget(data, user):
    """Persist a new budget; budgets never touch stock"""
    customer = data.get('customer')
    valid_until = data.get('valid_until') or (
        timezone.localdate() + timedelta(days=settings.BUDGET_VALIDITY_DAYS)
    )
    with transaction.atomic():
        draft, _ = build_locked_draft(data['items'], enforce_stock=False)
        budget = create_with_code(Budget, settings.BUDGET_CODE_PREFIX, {
            'customer': customer,
            'customer_name': customer.name if customer else '',
            'total_amount': draft.total(),
            'valid_until': valid_until,
            'notes': data.get('notes', ''),
            'created_by': user,
            'employee_name': user.email,
        })
        replace_budget_items(budget, draft)
    logger.info(f"Budget {budget.code} created: total {budget.total_amount}")
    return budget


def update_budget(budget, data, user):
    """Replace a budget's customer, validity date and full item set"""
    with transaction.atomic():
        budget = Budget.objects.select_for_update().get(pk=budget.pk)
        draft, _ = build_locked_draft(data['items'], enforce_stock=False, allow_archived=True)
        customer = data.get('customer')
        budget.customer = customer
        budget.customer_name = customer.name if customer else ''
        if data.get('valid_until'):
            budget.valid_until = data['valid_until']
        budget.notes = data.get('notes', '')
        budget.total_amount = draft.total()
        budget.save()
        replace_budget_items(budget, draft)
    logger.info(f"Budget {budget.code} updated by {user.email}: total {budget.total_amount}")
    return budget


def soft_delete_budget(budget, user):
    budget.deleted_at = timezone.now()
    budget.save(update_fields=['deleted_at', 'updated_at'])
    logger.info(f"Budget {budget.code} deleted by {user.email}")
    return budget


def restore_budget(budget, user):
    budget.deleted_at = None
    budget.save(update_fields=['deleted_at', 'updated_at'])
    logger.info(f"Budget {budget.code} restored by {user.email}")
    return budget


def convert_budget_to_order(budget, data, user):
    """Run the order workflow with the budget's customer and items at the quoted prices"""
    items = []
    for item in budget.items.all():
        if item.product_id is None:
            raise DraftError(f'"{item.product_name}" is no longer in the catalog.')
        items.append({'product': item.product_id, 'quantity': item.quantity, 'unit_price': item.unit_price})
    order_data = dict(data)
    order_data['customer'] = data.get('customer') or budget.customer
    if order_data['customer'] is None:
        raise DraftError('A customer is required to turn a budget into an order.')
    order_data['items'] = items
    if not order_data.get('notes'):
        order_data['notes'] = f"From budget {budget.code}"
    order = create_order(order_data, user)
    logger.info(f"Budget {budget.code} converted into order {order.code}")
    return order
