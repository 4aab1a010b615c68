"""
In-memory line-item list used while an order or budget is being composed.

Nothing here touches the database: products are looked up in the snapshot
handed to the draft, and the draft only changes when an operation succeeds.
"""
from decimal import Decimal

from .exceptions import DraftError, InsufficientStockError


class DraftLine:
    """One product in a draft, with name and price captured when it was added"""

    def __init__(self, product_id, product_name, quantity, unit_price):
        self.product_id = product_id
        self.product_name = product_name
        self.quantity = quantity
        self.unit_price = Decimal(unit_price)

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    def __repr__(self):
        return f"DraftLine({self.product_id}, {self.product_name!r}, {self.quantity}, {self.unit_price})"


class LineItemDraft:
    """
    Ordered list of draft lines.

    `products` is any iterable of objects exposing id, name, price and
    quantity (Product rows work). With `enforce_stock` the draft refuses
    quantities above the snapshot's on-hand quantity.
    """

    def __init__(self, products=(), enforce_stock=False):
        self.products = {product.id: product for product in products}
        self.enforce_stock = enforce_stock
        self.lines = []

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)

    @property
    def is_empty(self):
        return not self.lines

    def get_line(self, product_id):
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def get_product(self, product_id):
        product = self.products.get(product_id)
        if product is None:
            raise DraftError(f"Product {product_id} not found.")
        return product

    def check_stock(self, product, quantity):
        if self.enforce_stock and quantity > product.quantity:
            raise InsufficientStockError(product.name, product.quantity)

    def add_item(self, product_id, quantity, unit_price=None):
        """
        Append a product, or merge into its existing line by summing quantities.

        A new line captures the product name and price (or `unit_price` when
        given); a merged line keeps the price it was created with.
        """
        if quantity <= 0:
            raise DraftError('Quantity must be greater than zero.')
        product = self.get_product(product_id)
        line = self.get_line(product_id)
        requested = quantity + (line.quantity if line else 0)
        self.check_stock(product, requested)
        if line:
            line.quantity = requested
        else:
            price = product.price if unit_price is None else unit_price
            line = DraftLine(product.id, product.name, quantity, price)
            self.lines.append(line)
        return line

    def remove_item(self, product_id):
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def update_quantity(self, product_id, quantity):
        """Set a line's quantity; zero or less removes the line"""
        if quantity <= 0:
            self.remove_item(product_id)
            return None
        line = self.get_line(product_id)
        if line is None:
            raise DraftError(f"Product {product_id} is not in the list.")
        self.check_stock(self.get_product(product_id), quantity)
        line.quantity = quantity
        return line

    def clear(self):
        self.lines = []

    def subtotal(self):
        return sum((line.subtotal for line in self.lines), Decimal('0.00'))

    def total(self, delivery_fee=None):
        """Sum of unit price x quantity plus the optional flat delivery fee"""
        total = self.subtotal()
        if delivery_fee:
            total += Decimal(delivery_fee)
        return total
