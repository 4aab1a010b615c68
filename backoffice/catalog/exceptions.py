class InsufficientStockError(Exception):
    """Requested quantity exceeds what is on hand"""

    def __init__(self, product_name, available):
        self.product_name = product_name
        self.available = available
        super().__init__(f'Insufficient stock for "{product_name}". Available: {available}')
