"""
Human readable sequence codes for orders (PED-0001) and budgets (ORC-0001).
"""
import logging

logger = logging.getLogger(__name__)


def get_max_number(codes):
    """Largest numeric suffix (after the last '-') among the given codes, 0 when none parse"""
    max_number = 0
    for code in codes:
        try:
            number = int(code.rsplit('-', 1)[1])
        except (ValueError, IndexError, AttributeError):
            continue
        max_number = max(max_number, number)
    return max_number


def next_code(prefix, codes):
    """Max suffix + 1, zero padded to four digits: {'PED-0001', 'PED-0003'} gives 'PED-0004'"""
    return f"{prefix}-{get_max_number(codes) + 1:04d}"


def generate_next_code(model, prefix):
    """Next free code for a model with a `code` field, soft-deleted rows included"""
    codes = model.objects.filter(code__startswith=f"{prefix}-").values_list('code', flat=True)
    code = next_code(prefix, codes)
    logger.debug(f"Next {model.__name__} code: {code}")
    return code
