"""
Change notification for the back-office collections.

Every committed insert, update or delete on a tracked table moves that table's
version forward. Clients poll the changes endpoint and re-fetch a list whenever
its version moved. Bulk writes (queryset.update, bulk_create) bypass model
signals, so the code doing them calls notify_change() itself.
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import bump_collection_version

logger = logging.getLogger(__name__)

TRACKED_COLLECTIONS = (
    'users',
    'stock',
    'stock_history',
    'customers',
    'orders',
    'order_items',
    'budgets',
    'budget_items',
)


def notify_change(*collections):
    """
    Record a change on the given collections.

    The version is bumped right away and once more after commit: a reader that
    cached pre-commit rows under the interim version gets invalidated by the
    second bump.
    """
    for collection in collections:
        if collection not in TRACKED_COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        bump_collection_version(collection)
        transaction.on_commit(lambda name=collection: bump_collection_version(name))


@receiver([post_save, post_delete])
def track_model_changes(sender, **kwargs):
    table = sender._meta.db_table
    if table in TRACKED_COLLECTIONS:
        notify_change(table)
