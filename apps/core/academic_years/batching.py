"""Bounded-size atomic batches for multi-row writes."""
from __future__ import annotations

import logging
from functools import partial

from django.conf import settings
from django.db import DatabaseError, transaction

from .exceptions import StoreError


logger = logging.getLogger(__name__)


class BatchedWriteCoordinator:
    """Collects logical writes and commits them in atomic batches.

    A logical write is a zero-argument callable that writes one document
    (a student row, a ledger with its items, a config row). The batch is
    committed once it holds ``threshold`` writes and never grows beyond that.

    A failed commit raises ``StoreError``; batches committed earlier are not
    rolled back. Instances are not safe to share between threads.
    """

    def __init__(self, threshold=None, using=None):
        if threshold is None:
            threshold = settings.ACADEMIC_TRANSITION_BATCH_SIZE
        threshold = int(threshold)
        if threshold < 1:
            raise ValueError('Batch threshold must be at least 1.')

        self.threshold = threshold
        self.using = using
        self._batch = []
        self.committed_batches = []

    def __len__(self):
        return len(self._batch)

    @property
    def pending_operations(self) -> int:
        return len(self._batch)

    @property
    def committed_operations(self) -> int:
        return sum(self.committed_batches)

    def stage(self, op):
        if not callable(op):
            raise TypeError('Staged operations must be callable.')
        if len(self._batch) >= self.threshold:
            self._commit()
        self._batch.append(op)

    def call(self, func, *args, **kwargs):
        self.stage(partial(func, *args, **kwargs))

    def save(self, instance, update_fields=None):
        self.stage(partial(instance.save, update_fields=update_fields))

    def upsert(self, model, defaults=None, **lookup):
        self.stage(partial(model.objects.update_or_create, defaults=defaults or {}, **lookup))

    def flush_if_full(self) -> bool:
        if len(self._batch) >= self.threshold:
            self._commit()
            return True
        return False

    def flush_all(self) -> bool:
        if not self._batch:
            return False
        self._commit()
        return True

    def _commit(self):
        batch = self._batch
        self._batch = []
        try:
            with transaction.atomic(using=self.using):
                for op in batch:
                    op()
        except DatabaseError as exc:
            logger.error(
                'Batch of %s writes failed after %s committed writes: %s',
                len(batch),
                self.committed_operations,
                exc,
            )
            raise StoreError(f"Batch commit failed: {exc}") from exc

        self.committed_batches.append(len(batch))
        logger.debug('Committed batch %s with %s writes.', len(self.committed_batches), len(batch))
