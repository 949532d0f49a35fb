"""Ordered grade levels and the "next grade" lookup used for promotion."""
from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from django.core.exceptions import ImproperlyConfigured


logger = logging.getLogger(__name__)


class ClassLevel(NamedTuple):
    id: str
    name: str
    order: int


CLASS_LEVELS = (
    ClassLevel('nursery', 'Nursery', 1),
    ClassLevel('lkg', 'LKG', 2),
    ClassLevel('ukg', 'UKG', 3),
    ClassLevel('c1', 'Class 1', 4),
    ClassLevel('c2', 'Class 2', 5),
    ClassLevel('c3', 'Class 3', 6),
    ClassLevel('c4', 'Class 4', 7),
    ClassLevel('c5', 'Class 5', 8),
    ClassLevel('c6', 'Class 6', 9),
    ClassLevel('c7', 'Class 7', 10),
    ClassLevel('c8', 'Class 8', 11),
    ClassLevel('c9', 'Class 9', 12),
    ClassLevel('c10', 'Class 10', 13),
)


class ClassSequence:
    """Immutable lookup over class levels ordered by ``order``.

    Ids must be unique and orders contiguous starting at 1.
    """

    def __init__(self, levels: Iterable[ClassLevel]):
        ordered = tuple(sorted(levels, key=lambda level: level.order))
        if not ordered:
            raise ImproperlyConfigured('Class sequence needs at least one level.')

        ids = [level.id for level in ordered]
        if len(set(ids)) != len(ids):
            raise ImproperlyConfigured('Class level ids must be unique.')

        expected_orders = list(range(1, len(ordered) + 1))
        if [level.order for level in ordered] != expected_orders:
            raise ImproperlyConfigured('Class level orders must be contiguous starting at 1.')

        self._levels = ordered
        self._by_id = {level.id: level for level in ordered}

    def __iter__(self):
        return iter(self._levels)

    def __len__(self):
        return len(self._levels)

    def __contains__(self, class_id):
        return class_id in self._by_id

    @property
    def first(self) -> ClassLevel:
        return self._levels[0]

    @property
    def last(self) -> ClassLevel:
        return self._levels[-1]

    def get(self, class_id) -> ClassLevel | None:
        return self._by_id.get(class_id)

    def next(self, class_id) -> ClassLevel | None:
        """Level right after ``class_id``; None at the end or for an unknown id."""
        current = self._by_id.get(class_id)
        if current is None:
            logger.warning('Unknown class id %r has no next level.', class_id)
            return None
        if current.order == len(self._levels):
            return None
        # Orders are contiguous from 1, so the next level sits at index ``order``.
        return self._levels[current.order]

    def choices(self):
        return [(level.id, level.name) for level in self._levels]


CLASS_SEQUENCE = ClassSequence(CLASS_LEVELS)


def next_class_level(class_id, sequence: ClassSequence = CLASS_SEQUENCE) -> ClassLevel | None:
    return sequence.next(class_id)
