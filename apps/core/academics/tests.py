from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase

from .classes import CLASS_LEVELS, CLASS_SEQUENCE, ClassLevel, ClassSequence, next_class_level


class ClassSequenceTests(SimpleTestCase):
    def test_every_level_moves_to_the_level_with_the_next_order(self):
        for level in CLASS_LEVELS[:-1]:
            next_level = CLASS_SEQUENCE.next(level.id)
            self.assertIsNotNone(next_level, level.id)
            self.assertEqual(next_level.order, level.order + 1)

    def test_known_steps_follow_the_school_order(self):
        self.assertEqual(next_class_level('nursery').id, 'lkg')
        self.assertEqual(next_class_level('ukg'), ClassLevel('c1', 'Class 1', 4))
        self.assertEqual(next_class_level('c9').name, 'Class 10')

    def test_last_level_has_no_next_level(self):
        self.assertEqual(CLASS_SEQUENCE.last.id, 'c10')
        self.assertIsNone(CLASS_SEQUENCE.next('c10'))

    def test_unknown_class_is_treated_like_the_last_level(self):
        with self.assertLogs('apps.core.academics.classes', level='WARNING'):
            self.assertIsNone(CLASS_SEQUENCE.next('c11'))
        with self.assertLogs('apps.core.academics.classes', level='WARNING'):
            self.assertIsNone(CLASS_SEQUENCE.next(''))

    def test_levels_are_ordered_regardless_of_input_order(self):
        sequence = ClassSequence(reversed(CLASS_LEVELS))
        self.assertEqual([level.order for level in sequence], list(range(1, 14)))
        self.assertEqual(sequence.first.id, 'nursery')
        self.assertEqual(len(sequence), 13)
        self.assertIn('c5', sequence)

    def test_duplicate_ids_are_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            ClassSequence([ClassLevel('a', 'A', 1), ClassLevel('a', 'B', 2)])

    def test_orders_must_be_contiguous_from_one(self):
        with self.assertRaises(ImproperlyConfigured):
            ClassSequence([ClassLevel('a', 'A', 1), ClassLevel('b', 'B', 3)])
        with self.assertRaises(ImproperlyConfigured):
            ClassSequence([ClassLevel('a', 'A', 2), ClassLevel('b', 'B', 3)])
        with self.assertRaises(ImproperlyConfigured):
            ClassSequence([])

    def test_choices_list_ids_and_names(self):
        self.assertEqual(CLASS_SEQUENCE.choices()[0], ('nursery', 'Nursery'))
        self.assertEqual(CLASS_SEQUENCE.choices()[-1], ('c10', 'Class 10'))
