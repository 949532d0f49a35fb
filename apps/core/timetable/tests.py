from django.test import TestCase

from .models import ClassTimetable, TeachingAssignment
from .services import class_timetables_for_year, copy_to_year, teaching_assignments_for_year, year_payload


class YearCopyTests(TestCase):
    def setUp(self):
        self.assignment = TeachingAssignment.objects.create(
            year_id='2025-2026',
            class_id='c5',
            class_name='Class 5',
            assignments=[{'subject': 'Maths', 'teacherId': 'T-12', 'periodsPerWeek': 6}],
        )
        self.timetable = ClassTimetable.objects.create(
            year_id='2025-2026',
            class_id='c5',
            section_id='A',
            slots={'monday': [{'period': 1, 'subject': 'Maths', 'teacherId': 'T-12'}]},
            is_published=True,
        )

    def test_payload_excludes_identity_year_and_timestamps(self):
        payload = year_payload(self.timetable)
        self.assertEqual(set(payload), {'class_id', 'section_id', 'slots', 'is_published'})

    def test_assignment_copy_keeps_payload_under_new_year_key(self):
        copy = copy_to_year(self.assignment, '2026-2027')
        self.assertNotEqual(copy.pk, self.assignment.pk)
        self.assertEqual(copy.key, '2026-2027_c5')
        self.assertEqual(copy.class_name, 'Class 5')
        self.assertEqual(copy.assignments, self.assignment.assignments)

    def test_timetable_copy_keeps_section_and_slots(self):
        copy = copy_to_year(self.timetable, '2026-2027')
        self.assertEqual(copy.key, '2026-2027_c5_A')
        self.assertEqual(copy.slots, self.timetable.slots)
        self.assertTrue(copy.is_published)

    def test_copy_is_additive_and_repeatable(self):
        copy_to_year(self.timetable, '2026-2027')
        copy_to_year(self.timetable, '2026-2027')

        self.assertEqual(ClassTimetable.objects.count(), 2)
        self.timetable.refresh_from_db()
        self.assertEqual(self.timetable.year_id, '2025-2026')

    def test_year_querysets_filter_by_year_tag(self):
        copy_to_year(self.assignment, '2026-2027')
        self.assertEqual(list(teaching_assignments_for_year('2025-2026')), [self.assignment])
        self.assertEqual(teaching_assignments_for_year('2026-2027').count(), 1)
        self.assertFalse(class_timetables_for_year('2026-2027').exists())
