from django.test import SimpleTestCase, TestCase

from apps.core.academics.classes import CLASS_LEVELS, CLASS_SEQUENCE, ClassLevel, ClassSequence

from .models import Student
from .services import (
    OUTCOME_GRADUATED,
    OUTCOME_PROMOTED,
    OUTCOME_RETAINED,
    decide_promotion,
)


def _student(class_id, status=Student.STATUS_ACTIVE, promotion_status=''):
    level = CLASS_SEQUENCE.get(class_id)
    return Student(
        admission_number='S-1',
        first_name='Asha',
        class_id=class_id,
        class_name=level.name if level else class_id,
        status=status,
        promotion_status=promotion_status,
    )


class PromotionDecisionTests(SimpleTestCase):
    def test_active_students_move_up_exactly_one_level(self):
        for level in CLASS_LEVELS[:-1]:
            for promotion_status in ('', Student.PROMOTION_PROMOTED):
                decision = decide_promotion(_student(level.id, promotion_status=promotion_status))
                next_level = CLASS_LEVELS[level.order]
                self.assertEqual(decision.outcome, OUTCOME_PROMOTED)
                self.assertEqual(decision.new_class_id, next_level.id)
                self.assertEqual(decision.new_class_name, next_level.name)
                self.assertEqual(decision.new_status, Student.STATUS_ACTIVE)

    def test_detained_students_are_retained_in_every_class(self):
        for level in CLASS_LEVELS:
            for promotion_status in ('', Student.PROMOTION_PROMOTED, Student.PROMOTION_RETAINED):
                decision = decide_promotion(
                    _student(level.id, status=Student.STATUS_DETAINED, promotion_status=promotion_status)
                )
                self.assertEqual(decision.outcome, OUTCOME_RETAINED)
                self.assertEqual(decision.new_class_id, level.id)
                self.assertEqual(decision.new_class_name, level.name)
                self.assertEqual(decision.new_status, Student.STATUS_ACTIVE)

    def test_retained_promotion_status_keeps_active_student_in_class(self):
        for level in CLASS_LEVELS:
            decision = decide_promotion(_student(level.id, promotion_status=Student.PROMOTION_RETAINED))
            self.assertEqual(decision.outcome, OUTCOME_RETAINED)
            self.assertEqual(decision.new_class_id, level.id)
            self.assertEqual(decision.new_status, Student.STATUS_ACTIVE)

    def test_last_class_graduates_to_alumni(self):
        decision = decide_promotion(_student('c10'))
        self.assertEqual(decision.outcome, OUTCOME_GRADUATED)
        self.assertEqual(decision.new_status, Student.STATUS_ALUMNI)
        self.assertEqual(decision.new_class_id, 'c10')
        self.assertEqual(decision.new_class_name, 'Class 10')

    def test_unknown_class_graduates_instead_of_promoting(self):
        with self.assertLogs('apps.core.academics.classes', level='WARNING'):
            decision = decide_promotion(_student('grade-x'))
        self.assertEqual(decision.outcome, OUTCOME_GRADUATED)
        self.assertEqual(decision.new_class_id, 'grade-x')

    def test_custom_sequence_is_honoured(self):
        sequence = ClassSequence([ClassLevel('junior', 'Junior', 1), ClassLevel('senior', 'Senior', 2)])
        student = _student('junior')
        self.assertEqual(decide_promotion(student, sequence).new_class_id, 'senior')
        student.class_id = 'senior'
        self.assertEqual(decide_promotion(student, sequence).outcome, OUTCOME_GRADUATED)

    def test_decision_does_not_modify_the_student(self):
        student = _student('c4', status=Student.STATUS_DETAINED)
        decide_promotion(student)
        self.assertEqual(student.class_id, 'c4')
        self.assertEqual(student.status, Student.STATUS_DETAINED)


class StudentModelTests(TestCase):
    def test_class_name_is_filled_from_the_class_sequence(self):
        student = Student.objects.create(admission_number='ADM-1', first_name='Ravi', class_id='c7')
        self.assertEqual(student.class_name, 'Class 7')

    def test_archived_statuses(self):
        self.assertTrue(Student(status=Student.STATUS_ALUMNI).is_archived)
        self.assertTrue(Student(status=Student.STATUS_INACTIVE).is_archived)
        self.assertFalse(Student(status=Student.STATUS_DETAINED).is_archived)
