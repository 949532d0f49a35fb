import random
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.core.management import CommandError, call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from faker import Faker

from apps.core.academics.classes import CLASS_LEVELS, CLASS_SEQUENCE
from apps.core.fees.models import FeeLedger, FeeLedgerItem
from apps.core.students.models import Student
from apps.core.students.services import decide_promotion
from apps.core.timetable.models import ClassTimetable, TeachingAssignment
from apps.core.users.models import AuditLog

from .batching import BatchedWriteCoordinator
from .exceptions import AuthorizationError, StoreError, TransitionCancelled, YearNotFound
from .models import AcademicYearConfig, AcademicYearHistory, UpcomingAcademicYear
from .services import (
    add_upcoming_year,
    default_year_label,
    delete_academic_year,
    list_academic_years,
    update_academic_year,
)
from .transition import AcademicYearTransition, TransitionState, start_new_academic_year


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class BatchedWriteCoordinatorTests(TestCase):
    def test_threshold_must_be_positive(self):
        with self.assertRaises(ValueError):
            BatchedWriteCoordinator(threshold=0)

    @override_settings(ACADEMIC_TRANSITION_BATCH_SIZE=7)
    def test_default_threshold_comes_from_settings(self):
        self.assertEqual(BatchedWriteCoordinator().threshold, 7)

    def test_flush_if_full_commits_when_threshold_is_reached(self):
        coordinator = BatchedWriteCoordinator(threshold=3)
        done = []
        coordinator.call(done.append, 1)
        coordinator.call(done.append, 2)
        self.assertFalse(coordinator.flush_if_full())
        self.assertEqual(done, [])

        coordinator.call(done.append, 3)
        self.assertTrue(coordinator.flush_if_full())
        self.assertEqual(done, [1, 2, 3])
        self.assertEqual(coordinator.committed_batches, [3])
        self.assertEqual(coordinator.pending_operations, 0)

    def test_batches_never_exceed_threshold(self):
        coordinator = BatchedWriteCoordinator(threshold=3)
        done = []
        for value in range(10):
            coordinator.call(done.append, value)
        coordinator.flush_all()

        self.assertEqual(done, list(range(10)))
        self.assertEqual(coordinator.committed_batches, [3, 3, 3, 1])
        self.assertEqual(coordinator.committed_operations, 10)

    def test_flushing_an_empty_batch_is_a_no_op(self):
        coordinator = BatchedWriteCoordinator(threshold=3)
        self.assertFalse(coordinator.flush_all())
        self.assertFalse(coordinator.flush_if_full())
        self.assertEqual(coordinator.committed_batches, [])

    def test_stage_rejects_non_callables(self):
        with self.assertRaises(TypeError):
            BatchedWriteCoordinator(threshold=3).stage('not an operation')

    def test_save_and_upsert_helpers(self):
        student = Student.objects.create(admission_number='B-1', first_name='Meera', class_id='c1')
        coordinator = BatchedWriteCoordinator(threshold=10)

        student.class_id = 'c2'
        student.class_name = 'Class 2'
        coordinator.save(student, update_fields=['class_id', 'class_name'])
        coordinator.upsert(
            TeachingAssignment,
            defaults={'class_name': 'Class 2'},
            year_id='2026-2027',
            class_id='c2',
        )
        coordinator.flush_all()

        student.refresh_from_db()
        self.assertEqual(student.class_id, 'c2')
        self.assertTrue(TeachingAssignment.objects.filter(year_id='2026-2027', class_id='c2').exists())

    def test_failed_commit_raises_store_error_and_keeps_earlier_batches(self):
        def fail():
            raise DatabaseError('database is locked')

        coordinator = BatchedWriteCoordinator(threshold=2)
        coordinator.call(Student.objects.create, admission_number='B-1', first_name='One')
        coordinator.call(Student.objects.create, admission_number='B-2', first_name='Two')
        self.assertTrue(coordinator.flush_if_full())

        coordinator.call(Student.objects.create, admission_number='B-3', first_name='Three')
        coordinator.stage(fail)
        with self.assertRaises(StoreError):
            coordinator.flush_all()

        self.assertEqual(
            list(Student.objects.values_list('admission_number', flat=True)),
            ['B-1', 'B-2'],
        )
        self.assertEqual(coordinator.committed_batches, [2])


class TransitionBaseTestCase(TestCase):
    old_year = '2025-2026'
    new_year = '2026-2027'

    def setUp(self):
        user_model = get_user_model()
        self.admin = user_model.objects.create_user(
            username='year_admin',
            password='pass12345',
            role='schooladmin',
        )
        self.teacher = user_model.objects.create_user(
            username='year_teacher',
            password='pass12345',
            role='teacher',
        )
        self.config = AcademicYearConfig.objects.create(
            current_year=self.old_year,
            current_year_start_date=_aware(2025, 4, 1),
        )
        self.now = _aware(2026, 4, 1, 9, 30)

    def _student(self, admission_number, class_id, status=Student.STATUS_ACTIVE, academic_year=None, **extra):
        return Student.objects.create(
            admission_number=admission_number,
            first_name=f"Student {admission_number}",
            class_id=class_id,
            status=status,
            academic_year=self.old_year if academic_year is None else academic_year,
            **extra,
        )

    def _ledger(self, student, total_fee, total_paid, academic_year=None):
        return FeeLedger.objects.create(
            student=student,
            academic_year=academic_year or self.old_year,
            class_id=student.class_id,
            class_name=student.class_name,
            total_fee=total_fee,
            total_paid=total_paid,
        )

    def _transition(self, new_year=None, actor=None, **options):
        options.setdefault('clock', lambda: self.now)
        return AcademicYearTransition(new_year or self.new_year, actor or self.admin, **options)

    def _run(self, new_year=None, actor=None, **options):
        return self._transition(new_year, actor, **options).run()

    def _new_ledger(self, student):
        return FeeLedger.objects.get(student=student, academic_year=self.new_year)


class TransitionScenarioTests(TransitionBaseTestCase):
    def test_last_class_student_graduates_with_settled_ledger(self):
        student = self._student('ADM-001', 'c10')
        self._ledger(student, Decimal('20000'), Decimal('20000'))

        result = self._run()

        student.refresh_from_db()
        self.assertEqual(result.graduated_count, 1)
        self.assertEqual(student.status, Student.STATUS_ALUMNI)
        self.assertEqual(student.class_id, 'c10')
        self.assertEqual(student.academic_year, self.new_year)
        ledger = self._new_ledger(student)
        self.assertEqual(ledger.total_fee, Decimal('0.00'))
        self.assertEqual(ledger.total_paid, Decimal('0.00'))
        self.assertFalse(ledger.items.exists())

    def test_detained_student_is_retained_and_carries_balance(self):
        student = self._student('ADM-002', 'c3', status=Student.STATUS_DETAINED)
        self._ledger(student, Decimal('15000'), Decimal('5000'))

        result = self._run()

        student.refresh_from_db()
        self.assertEqual(result.retained_count, 1)
        self.assertEqual(student.class_id, 'c3')
        self.assertEqual(student.class_name, 'Class 3')
        self.assertEqual(student.status, Student.STATUS_ACTIVE)
        self.assertEqual(student.previous_year_status, Student.STATUS_DETAINED)
        ledger = self._new_ledger(student)
        self.assertEqual(ledger.total_fee, Decimal('10000.00'))
        self.assertEqual(ledger.status, FeeLedger.STATUS_PENDING)
        item = ledger.items.get()
        self.assertEqual(item.code, FeeLedgerItem.CODE_PREVIOUS_BALANCE)
        self.assertEqual(item.amount, Decimal('10000.00'))
        self.assertEqual(item.name, 'Previous Balance (2025-2026)')
        self.assertEqual(item.due_date, date(2026, 4, 1))

    def test_ukg_student_without_ledger_is_promoted_to_class_one(self):
        student = self._student('ADM-003', 'ukg')

        result = self._run()

        student.refresh_from_db()
        self.assertEqual(result.promoted_count, 1)
        self.assertEqual(student.class_id, 'c1')
        self.assertEqual(student.class_name, 'Class 1')
        self.assertEqual(student.status, Student.STATUS_ACTIVE)
        ledger = self._new_ledger(student)
        self.assertEqual(ledger.total_fee, Decimal('0.00'))
        self.assertEqual(ledger.class_id, 'c1')
        self.assertFalse(ledger.items.exists())

    def test_same_year_is_rejected_before_any_write(self):
        student = self._student('ADM-004', 'c2')
        TeachingAssignment.objects.create(year_id=self.old_year, class_id='c2')
        transition = self._transition(new_year=self.old_year)

        with self.assertRaisesMessage(ValidationError, 'Cannot transition to the same year.'):
            transition.run()

        self.assertEqual(transition.state, TransitionState.FAIL)
        self.assertEqual(transition.coordinator.committed_operations, 0)
        student.refresh_from_db()
        self.assertEqual(student.class_id, 'c2')
        self.assertFalse(FeeLedger.objects.exists())
        self.assertEqual(TeachingAssignment.objects.count(), 1)
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)

    def test_rerun_after_aborted_run_only_processes_remaining_students(self):
        students = [self._student(f"ADM-{number:03d}", 'c1') for number in range(1, 11)]
        for student in students:
            self._ledger(student, Decimal('1000'), Decimal('400'))

        def fail_on_sixth(student, sequence=CLASS_SEQUENCE):
            if student.admission_number == 'ADM-006':
                raise RuntimeError('corrupt record')
            return decide_promotion(student, sequence)

        with mock.patch('apps.core.academic_years.transition.decide_promotion', side_effect=fail_on_sixth):
            with self.assertRaises(RuntimeError):
                self._run(batch_size=2)

        migrated = Student.objects.filter(academic_year=self.new_year)
        self.assertEqual(
            list(migrated.values_list('admission_number', flat=True)),
            ['ADM-001', 'ADM-002', 'ADM-003', 'ADM-004', 'ADM-005'],
        )
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)

        result = self._run(batch_size=2)

        self.assertEqual(result.skipped_count, 5)
        self.assertEqual(result.promoted_count, 5)
        self.assertEqual(Student.objects.filter(academic_year=self.new_year, class_id='c2').count(), 10)
        ledgers = FeeLedger.objects.filter(academic_year=self.new_year)
        self.assertEqual(ledgers.count(), 10)
        self.assertEqual({ledger.total_fee for ledger in ledgers}, {Decimal('600.00')})


class TransitionPropertyTests(TransitionBaseTestCase):
    def test_students_already_in_new_year_are_left_untouched(self):
        migrated = self._student('ADM-010', 'c5', academic_year=self.new_year)
        self._ledger(migrated, Decimal('3000'), Decimal('1000'), academic_year=self.new_year)
        before = Student.objects.values().get(pk=migrated.pk)

        result = self._run()

        self.assertEqual(result.skipped_count, 1)
        self.assertEqual(result.processed_count, 0)
        self.assertEqual(Student.objects.values().get(pk=migrated.pk), before)
        ledger = self._new_ledger(migrated)
        self.assertEqual(ledger.total_fee, Decimal('3000.00'))
        self.assertEqual(ledger.total_paid, Decimal('1000.00'))

    def test_second_run_with_same_label_changes_nothing(self):
        student = self._student('ADM-011', 'c4')
        self._ledger(student, Decimal('500'), Decimal('0'))
        self._run()
        after_first = Student.objects.values().get(pk=student.pk)

        with self.assertRaises(ValidationError):
            self._run()

        self.assertEqual(Student.objects.values().get(pk=student.pk), after_first)
        self.assertEqual(FeeLedger.objects.filter(student=student).count(), 2)

    def test_alumni_and_inactive_students_are_never_touched(self):
        alumni = self._student('ADM-020', 'c10', status=Student.STATUS_ALUMNI, academic_year='2023-2024')
        inactive = self._student('ADM-021', 'c6', status=Student.STATUS_INACTIVE)
        self._ledger(inactive, Decimal('800'), Decimal('0'))
        alumni_before = Student.objects.values().get(pk=alumni.pk)
        inactive_before = Student.objects.values().get(pk=inactive.pk)

        result = self._run()

        self.assertEqual(result.skipped_count, 2)
        self.assertEqual(Student.objects.values().get(pk=alumni.pk), alumni_before)
        self.assertEqual(Student.objects.values().get(pk=inactive.pk), inactive_before)
        self.assertFalse(FeeLedger.objects.filter(academic_year=self.new_year).exists())

    def test_new_ledger_carries_exactly_the_positive_old_balance(self):
        cases = [
            (Decimal('15000'), Decimal('5000'), Decimal('10000.00')),
            (Decimal('20000'), Decimal('20000'), Decimal('0.00')),
            (Decimal('1000'), Decimal('1500'), Decimal('0.00')),
            (Decimal('750.50'), None, Decimal('750.50')),
            (None, None, Decimal('0.00')),
        ]
        students = []
        for number, (total_fee, total_paid, _) in enumerate(cases):
            student = self._student(f"BAL-{number}", 'c2')
            self._ledger(student, total_fee, total_paid)
            students.append(student)

        self._run()

        for student, (_, _, expected) in zip(students, cases):
            ledger = self._new_ledger(student)
            self.assertEqual(ledger.total_fee, expected, student.admission_number)
            self.assertEqual(ledger.total_paid, Decimal('0.00'))
            carried = ledger.items.filter(code=FeeLedgerItem.CODE_PREVIOUS_BALANCE)
            self.assertEqual(carried.exists(), expected > 0)

    def test_old_ledgers_are_kept(self):
        student = self._student('ADM-030', 'c8')
        old_ledger = self._ledger(student, Decimal('4000'), Decimal('1000'))

        self._run()

        old_ledger.refresh_from_db()
        self.assertEqual(old_ledger.total_fee, Decimal('4000.00'))
        self.assertEqual(old_ledger.total_paid, Decimal('1000.00'))

    def test_student_without_year_uses_current_year_ledger(self):
        student = self._student('ADM-031', 'c1', academic_year='')
        self._ledger(student, Decimal('900'), Decimal('100'))

        self._run()

        self.assertEqual(self._new_ledger(student).total_fee, Decimal('800.00'))

    def test_student_behind_by_a_year_reads_their_own_year_ledger(self):
        student = self._student('ADM-032', 'c1', academic_year='2024-2025')
        self._ledger(student, Decimal('1200'), Decimal('200'), academic_year='2024-2025')
        self._ledger(student, Decimal('5000'), Decimal('0'))

        self._run()

        ledger = self._new_ledger(student)
        self.assertEqual(ledger.total_fee, Decimal('1000.00'))
        self.assertEqual(ledger.items.get().name, 'Previous Balance (2024-2025)')

    def test_retained_promotion_status_keeps_class(self):
        student = self._student('ADM-033', 'c6', promotion_status=Student.PROMOTION_RETAINED)

        result = self._run()

        student.refresh_from_db()
        self.assertEqual(result.retained_count, 1)
        self.assertEqual(student.class_id, 'c6')
        self.assertEqual(student.previous_year_status, Student.STATUS_ACTIVE)

    def test_outcome_counters(self):
        self._student('CNT-1', 'nursery')
        self._student('CNT-2', 'c9')
        self._student('CNT-3', 'c10')
        self._student('CNT-4', 'c4', status=Student.STATUS_DETAINED)
        self._student('CNT-5', 'c10', status=Student.STATUS_ALUMNI)

        result = self._run()

        self.assertEqual(result.as_dict(), {
            'promoted_count': 2,
            'retained_count': 1,
            'graduated_count': 1,
            'skipped_count': 1,
            'errors': [],
        })

    def test_commits_stay_within_batch_size(self):
        for number in range(9):
            self._student(f"BAT-{number}", 'c3')
        for class_id in ('c1', 'c2', 'c3'):
            TeachingAssignment.objects.create(year_id=self.old_year, class_id=class_id)

        transition = self._transition(batch_size=4, page_size=2)
        transition.run()

        # 3 staffing copies, 9 students with two writes each, one config write.
        self.assertEqual(transition.coordinator.committed_operations, 22)
        self.assertLessEqual(max(transition.coordinator.committed_batches), 4)
        self.assertEqual(transition.state, TransitionState.DONE)


class TransitionStaffingTests(TransitionBaseTestCase):
    def test_staffing_and_timetables_are_copied_for_the_current_year_only(self):
        TeachingAssignment.objects.create(
            year_id=self.old_year,
            class_id='c1',
            class_name='Class 1',
            assignments=[{'subject': 'English', 'teacherId': 'T-1'}],
        )
        TeachingAssignment.objects.create(year_id=self.old_year, class_id='c2', class_name='Class 2')
        TeachingAssignment.objects.create(year_id='2024-2025', class_id='c3', class_name='Class 3')
        ClassTimetable.objects.create(
            year_id=self.old_year,
            class_id='c1',
            section_id='A',
            slots={'monday': [{'period': 1, 'subject': 'English'}]},
            is_published=True,
        )

        result = self._run()

        self.assertEqual(result.copied_assignments, 2)
        self.assertEqual(result.copied_timetables, 1)
        copy = TeachingAssignment.objects.get(year_id=self.new_year, class_id='c1')
        self.assertEqual(copy.assignments, [{'subject': 'English', 'teacherId': 'T-1'}])
        self.assertFalse(TeachingAssignment.objects.filter(year_id=self.new_year, class_id='c3').exists())
        self.assertEqual(TeachingAssignment.objects.filter(year_id=self.old_year).count(), 2)
        timetable = ClassTimetable.objects.get(year_id=self.new_year, class_id='c1', section_id='A')
        self.assertTrue(timetable.is_published)
        self.assertEqual(ClassTimetable.objects.filter(year_id=self.old_year).count(), 1)


class TransitionConfigTests(TransitionBaseTestCase):
    def test_config_advances_and_old_year_is_archived(self):
        UpcomingAcademicYear.objects.create(year=self.new_year)
        UpcomingAcademicYear.objects.create(year='2027-2028')
        self._student('CFG-1', 'c1')
        self._student('CFG-2', 'c2', status=Student.STATUS_DETAINED)
        self._student('CFG-3', 'c10')

        self._run()

        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.new_year)
        self.assertEqual(self.config.current_year_start_date, self.now)
        history = AcademicYearHistory.objects.get(year=self.old_year)
        self.assertEqual(history.promoted_count, 1)
        self.assertEqual(history.archived_count, 1)
        self.assertEqual(history.stats, {'promoted': 1, 'detained': 1, 'graduated': 1})
        self.assertEqual(history.archived_at, self.now)
        self.assertEqual(history.start_date, date(2025, 4, 1))
        self.assertEqual(list(UpcomingAcademicYear.objects.values_list('year', flat=True)), ['2027-2028'])

    def test_unknown_current_year_records_no_history(self):
        AcademicYearConfig.objects.all().delete()
        student = self._student('CFG-4', 'lkg', academic_year='')

        result = self._run()

        self.assertEqual(result.promoted_count, 1)
        self.assertEqual(AcademicYearConfig.load().current_year, self.new_year)
        self.assertFalse(AcademicYearHistory.objects.exists())
        self.assertEqual(self._new_ledger(student).total_fee, Decimal('0.00'))

    def test_consecutive_transitions_build_history(self):
        self._student('CFG-5', 'c1')
        self._run()
        self._run(new_year='2027-2028')

        self.assertEqual(
            set(AcademicYearHistory.objects.values_list('year', flat=True)),
            {self.old_year, self.new_year},
        )
        self.assertEqual(Student.objects.get(admission_number='CFG-5').class_id, 'c3')

    def test_archived_year_cannot_be_started_again(self):
        AcademicYearHistory.objects.create(year='2024-2025', archived_at=_aware(2025, 4, 1))

        with self.assertRaises(ValidationError):
            self._run(new_year='2024-2025')

        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)

    def test_label_is_trimmed(self):
        student = self._student('CFG-6', 'c1')

        self._run(new_year=f"  {self.new_year} ")

        student.refresh_from_db()
        self.assertEqual(student.academic_year, self.new_year)
        self.assertEqual(AcademicYearConfig.load().current_year, self.new_year)

    def test_missing_or_blank_label_is_rejected(self):
        for label in (None, '', '   ', 'x' * 21, 42):
            transition = AcademicYearTransition(label, self.admin)
            with self.assertRaises(ValidationError):
                transition.run()
            self.assertEqual(transition.state, TransitionState.FAIL)


class TransitionFailureTests(TransitionBaseTestCase):
    def test_non_admin_is_rejected_before_any_read_or_write(self):
        student = self._student('ERR-1', 'c1')
        for actor in (self.teacher, AnonymousUser()):
            transition = self._transition(actor=actor)
            with self.assertRaises(AuthorizationError):
                transition.run()
            self.assertEqual(transition.state, TransitionState.FAIL)
            self.assertIsNone(transition.current_year)

        student.refresh_from_db()
        self.assertEqual(student.academic_year, self.old_year)
        self.assertFalse(FeeLedger.objects.exists())

    def test_database_error_aborts_as_store_error(self):
        self._student('ERR-2', 'c1')
        transition = self._transition(isolate_failures=True)

        with mock.patch(
            'apps.core.academic_years.transition.pending_balance',
            side_effect=DatabaseError('disk I/O error'),
        ):
            with self.assertRaises(StoreError):
                transition.run()

        self.assertEqual(transition.state, TransitionState.FAIL)
        self.assertEqual(transition.result.errors, [])
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)

    def test_default_policy_aborts_on_first_student_failure(self):
        self._student('ERR-3', 'c1')
        self._student('ERR-4', 'c1')

        with mock.patch(
            'apps.core.academic_years.transition.decide_promotion',
            side_effect=ValueError('bad class data'),
        ):
            with self.assertRaises(ValueError):
                self._run()

        self.assertFalse(Student.objects.filter(academic_year=self.new_year).exists())
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)

    def test_isolated_failures_are_reported_and_the_run_continues(self):
        self._student('ERR-5', 'c1')
        broken = self._student('ERR-6', 'c1')
        self._student('ERR-7', 'c1')

        def fail_for_broken(student, sequence=CLASS_SEQUENCE):
            if student.pk == broken.pk:
                raise ValueError('bad class data')
            return decide_promotion(student, sequence)

        with mock.patch('apps.core.academic_years.transition.decide_promotion', side_effect=fail_for_broken):
            with self.assertLogs('apps.core.academic_years.transition', level='WARNING'):
                result = self._run(isolate_failures=True)

        self.assertEqual(result.promoted_count, 2)
        self.assertEqual(result.errors, [
            {'student_id': broken.pk, 'admission_number': 'ERR-6', 'error': 'bad class data'},
        ])
        broken.refresh_from_db()
        self.assertEqual(broken.academic_year, self.old_year)
        self.assertFalse(FeeLedger.objects.filter(student=broken).exists())
        self.assertEqual(AcademicYearConfig.load().current_year, self.new_year)

    def test_cancellation_flushes_finished_students_and_keeps_config(self):
        for number in range(6):
            self._student(f"CAN-{number}", 'c1')
        checks = []

        def should_cancel():
            checks.append(True)
            return len(checks) > 3

        transition = self._transition(should_cancel=should_cancel, batch_size=100)
        with self.assertRaises(TransitionCancelled) as caught:
            transition.run()

        self.assertEqual(caught.exception.result.processed_count, 3)
        self.assertEqual(Student.objects.filter(academic_year=self.new_year).count(), 3)
        self.assertEqual(FeeLedger.objects.filter(academic_year=self.new_year).count(), 3)
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, self.old_year)


class TransitionScaleTests(TransitionBaseTestCase):
    def test_large_school_is_paged_and_committed_in_bounded_batches(self):
        fake = Faker()
        Faker.seed(2026)
        rng = random.Random(2026)
        statuses = [Student.STATUS_ACTIVE] * 8 + [
            Student.STATUS_DETAINED,
            Student.STATUS_ALUMNI,
            Student.STATUS_INACTIVE,
        ]

        students = []
        for number in range(1200):
            level = rng.choice(CLASS_LEVELS)
            students.append(Student(
                admission_number=f"BULK-{number:05d}",
                first_name=fake.first_name(),
                last_name=fake.last_name(),
                class_id=level.id,
                class_name=level.name,
                status=rng.choice(statuses),
                academic_year=self.old_year,
            ))
        Student.objects.bulk_create(students)
        expected = Student.objects.exclude(
            status__in=Student.ARCHIVED_STATUSES,
        ).count()

        transition = self._transition(batch_size=50, page_size=128)
        result = transition.run()

        self.assertEqual(result.processed_count, expected)
        self.assertEqual(result.skipped_count, 1200 - expected)
        self.assertLessEqual(max(transition.coordinator.committed_batches), 50)
        self.assertEqual(FeeLedger.objects.filter(academic_year=self.new_year).count(), expected)
        self.assertFalse(
            Student.objects.filter(academic_year=self.old_year)
            .exclude(status__in=Student.ARCHIVED_STATUSES)
            .exists()
        )


class AcademicYearPlanTests(TestCase):
    def setUp(self):
        self.config = AcademicYearConfig.objects.create(
            current_year='2025-2026',
            current_year_start_date=_aware(2025, 4, 1),
        )
        AcademicYearHistory.objects.create(
            year='2024-2025',
            start_date=date(2024, 4, 1),
            archived_at=_aware(2025, 3, 31),
            promoted_count=40,
            archived_count=3,
        )

    def test_default_year_label_starts_in_april(self):
        self.assertEqual(default_year_label(date(2026, 3, 31)), '2025-2026')
        self.assertEqual(default_year_label(date(2026, 4, 1)), '2026-2027')

    def test_list_orders_current_upcoming_then_history(self):
        add_upcoming_year('2026-2027', start_date=date(2026, 4, 1), end_date=date(2027, 3, 31))

        years = list_academic_years()

        self.assertEqual([entry['year'] for entry in years], ['2025-2026', '2026-2027', '2024-2025'])
        self.assertTrue(years[0]['is_active'])
        self.assertTrue(years[1]['is_upcoming'])
        self.assertEqual(years[1]['start_date'], '2026-04-01')
        self.assertEqual(years[2]['stats'], {'promoted': 40, 'detained': 3, 'total': 43})

    def test_list_without_config_returns_a_default_year(self):
        AcademicYearConfig.objects.all().delete()
        years = list_academic_years()
        self.assertEqual(len(years), 1)
        self.assertEqual(years[0]['year'], default_year_label())
        self.assertTrue(years[0]['is_active'])

    def test_add_upcoming_rejects_known_labels(self):
        add_upcoming_year('2026-2027')
        for label, message in (
            ('2025-2026', 'Year already active'),
            ('2026-2027', 'Year already exists in upcoming'),
            ('2024-2025', 'Year already exists in history'),
        ):
            with self.assertRaisesMessage(ValidationError, message):
                add_upcoming_year(label)

    def test_add_upcoming_rejects_reversed_dates(self):
        with self.assertRaises(ValidationError):
            add_upcoming_year('2026-2027', start_date=date(2027, 3, 31), end_date=date(2026, 4, 1))

    def test_update_upcoming_year(self):
        add_upcoming_year('2026-27')
        update_academic_year('2026-27', new_label='2026-2027', end_date=date(2027, 3, 31))
        upcoming = UpcomingAcademicYear.objects.get()
        self.assertEqual(upcoming.year, '2026-2027')
        self.assertEqual(upcoming.end_date, date(2027, 3, 31))

    def test_update_current_year_dates(self):
        update_academic_year('2025-2026', start_date=date(2025, 4, 7), end_date=date(2026, 3, 31), new_label='')
        self.config.refresh_from_db()
        self.assertEqual(self.config.current_year, '2025-2026')
        self.assertEqual(self.config.current_year_start_date, _aware(2025, 4, 7))
        self.assertEqual(self.config.current_year_end_date, date(2026, 3, 31))

    def test_update_history_entry(self):
        update_academic_year('2024-2025', new_label='2024-25', end_date=date(2025, 3, 30))
        history = AcademicYearHistory.objects.get()
        self.assertEqual(history.year, '2024-25')
        self.assertEqual(history.archived_at, _aware(2025, 3, 30))

    def test_update_rejects_unknown_or_conflicting_labels(self):
        with self.assertRaises(YearNotFound):
            update_academic_year('2030-2031')
        with self.assertRaisesMessage(ValidationError, 'Year already exists in history'):
            update_academic_year('2025-2026', new_label='2024-2025')

    def test_delete_removes_upcoming_then_history(self):
        add_upcoming_year('2026-2027')
        delete_academic_year('2026-2027')
        delete_academic_year('2024-2025')
        self.assertFalse(UpcomingAcademicYear.objects.exists())
        self.assertFalse(AcademicYearHistory.objects.exists())

    def test_delete_refuses_current_and_unknown_years(self):
        with self.assertRaises(ValidationError):
            delete_academic_year('2025-2026')
        with self.assertRaises(YearNotFound):
            delete_academic_year('1999-2000')


class AcademicYearApiTests(TransitionBaseTestCase):
    def _post(self, name, payload):
        return self.client.post(reverse(name), payload, content_type='application/json')

    def test_start_new_requires_post(self):
        self.client.login(username='year_admin', password='pass12345')
        response = self.client.get(reverse('academic_year_start_new'))
        self.assertEqual(response.status_code, 405)

    def test_start_new_requires_authentication_and_admin_role(self):
        response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})
        self.assertEqual(response.status_code, 401)

        self.client.login(username='year_teacher', password='pass12345')
        response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(AcademicYearConfig.load().current_year, self.old_year)

    def test_start_new_returns_counts(self):
        self._student('API-1', 'c1')
        self._student('API-2', 'c5', status=Student.STATUS_DETAINED)
        self._student('API-3', 'c10')
        self.client.login(username='year_admin', password='pass12345')

        response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['stats'], {'promoted': 1, 'retained': 1, 'graduated': 1, 'skipped': 0})
        self.assertEqual(body['errors'], [])
        self.assertTrue(AuditLog.objects.filter(action='academic_year.transitioned', user=self.admin).exists())

    def test_start_new_reports_validation_errors(self):
        self.client.login(username='year_admin', password='pass12345')

        response = self._post('academic_year_start_new', {'newYearLabel': self.old_year})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Cannot transition to the same year.'})

        response = self._post('academic_year_start_new', {})
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            reverse('academic_year_start_new'),
            'not json',
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_start_new_reports_store_errors(self):
        self._student('API-4', 'c1')
        self.client.login(username='year_admin', password='pass12345')

        with mock.patch(
            'apps.core.academic_years.transition.pending_balance',
            side_effect=DatabaseError('database is locked'),
        ):
            response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})

        self.assertEqual(response.status_code, 500)
        self.assertIn('database is locked', response.json()['error'])

    def test_start_new_reports_student_failures_as_json(self):
        self._student('API-5', 'c1')
        self.client.login(username='year_admin', password='pass12345')

        with mock.patch(
            'apps.core.academic_years.transition.decide_promotion',
            side_effect=RuntimeError('corrupt record'),
        ):
            with self.assertLogs('apps.core.academic_years.views', level='ERROR'):
                response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response['Content-Type'], 'application/json')
        self.assertEqual(response.json(), {'error': 'corrupt record'})
        self.assertEqual(AcademicYearConfig.load().current_year, self.old_year)

    def test_start_new_reports_cancellation_as_json(self):
        self.client.login(username='year_admin', password='pass12345')

        with mock.patch(
            'apps.core.academic_years.views.start_new_academic_year',
            side_effect=TransitionCancelled('Transition to 2026-2027 cancelled after 0 students.'),
        ):
            response = self._post('academic_year_start_new', {'newYearLabel': self.new_year})

        self.assertEqual(response.status_code, 409)
        self.assertIn('cancelled', response.json()['error'])

    def test_history_lists_years_for_any_signed_in_user(self):
        response = self.client.get(reverse('academic_year_history'))
        self.assertEqual(response.status_code, 401)

        self.client.login(username='year_teacher', password='pass12345')
        response = self.client.get(reverse('academic_year_history'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['years'][0]['year'], self.old_year)

    def test_plan_endpoints(self):
        self.client.login(username='year_admin', password='pass12345')

        response = self._post('academic_year_create', {'yearLabel': '2026-27', 'startDate': '2026-04-01'})
        self.assertEqual(response.status_code, 200)
        response = self._post('academic_year_create', {'yearLabel': '2026-27'})
        self.assertEqual(response.status_code, 400)

        response = self._post('academic_year_update', {'targetYear': '2026-27', 'newLabel': self.new_year})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(UpcomingAcademicYear.objects.filter(year=self.new_year).exists())

        response = self._post('academic_year_update', {'targetYear': '2030-31'})
        self.assertEqual(response.status_code, 404)

        response = self._post('academic_year_update', {'targetYear': self.new_year, 'startDate': '01/04/2026'})
        self.assertEqual(response.status_code, 400)

        response = self._post('academic_year_delete', {'yearLabel': self.old_year})
        self.assertEqual(response.status_code, 400)

        response = self._post('academic_year_delete', {'yearLabel': self.new_year})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(UpcomingAcademicYear.objects.exists())

        response = self._post('academic_year_delete', {'yearLabel': self.new_year})
        self.assertEqual(response.status_code, 404)

        self.assertEqual(
            set(AuditLog.objects.filter(action__startswith='academic_year.').values_list('action', flat=True)),
            {'academic_year.planned', 'academic_year.updated', 'academic_year.deleted'},
        )

    def test_plan_endpoints_require_admin_role(self):
        self.client.login(username='year_teacher', password='pass12345')
        response = self._post('academic_year_create', {'yearLabel': '2026-27'})
        self.assertEqual(response.status_code, 403)


class StartAcademicYearCommandTests(TransitionBaseTestCase):
    def test_command_runs_transition(self):
        self._student('CMD-1', 'c1')
        out = StringIO()

        call_command('start_academic_year', self.new_year, actor='year_admin', batch_size=10, stdout=out)

        self.assertIn('1 promoted', out.getvalue())
        self.assertEqual(AcademicYearConfig.load().current_year, self.new_year)

    def test_command_rejects_unknown_actor_and_non_admins(self):
        with self.assertRaises(CommandError):
            call_command('start_academic_year', self.new_year, actor='nobody')
        with self.assertRaises(CommandError):
            call_command('start_academic_year', self.new_year, actor='year_teacher')

    def test_command_reports_validation_errors(self):
        with self.assertRaisesMessage(CommandError, 'Cannot transition to the same year.'):
            call_command('start_academic_year', self.old_year, actor='year_admin')

    def test_service_wrapper_records_audit_event(self):
        start_new_academic_year(self.new_year, self.admin, clock=lambda: self.now)
        entry = AuditLog.objects.get(action='academic_year.transitioned')
        self.assertIn('2025-2026 -> 2026-2027', entry.details)
