"""Yearly transition: promote students, carry fee balances forward, roll staffing over.

The run is one sequential pass through these states::

    START -> AUTHORIZE -> LOAD_CONFIG -> VALIDATE_TARGET_YEAR -> COPY_STAFFING
          -> COPY_TIMETABLES -> ITERATE_STUDENTS -> UPDATE_CONFIG -> DONE

Any state may end in FAIL. Writes go through one BatchedWriteCoordinator, so
a failure keeps every batch committed before it. Students already tagged with
the target year are skipped, which makes re-running an aborted transition safe.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils import timezone

from apps.core.academics.classes import CLASS_SEQUENCE
from apps.core.fees.services import pending_balance, write_transition_ledger
from apps.core.students.models import Student
from apps.core.students.services import (
    OUTCOME_GRADUATED,
    OUTCOME_PROMOTED,
    OUTCOME_RETAINED,
    decide_promotion,
)
from apps.core.timetable.services import (
    class_timetables_for_year,
    copy_to_year,
    teaching_assignments_for_year,
)
from apps.core.users.audit import log_audit_event
from apps.core.users.decorators import has_role

from .batching import BatchedWriteCoordinator
from .exceptions import AuthorizationError, StoreError, TransitionCancelled
from .models import UNKNOWN_YEAR, AcademicYearConfig, AcademicYearHistory, UpcomingAcademicYear
from .services import current_year_label, validate_year_label


logger = logging.getLogger(__name__)


class TransitionState:
    START = 'START'
    AUTHORIZE = 'AUTHORIZE'
    LOAD_CONFIG = 'LOAD_CONFIG'
    VALIDATE_TARGET_YEAR = 'VALIDATE_TARGET_YEAR'
    COPY_STAFFING = 'COPY_STAFFING'
    COPY_TIMETABLES = 'COPY_TIMETABLES'
    ITERATE_STUDENTS = 'ITERATE_STUDENTS'
    UPDATE_CONFIG = 'UPDATE_CONFIG'
    DONE = 'DONE'
    FAIL = 'FAIL'


STUDENT_UPDATE_FIELDS = [
    'academic_year',
    'class_id',
    'class_name',
    'status',
    'previous_year_status',
    'updated_at',
]


class TransitionResult:
    def __init__(self):
        self.promoted_count = 0
        self.retained_count = 0
        self.graduated_count = 0
        self.skipped_count = 0
        self.copied_assignments = 0
        self.copied_timetables = 0
        self.errors = []

    def record(self, outcome):
        if outcome == OUTCOME_PROMOTED:
            self.promoted_count += 1
        elif outcome == OUTCOME_RETAINED:
            self.retained_count += 1
        elif outcome == OUTCOME_GRADUATED:
            self.graduated_count += 1

    @property
    def processed_count(self):
        return self.promoted_count + self.retained_count + self.graduated_count

    def stats(self):
        return {
            'promoted': self.promoted_count,
            'detained': self.retained_count,
            'graduated': self.graduated_count,
        }

    def as_dict(self):
        return {
            'promoted_count': self.promoted_count,
            'retained_count': self.retained_count,
            'graduated_count': self.graduated_count,
            'skipped_count': self.skipped_count,
            'errors': list(self.errors),
        }

    def __repr__(self):
        return (
            f"<TransitionResult promoted={self.promoted_count} retained={self.retained_count} "
            f"graduated={self.graduated_count} skipped={self.skipped_count} errors={len(self.errors)}>"
        )


class AcademicYearTransition:
    """Moves the whole school from the configured current year into ``new_year``.

    ``isolate_failures`` switches from the default abort-on-first-error policy
    to collecting per-student failures in ``result.errors`` and carrying on.
    Database errors abort the run either way. ``should_cancel`` is polled
    between students; when it returns True the completed students are flushed
    and ``TransitionCancelled`` is raised before the configuration changes.
    """

    def __init__(
        self,
        new_year,
        actor,
        *,
        batch_size=None,
        page_size=None,
        sequence=CLASS_SEQUENCE,
        clock=timezone.now,
        should_cancel=None,
        isolate_failures=False,
    ):
        self.new_year = new_year
        self.actor = actor
        self.page_size = int(page_size or settings.ACADEMIC_TRANSITION_PAGE_SIZE)
        if self.page_size < 1:
            raise ValueError('Page size must be at least 1.')
        self.sequence = sequence
        self.clock = clock
        self.should_cancel = should_cancel
        self.isolate_failures = isolate_failures

        self.coordinator = BatchedWriteCoordinator(batch_size)
        self.result = TransitionResult()
        self.state = TransitionState.START
        self.current_year = None
        self.current_year_started_at = None
        self.started_at = None
        self._failed_state = None

    def _advance(self, state):
        logger.debug('Transition to %s: %s -> %s', self.new_year, self.state, state)
        self.state = state

    def run(self) -> TransitionResult:
        try:
            self._advance(TransitionState.AUTHORIZE)
            self._authorize()

            self._advance(TransitionState.LOAD_CONFIG)
            config = AcademicYearConfig.load()
            self.current_year = current_year_label(config)
            self.current_year_started_at = config.current_year_start_date if config else None
            self.started_at = self.clock()

            self._advance(TransitionState.VALIDATE_TARGET_YEAR)
            self._validate_target_year()
            logger.info('Academic year transition started: %s -> %s', self.current_year, self.new_year)

            self._advance(TransitionState.COPY_STAFFING)
            self.result.copied_assignments = self._copy_rows(
                teaching_assignments_for_year(self.current_year)
            )

            self._advance(TransitionState.COPY_TIMETABLES)
            self.result.copied_timetables = self._copy_rows(
                class_timetables_for_year(self.current_year)
            )

            self._advance(TransitionState.ITERATE_STUDENTS)
            self._process_students()

            self._advance(TransitionState.UPDATE_CONFIG)
            self.coordinator.call(self._apply_config_update)
            self.coordinator.flush_all()

            self._advance(TransitionState.DONE)
        except DatabaseError as exc:
            self._fail(exc)
            raise StoreError(f"Database error during {self._failed_state}: {exc}") from exc
        except Exception as exc:
            self._fail(exc)
            raise

        logger.info(
            'Academic year transition %s -> %s complete: %s promoted, %s retained, %s graduated, '
            '%s skipped, %s failed, %s writes in %s batches.',
            self.current_year,
            self.new_year,
            self.result.promoted_count,
            self.result.retained_count,
            self.result.graduated_count,
            self.result.skipped_count,
            len(self.result.errors),
            self.coordinator.committed_operations,
            len(self.coordinator.committed_batches),
        )
        return self.result

    def _fail(self, exc):
        self._failed_state = self.state
        self.state = TransitionState.FAIL
        if isinstance(exc, (AuthorizationError, ValidationError, TransitionCancelled)):
            logger.warning('Transition to %s stopped in %s: %s', self.new_year, self._failed_state, exc)
        else:
            logger.exception(
                'Transition to %s failed in %s after %s committed writes.',
                self.new_year,
                self._failed_state,
                self.coordinator.committed_operations,
            )

    def _authorize(self):
        if not has_role(self.actor, settings.ACADEMIC_TRANSITION_ADMIN_ROLES):
            raise AuthorizationError('Only administrators can start a new academic year.')

    def _validate_target_year(self):
        self.new_year = validate_year_label(self.new_year, 'new year label')
        if self.new_year == self.current_year:
            raise ValidationError('Cannot transition to the same year.')
        if AcademicYearHistory.objects.filter(year=self.new_year).exists():
            raise ValidationError(
                f"Academic year {self.new_year} is already archived; the current year cannot move back."
            )

    def _copy_rows(self, queryset) -> int:
        # One row per class, so the source year is read up front rather than
        # streamed from a cursor the copies write into.
        rows = list(queryset)
        for row in rows:
            self.coordinator.call(copy_to_year, row, self.new_year)
            self.coordinator.flush_if_full()
        return len(rows)

    def _iter_students(self):
        # Keyset pages keep memory flat and are unaffected by rows updated mid-run.
        last_pk = 0
        while True:
            page = list(
                Student.objects.filter(pk__gt=last_pk).order_by('pk')[:self.page_size]
            )
            if not page:
                return
            yield from page
            last_pk = page[-1].pk

    def _check_cancelled(self):
        if self.should_cancel is not None and self.should_cancel():
            self.coordinator.flush_all()
            raise TransitionCancelled(
                f"Transition to {self.new_year} cancelled after {self.result.processed_count} students.",
                result=self.result,
            )

    def _process_students(self):
        due_date = timezone.localdate(self.started_at)
        for student in self._iter_students():
            self._check_cancelled()

            if student.academic_year == self.new_year or student.is_archived:
                self.result.skipped_count += 1
                continue

            try:
                self._stage_student(student, due_date)
            except (DatabaseError, StoreError):
                raise
            except Exception as exc:
                if not self.isolate_failures:
                    raise
                logger.warning('Student %s could not be transitioned: %s', student.pk, exc)
                self.result.errors.append({
                    'student_id': student.pk,
                    'admission_number': student.admission_number,
                    'error': str(exc),
                })
                continue

            self.coordinator.flush_if_full()

    def _stage_student(self, student, due_date):
        source_year = student.academic_year or self.current_year
        balance = pending_balance(student, source_year)
        decision = decide_promotion(student, self.sequence)

        student.previous_year_status = student.status
        student.academic_year = self.new_year
        student.class_id = decision.new_class_id
        student.class_name = decision.new_class_name
        student.status = decision.new_status

        self.coordinator.save(student, update_fields=STUDENT_UPDATE_FIELDS)
        self.coordinator.call(
            write_transition_ledger,
            student=student,
            academic_year=self.new_year,
            class_id=decision.new_class_id,
            class_name=decision.new_class_name,
            balance=balance,
            source_year=source_year,
            due_date=due_date,
        )
        self.result.record(decision.outcome)
        logger.debug(
            'Student %s %s into %s with balance %s carried from %s.',
            student.pk,
            decision.outcome.lower(),
            self.new_year,
            balance,
            source_year,
        )

    def _current_year_start_date(self):
        if self.current_year_started_at is None:
            return None
        return timezone.localdate(self.current_year_started_at)

    def _apply_config_update(self):
        now = self.started_at
        config = AcademicYearConfig.load_for_update()
        config.current_year = self.new_year
        config.current_year_start_date = now
        config.current_year_end_date = None
        config.save()

        if self.current_year and self.current_year != UNKNOWN_YEAR:
            AcademicYearHistory.objects.update_or_create(
                year=self.current_year,
                defaults={
                    'start_date': self._current_year_start_date(),
                    'archived_at': now,
                    'promoted_count': self.result.promoted_count,
                    'archived_count': self.result.retained_count,
                    'stats': self.result.stats(),
                },
            )

        UpcomingAcademicYear.objects.filter(year=self.new_year).delete()


def start_new_academic_year(new_year, actor, request=None, **options) -> TransitionResult:
    """Run the transition for ``actor`` and record it in the audit log."""
    transition = AcademicYearTransition(new_year, actor, **options)
    result = transition.run()
    log_audit_event(
        action='academic_year.transitioned',
        request=request,
        user=actor,
        details=(
            f"{transition.current_year} -> {transition.new_year}: "
            f"promoted={result.promoted_count} retained={result.retained_count} "
            f"graduated={result.graduated_count} skipped={result.skipped_count} "
            f"failed={len(result.errors)}"
        ),
    )
    return result
