from __future__ import annotations

from typing import NamedTuple

from apps.core.academics.classes import CLASS_SEQUENCE, ClassSequence

from .models import Student


OUTCOME_PROMOTED = 'PROMOTED'
OUTCOME_RETAINED = 'RETAINED'
OUTCOME_GRADUATED = 'GRADUATED'


class PromotionDecision(NamedTuple):
    new_status: str
    new_class_id: str
    new_class_name: str
    outcome: str


def is_held_back(student: Student) -> bool:
    return (
        student.status == Student.STATUS_DETAINED
        or student.promotion_status == Student.PROMOTION_RETAINED
    )


def decide_promotion(student: Student, sequence: ClassSequence = CLASS_SEQUENCE) -> PromotionDecision:
    """Decide where ``student`` sits next year. Pure: reads only the student and the sequence.

    Detained or explicitly retained students repeat their class and stay active.
    Everyone else moves to the next level, or graduates to alumni when the
    sequence has no next level (unknown class ids included).
    """
    if is_held_back(student):
        return PromotionDecision(
            new_status=Student.STATUS_ACTIVE,
            new_class_id=student.class_id,
            new_class_name=student.class_name,
            outcome=OUTCOME_RETAINED,
        )

    next_level = sequence.next(student.class_id)
    if next_level is not None:
        return PromotionDecision(
            new_status=Student.STATUS_ACTIVE,
            new_class_id=next_level.id,
            new_class_name=next_level.name,
            outcome=OUTCOME_PROMOTED,
        )

    return PromotionDecision(
        new_status=Student.STATUS_ALUMNI,
        new_class_id=student.class_id,
        new_class_name=student.class_name,
        outcome=OUTCOME_GRADUATED,
    )
