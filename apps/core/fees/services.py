from __future__ import annotations

import logging
import warnings
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.db import transaction
from django.utils.dateparse import parse_date

from .models import FeeLedger, FeeLedgerItem


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class DataIntegrityWarning(UserWarning):
    """A stored fee value was not numeric and has been read as zero."""


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def coerce_amount(value, *, field='', source='') -> Decimal:
    """Read a fee amount as a Decimal.

    Missing values (None, blank strings) are zero. Values that are not numbers
    are also zero, but logged as a DataIntegrityWarning so the caller keeps going.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return ZERO

    if isinstance(value, bool):
        amount = None
    elif isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            amount = None

    if amount is None or not amount.is_finite():
        message = f"Non-numeric fee value {value!r} for {field or 'amount'} in {source or 'ledger'}; using 0."
        logger.warning('DataIntegrityWarning: %s', message)
        warnings.warn(message, DataIntegrityWarning, stacklevel=2)
        return ZERO

    return _quantize(amount)


def ledger_status_for(total_fee: Decimal, total_paid: Decimal) -> str:
    if total_fee - total_paid <= 0:
        return FeeLedger.STATUS_PAID
    if total_paid > 0:
        return FeeLedger.STATUS_PARTIAL
    return FeeLedger.STATUS_PENDING


def pending_balance(student, source_year) -> Decimal:
    """Outstanding amount on ``student``'s ledger for ``source_year``.

    A missing ledger is an empty state and yields zero. The result is not
    clamped: overpaid ledgers give a negative balance.
    """
    ledger = (
        FeeLedger.objects.filter(student=student, academic_year=source_year)
        .only('id', 'total_fee', 'total_paid')
        .first()
    )
    if ledger is None:
        return ZERO

    source = f"ledger {ledger.pk} ({source_year})"
    total_fee = coerce_amount(ledger.total_fee, field='total_fee', source=source)
    total_paid = coerce_amount(ledger.total_paid, field='total_paid', source=source)
    return total_fee - total_paid


def carry_forward_items(balance: Decimal, source_year, due_date: date):
    if balance <= 0:
        return []
    return [
        {
            'code': FeeLedgerItem.CODE_PREVIOUS_BALANCE,
            'item_type': FeeLedgerItem.TYPE_TOTAL,
            'name': f"Previous Balance ({source_year})",
            'amount': _quantize(balance),
            'paid_amount': ZERO,
            'status': FeeLedger.STATUS_PENDING,
            'due_date': due_date,
        }
    ]


def _replace_items(ledger: FeeLedger, items) -> None:
    codes = [item['code'] for item in items]
    ledger.items.exclude(code__in=codes).delete()
    for item in items:
        defaults = {key: value for key, value in item.items() if key != 'code'}
        FeeLedgerItem.objects.update_or_create(ledger=ledger, code=item['code'], defaults=defaults)


@transaction.atomic
def write_transition_ledger(
    *,
    student,
    academic_year,
    class_id,
    class_name,
    balance: Decimal,
    source_year,
    due_date: date,
) -> FeeLedger:
    """Open ``academic_year``'s ledger holding only the debt carried over from ``source_year``.

    Term fees for the new year are added later by the fee sync job, so the
    ledger starts with ``total_fee`` equal to the positive part of ``balance``
    and nothing paid.
    """
    carried = _quantize(balance) if balance > 0 else ZERO
    ledger, _ = FeeLedger.objects.update_or_create(
        student=student,
        academic_year=academic_year,
        defaults={
            'class_id': class_id,
            'class_name': class_name,
            'total_fee': carried,
            'total_paid': ZERO,
            'status': FeeLedger.STATUS_PENDING if carried > 0 else FeeLedger.STATUS_PAID,
        },
    )
    _replace_items(ledger, carry_forward_items(carried, source_year, due_date))
    return ledger


@transaction.atomic
def ledger_from_document(student, academic_year, document) -> FeeLedger:
    """Store a ledger document produced by the fee sync job.

    Document shape: ``{totalFee, totalPaid, status, classId, className,
    items: [{id, type, name, amount, paidAmount, status, dueDate}]}``. Numeric
    fields pass through ``coerce_amount``; the ledger status is recomputed when
    the document does not carry a known one.
    """
    source = f"ledger document {student.pk}_{academic_year}"
    items = []
    for position, raw in enumerate(document.get('items') or [], start=1):
        code = str(raw.get('id') or f"ITEM_{position}")
        item_source = f"{source} item {code}"
        amount = coerce_amount(raw.get('amount'), field='amount', source=item_source)
        paid_amount = coerce_amount(raw.get('paidAmount'), field='paidAmount', source=item_source)
        item_type = raw.get('type')
        if item_type not in dict(FeeLedgerItem.TYPE_CHOICES):
            item_type = FeeLedgerItem.TYPE_TERM
        item_status = raw.get('status')
        if item_status not in dict(FeeLedger.STATUS_CHOICES):
            item_status = ledger_status_for(amount, paid_amount)
        due_date = raw.get('dueDate')
        if isinstance(due_date, str):
            due_date = parse_date(due_date[:10])
        items.append({
            'code': code,
            'item_type': item_type,
            'name': str(raw.get('name') or code)[:120],
            'amount': max(amount, ZERO),
            'paid_amount': max(paid_amount, ZERO),
            'status': item_status,
            'due_date': due_date,
        })

    total_fee = coerce_amount(document.get('totalFee'), field='totalFee', source=source)
    total_paid = coerce_amount(document.get('totalPaid'), field='totalPaid', source=source)
    status = document.get('status')
    if status not in dict(FeeLedger.STATUS_CHOICES):
        status = ledger_status_for(total_fee, total_paid)

    ledger, _ = FeeLedger.objects.update_or_create(
        student=student,
        academic_year=academic_year,
        defaults={
            'class_id': document.get('classId') or student.class_id,
            'class_name': document.get('className') or student.class_name,
            'total_fee': total_fee,
            'total_paid': total_paid,
            'status': status,
        },
    )
    _replace_items(ledger, items)
    return ledger
