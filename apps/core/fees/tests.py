from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase

from apps.core.students.models import Student

from .models import FeeLedger, FeeLedgerItem
from .services import (
    DataIntegrityWarning,
    carry_forward_items,
    coerce_amount,
    ledger_from_document,
    pending_balance,
    write_transition_ledger,
)


class CoerceAmountTests(SimpleTestCase):
    def test_numeric_values_become_decimals(self):
        self.assertEqual(coerce_amount(1500), Decimal('1500.00'))
        self.assertEqual(coerce_amount('2500.5'), Decimal('2500.50'))
        self.assertEqual(coerce_amount(' 75 '), Decimal('75.00'))
        self.assertEqual(coerce_amount(12.345), Decimal('12.35'))
        self.assertEqual(coerce_amount(Decimal('-40')), Decimal('-40.00'))

    def test_missing_values_are_zero_without_warning(self):
        self.assertEqual(coerce_amount(None), Decimal('0.00'))
        self.assertEqual(coerce_amount(''), Decimal('0.00'))
        self.assertEqual(coerce_amount('   '), Decimal('0.00'))

    def test_non_numeric_values_are_zero_and_logged(self):
        for value in ('12k', 'abc', [], {'amount': 5}, True, 'NaN', 'Infinity'):
            with self.assertLogs('apps.core.fees.services', level='WARNING') as logs:
                with self.assertWarns(DataIntegrityWarning):
                    self.assertEqual(
                        coerce_amount(value, field='totalFee', source='ledger 7'),
                        Decimal('0.00'),
                    )
            self.assertIn('DataIntegrityWarning', logs.output[0])
            self.assertIn('totalFee', logs.output[0])


class CarryForwardItemsTests(SimpleTestCase):
    def test_positive_balance_becomes_single_previous_balance_item(self):
        items = carry_forward_items(Decimal('10000'), '2025-2026', date(2026, 4, 1))
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]['code'], FeeLedgerItem.CODE_PREVIOUS_BALANCE)
        self.assertEqual(items[0]['amount'], Decimal('10000.00'))
        self.assertEqual(items[0]['paid_amount'], Decimal('0.00'))
        self.assertEqual(items[0]['status'], FeeLedger.STATUS_PENDING)
        self.assertEqual(items[0]['name'], 'Previous Balance (2025-2026)')

    def test_zero_or_negative_balance_has_no_items(self):
        self.assertEqual(carry_forward_items(Decimal('0'), '2025-2026', date(2026, 4, 1)), [])
        self.assertEqual(carry_forward_items(Decimal('-250'), '2025-2026', date(2026, 4, 1)), [])


class LedgerBaseTestCase(TestCase):
    def setUp(self):
        self.student = Student.objects.create(
            admission_number='FEE-001',
            first_name='Riya',
            class_id='c3',
            academic_year='2025-2026',
        )


class PendingBalanceTests(LedgerBaseTestCase):
    def test_missing_ledger_has_zero_balance(self):
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('0.00'))

    def test_balance_is_fee_minus_paid(self):
        FeeLedger.objects.create(
            student=self.student,
            academic_year='2025-2026',
            total_fee=Decimal('15000'),
            total_paid=Decimal('5000'),
        )
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('10000.00'))
        self.assertEqual(pending_balance(self.student.pk, '2025-2026'), Decimal('10000.00'))

    def test_only_the_requested_year_is_read(self):
        FeeLedger.objects.create(
            student=self.student,
            academic_year='2024-2025',
            total_fee=Decimal('900'),
            total_paid=Decimal('0'),
        )
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('0.00'))

    def test_overpaid_ledger_is_not_clamped(self):
        FeeLedger.objects.create(
            student=self.student,
            academic_year='2025-2026',
            total_fee=Decimal('1000'),
            total_paid=Decimal('1200'),
        )
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('-200.00'))

    def test_missing_totals_count_as_zero(self):
        FeeLedger.objects.create(
            student=self.student,
            academic_year='2025-2026',
            total_fee=Decimal('800'),
            total_paid=None,
        )
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('800.00'))


class TransitionLedgerTests(LedgerBaseTestCase):
    def test_positive_balance_opens_pending_ledger_with_carry_item(self):
        ledger = write_transition_ledger(
            student=self.student,
            academic_year='2026-2027',
            class_id='c4',
            class_name='Class 4',
            balance=Decimal('10000'),
            source_year='2025-2026',
            due_date=date(2026, 4, 1),
        )
        self.assertEqual(ledger.total_fee, Decimal('10000.00'))
        self.assertEqual(ledger.total_paid, Decimal('0.00'))
        self.assertEqual(ledger.status, FeeLedger.STATUS_PENDING)
        item = ledger.items.get()
        self.assertEqual(item.code, FeeLedgerItem.CODE_PREVIOUS_BALANCE)
        self.assertEqual(item.item_type, FeeLedgerItem.TYPE_TOTAL)
        self.assertEqual(item.amount, Decimal('10000.00'))
        self.assertEqual(item.due_date, date(2026, 4, 1))

    def test_negative_balance_is_clamped_to_zero_on_write(self):
        ledger = write_transition_ledger(
            student=self.student,
            academic_year='2026-2027',
            class_id='c4',
            class_name='Class 4',
            balance=Decimal('-300'),
            source_year='2025-2026',
            due_date=date(2026, 4, 1),
        )
        self.assertEqual(ledger.total_fee, Decimal('0.00'))
        self.assertEqual(ledger.status, FeeLedger.STATUS_PAID)
        self.assertFalse(ledger.items.exists())

    def test_rewrite_merges_into_the_existing_ledger(self):
        kwargs = {
            'student': self.student,
            'academic_year': '2026-2027',
            'class_id': 'c4',
            'class_name': 'Class 4',
            'source_year': '2025-2026',
            'due_date': date(2026, 4, 1),
        }
        first = write_transition_ledger(balance=Decimal('500'), **kwargs)
        second = write_transition_ledger(balance=Decimal('0'), **kwargs)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(FeeLedger.objects.filter(student=self.student).count(), 1)
        self.assertFalse(second.items.exists())

    def test_ledgers_cannot_be_deleted(self):
        ledger = FeeLedger.objects.create(student=self.student, academic_year='2025-2026')
        with self.assertRaises(ValidationError):
            ledger.delete()
        self.assertTrue(FeeLedger.objects.filter(pk=ledger.pk).exists())


class LedgerDocumentTests(LedgerBaseTestCase):
    def test_document_is_stored_with_items(self):
        ledger = ledger_from_document(self.student, '2025-2026', {
            'totalFee': '15000',
            'totalPaid': 5000,
            'status': 'PARTIAL',
            'items': [
                {
                    'id': 'TERM_1',
                    'type': 'TERM',
                    'name': 'Term 1',
                    'amount': '7500',
                    'paidAmount': '5000',
                    'status': 'PARTIAL',
                    'dueDate': '2025-06-10T00:00:00.000Z',
                },
                {'id': 'TERM_2', 'type': 'TERM', 'name': 'Term 2', 'amount': 7500, 'dueDate': '2025-11-10'},
            ],
        })
        self.assertEqual(ledger.total_fee, Decimal('15000.00'))
        self.assertEqual(ledger.total_paid, Decimal('5000.00'))
        self.assertEqual(ledger.status, FeeLedger.STATUS_PARTIAL)
        self.assertEqual(ledger.class_id, 'c3')
        term_one = ledger.items.get(code='TERM_1')
        self.assertEqual(term_one.paid_amount, Decimal('5000.00'))
        self.assertEqual(term_one.due_date, date(2025, 6, 10))
        term_two = ledger.items.get(code='TERM_2')
        self.assertEqual(term_two.status, FeeLedger.STATUS_PENDING)
        self.assertEqual(pending_balance(self.student, '2025-2026'), Decimal('10000.00'))

    def test_non_numeric_fields_are_stored_as_zero(self):
        with self.assertLogs('apps.core.fees.services', level='WARNING') as logs:
            ledger = ledger_from_document(self.student, '2025-2026', {
                'totalFee': '12,000',
                'totalPaid': 'n/a',
                'items': [{'id': 'BOOKS', 'name': 'Books', 'amount': 'free'}],
            })
        self.assertEqual(len(logs.output), 3)
        self.assertEqual(ledger.total_fee, Decimal('0.00'))
        self.assertEqual(ledger.total_paid, Decimal('0.00'))
        self.assertEqual(ledger.status, FeeLedger.STATUS_PAID)
        self.assertEqual(ledger.items.get(code='BOOKS').amount, Decimal('0.00'))

    def test_resync_replaces_items(self):
        ledger_from_document(self.student, '2025-2026', {
            'totalFee': 100,
            'items': [{'id': 'A', 'amount': 50}, {'id': 'B', 'amount': 50}],
        })
        ledger = ledger_from_document(self.student, '2025-2026', {
            'totalFee': 50,
            'items': [{'id': 'B', 'amount': 50}],
        })
        self.assertEqual(list(ledger.items.values_list('code', flat=True)), ['B'])
        self.assertEqual(FeeLedger.objects.filter(student=self.student).count(), 1)
