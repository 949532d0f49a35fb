from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from apps.core.students.models import Student


class FinancialRecordModel(models.Model):
    class Meta:
        abstract = True

    def delete(self, *args, **kwargs):
        raise ValidationError('Financial records cannot be deleted. Use reversal workflow.')


class FeeLedger(FinancialRecordModel):
    """One ledger per student per academic year."""

    STATUS_PENDING = 'PENDING'
    STATUS_PARTIAL = 'PARTIAL'
    STATUS_PAID = 'PAID'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_PARTIAL, 'Partially Paid'),
        (STATUS_PAID, 'Paid'),
    )

    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        related_name='fee_ledgers',
    )
    academic_year = models.CharField(max_length=20)
    class_id = models.CharField(max_length=20, blank=True)
    class_name = models.CharField(max_length=50, blank=True)

    # Null totals come from partially synced ledgers and count as zero.
    total_fee = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['student_id', 'academic_year']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'academic_year'],
                name='unique_fee_ledger_per_student_year',
            ),
        ]
        indexes = [
            models.Index(fields=['academic_year', 'status']),
        ]

    @property
    def outstanding_amount(self):
        return Decimal(self.total_fee or 0) - Decimal(self.total_paid or 0)

    def __str__(self):
        return f"{self.student_id} - {self.academic_year}"


class FeeLedgerItem(models.Model):
    CODE_PREVIOUS_BALANCE = 'PREVIOUS_BALANCE'

    TYPE_TERM = 'TERM'
    TYPE_TOTAL = 'TOTAL'
    TYPE_CUSTOM = 'CUSTOM'
    TYPE_CHOICES = (
        (TYPE_TERM, 'Term'),
        (TYPE_TOTAL, 'Total'),
        (TYPE_CUSTOM, 'Custom'),
    )

    ledger = models.ForeignKey(
        FeeLedger,
        on_delete=models.CASCADE,
        related_name='items',
    )
    code = models.CharField(max_length=50)
    item_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_TERM)
    name = models.CharField(max_length=120)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(
        max_length=20,
        choices=FeeLedger.STATUS_CHOICES,
        default=FeeLedger.STATUS_PENDING,
    )
    due_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['due_date', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['ledger', 'code'],
                name='unique_ledger_item_code',
            ),
            models.CheckConstraint(
                condition=Q(amount__gte=0) & Q(paid_amount__gte=0),
                name='ledger_item_non_negative_amounts',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.amount})"
