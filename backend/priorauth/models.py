import uuid
from django.db import models

from . import ledger


class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.CharField(max_length=64, db_index=True)
    mrn = models.CharField(max_length=20)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    dob = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'
        constraints = [
            models.UniqueConstraint(fields=['tenant_id', 'mrn'], name='uniq_patient_mrn_per_tenant'),
        ]


class Prescription(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.CharField(max_length=64, db_index=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    medication_name = models.CharField(max_length=200)
    strength = models.CharField(max_length=50, blank=True, default='')
    quantity = models.PositiveIntegerField(blank=True, null=True)
    sig = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'prescriptions'


class PriorAuthRequest(models.Model):
    STATUS_CHOICES = [
        (ledger.PENDING, 'Pending'),
        (ledger.SUBMITTED, 'Submitted'),
        (ledger.APPROVED, 'Approved'),
        (ledger.DENIED, 'Denied'),
        (ledger.NEEDS_INFO, 'Needs Info'),
        (ledger.ERROR, 'Error'),
    ]
    URGENCY_CHOICES = [
        ('routine', 'Routine'),
        ('urgent', 'Urgent'),
        ('stat', 'STAT'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.CharField(max_length=64, db_index=True)

    # 外部引用，不在本模块拥有
    patient_id = models.CharField(max_length=64, db_index=True)
    prescription_id = models.CharField(max_length=64, blank=True, null=True)
    medication_name = models.CharField(max_length=200)
    medication_strength = models.CharField(max_length=50, blank=True, default='')
    medication_quantity = models.PositiveIntegerField(blank=True, null=True)
    sig = models.TextField(blank=True, default='')

    payer = models.CharField(max_length=200)
    member_id = models.CharField(max_length=100)
    external_reference_id = models.CharField(max_length=100, blank=True, null=True)

    prescriber_id = models.CharField(max_length=64, blank=True, default='')
    prescriber_npi = models.CharField(max_length=10, blank=True, default='')
    prescriber_name = models.CharField(max_length=200, blank=True, default='')
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='routine')

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ledger.PENDING)
    status_reason = models.TextField(blank=True, default='')
    request_payload = models.JSONField(blank=True, null=True)
    response_payload = models.JSONField(blank=True, null=True)
    attachments = models.JSONField(default=list, blank=True)
    history = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'prior_auth_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='pa_tenant_status_idx'),
        ]


class AuditLog(models.Model):
    id = models.BigAutoField(primary_key=True)
    tenant_id = models.CharField(max_length=64, db_index=True)
    actor_id = models.CharField(max_length=64)
    action = models.CharField(max_length=100)
    resource_type = models.CharField(max_length=100)
    resource_id = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_log'
