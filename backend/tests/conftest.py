"""
Shared fixtures for all tests.

factory-boy factories 和内存版 fake 都放在这里，unit/ 和 integration/ 都能 import。
"""
import copy
import uuid
from dataclasses import replace
from datetime import date

import factory
import pytest
from django.test import Client
from django.utils import timezone

from priorauth import ledger
from priorauth.collaborators import AuditSink, PatientDirectory, PrescriptionDirectory
from priorauth.exceptions import NotFoundError
from priorauth.ledger import HistoryEntry
from priorauth.models import Patient, Prescription, PriorAuthRequest
from priorauth.payers import BasePayerAdapter, StatusResult, SubmitResult
from priorauth.repository import BasePriorAuthRepository
from priorauth.types import PrescriptionData

TENANT_ID = 'tenant-1'
OTHER_TENANT_ID = 'tenant-2'
USER_ID = 'user-1'


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Patient

    tenant_id = TENANT_ID
    mrn = factory.Sequence(lambda n: f'{100000 + n}')
    first_name = 'John'
    last_name = 'Doe'
    dob = date(1990, 1, 15)


class PrescriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Prescription

    tenant_id = TENANT_ID
    patient = factory.SubFactory(PatientFactory)
    medication_name = 'Humira'
    strength = '40mg'
    quantity = 2
    sig = 'Inject 40mg subcutaneously every 2 weeks'


class PriorAuthRequestFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PriorAuthRequest

    tenant_id = TENANT_ID
    patient_id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    medication_name = 'Dupixent'
    payer = 'Blue Cross'
    member_id = 'M123'
    status = ledger.PENDING
    history = factory.LazyAttribute(lambda o: [
        HistoryEntry.now(ledger.EVENT_CREATED, o.status, actor_id=USER_ID, notes='PA request created').to_dict(),
    ])


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class InMemoryPriorAuthRepository(BasePriorAuthRepository):
    """按 (tenant_id, id) 存 PriorAuthRecord；writes 统计实际写入次数。"""

    def __init__(self):
        self.records = {}
        self.writes = 0

    def get(self, tenant_id, pa_id):
        record = self.records.get((tenant_id, str(pa_id)))
        return copy.deepcopy(record)

    def create(self, record):
        now = timezone.now()
        record = replace(record, created_at=now, updated_at=now)
        self.records[(record.tenant_id, record.id)] = record
        self.writes += 1
        return copy.deepcopy(record)

    def apply(self, tenant_id, pa_id, fields, entry, expected_status=None):
        key = (tenant_id, str(pa_id))
        record = self.records.get(key)
        if record is None:
            raise NotFoundError('Prior authorization request not found')
        if expected_status is not None and record.status != expected_status:
            return None
        record = replace(
            record,
            history=ledger.append_entry(record.history, entry),
            updated_at=timezone.now(),
            **fields,
        )
        self.records[key] = record
        self.writes += 1
        return copy.deepcopy(record)

    def list_for_tenant(self, tenant_id, patient_id=None, status=None, payer=None, limit=50, offset=0):
        rows = [r for (t, _), r in self.records.items() if t == tenant_id]
        if patient_id:
            rows = [r for r in rows if r.patient_id == patient_id]
        if status:
            rows = [r for r in rows if r.status == status]
        if payer:
            rows = [r for r in rows if payer.lower() in r.payer.lower()]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [copy.deepcopy(r) for r in rows[offset:offset + limit]]

    def ids_with_status(self, statuses, limit):
        return [(t, i) for (t, i), r in self.records.items() if r.status in statuses][:limit]


class FakePatientDirectory(PatientDirectory):

    def __init__(self, known=None):
        self.known = set(known or ())

    def exists(self, tenant_id, patient_id):
        return (tenant_id, patient_id) in self.known


class FakePrescriptionDirectory(PrescriptionDirectory):

    def __init__(self, prescriptions=None):
        self.prescriptions = dict(prescriptions or {})

    def get(self, tenant_id, prescription_id):
        return self.prescriptions.get((tenant_id, prescription_id))


class RecordingAuditSink(AuditSink):

    def __init__(self):
        self.events = []

    def record(self, tenant_id, actor_id, action, resource_type, resource_id):
        self.events.append((tenant_id, actor_id, action, resource_type, resource_id))


class ScriptedPayerAdapter(BasePayerAdapter):
    """按脚本返回结果；把 Exception 实例放进脚本就会抛出。"""

    slug = 'scripted'

    def __init__(self, submit_results=None, status_results=None):
        self.submit_results = list(submit_results or [])
        self.status_results = list(status_results or [])
        self.submitted = []
        self.checked = []

    def submit(self, request):
        self.submitted.append(request)
        result = self.submit_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def check_status(self, request_id, external_reference_id):
        self.checked.append((request_id, external_reference_id))
        result = self.status_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def submit_result(status='submitted', reference='EXT-123', reason='PA submitted successfully'):
    return SubmitResult(
        status=status,
        status_reason=reason,
        external_reference_id=reference,
        request_payload={'memberId': 'M123'},
        response_payload={'decision': status.upper()},
        estimated_decision_time='24-48 hours',
    )


def status_result(status, reference='EXT-123', reason=None):
    return StatusResult(
        status=status,
        status_reason=reason or f'Payer reports {status}',
        external_reference_id=reference,
        last_updated='2024-01-01T00:00:00+00:00',
        response_payload={'status': status},
    )


def prescription(medication_name='Humira', strength='40mg', quantity=2, sig='Inject every 2 weeks'):
    return PrescriptionData(medication_name=medication_name, strength=strength, quantity=quantity, sig=sig)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def api_client():
    """Django test client，默认带 tenant-1 / user-1 请求头。"""
    return Client(HTTP_X_TENANT_ID=TENANT_ID, HTTP_X_USER_ID=USER_ID)


@pytest.fixture
def other_tenant_client():
    return Client(HTTP_X_TENANT_ID=OTHER_TENANT_ID, HTTP_X_USER_ID='user-9')


@pytest.fixture
def sample_pa_payload():
    """Minimal valid payload for POST /api/prior-auth-requests/（patientId 由测试填入）。"""
    return {
        'medicationName': 'Dupixent',
        'payer': 'Blue Cross',
        'memberId': 'M123',
    }
