"""
Unit tests for serializer functions.

纯 dataclass → dict，不需要数据库。
"""
from datetime import datetime, timezone

from priorauth.ledger import HistoryEntry
from priorauth.payers import SubmitResult
from priorauth.serializers import (
    serialize_pa_created,
    serialize_pa_list,
    serialize_pa_request,
    serialize_status_check,
    serialize_submit_result,
)
from priorauth.types import Attachment, PriorAuthRecord, StatusCheckResult

CREATED_AT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(**overrides):
    data = dict(
        id='pa-1',
        tenant_id='tenant-1',
        patient_id='p1',
        payer='Blue Cross',
        member_id='M123',
        medication_name='Dupixent',
        status='submitted',
        status_reason='PA submitted successfully',
        external_reference_id='EXT-123',
        history=(
            HistoryEntry('2024-01-01T12:00:00+00:00', 'created', 'pending', actor_id='user-1'),
            HistoryEntry('2024-01-01T12:05:00+00:00', 'submitted', 'submitted', external_reference_id='EXT-123'),
        ),
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )
    data.update(overrides)
    return PriorAuthRecord(**data)


class TestSerializePaRequest:

    def test_camel_case_keys(self):
        result = serialize_pa_request(_record())

        assert result['patientId'] == 'p1'
        assert result['memberId'] == 'M123'
        assert result['externalReferenceId'] == 'EXT-123'
        assert result['statusReason'] == 'PA submitted successfully'
        assert result['createdAt'] == '2024-01-01T12:00:00+00:00'

    def test_history_in_order(self):
        history = serialize_pa_request(_record())['history']

        assert [h['event'] for h in history] == ['created', 'submitted']
        assert history[0]['actorId'] == 'user-1'
        assert history[1]['externalReferenceId'] == 'EXT-123'

    def test_attachments(self):
        record = _record(attachments=(Attachment('a.pdf', 'https://x/a.pdf', 'application/pdf', 't'),))
        assert serialize_pa_request(record)['attachments'] == [
            {'fileName': 'a.pdf', 'fileUrl': 'https://x/a.pdf', 'fileType': 'application/pdf', 'uploadedAt': 't'},
        ]

    def test_unsaved_timestamps_are_none(self):
        result = serialize_pa_request(_record(created_at=None, updated_at=None))
        assert result['createdAt'] is None
        assert result['updatedAt'] is None


class TestEnvelopes:

    def test_created(self):
        result = serialize_pa_created(_record())
        assert result['message'] == 'Prior authorization request created successfully'
        assert result['data']['id'] == 'pa-1'

    def test_list(self):
        result = serialize_pa_list([_record(), _record(id='pa-2')], limit=50, offset=0)
        assert result['count'] == 2
        assert [r['id'] for r in result['data']] == ['pa-1', 'pa-2']
        assert result['limit'] == 50

    def test_submit_result(self):
        submit = SubmitResult(
            status='submitted',
            status_reason='PA submitted successfully',
            external_reference_id='EXT-123',
            estimated_decision_time='24-48 hours',
        )
        result = serialize_submit_result(_record(), submit)

        assert result == {
            'message': 'Prior authorization submitted successfully',
            'id': 'pa-1',
            'status': 'submitted',
            'statusReason': 'PA submitted successfully',
            'externalReferenceId': 'EXT-123',
            'estimatedDecisionTime': '24-48 hours',
        }

    def test_status_check(self):
        check = StatusCheckResult(
            status='approved',
            status_reason='Approved by payer',
            external_reference_id='EXT-123',
            last_updated='2024-01-02T00:00:00Z',
            changed=False,
            record=_record(),
        )
        result = serialize_status_check(check)

        assert result['paRequestId'] == 'pa-1'
        assert result['status'] == 'approved'
        assert result['storedStatus'] == 'submitted'
        assert result['changed'] is False
        assert len(result['history']) == 2
