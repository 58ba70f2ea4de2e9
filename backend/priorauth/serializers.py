"""
Response serializers: PriorAuthRecord / 结果对象 → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
输入解析和校验在 priorauth/validation.py。
"""


def _iso(value):
    return value.isoformat() if value is not None else None


def serialize_pa_request(record):
    """完整记录，camelCase 键，history 按发生顺序。"""
    return {
        'id': record.id,
        'tenantId': record.tenant_id,
        'patientId': record.patient_id,
        'prescriptionId': record.prescription_id,
        'medicationName': record.medication_name,
        'medicationStrength': record.medication_strength,
        'medicationQuantity': record.medication_quantity,
        'sig': record.sig,
        'payer': record.payer,
        'memberId': record.member_id,
        'externalReferenceId': record.external_reference_id,
        'prescriberId': record.prescriber_id,
        'prescriberNpi': record.prescriber_npi,
        'prescriberName': record.prescriber_name,
        'urgency': record.urgency,
        'status': record.status,
        'statusReason': record.status_reason,
        'requestPayload': record.request_payload,
        'responsePayload': record.response_payload,
        'attachments': [a.to_dict() for a in record.attachments],
        'history': [entry.to_dict() for entry in record.history],
        'createdAt': _iso(record.created_at),
        'updatedAt': _iso(record.updated_at),
    }


def serialize_pa_created(record):
    return {
        'message': 'Prior authorization request created successfully',
        'data': serialize_pa_request(record),
    }


def serialize_pa_updated(record):
    return {
        'message': 'Prior authorization request updated successfully',
        'data': serialize_pa_request(record),
    }


def serialize_pa_list(records, limit, offset):
    return {
        'data': [serialize_pa_request(r) for r in records],
        'count': len(records),
        'limit': limit,
        'offset': offset,
    }


def serialize_submit_result(record, result):
    return {
        'message': 'Prior authorization submitted successfully',
        'id': record.id,
        'status': record.status,
        'statusReason': record.status_reason,
        'externalReferenceId': record.external_reference_id,
        'estimatedDecisionTime': result.estimated_decision_time,
    }


def serialize_status_check(result):
    """payer 当前视图 + 对账后的记录 history。"""
    return {
        'paRequestId': result.record.id,
        'status': result.status,
        'statusReason': result.status_reason,
        'externalReferenceId': result.external_reference_id,
        'lastUpdated': result.last_updated,
        'changed': result.changed,
        'storedStatus': result.record.status,
        'history': [entry.to_dict() for entry in result.record.history],
    }
