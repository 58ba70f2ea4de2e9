"""
输入解析 + 校验：HTTP body (dict, camelCase) → CreatePAInput / update fields。

先把所有字段问题收集起来，最后一次性抛
ValidationError(detail={"errors": [{"field": ..., "message": ...}]})。
"""

import re
from typing import Any

from django.utils import timezone

from . import ledger
from .exceptions import ValidationError
from .types import Attachment, CreatePAInput

NPI_RE = re.compile(r"^\d{10}$")

URGENCIES = ("routine", "urgent", "stat")
UPDATE_FIELDS = ("status", "statusReason", "attachments")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _raise_if_errors(errors: list[dict[str, str]]) -> None:
    if errors:
        raise ValidationError(
            message="Validation error",
            code="VALIDATION_ERROR",
            detail={"errors": errors},
        )


def _parse_quantity(raw: Any, errors: list, field: str) -> int | None:
    if raw is None or raw == "":
        return None
    # bool 是 int 的子类，单独排除
    if isinstance(raw, bool):
        errors.append({"field": field, "message": "Quantity must be a positive integer."})
        return None
    try:
        quantity = int(raw)
    except (TypeError, ValueError):
        errors.append({"field": field, "message": "Quantity must be a positive integer."})
        return None
    if quantity <= 0 or str(quantity) != str(raw).strip():
        errors.append({"field": field, "message": "Quantity must be a positive integer."})
        return None
    return quantity


def parse_create_input(data: Any) -> CreatePAInput:
    """
    校验 create 请求体。

    必填：patientId / payer / memberId（非空字符串）。
    medicationName 在没有 prescriptionId 时必填；有 prescriptionId 时
    可由处方补全，最终检查留给 service 层。
    """
    if not isinstance(data, dict):
        raise ValidationError(message="Validation error", detail={"errors": [
            {"field": "body", "message": "Request body must be a JSON object."},
        ]})

    errors = []

    patient_id = _str(data, "patientId")
    payer = _str(data, "payer")
    member_id = _str(data, "memberId")
    medication_name = _str(data, "medicationName")
    prescription_id = _str(data, "prescriptionId") or None
    prescriber_npi = _str(data, "prescriberNpi")
    urgency = _str(data, "urgency") or "routine"

    if not patient_id:
        errors.append({"field": "patientId", "message": "patientId is required."})
    if not payer:
        errors.append({"field": "payer", "message": "payer is required."})
    if not member_id:
        errors.append({"field": "memberId", "message": "memberId is required."})
    if not medication_name and not prescription_id:
        errors.append({
            "field": "medicationName",
            "message": "medicationName is required when no prescriptionId is given.",
        })
    if prescriber_npi and not NPI_RE.match(prescriber_npi):
        errors.append({"field": "prescriberNpi", "message": "NPI must be exactly 10 digits."})
    if urgency not in URGENCIES:
        errors.append({"field": "urgency", "message": f"urgency must be one of {', '.join(URGENCIES)}."})

    quantity = _parse_quantity(data.get("medicationQuantity"), errors, "medicationQuantity")

    _raise_if_errors(errors)

    return CreatePAInput(
        patient_id=patient_id,
        payer=payer,
        member_id=member_id,
        medication_name=medication_name,
        medication_strength=_str(data, "medicationStrength"),
        medication_quantity=quantity,
        sig=_str(data, "sig"),
        prescription_id=prescription_id,
        prescriber_id=_str(data, "prescriberId"),
        prescriber_npi=prescriber_npi,
        prescriber_name=_str(data, "prescriberName"),
        urgency=urgency,
    )


def _parse_attachments(raw: Any, errors: list) -> tuple[Attachment, ...]:
    if not isinstance(raw, list):
        errors.append({"field": "attachments", "message": "attachments must be a list."})
        return ()

    attachments = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append({"field": f"attachments[{i}]", "message": "Attachment must be an object."})
            continue
        file_name = _str(item, "fileName")
        file_url = _str(item, "fileUrl")
        if not file_name:
            errors.append({"field": f"attachments[{i}].fileName", "message": "fileName is required."})
        if not file_url:
            errors.append({"field": f"attachments[{i}].fileUrl", "message": "fileUrl is required."})
        attachments.append(Attachment(
            file_name=file_name,
            file_url=file_url,
            file_type=_str(item, "fileType"),
            uploaded_at=_str(item, "uploadedAt") or timezone.now().isoformat(),
        ))
    return tuple(attachments)


def parse_update_input(data: Any) -> dict[str, Any]:
    """
    校验 PATCH 请求体，返回 {"status"?, "status_reason"?, "attachments"?}。

    未识别的字段直接忽略；识别字段全部缺失时抛
    ValidationError("No valid fields to update")。
    """
    if not isinstance(data, dict):
        data = {}

    errors = []
    fields: dict[str, Any] = {}

    if "status" in data:
        status = data.get("status")
        if status not in ledger.MANUAL_STATUSES:
            errors.append({
                "field": "status",
                "message": f"status must be one of {', '.join(ledger.MANUAL_STATUSES)}.",
            })
        else:
            fields["status"] = status

    if "statusReason" in data:
        reason = data.get("statusReason")
        if reason is not None and not isinstance(reason, str):
            errors.append({"field": "statusReason", "message": "statusReason must be a string."})
        else:
            fields["status_reason"] = reason

    if "attachments" in data:
        fields["attachments"] = _parse_attachments(data.get("attachments"), errors)

    _raise_if_errors(errors)

    if not fields:
        raise ValidationError(
            message="No valid fields to update",
            code="NO_VALID_FIELDS",
            detail={"allowedFields": list(UPDATE_FIELDS)},
        )
    return fields


def parse_list_params(params: Any) -> dict[str, Any]:
    """GET 列表的过滤 + 分页参数。"""
    errors = []

    def _int_param(name: str, default: int) -> int:
        raw = params.get(name)
        if raw in (None, ""):
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            errors.append({"field": name, "message": f"{name} must be an integer."})
            return default
        if value < 0:
            errors.append({"field": name, "message": f"{name} must not be negative."})
            return default
        return value

    limit = min(_int_param("limit", DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    offset = _int_param("offset", 0)

    status = params.get("status") or None
    if status is not None and status not in ledger.ALL_STATUSES:
        errors.append({"field": "status", "message": f"Unknown status {status!r}."})

    _raise_if_errors(errors)

    return {
        "patient_id": params.get("patientId") or None,
        "status": status,
        "payer": params.get("payer") or None,
        "limit": limit,
        "offset": offset,
    }
