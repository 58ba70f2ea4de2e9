"""
具体 Payer Adapter 实现。

新增 payer：在此文件添加一个类，然后在 factory.py 注册即可。

已注册 payer：
  mock   : MockPayerAdapter              (默认 / fallback，不走网络)
  bcbs   : BlueCrossBlueShieldAdapter    (REST, PascalCase 字段)
  aetna  : AetnaAdapter                  (REST, 嵌套 snake_case 字段)
"""

import hashlib
import random
import uuid
from typing import Any

from django.utils import timezone

from .. import ledger
from .base import BasePayerAdapter, HttpPayerAdapter, PayerResponseError
from .types import NormalizedPARequest, StatusResult, SubmitResult


# ── MockPayerAdapter ───────────────────────────────────────────────────────
#
# 没有配置真实集成的 payer 全部落到这里，保证 resolve 永不失败。
#
# submit():       按随机数决定结果（rng 可注入，测试里固定）
#   [0.00, 0.25)  approved     自动批准
#   [0.25, 0.75)  submitted    进入人工审核
#   [0.75, 0.90)  needs_info   response_payload.requiredDocuments
#   [0.90, 1.00)  denied       response_payload.denialReason
#
# check_status(): 对 request_id 做 hash，同一个 id 永远返回同一个结果。

class MockPayerAdapter(BasePayerAdapter):
    slug = "mock"

    REQUIRED_DOCUMENTS = [
        "Chart notes from the last 6 months",
        "Documentation of failed first-line therapy",
    ]
    DENIAL_REASON = "Step therapy requirements not met"

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    @staticmethod
    def _reference() -> str:
        return f"MOCK-PA-{uuid.uuid4().hex[:10].upper()}"

    def submit(self, request: NormalizedPARequest) -> SubmitResult:
        request_payload = {
            "requestId": request.id,
            "payer": request.payer,
            "memberId": request.member_id,
            "medication": {
                "name": request.medication_name,
                "strength": request.medication_strength,
                "quantity": request.medication_quantity,
                "sig": request.sig,
            },
            "prescriber": {
                "npi": request.prescriber_npi,
                "name": request.prescriber_name,
            },
            "urgency": request.urgency,
        }
        reference = self._reference()
        roll = self._rng.random()

        if roll < 0.25:
            status = ledger.APPROVED
            reason = "PA auto-approved by payer"
            response = {"decision": "APPROVED", "authorizationNumber": reference}
            estimate = "Immediate"
        elif roll < 0.75:
            status = ledger.SUBMITTED
            reason = "PA submitted successfully, pending payer review"
            response = {"decision": "PENDED", "queue": "clinical_review"}
            estimate = "24-48 hours"
        elif roll < 0.90:
            status = ledger.NEEDS_INFO
            reason = "Payer requires additional documentation"
            response = {"decision": "MORE_INFO", "requiredDocuments": list(self.REQUIRED_DOCUMENTS)}
            estimate = "Pending additional information"
        else:
            status = ledger.DENIED
            reason = f"PA denied: {self.DENIAL_REASON}"
            response = {"decision": "DENIED", "denialReason": self.DENIAL_REASON}
            estimate = "Immediate"

        response["referenceId"] = reference
        return SubmitResult(
            status=status,
            status_reason=reason,
            external_reference_id=reference,
            request_payload=request_payload,
            response_payload=response,
            estimated_decision_time=estimate,
        )

    def check_status(self, request_id: str, external_reference_id: str | None) -> StatusResult:
        bucket = int(hashlib.md5(str(request_id).encode()).hexdigest(), 16) % 100

        if bucket < 40:
            status, reason = ledger.SUBMITTED, "Under review by payer"
        elif bucket < 70:
            status, reason = ledger.APPROVED, "PA approved by payer"
        elif bucket < 85:
            status, reason = ledger.NEEDS_INFO, "Payer requires additional documentation"
        else:
            status, reason = ledger.DENIED, f"PA denied: {self.DENIAL_REASON}"

        return StatusResult(
            status=status,
            status_reason=reason,
            external_reference_id=external_reference_id,
            last_updated=timezone.now().isoformat(),
            response_payload={"bucket": bucket, "status": status},
        )


# ── BlueCrossBlueShieldAdapter ─────────────────────────────────────────────
#
# 提交格式示例（JSON）:
# {
#   "MemberID": "XYZ123456789",
#   "RequestType": "Pharmacy",
#   "Priority": "Standard" | "Expedited",
#   "Drug":       { "Name": "Dupixent", "Strength": "300mg", "Quantity": 2, "Directions": "..." },
#   "Prescriber": { "NPI": "1234567890", "Name": "Dr. Smith" },
#   "ClientReference": "<our PA id>"
# }
# 响应：{ "TrackingNumber": "BC-123", "Decision": "PENDED", "DecisionReason": "...",
#         "TurnaroundTime": "72 hours", "LastModified": "..." }

class BlueCrossBlueShieldAdapter(HttpPayerAdapter):
    slug = "bcbs"
    submit_path = "/v1/pharmacy/prior-authorizations"
    status_path = "/v1/pharmacy/prior-authorizations/{reference}"

    STATUS_MAP = {
        "PENDED": ledger.SUBMITTED,
        "IN_REVIEW": ledger.SUBMITTED,
        "APPROVED": ledger.APPROVED,
        "DENIED": ledger.DENIED,
        "MORE_INFO": ledger.NEEDS_INFO,
        "REJECTED": ledger.ERROR,
    }

    def build_submit_payload(self, request):
        return {
            "MemberID": request.member_id,
            "RequestType": "Pharmacy",
            "Priority": "Standard" if request.urgency == "routine" else "Expedited",
            "Drug": {
                "Name": request.medication_name,
                "Strength": request.medication_strength,
                "Quantity": request.medication_quantity,
                "Directions": request.sig,
            },
            "Prescriber": {
                "NPI": request.prescriber_npi,
                "Name": request.prescriber_name,
            },
            "ClientReference": request.id,
        }

    def parse_submit_response(self, body):
        tracking = body.get("TrackingNumber")
        if not tracking:
            raise PayerResponseError("bcbs: submit response has no TrackingNumber")
        return SubmitResult(
            status=self.map_status(body.get("Decision")),
            status_reason=body.get("DecisionReason") or "",
            external_reference_id=tracking,
            estimated_decision_time=body.get("TurnaroundTime"),
        )

    def parse_status_response(self, body, external_reference_id):
        return StatusResult(
            status=self.map_status(body.get("Decision")),
            status_reason=body.get("DecisionReason") or "",
            external_reference_id=body.get("TrackingNumber") or external_reference_id,
            last_updated=body.get("LastModified") or timezone.now().isoformat(),
        )


# ── AetnaAdapter ───────────────────────────────────────────────────────────
#
# 提交格式示例（JSON）:
# {
#   "member":     { "id": "W123456789" },
#   "medication": { "drug_name": "Humira", "strength": "40mg", "quantity": 2, "sig": "..." },
#   "prescriber": { "npi": "1234567890", "name": "Dr. Lee" },
#   "urgent": false,
#   "external_id": "<our PA id>"
# }
# 响应：{ "case": { "case_id": "AET-9", "state": "approved", "note": "...",
#                   "updated_at": "...", "sla": "2 business days" } }

class AetnaAdapter(HttpPayerAdapter):
    slug = "aetna"
    submit_path = "/epa/cases"
    status_path = "/epa/cases/{reference}"

    STATUS_MAP = {
        "RECEIVED": ledger.SUBMITTED,
        "IN_PROGRESS": ledger.SUBMITTED,
        "APPROVED": ledger.APPROVED,
        "DENIED": ledger.DENIED,
        "PENDING_INFORMATION": ledger.NEEDS_INFO,
        "CANCELLED": ledger.ERROR,
    }

    def build_submit_payload(self, request):
        return {
            "member": {"id": request.member_id},
            "medication": {
                "drug_name": request.medication_name,
                "strength": request.medication_strength,
                "quantity": request.medication_quantity,
                "sig": request.sig,
            },
            "prescriber": {"npi": request.prescriber_npi, "name": request.prescriber_name},
            "urgent": request.urgency != "routine",
            "external_id": request.id,
        }

    @staticmethod
    def _case(body: dict[str, Any]) -> dict[str, Any]:
        case = body.get("case")
        if not isinstance(case, dict):
            raise PayerResponseError("aetna: response has no case object")
        return case

    def parse_submit_response(self, body):
        case = self._case(body)
        if not case.get("case_id"):
            raise PayerResponseError("aetna: submit response has no case_id")
        return SubmitResult(
            status=self.map_status(case.get("state")),
            status_reason=case.get("note") or "",
            external_reference_id=case["case_id"],
            estimated_decision_time=case.get("sla"),
        )

    def parse_status_response(self, body, external_reference_id):
        case = self._case(body)
        return StatusResult(
            status=self.map_status(case.get("state")),
            status_reason=case.get("note") or "",
            external_reference_id=case.get("case_id") or external_reference_id,
            last_updated=case.get("updated_at") or timezone.now().isoformat(),
        )
