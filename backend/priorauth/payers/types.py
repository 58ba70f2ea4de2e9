"""
Payer adapter 层的标准输入 / 输出结构。

Controller 只认识这三个 dataclass，不知道背后是哪家 payer、走什么协议。
request_payload / response_payload 由 adapter 自己决定内容，controller 原样落库。
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class NormalizedPARequest:
    id: str
    tenant_id: str
    patient_id: str
    payer: str
    member_id: str
    medication_name: str
    medication_strength: str = ""
    medication_quantity: int | None = None
    sig: str = ""
    prescription_id: str | None = None
    prescriber_id: str = ""
    prescriber_npi: str = ""
    prescriber_name: str = ""
    urgency: str = "routine"
    attachments: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SubmitResult:
    status: str
    status_reason: str
    external_reference_id: str | None
    request_payload: Any = None
    response_payload: Any = None
    estimated_decision_time: str | None = None


@dataclass
class StatusResult:
    status: str
    status_reason: str
    external_reference_id: str | None
    last_updated: str
    response_payload: Any = None
