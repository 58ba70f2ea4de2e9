"""
PriorAuthRecord 等 dataclass: 业务层唯一认识的标准格式。

Repository 负责 ORM ↔ dataclass 的映射；services.py 只消费这些结构，
永远不直接碰 ORM 对象。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .ledger import HistoryEntry, PENDING


@dataclass(frozen=True)
class Attachment:
    file_name: str
    file_url: str
    file_type: str = ""
    uploaded_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            'fileName': self.file_name,
            'fileUrl': self.file_url,
            'fileType': self.file_type,
            'uploadedAt': self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            file_name=data.get('fileName', ''),
            file_url=data.get('fileUrl', ''),
            file_type=data.get('fileType', ''),
            uploaded_at=data.get('uploadedAt', ''),
        )


@dataclass
class PrescriptionData:
    medication_name: str
    strength: str = ""
    quantity: int | None = None
    sig: str = ""


@dataclass
class CreatePAInput:
    """create() 校验通过后的输入。"""

    patient_id: str
    payer: str
    member_id: str
    medication_name: str = ""
    medication_strength: str = ""
    medication_quantity: int | None = None
    sig: str = ""
    prescription_id: str | None = None
    prescriber_id: str = ""
    prescriber_npi: str = ""
    prescriber_name: str = ""
    urgency: str = "routine"


@dataclass
class PriorAuthRecord:
    """
    一条 PA request 的完整快照。

    history 是不可变 tuple；修改只能经由 repository.apply() 追加。
    request_payload / response_payload 由 payer adapter 定义，原样保存，不解析。
    """

    id: str
    tenant_id: str
    patient_id: str
    payer: str
    member_id: str
    medication_name: str = ""
    medication_strength: str = ""
    medication_quantity: int | None = None
    sig: str = ""
    prescription_id: str | None = None
    prescriber_id: str = ""
    prescriber_npi: str = ""
    prescriber_name: str = ""
    urgency: str = "routine"
    status: str = PENDING
    status_reason: str = ""
    external_reference_id: str | None = None
    request_payload: Any = None
    response_payload: Any = None
    attachments: tuple[Attachment, ...] = ()
    history: tuple[HistoryEntry, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class StatusCheckResult:
    """check_status() 的返回：adapter 的当前视图 + 是否写入了记录。"""

    status: str
    status_reason: str
    external_reference_id: str | None
    last_updated: str
    changed: bool
    record: PriorAuthRecord = field(repr=False)
