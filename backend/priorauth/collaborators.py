"""
外部协作者的边界接口：patient lookup / prescription lookup / audit sink。

患者、处方记录不归本模块所有，这里只按接口读取。默认实现直接查本库的
Patient / Prescription / AuditLog 表，测试里可以整体替换。
"""

import logging
import uuid
from abc import ABC, abstractmethod

from django.db import DatabaseError

from .models import AuditLog, Patient, Prescription
from .types import PrescriptionData

logger = logging.getLogger(__name__)


def _as_uuid(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class PatientDirectory(ABC):

    @abstractmethod
    def exists(self, tenant_id: str, patient_id: str) -> bool:
        ...


class PrescriptionDirectory(ABC):

    @abstractmethod
    def get(self, tenant_id: str, prescription_id: str) -> PrescriptionData | None:
        ...


class AuditSink(ABC):

    @abstractmethod
    def record(self, tenant_id: str, actor_id: str, action: str, resource_type: str, resource_id: str) -> None:
        """Fire-and-forget：调用方不关心结果，也不处理失败。"""


class DjangoPatientDirectory(PatientDirectory):

    def exists(self, tenant_id, patient_id):
        key = _as_uuid(patient_id)
        if key is None:
            return False
        return Patient.objects.filter(tenant_id=tenant_id, id=key).exists()


class DjangoPrescriptionDirectory(PrescriptionDirectory):

    def get(self, tenant_id, prescription_id):
        key = _as_uuid(prescription_id)
        if key is None:
            return None
        rx = Prescription.objects.filter(tenant_id=tenant_id, id=key).first()
        if rx is None:
            return None
        return PrescriptionData(
            medication_name=rx.medication_name,
            strength=rx.strength,
            quantity=rx.quantity,
            sig=rx.sig,
        )


class DjangoAuditSink(AuditSink):

    def record(self, tenant_id, actor_id, action, resource_type, resource_id):
        try:
            AuditLog.objects.create(
                tenant_id=tenant_id,
                actor_id=actor_id or '',
                action=action,
                resource_type=resource_type,
                resource_id=str(resource_id),
            )
        except DatabaseError:
            # 审计写入失败不影响业务操作，只留日志
            logger.exception(
                "Audit write failed: tenant=%s action=%s resource=%s/%s",
                tenant_id, action, resource_type, resource_id,
            )
