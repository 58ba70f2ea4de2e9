"""
PA request 持久化层。

BasePriorAuthRepository 定义 controller 依赖的全部操作，全部按 tenant_id 过滤。
DjangoPriorAuthRepository 是生产实现；测试可以换成内存版本。

写操作只有 apply() 一个入口：字段更新 + history 追加在同一行锁内完成，
expected_status 不匹配时不写入并返回 None（用于 submit 的原子前置条件）。
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from django.db import transaction

from . import ledger
from .exceptions import NotFoundError
from .models import PriorAuthRequest
from .types import Attachment, PriorAuthRecord

logger = logging.getLogger(__name__)

# apply() 允许写入的字段
WRITABLE_FIELDS = frozenset({
    'status',
    'status_reason',
    'request_payload',
    'response_payload',
    'external_reference_id',
    'attachments',
})


def pa_not_found(pa_id) -> NotFoundError:
    return NotFoundError(
        message='Prior authorization request not found',
        code='PA_REQUEST_NOT_FOUND',
        detail={'id': str(pa_id)},
    )


class BasePriorAuthRepository(ABC):

    @abstractmethod
    def get(self, tenant_id: str, pa_id) -> PriorAuthRecord | None:
        """按 id 读取；不存在或属于其他 tenant 时返回 None。"""

    @abstractmethod
    def create(self, record: PriorAuthRecord) -> PriorAuthRecord:
        """插入新记录，返回落库后的快照（含 created_at / updated_at）。"""

    @abstractmethod
    def apply(
        self,
        tenant_id: str,
        pa_id,
        fields: dict[str, Any],
        entry: ledger.HistoryEntry,
        expected_status: str | None = None,
    ) -> PriorAuthRecord | None:
        """
        原子地写入 fields 并追加一条 history。

        Raises:
            NotFoundError: 记录不存在
        Returns:
            更新后的快照；expected_status 给定且与当前状态不符时返回 None，不写入。
        """

    @abstractmethod
    def list_for_tenant(
        self,
        tenant_id: str,
        patient_id: str | None = None,
        status: str | None = None,
        payer: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PriorAuthRecord]:
        """按创建时间倒序分页。payer 为不区分大小写的包含匹配。"""

    @abstractmethod
    def ids_with_status(self, statuses, limit: int) -> list[tuple[str, str]]:
        """跨 tenant 返回 (tenant_id, id)，仅供后台 poller 使用。"""


def _to_record(row: PriorAuthRequest) -> PriorAuthRecord:
    return PriorAuthRecord(
        id=str(row.id),
        tenant_id=row.tenant_id,
        patient_id=row.patient_id,
        payer=row.payer,
        member_id=row.member_id,
        medication_name=row.medication_name,
        medication_strength=row.medication_strength,
        medication_quantity=row.medication_quantity,
        sig=row.sig,
        prescription_id=row.prescription_id,
        prescriber_id=row.prescriber_id,
        prescriber_npi=row.prescriber_npi,
        prescriber_name=row.prescriber_name,
        urgency=row.urgency,
        status=row.status,
        status_reason=row.status_reason,
        external_reference_id=row.external_reference_id,
        request_payload=row.request_payload,
        response_payload=row.response_payload,
        attachments=tuple(Attachment.from_dict(a) for a in (row.attachments or [])),
        history=ledger.load_history(row.history),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _as_uuid(pa_id) -> uuid.UUID | None:
    if isinstance(pa_id, uuid.UUID):
        return pa_id
    try:
        return uuid.UUID(str(pa_id))
    except ValueError:
        return None


class DjangoPriorAuthRepository(BasePriorAuthRepository):

    def _scoped(self, tenant_id: str):
        return PriorAuthRequest.objects.filter(tenant_id=tenant_id)

    def get(self, tenant_id, pa_id):
        key = _as_uuid(pa_id)
        if key is None:
            return None
        row = self._scoped(tenant_id).filter(id=key).first()
        return _to_record(row) if row is not None else None

    def create(self, record):
        row = PriorAuthRequest.objects.create(
            id=_as_uuid(record.id) or uuid.uuid4(),
            tenant_id=record.tenant_id,
            patient_id=record.patient_id,
            prescription_id=record.prescription_id,
            medication_name=record.medication_name,
            medication_strength=record.medication_strength,
            medication_quantity=record.medication_quantity,
            sig=record.sig,
            payer=record.payer,
            member_id=record.member_id,
            prescriber_id=record.prescriber_id,
            prescriber_npi=record.prescriber_npi,
            prescriber_name=record.prescriber_name,
            urgency=record.urgency,
            status=record.status,
            status_reason=record.status_reason,
            attachments=[a.to_dict() for a in record.attachments],
            history=ledger.dump_history(record.history),
        )
        return _to_record(row)

    def apply(self, tenant_id, pa_id, fields, entry, expected_status=None):
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable: {sorted(unknown)}")

        key = _as_uuid(pa_id)
        if key is None:
            raise pa_not_found(pa_id)

        with transaction.atomic():
            row = self._scoped(tenant_id).select_for_update().filter(id=key).first()
            if row is None:
                raise pa_not_found(pa_id)

            if expected_status is not None and row.status != expected_status:
                logger.info(
                    "PA %s: conditional write skipped, expected status=%s but found %s",
                    pa_id, expected_status, row.status,
                )
                return None

            for name, value in fields.items():
                if (
                    name == 'external_reference_id'
                    and row.external_reference_id
                    and value != row.external_reference_id
                ):
                    raise ValueError(f"PA {pa_id}: externalReferenceId is already assigned")
                if name == 'attachments':
                    value = [a.to_dict() for a in value]
                setattr(row, name, value)

            history = ledger.append_entry(ledger.load_history(row.history), entry)
            row.history = ledger.dump_history(history)
            row.save(update_fields=[*fields.keys(), 'history', 'updated_at'])

        return _to_record(row)

    def list_for_tenant(self, tenant_id, patient_id=None, status=None, payer=None, limit=50, offset=0):
        qs = self._scoped(tenant_id)
        if patient_id:
            qs = qs.filter(patient_id=patient_id)
        if status:
            qs = qs.filter(status=status)
        if payer:
            qs = qs.filter(payer__icontains=payer)
        rows = qs.order_by('-created_at')[offset:offset + limit]
        return [_to_record(row) for row in rows]

    def ids_with_status(self, statuses, limit):
        rows = (
            PriorAuthRequest.objects
            .filter(status__in=list(statuses))
            .order_by('updated_at')
            .values_list('tenant_id', 'id')[:limit]
        )
        return [(tenant_id, str(pa_id)) for tenant_id, pa_id in rows]
