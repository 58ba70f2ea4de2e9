"""
PA request 生命周期：create → submit → check_status → (update)。

PriorAuthLifecycle 是唯一修改 PA request 的入口：
  - 状态机前置条件在写入前检查，失败直接抛，不产生任何副作用
  - 所有写入走 repository.apply()，字段 + history 追加是一个原子单元
  - payer adapter 的任何异常都转成 IntegrationError，记录保持调用前状态
  - 每个实际发生写入的操作发一条审计事件

依赖（repository / 协作者 / adapter resolver）全部可注入，默认用 Django 实现。
View 层和 Celery task 只需 raise，exception_handler 统一兜底。
"""

import logging
import uuid
from dataclasses import replace

from . import ledger
from .collaborators import DjangoAuditSink, DjangoPatientDirectory, DjangoPrescriptionDirectory
from .exceptions import IntegrationError, InvalidStateTransition, NotFoundError, ValidationError
from .ledger import HistoryEntry
from .payers import NormalizedPARequest, get_payer_adapter
from .repository import DjangoPriorAuthRepository, pa_not_found
from .types import CreatePAInput, PriorAuthRecord, StatusCheckResult

logger = logging.getLogger(__name__)

RESOURCE_TYPE = 'prior_auth_requests'

AUDIT_CREATE = 'prior_auth_create'
AUDIT_SUBMIT = 'prior_auth_submit'
AUDIT_STATUS_CHECK = 'prior_auth_status_check'
AUDIT_UPDATE = 'prior_auth_update'


def submit_blocked(current_status):
    return InvalidStateTransition(
        message=(
            f"Cannot submit PA request. Current status is '{current_status}'; "
            f"only '{ledger.PENDING}' requests can be submitted."
        ),
        current_status=current_status,
        code='PA_NOT_PENDING',
    )


class PriorAuthLifecycle:

    def __init__(self, repository=None, patients=None, prescriptions=None, audit=None, adapter_resolver=None):
        self.repository = repository or DjangoPriorAuthRepository()
        self.patients = patients or DjangoPatientDirectory()
        self.prescriptions = prescriptions or DjangoPrescriptionDirectory()
        self.audit = audit or DjangoAuditSink()
        self._resolve_adapter = adapter_resolver or get_payer_adapter

    # ── reads ──────────────────────────────────────────────────────────────

    def get(self, tenant_id, pa_id) -> PriorAuthRecord:
        record = self.repository.get(tenant_id, pa_id)
        if record is None:
            raise pa_not_found(pa_id)
        return record

    def list(self, tenant_id, patient_id=None, status=None, payer=None, limit=50, offset=0):
        return self.repository.list_for_tenant(
            tenant_id,
            patient_id=patient_id,
            status=status,
            payer=payer,
            limit=limit,
            offset=offset,
        )

    # ── create ─────────────────────────────────────────────────────────────

    def create(self, tenant_id, actor_id, data: CreatePAInput) -> PriorAuthRecord:
        """
        新建 PA request，status = pending，history 只有一条 created。

        Raises:
            NotFoundError:   patient / prescription 不存在（或属于其他 tenant）
            ValidationError: 没有 medicationName 且处方也无法补全
        """
        if not self.patients.exists(tenant_id, data.patient_id):
            raise NotFoundError(
                message='Patient not found',
                code='PATIENT_NOT_FOUND',
                detail={'patientId': data.patient_id},
            )

        if data.prescription_id:
            rx = self.prescriptions.get(tenant_id, data.prescription_id)
            if rx is None:
                raise NotFoundError(
                    message='Prescription not found',
                    code='PRESCRIPTION_NOT_FOUND',
                    detail={'prescriptionId': data.prescription_id},
                )
            # 请求里显式给的字段优先，缺的用处方补全
            data = replace(
                data,
                medication_name=data.medication_name or rx.medication_name,
                medication_strength=data.medication_strength or rx.strength,
                medication_quantity=data.medication_quantity or rx.quantity,
                sig=data.sig or rx.sig,
            )

        if not data.medication_name:
            raise ValidationError(
                message='Validation error',
                detail={'errors': [{'field': 'medicationName', 'message': 'medicationName is required.'}]},
            )

        entry = HistoryEntry.now(
            ledger.EVENT_CREATED,
            ledger.PENDING,
            actor_id=actor_id,
            notes='PA request created',
        )
        record = self.repository.create(PriorAuthRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            patient_id=data.patient_id,
            payer=data.payer,
            member_id=data.member_id,
            medication_name=data.medication_name,
            medication_strength=data.medication_strength,
            medication_quantity=data.medication_quantity,
            sig=data.sig,
            prescription_id=data.prescription_id,
            prescriber_id=data.prescriber_id,
            prescriber_npi=data.prescriber_npi,
            prescriber_name=data.prescriber_name,
            urgency=data.urgency,
            status=ledger.PENDING,
            history=(entry,),
        ))

        logger.info("PA %s created for patient %s (tenant=%s, payer=%r)",
                    record.id, record.patient_id, tenant_id, record.payer)
        self._audit(tenant_id, actor_id, AUDIT_CREATE, record.id)
        return record

    # ── submit ─────────────────────────────────────────────────────────────

    def submit(self, tenant_id, actor_id, pa_id):
        """
        把 pending 的 PA request 提交给 payer。

        Returns:
            (record, SubmitResult)
        Raises:
            NotFoundError / InvalidStateTransition / IntegrationError
        """
        record = self.get(tenant_id, pa_id)
        if record.status != ledger.PENDING:
            raise submit_blocked(record.status)

        adapter = self._resolve_adapter(record.payer)
        try:
            result = adapter.submit(self._normalize(record))
        except Exception as exc:
            logger.warning("PA %s: submit via %s failed: %s", record.id, adapter.slug, exc)
            raise IntegrationError(
                message='Failed to submit prior authorization to payer',
                detail={'id': record.id, 'payer': record.payer, 'reason': str(exc)},
            ) from exc

        if result.status not in ledger.SUBMIT_RESULT_STATUSES:
            logger.warning("PA %s: adapter %s returned invalid status %r", record.id, adapter.slug, result.status)
            raise IntegrationError(
                message='Payer returned an unrecognized status',
                detail={'id': record.id, 'status': result.status},
            )

        entry = HistoryEntry.now(
            ledger.EVENT_SUBMITTED,
            result.status,
            actor_id=actor_id,
            notes=result.status_reason,
            external_reference_id=result.external_reference_id,
        )
        # 条件写入：只有库里仍然是 pending 才生效，防止并发重复提交
        updated = self.repository.apply(
            tenant_id,
            record.id,
            {
                'status': result.status,
                'status_reason': result.status_reason or '',
                'request_payload': result.request_payload,
                'response_payload': result.response_payload,
                'external_reference_id': result.external_reference_id,
            },
            entry,
            expected_status=ledger.PENDING,
        )
        if updated is None:
            current = self.get(tenant_id, record.id)
            raise submit_blocked(current.status)

        logger.info("PA %s submitted via %s: status=%s ref=%s",
                    record.id, adapter.slug, result.status, result.external_reference_id)
        self._audit(tenant_id, actor_id, AUDIT_SUBMIT, record.id)
        return updated, result

    # ── check_status ───────────────────────────────────────────────────────

    def check_status(self, tenant_id, actor_id, pa_id) -> StatusCheckResult:
        """
        向 payer 查询当前决定并对账。

        状态没变 → 只读，不写库、不追加 history。
        状态变了且是合法的对账迁移（submitted / needs_info → 其他）→ 写入 + 一条 status_check。
        无论是否写入，都返回 adapter 当前的视图。
        还没有 externalReferenceId 的记录 payer 侧查不到，直接返回库里的状态。
        """
        record = self.get(tenant_id, pa_id)
        if not record.external_reference_id:
            return StatusCheckResult(
                status=record.status,
                status_reason=record.status_reason,
                external_reference_id=None,
                last_updated=record.updated_at.isoformat() if record.updated_at else '',
                changed=False,
                record=record,
            )

        adapter = self._resolve_adapter(record.payer)
        try:
            result = adapter.check_status(record.id, record.external_reference_id)
        except Exception as exc:
            logger.warning("PA %s: status check via %s failed: %s", record.id, adapter.slug, exc)
            raise IntegrationError(
                message='Failed to check prior authorization status with payer',
                detail={'id': record.id, 'payer': record.payer, 'reason': str(exc)},
            ) from exc

        changed = False
        previous = record.status
        if ledger.can_reconcile(previous, result.status):
            entry = HistoryEntry.now(
                ledger.EVENT_STATUS_CHECK,
                result.status,
                actor_id=actor_id,
                notes=result.status_reason,
            )
            # 条件写入：payer 调用期间记录被人工改过就放弃本次对账
            updated = self.repository.apply(
                tenant_id,
                record.id,
                {
                    'status': result.status,
                    'status_reason': result.status_reason or '',
                    'response_payload': result.response_payload,
                },
                entry,
                expected_status=previous,
            )
            if updated is None:
                record = self.get(tenant_id, record.id)
                logger.info("PA %s changed to %s during status check; reconciliation skipped",
                            record.id, record.status)
            else:
                record = updated
                changed = True
                logger.info("PA %s reconciled: %s -> %s", record.id, previous, result.status)
                self._audit(tenant_id, actor_id, AUDIT_STATUS_CHECK, record.id)
        elif result.status != previous:
            logger.info(
                "PA %s: payer reports %s while stored status is %s; not a reconcilable transition",
                record.id, result.status, record.status,
            )

        return StatusCheckResult(
            status=result.status,
            status_reason=result.status_reason,
            external_reference_id=result.external_reference_id or record.external_reference_id,
            last_updated=result.last_updated,
            changed=changed,
            record=record,
        )

    # ── update ─────────────────────────────────────────────────────────────

    def update(self, tenant_id, actor_id, pa_id, fields) -> PriorAuthRecord:
        """
        人工更新 status / status_reason / attachments（例如记录 payer 电话或传真的决定）。

        fields 由 validation.parse_update_input() 产出；空 dict → ValidationError。
        status 只能是 approved / denied / needs_info，其他值 → ValidationError，不写入。
        statusReason 为 None 时 history notes 用默认文案，空字符串原样保留。
        已经是终态（approved / denied）的记录仍允许覆盖，只记一条 warning 日志。
        """
        allowed = {k: v for k, v in (fields or {}).items() if k in ('status', 'status_reason', 'attachments')}
        if not allowed:
            raise ValidationError(message='No valid fields to update', code='NO_VALID_FIELDS')
        if 'status' in allowed and allowed['status'] not in ledger.MANUAL_STATUSES:
            raise ValidationError(
                message='Validation error',
                detail={'errors': [{
                    'field': 'status',
                    'message': f"status must be one of {', '.join(ledger.MANUAL_STATUSES)}.",
                }]},
            )

        notes = allowed.get('status_reason')
        if 'status_reason' in allowed:
            allowed['status_reason'] = notes or ''

        record = self.get(tenant_id, pa_id)
        new_status = allowed.get('status', record.status)
        if 'status' in allowed and record.status in ledger.TERMINAL_STATUSES:
            logger.warning("PA %s: manual override of terminal status %s -> %s by %s",
                           record.id, record.status, new_status, actor_id)

        entry = HistoryEntry.now(
            ledger.EVENT_UPDATED,
            new_status,
            actor_id=actor_id,
            notes=notes if notes is not None else 'PA request updated',
        )
        updated = self.repository.apply(tenant_id, record.id, allowed, entry)

        logger.info("PA %s updated by %s: fields=%s", record.id, actor_id, sorted(allowed))
        self._audit(tenant_id, actor_id, AUDIT_UPDATE, record.id)
        return updated

    # ── helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _normalize(record: PriorAuthRecord) -> NormalizedPARequest:
        return NormalizedPARequest(
            id=record.id,
            tenant_id=record.tenant_id,
            patient_id=record.patient_id,
            payer=record.payer,
            member_id=record.member_id,
            medication_name=record.medication_name,
            medication_strength=record.medication_strength,
            medication_quantity=record.medication_quantity,
            sig=record.sig,
            prescription_id=record.prescription_id,
            prescriber_id=record.prescriber_id,
            prescriber_npi=record.prescriber_npi,
            prescriber_name=record.prescriber_name,
            urgency=record.urgency,
            attachments=[a.to_dict() for a in record.attachments],
        )

    def _audit(self, tenant_id, actor_id, action, resource_id):
        # fire-and-forget：审计失败不回滚已经完成的业务写入
        try:
            self.audit.record(tenant_id, actor_id, action, RESOURCE_TYPE, resource_id)
        except Exception:
            logger.exception("Audit sink failed for %s on %s/%s", action, RESOURCE_TYPE, resource_id)
