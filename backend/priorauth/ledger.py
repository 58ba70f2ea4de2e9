"""
PA 状态机常量 + 追加式 history ledger。

history 在内存中是 tuple[HistoryEntry, ...]，只能通过 append_entry()
复制后追加，已有条目无法被修改或删除。落库时转成 JSON 数组（camelCase 键）。
"""

from dataclasses import dataclass
from typing import Any

from django.utils import timezone

# ── 状态 ────────────────────────────────────────────────────────────────────
PENDING = 'pending'
SUBMITTED = 'submitted'
APPROVED = 'approved'
DENIED = 'denied'
NEEDS_INFO = 'needs_info'
ERROR = 'error'

ALL_STATUSES = (PENDING, SUBMITTED, APPROVED, DENIED, NEEDS_INFO, ERROR)

# submit() 成功后 adapter 允许返回的状态
SUBMIT_RESULT_STATUSES = frozenset({SUBMITTED, APPROVED, DENIED, NEEDS_INFO, ERROR})

# check_status() 只在这些状态上做对账写入
RECONCILABLE_STATUSES = frozenset({SUBMITTED, NEEDS_INFO})
RECONCILED_STATUSES = frozenset({SUBMITTED, APPROVED, DENIED, NEEDS_INFO})

# 人工 update() 可以设置的状态
MANUAL_STATUSES = (APPROVED, DENIED, NEEDS_INFO)

TERMINAL_STATUSES = frozenset({APPROVED, DENIED})

# ── 事件 ────────────────────────────────────────────────────────────────────
EVENT_CREATED = 'created'
EVENT_SUBMITTED = 'submitted'
EVENT_STATUS_CHECK = 'status_check'
EVENT_UPDATED = 'updated'


def can_reconcile(current_status: str, reported_status: str) -> bool:
    """check_status() 报告的状态能否写回记录。"""
    return (
        current_status in RECONCILABLE_STATUSES
        and reported_status in RECONCILED_STATUSES
        and reported_status != current_status
    )


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: str
    event: str
    status: str
    actor_id: str | None = None
    notes: str | None = None
    external_reference_id: str | None = None

    @classmethod
    def now(cls, event: str, status: str, **kwargs) -> "HistoryEntry":
        return cls(timestamp=timezone.now().isoformat(), event=event, status=status, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data = {
            'timestamp': self.timestamp,
            'event': self.event,
            'status': self.status,
        }
        # 可选字段为空时不落库，和历史数据保持一致
        if self.actor_id is not None:
            data['actorId'] = self.actor_id
        if self.notes is not None:
            data['notes'] = self.notes
        if self.external_reference_id is not None:
            data['externalReferenceId'] = self.external_reference_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        return cls(
            timestamp=data['timestamp'],
            event=data['event'],
            status=data['status'],
            actor_id=data.get('actorId'),
            notes=data.get('notes'),
            external_reference_id=data.get('externalReferenceId'),
        )


def append_entry(history: tuple[HistoryEntry, ...], entry: HistoryEntry) -> tuple[HistoryEntry, ...]:
    """返回追加了 entry 的新 history，原 tuple 不变。"""
    return tuple(history) + (entry,)


def load_history(raw: list[dict[str, Any]] | None) -> tuple[HistoryEntry, ...]:
    return tuple(HistoryEntry.from_dict(item) for item in (raw or []))


def dump_history(history: tuple[HistoryEntry, ...]) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in history]
