"""
history ledger + 状态机辅助函数。
"""
import dataclasses

import pytest

from priorauth import ledger
from priorauth.ledger import HistoryEntry


class TestHistoryEntry:

    def test_to_dict_omits_empty_optionals(self):
        entry = HistoryEntry(timestamp='2024-01-01T00:00:00+00:00', event='created', status='pending')
        assert entry.to_dict() == {
            'timestamp': '2024-01-01T00:00:00+00:00',
            'event': 'created',
            'status': 'pending',
        }

    def test_dict_keys_are_camel_case(self):
        entry = HistoryEntry.now('submitted', 'submitted', actor_id='u1', notes='ok', external_reference_id='EXT-1')
        data = entry.to_dict()
        assert data['actorId'] == 'u1'
        assert data['externalReferenceId'] == 'EXT-1'
        assert HistoryEntry.from_dict(data) == entry

    def test_entries_are_frozen(self):
        entry = HistoryEntry.now('created', 'pending')
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.status = 'approved'


class TestAppendEntry:

    def test_returns_new_tuple(self):
        first = HistoryEntry.now('created', 'pending')
        second = HistoryEntry.now('submitted', 'submitted')
        original = (first,)

        extended = ledger.append_entry(original, second)

        assert extended == (first, second)
        assert original == (first,)

    def test_load_dump_preserves_order(self):
        raw = [
            {'timestamp': 't1', 'event': 'created', 'status': 'pending'},
            {'timestamp': 't2', 'event': 'submitted', 'status': 'submitted', 'externalReferenceId': 'X'},
        ]
        assert ledger.dump_history(ledger.load_history(raw)) == raw

    def test_load_none(self):
        assert ledger.load_history(None) == ()


class TestCanReconcile:

    @pytest.mark.parametrize('current,reported', [
        ('submitted', 'approved'),
        ('submitted', 'denied'),
        ('submitted', 'needs_info'),
        ('needs_info', 'submitted'),
        ('needs_info', 'approved'),
    ])
    def test_allowed(self, current, reported):
        assert ledger.can_reconcile(current, reported)

    @pytest.mark.parametrize('current,reported', [
        ('submitted', 'submitted'),   # 没变
        ('pending', 'approved'),      # 还没提交
        ('approved', 'denied'),       # 终态
        ('submitted', 'error'),       # 不是对账目标状态
        ('submitted', 'pending'),
    ])
    def test_rejected(self, current, reported):
        assert not ledger.can_reconcile(current, reported)
