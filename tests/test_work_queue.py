"""
Work Queue Unit Tests

명령 대기열 FIFO 동작 테스트
"""

import sys
import os
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from han_gateway.work_queue import WorkQueue, WorkQueueEntry


class TestWorkQueue:
    """대기열 테스트"""

    def test_empty(self):
        queue = WorkQueue()

        assert len(queue) == 0
        assert not queue
        assert queue.dequeue_oldest() is None
        assert queue.peek_oldest() is None

    def test_fifo_order(self):
        """A, B, C 순서로 넣으면 A, B, C 순서로 나옴"""
        service = MagicMock()
        queue = WorkQueue()
        for text in ('A', 'B', 'C'):
            queue.enqueue(text, service)

        assert [queue.dequeue_oldest().command_text for _ in range(3)] == ['A', 'B', 'C']
        assert queue.dequeue_oldest() is None

    def test_interleaved(self):
        """추가와 제거가 섞여도 제출 순서 유지"""
        service = MagicMock()
        queue = WorkQueue()
        queue.enqueue('A', service)
        queue.enqueue('B', service)
        assert queue.dequeue_oldest().command_text == 'A'
        queue.enqueue('C', service)

        assert queue.dequeue_oldest().command_text == 'B'
        assert queue.dequeue_oldest().command_text == 'C'

    def test_entry_fields(self):
        service = MagicMock()
        queue = WorkQueue()
        entry = queue.enqueue('CA0A32000000', service, is_poll=True)

        assert isinstance(entry, WorkQueueEntry)
        assert entry.service is service
        assert entry.is_poll is True
        assert entry.sent_at is None
        assert queue.peek_oldest() is entry
        assert len(queue) == 1

    def test_clear(self):
        service = MagicMock()
        queue = WorkQueue()
        queue.enqueue('A', service)
        queue.enqueue('B', service)

        assert queue.clear() == 2
        assert len(queue) == 0

    def test_str(self):
        service = MagicMock()
        service.instance_id = 'otemp'
        entry = WorkQueueEntry('CA0412', service, is_poll=True)

        assert str(entry) == 'CA0412 (otemp, poll)'
