"""
Work Queue Module

HAN 서버로 보낼 명령 대기열 (FIFO)
- 버스 요청과 폴링 모두 같은 대기열 사용
- 한 번에 하나의 명령만 전송 (응답 대기 중에는 다음 명령 보류)
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .registry import ServiceEntry

logger = logging.getLogger(__name__)


@dataclass
class WorkQueueEntry:
    """전송 대기 명령"""
    command_text: str
    service: 'ServiceEntry'
    is_poll: bool = False
    sent_at: Optional[float] = None  # 전송 시각 (time.monotonic)

    def __str__(self) -> str:
        origin = "poll" if self.is_poll else "request"
        return f"{self.command_text} ({self.service.instance_id}, {origin})"


class WorkQueue:
    """
    명령 대기열

    사용 예:
        queue = WorkQueue()
        queue.enqueue('CA0A12000000000000', service, is_poll=True)

        entry = queue.dequeue_oldest()
    """

    def __init__(self):
        self._entries: Deque[WorkQueueEntry] = deque()

    def enqueue(self, command_text: str, service: 'ServiceEntry', is_poll: bool = False) -> WorkQueueEntry:
        """명령 추가 (제출 순서 유지)"""
        entry = WorkQueueEntry(command_text=command_text, service=service, is_poll=is_poll)
        self._entries.append(entry)
        logger.debug(f"Queued command: {entry} (depth {len(self._entries)})")
        return entry

    def dequeue_oldest(self) -> Optional[WorkQueueEntry]:
        """가장 먼저 들어온 명령 제거 후 반환 (비어 있으면 None)"""
        if not self._entries:
            return None
        return self._entries.popleft()

    def peek_oldest(self) -> Optional[WorkQueueEntry]:
        """가장 먼저 들어온 명령 조회 (제거하지 않음)"""
        return self._entries[0] if self._entries else None

    def clear(self) -> int:
        """대기열 비우기, 버린 명령 수 반환"""
        dropped = len(self._entries)
        self._entries.clear()
        return dropped

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
