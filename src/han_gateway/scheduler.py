"""
Poll Scheduler

1초 tick마다 서비스별 카운트다운을 진행하고, 0이 되면 폴링 읽기 명령을
대기열에 추가 (is_poll=True)
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from .encoder import encode_poll
from .exceptions import CommandError

if TYPE_CHECKING:
    from .registry import ServiceRegistry, ServiceEntry
    from .work_queue import WorkQueue, WorkQueueEntry

logger = logging.getLogger(__name__)


TICK_INTERVAL = 1.0  # seconds


class PollScheduler:
    """
    서비스 폴링 스케줄러

    카운터는 0에서 시작하므로 첫 tick에 모든 폴링 서비스를 한 번 읽고,
    이후 polling_interval tick마다 다시 읽음
    """

    def __init__(self, registry: 'ServiceRegistry', queue: 'WorkQueue'):
        self._registry = registry
        self._queue = queue

    def tick(self) -> List['WorkQueueEntry']:
        """
        1초 tick 처리

        Returns:
            이번 tick에 추가된 폴링 명령 목록
        """
        queued = []
        for service in self._registry:
            if not service.is_polled:
                continue

            if service.poll_counter > 0:
                service.poll_counter -= 1
            if service.poll_counter > 0:
                continue

            service.poll_counter = service.polling_interval
            entry = self._dispatch_poll(service)
            if entry is not None:
                queued.append(entry)
        return queued

    def _dispatch_poll(self, service: 'ServiceEntry') -> Optional['WorkQueueEntry']:
        try:
            frame = encode_poll(service)
        except CommandError as e:
            logger.error(f"Got unrecognized poll request for {service.instance_id}: {e}")
            return None
        return self._queue.enqueue(frame, service, is_poll=True)
