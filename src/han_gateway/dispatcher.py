"""
Response Dispatcher

수신 라인을 응답 프레임으로 디코딩하고, 전송 중인 단일 요청과 매칭하여
명령별 핸들러로 전달

- 응답 대기 중인 요청은 최대 1개 (pending)
- 주소가 일치하지 않는 응답은 버리고 pending도 해제
- 응답이 오지 않으면 타임아웃 후 pending 해제 (대기열 진행)
"""

import logging
import time
from typing import Callable, Optional

from .protocol import ResponseFrame, is_reply
from .actions import get_action_handler
from .bus import BusEvent
from .work_queue import WorkQueueEntry
from .exceptions import FrameError, ResponseError

logger = logging.getLogger(__name__)


DEFAULT_RESPONSE_TIMEOUT = 5.0  # seconds


class ResponseDispatcher:
    """
    응답 매칭/라우팅

    사용 예:
        dispatcher = ResponseDispatcher(emit=bus.publish)
        dispatcher.set_pending(entry)
        dispatcher.dispatch_line('RS0A13010201')
    """

    def __init__(
        self,
        emit: Callable[[BusEvent], None],
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            emit: 이벤트 발행 콜백
            response_timeout: 응답 대기 최대 시간 (초)
            clock: 시간 함수 (테스트용 주입)
        """
        self._emit = emit
        self.response_timeout = response_timeout
        self._clock = clock
        self._pending: Optional[WorkQueueEntry] = None

    @property
    def pending(self) -> Optional[WorkQueueEntry]:
        """응답 대기 중인 명령"""
        return self._pending

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def set_pending(self, entry: WorkQueueEntry) -> None:
        """방금 전송한 명령을 응답 대기 상태로 설정"""
        if self._pending is not None:
            logger.warning(f"Replacing pending request {self._pending} with {entry}")
        entry.sent_at = self._clock()
        self._pending = entry

    def clear_pending(self) -> Optional[WorkQueueEntry]:
        """pending 해제, 해제된 명령 반환"""
        entry, self._pending = self._pending, None
        return entry

    def check_timeout(self) -> bool:
        """
        응답 타임아웃 확인

        Returns:
            타임아웃으로 pending을 해제했으면 True
        """
        entry = self._pending
        if entry is None or entry.sent_at is None:
            return False

        if self._clock() - entry.sent_at < self.response_timeout:
            return False

        logger.warning(
            f"Request timed out after {self.response_timeout:.1f}s: {entry}"
        )
        self.clear_pending()
        return True

    def dispatch_line(self, line: str) -> Optional[BusEvent]:
        """
        수신 라인 처리

        응답 마커가 없는 라인은 무시 (pending 유지).
        응답 라인은 결과와 관계없이 pending을 해제 (한 번만 소비)

        Returns:
            발행한 이벤트 또는 None
        """
        if not is_reply(line):
            logger.debug(f"Ignoring non-reply line: {line!r}")
            return None

        try:
            return self._dispatch(line)
        finally:
            self.clear_pending()

    def _dispatch(self, line: str) -> Optional[BusEvent]:
        try:
            frame = ResponseFrame.parse(line)
        except FrameError as e:
            logger.warning(f"Malformed reply dropped: {e}")
            return None

        logger.debug(f"Binary response dump: {frame.hexdump()}")

        pending = self._pending
        if pending is None:
            logger.warning(f"Reply from 0x{frame.address:02X} with no request pending, dropped")
            return None

        if pending.service.address != frame.address:
            logger.warning(
                f"Reply address 0x{frame.address:02X} does not match pending request "
                f"0x{pending.service.address:02X}, dropped"
            )
            return None

        handler = get_action_handler(frame.command)
        if handler is None:
            logger.warning(f"Unknown response received: command 0x{frame.command:02X}")
            return None

        try:
            event = handler.handle(frame, pending)
        except (FrameError, ResponseError) as e:
            logger.warning(f"Reply for {pending.service.instance_id} dropped: {e}")
            return None

        if event is not None:
            self._emit(event)
        return event
