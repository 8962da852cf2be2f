"""
HAN Gateway Engine

버스 요청 → 서비스 조회 → 명령 인코딩 → 작업 대기열 → (tick) 전송 →
응답 디코딩 → 액션 핸들러 → 버스 이벤트

모든 상태(대기열, pending 슬롯, 연결, 폴링 카운터)는 reactor 스레드 하나에서만
변경됨. 다른 스레드(MQTT 콜백)는 submit()으로 요청을 넘기기만 함
"""

import logging
import queue
import threading
import time
from typing import Callable, Optional

from .registry import ServiceRegistry
from .work_queue import WorkQueue, WorkQueueEntry
from .transport import HANConnection, ReadStatus
from .dispatcher import ResponseDispatcher, DEFAULT_RESPONSE_TIMEOUT
from .scheduler import PollScheduler, TICK_INTERVAL
from .request_handlers import queue_request
from .bus import BusRequest, BusEvent, MessageType
from .exceptions import RequestError, CommandError

logger = logging.getLogger(__name__)


LOOP_INTERVAL = 0.01  # seconds


class HANGateway:
    """
    게이트웨이 엔진

    사용 예:
        gateway = HANGateway(config.services, HANConnection('localhost', 1129))
        gateway.publisher = bridge.publish_event
        gateway.run()           # stop() 호출 전까지 블록

        # 다른 스레드에서
        gateway.submit(request)
        gateway.stop()
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        connection: HANConnection,
        publisher: Optional[Callable[[BusEvent], None]] = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            registry: 서비스 테이블
            connection: HAN 서버 연결
            publisher: 이벤트 발행 콜백 (None이면 로그만 남김)
            response_timeout: 응답 대기 최대 시간 (초)
            clock: 시간 함수 (테스트용 주입)
        """
        self.registry = registry
        self.connection = connection
        self.publisher = publisher

        self.work_queue = WorkQueue()
        self.dispatcher = ResponseDispatcher(self._emit, response_timeout, clock)
        self.scheduler = PollScheduler(registry, self.work_queue)

        self._requests: 'queue.Queue[BusRequest]' = queue.Queue()
        self._stop = threading.Event()
        self._clock = clock

    @property
    def is_running(self) -> bool:
        return not self._stop.is_set()

    def probe(self) -> None:
        """
        시작 시 HAN 서버 연결 확인

        Raises:
            ConnectionError: 연결할 수 없는 경우
        """
        self.connection.probe()
        logger.info(f"HAN server {self.connection.url} is reachable")

    def submit(self, request: BusRequest) -> None:
        """버스 요청 전달 (스레드 안전, reactor 루프에서 처리)"""
        self._requests.put(request)

    def handle_request(self, request: BusRequest) -> Optional[WorkQueueEntry]:
        """
        버스 요청 처리

        브로드캐스트와 command가 아닌 메시지는 무시.
        대상 서비스가 없거나 스키마가 다르면 무시, 필드 오류는 로그 후 버림

        Returns:
            대기열에 추가된 명령 또는 None
        """
        if request.broadcast:
            logger.debug(f"Ignoring broadcast message: {request.schema}")
            return None

        if request.msg_type is not MessageType.COMMAND:
            logger.debug(f"Ignoring {request.msg_type.value} message for {request.instance_id}")
            return None

        service = self.registry.lookup(request.instance_id)
        if service is None:
            logger.debug(f"No service for instance {request.instance_id!r}")
            return None

        if (request.schema_class, request.schema_type) != (service.schema_class, service.schema_type):
            logger.debug(
                f"Schema {request.schema} does not match service {service.instance_id} "
                f"({service.schema_class}.{service.schema_type})"
            )
            return None

        try:
            entry = queue_request(request, service, self.work_queue)
        except (RequestError, CommandError) as e:
            logger.error(f"{service.command.name} request for {service.instance_id} dropped: {e}")
            return None

        logger.debug(f"Queued: {entry}")
        return entry

    def drain_requests(self) -> int:
        """수신된 버스 요청을 모두 처리, 처리 개수 반환"""
        count = 0
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                return count
            self.handle_request(request)
            count += 1

    def process_incoming(self) -> int:
        """
        소켓에서 완성된 라인을 모두 읽어 디스패처로 전달

        Returns:
            처리한 라인 수
        """
        count = 0
        while True:
            status, line = self.connection.poll_incoming()
            if status is ReadStatus.LINE:
                self.dispatcher.dispatch_line(line)
                count += 1
                continue

            if status is ReadStatus.CLOSED:
                logger.info("HAN socket closed by peer, will reconnect on next command")
            elif status is ReadStatus.ERROR:
                logger.warning("HAN receive error, partial data discarded")
            return count

    def tick(self) -> Optional[WorkQueueEntry]:
        """
        1초 tick 처리

        응답 타임아웃 확인 → 폴링 명령 추가 → 대기 중인 요청이 없으면
        가장 오래된 명령 1개 전송

        Returns:
            전송한 명령 또는 None
        """
        self.dispatcher.check_timeout()
        self.scheduler.tick()
        return self.send_next()

    def send_next(self) -> Optional[WorkQueueEntry]:
        """대기열의 가장 오래된 명령 전송 (pending이 있으면 보류)"""
        if not self.work_queue or self.dispatcher.is_pending:
            return None

        if not self.connection.ensure_connected():
            lost = self.work_queue.dequeue_oldest()
            logger.error(f"HAN server unavailable, command dropped: {lost}")
            return None

        entry = self.work_queue.dequeue_oldest()
        if not self.connection.send_line(entry.command_text):
            logger.error(f"Command lost: {entry}")
            return None

        self.dispatcher.set_pending(entry)
        return entry

    def run(self) -> None:
        """
        reactor 루프 (stop() 호출 전까지 블록)

        요청 처리 → 수신 처리 → 1초마다 tick
        """
        logger.info(f"Gateway started with {len(self.registry)} service(s)")
        next_tick = self._clock()
        try:
            while not self._stop.is_set():
                self.drain_requests()
                self.process_incoming()

                now = self._clock()
                if now >= next_tick:
                    self.tick()
                    next_tick = now + TICK_INTERVAL

                self._stop.wait(LOOP_INTERVAL)
        finally:
            self.shutdown()

    def stop(self) -> None:
        """reactor 루프 종료 요청 (스레드/시그널 핸들러에서 호출 가능)"""
        self._stop.set()

    def shutdown(self) -> None:
        """대기 중인 명령 정리 및 연결 해제"""
        dropped = self.work_queue.clear()
        if dropped:
            logger.info(f"Discarded {dropped} queued command(s)")
        self.dispatcher.clear_pending()
        self.connection.close()
        logger.info("Gateway stopped")

    def _emit(self, event: BusEvent) -> None:
        logger.info(f"{event.msg_type.value} from {event.source}: {event.fields}")
        if self.publisher is not None:
            self.publisher(event)
