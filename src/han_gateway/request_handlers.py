"""
Bus Request Handlers

버스 명령 메시지의 필드를 검증하고 HAN 명령 프레임을 대기열에 추가

- 읽기 전용 명령 (GTMP, GACD, GVLT, GCUR, GHUM, GWSP, GWDR, GRGC):
    request=current 필요, device가 있으면 0이어야 함
- GOUT:
    device (0-16) 필수
    센서 서비스: request=current -> 상태 읽기
    제어 서비스: type=output, current=high|low -> 출력 설정
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from .protocol import HANCommand, OutputState, MAX_HAN_DEVICE
from .encoder import encode_command
from .bus import BusRequest
from .exceptions import RequestError

if TYPE_CHECKING:
    from .registry import ServiceEntry
    from .work_queue import WorkQueue, WorkQueueEntry

logger = logging.getLogger(__name__)


CURRENT_REQUEST = "current"
OUTPUT_TYPE = "output"
OUTPUT_STATES = {
    "high": OutputState.HIGH,
    "low": OutputState.LOW,
}


def parse_unsigned(text: str, minimum: int, maximum: int) -> Optional[int]:
    """
    10진 숫자 문자열을 범위 검사하여 정수로 변환

    Returns:
        변환된 값 또는 None (숫자가 아니거나 범위 밖)
    """
    if not text or not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    if not minimum <= value <= maximum:
        return None
    return value


def require(request: BusRequest, name: str) -> str:
    """필수 필드 조회"""
    value = request.get(name)
    if value is None:
        raise RequestError(f"{name} missing, {name} required")
    return value


class RequestHandler:
    """읽기 전용 명령 요청 처리"""

    check_device = True

    def __init__(self, command: HANCommand):
        self.command = command

    def subcommand_for(self, request: BusRequest, service: 'ServiceEntry') -> Optional[OutputState]:
        """
        요청 필드 검증

        Returns:
            GOUT 서브 명령 (읽기 전용 명령은 None)

        Raises:
            RequestError: 필드 누락 또는 잘못된 값
        """
        req = request.get("request")
        if req is None:
            raise RequestError("no request specified")

        if self.check_device:
            device = request.get("device")
            if device is None:
                logger.warning(f"do{self.command.name}: no device specified, device is required")
            elif parse_unsigned(device, 0, 0) is None:
                raise RequestError("device=0 is required")

        if req != CURRENT_REQUEST:
            raise RequestError(f"only the '{CURRENT_REQUEST}' request is supported")

        return None


class ACLineRequestHandler(RequestHandler):
    """GACD: device 필드는 확인하지 않음"""

    check_device = False


class OutputRequestHandler(RequestHandler):
    """GOUT: 센서(상태 읽기)와 제어(출력 설정) 스키마 모두 지원"""

    def subcommand_for(self, request: BusRequest, service: 'ServiceEntry') -> Optional[OutputState]:
        device = require(request, "device")
        if parse_unsigned(device, 0, MAX_HAN_DEVICE) is None:
            raise RequestError(f"bad device number: {device}")

        if service.is_sensor:
            req = require(request, "request")
            if req != CURRENT_REQUEST:
                raise RequestError(f"only the '{CURRENT_REQUEST}' request is supported")
            return OutputState.READ_STATUS

        output_type = require(request, "type")
        current = require(request, "current")

        if output_type != OUTPUT_TYPE:
            raise RequestError(f"sensor type must be '{OUTPUT_TYPE}'")

        state = OUTPUT_STATES.get(current)
        if state is None:
            raise RequestError(f"current must be one of: {', '.join(OUTPUT_STATES)}")
        return state


REQUEST_HANDLERS: Dict[HANCommand, RequestHandler] = {
    HANCommand.GTMP: RequestHandler(HANCommand.GTMP),
    HANCommand.GACD: ACLineRequestHandler(HANCommand.GACD),
    HANCommand.GOUT: OutputRequestHandler(HANCommand.GOUT),
    HANCommand.GVLT: RequestHandler(HANCommand.GVLT),
    HANCommand.GCUR: RequestHandler(HANCommand.GCUR),
    HANCommand.GHUM: RequestHandler(HANCommand.GHUM),
    HANCommand.GWSP: RequestHandler(HANCommand.GWSP),
    HANCommand.GWDR: RequestHandler(HANCommand.GWDR),
    HANCommand.GRGC: RequestHandler(HANCommand.GRGC),
}


def queue_request(request: BusRequest, service: 'ServiceEntry', queue: 'WorkQueue') -> 'WorkQueueEntry':
    """
    요청 검증 후 명령 프레임을 대기열에 추가

    Raises:
        RequestError: 필드 누락 또는 잘못된 값 (대기열 변화 없음)
    """
    handler = REQUEST_HANDLERS.get(service.command)
    if handler is None:
        raise RequestError(f"Invalid han command: {service.command}")

    subcommand = handler.subcommand_for(request, service)
    frame = encode_command(service, subcommand)
    return queue.enqueue(frame, service, is_poll=False)
