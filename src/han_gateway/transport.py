"""
HAN Transport Layer

HAN 서버와의 TCP 연결(단일 소켓)을 담당하는 래퍼 클래스
pyserial URL 핸들러 사용: socket://host:port
- 연결이 끊기면 다음 전송 시점에 다시 연결 (lazy reconnect)
- 수신은 non-blocking, 줄바꿈 단위로 라인 조립
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple

import serial

from .protocol import LINE_BUFFER_SIZE
from .exceptions import ConnectionError

logger = logging.getLogger(__name__)


# Default HAN server settings
DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 1129
DEFAULT_WRITE_TIMEOUT = 1.0  # seconds
LINE_TERMINATOR = '\n'

# pyserial socket:// 핸들러는 피어 종료(0바이트 recv)를 이 메시지의 예외로 보고함
PEER_CLOSED_MESSAGE = 'socket disconnected'


class ConnectionState(Enum):
    """연결 상태"""
    DISCONNECTED = 'DISCONNECTED'
    CONNECTED = 'CONNECTED'


class ReadStatus(Enum):
    """poll_incoming() 결과"""
    LINE = 'LINE'        # 완성된 라인 1개
    EMPTY = 'EMPTY'      # 읽을 데이터 없음 (또는 라인 미완성)
    CLOSED = 'CLOSED'    # 피어가 연결 종료 (EOF)
    ERROR = 'ERROR'      # 읽기 오류 또는 버퍼 초과


class LineReader:
    """
    부분 수신 데이터를 줄 단위로 조립

    고정 크기 작업 버퍼를 넘는 라인은 프로토콜 오류로 보고 버림
    """

    def __init__(self, size: int = LINE_BUFFER_SIZE):
        self.size = size
        self._partial = bytearray()
        self._lines: List[str] = []
        self._discarding = False

    def feed(self, data: bytes) -> bool:
        """
        수신 데이터 추가

        버퍼를 넘은 라인은 다음 줄바꿈까지 나머지 바이트도 버림

        Returns:
            버퍼 초과 없이 처리되면 True, 초과로 부분 라인을 버렸으면 False
        """
        ok = True
        for byte in data:
            if byte == 0x0A:  # '\n'
                if self._discarding:
                    self._discarding = False
                    continue
                line = self._partial.decode('ascii', errors='replace').rstrip('\r')
                self._partial.clear()
                if line:
                    self._lines.append(line)
                continue

            if self._discarding:
                continue

            if len(self._partial) >= self.size - 1:
                logger.warning(f"Line buffer overflow ({self.size} bytes), discarding partial line")
                self._partial.clear()
                self._discarding = True
                ok = False
                continue

            self._partial.append(byte)
        return ok

    def pop_line(self) -> Optional[str]:
        """완성된 라인 하나 반환 (없으면 None)"""
        return self._lines.pop(0) if self._lines else None

    @property
    def has_line(self) -> bool:
        return bool(self._lines)

    @property
    def pending_bytes(self) -> int:
        """조립 중인 부분 라인 길이"""
        return len(self._partial)

    def reset(self) -> None:
        self._partial.clear()
        self._lines.clear()
        self._discarding = False


def open_socket_port(url: str, write_timeout: float) -> serial.SerialBase:
    """pyserial URL로 non-blocking 포트 열기"""
    return serial.serial_for_url(url, timeout=0, write_timeout=write_timeout)


class HANConnection:
    """
    HAN 서버 연결 관리 클래스

    Context manager 지원:
        with HANConnection('localhost', 1129) as conn:
            conn.send_line('CA0A12000000000000')
            status, line = conn.poll_incoming()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
        terminator: str = LINE_TERMINATOR,
        port_factory: Optional[Callable[[str, float], serial.SerialBase]] = None
    ):
        """
        Args:
            host: HAN 서버 호스트
            port: HAN 서버 포트 (기본값: 1129)
            write_timeout: 쓰기 타임아웃 (초)
            terminator: 명령 프레임 뒤에 붙는 줄 구분자
            port_factory: (url, write_timeout) -> 포트 객체 (테스트용 주입)
        """
        self.host = host
        self.port = port
        self.write_timeout = write_timeout
        self.terminator = terminator

        self._port_factory = port_factory or open_socket_port
        self._port: Optional[serial.SerialBase] = None
        self._reader = LineReader()

        # 마지막 연결/전송 실패 여부
        self.command_failed = False

    @property
    def url(self) -> str:
        return f"socket://{self.host}:{self.port}"

    @property
    def state(self) -> ConnectionState:
        if self._port is not None and self._port.is_open:
            return ConnectionState.CONNECTED
        return ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self.state is ConnectionState.CONNECTED

    def connect(self) -> None:
        """
        HAN 서버 연결

        Raises:
            ConnectionError: 연결 실패 시
        """
        if self.is_connected:
            logger.warning(f"Already connected to {self.url}")
            return

        try:
            self._port = self._port_factory(self.url, self.write_timeout)
        except (serial.SerialException, ValueError, OSError) as e:
            self._port = None
            raise ConnectionError(f"Failed to connect to {self.url}: {e}")

        self._reader.reset()
        logger.info(f"Connected to HAN server at {self.url}")

    def ensure_connected(self) -> bool:
        """
        연결이 없으면 새로 연결

        실패해도 예외를 올리지 않음 (fault 플래그만 설정)

        Returns:
            연결되어 있으면 True
        """
        if self.is_connected:
            return True

        try:
            self.connect()
        except ConnectionError as e:
            logger.error(f"Could not open socket to han server: {e}")
            self.command_failed = True
            return False

        self.command_failed = False
        return True

    def probe(self) -> None:
        """
        시작 시 연결 테스트 (연결 후 바로 종료)

        Raises:
            ConnectionError: HAN 서버에 연결할 수 없는 경우
        """
        self.connect()
        self.close()

    def close(self) -> None:
        """HAN 서버 연결 해제 (여러 번 호출해도 안전)"""
        if self._port is not None:
            try:
                if self._port.is_open:
                    self._port.close()
                    logger.info(f"Disconnected from {self.url}")
            except (serial.SerialException, OSError) as e:
                logger.error(f"Error closing han socket: {e}")
            finally:
                self._port = None
        self._reader.reset()

    def send_line(self, text: str) -> bool:
        """
        명령 프레임 한 줄 전송

        실패 시 소켓을 닫고 DISCONNECTED로 전환 (다음 전송 때 재연결)

        Returns:
            전송 성공 시 True
        """
        if not self.is_connected:
            logger.error("Command TX failed: not connected")
            self.command_failed = True
            return False

        data = (text + self.terminator).encode('ascii')
        try:
            self._port.write(data)
            self._port.flush()
        except (serial.SerialException, OSError) as e:
            logger.error(f"Command TX failed: {e}")
            self.close()
            self.command_failed = True
            return False

        logger.debug(f"TX: {text}")
        return True

    def poll_incoming(self) -> Tuple[ReadStatus, Optional[str]]:
        """
        수신 데이터 확인 (non-blocking)

        Returns:
            (ReadStatus, 라인) - 라인은 LINE일 때만 값이 있음
        """
        line = self._reader.pop_line()
        if line is not None:
            return ReadStatus.LINE, line

        if not self.is_connected:
            return ReadStatus.EMPTY, None

        try:
            # 1바이트씩 읽어 라인 완성 시 바로 반환
            while self._port.in_waiting:
                byte = self._port.read(1)
                if not byte:
                    # 읽기 가능인데 0바이트 = EOF
                    return self._peer_closed()

                if not self._reader.feed(byte):
                    return ReadStatus.ERROR, None

                if self._reader.has_line:
                    line = self._reader.pop_line()
                    logger.debug(f"RX: {line}")
                    return ReadStatus.LINE, line

        except serial.SerialException as e:
            if PEER_CLOSED_MESSAGE in str(e):
                return self._peer_closed()
            logger.error(f"Socket read returned error: {e}")
            return ReadStatus.ERROR, None
        except OSError as e:
            logger.error(f"Socket read returned error: {e}")
            return ReadStatus.ERROR, None

        return ReadStatus.EMPTY, None

    def _peer_closed(self) -> Tuple[ReadStatus, Optional[str]]:
        """EOF 처리: 소켓을 닫고 나중에 다시 연결"""
        logger.warning(f"HAN server closed the connection ({self.url})")
        self.close()
        self.command_failed = True
        return ReadStatus.CLOSED, None

    def __enter__(self) -> 'HANConnection':
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit"""
        self.close()
