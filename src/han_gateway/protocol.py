"""
HAN Communication Protocol

명령 프레임 (ASCII hex, 한 줄에 하나):
| "CA" | Address (2 hex) | Command (2 hex) | 명령별 파라미터 (고정 길이, 0 채움) |

응답 프레임:
| "RS" | Address (2 hex) | Command (2 hex) | Params (2 hex x 0~16) |

모든 다중 바이트 값은 little-endian
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .exceptions import ConfigurationError, FrameError


# Protocol constants
COMMAND_PREFIX = "CA"
REPLY_MARKER = "RS"
HEX_DIGITS = "0123456789ABCDEF"

LINE_BUFFER_SIZE = 256  # 수신 라인 작업 버퍼 크기
MAX_PARAMS = 16
MIN_REPLY_LENGTH = 6    # "RS" + address(2) + command(2)

MAX_ADDRESS = 254
MAX_CHANNEL = 15
MAX_HAN_DEVICE = 16
MAX_POLL_INTERVAL = 604800  # 1주 (초)


class HANCommand(Enum):
    """HAN 명령 코드"""
    GTMP = 0x12  # Get temperature
    GOUT = 0x13  # Get/set output
    GACD = 0x15  # Get AC volts / frequency
    GVLT = 0x16  # Get DC voltage
    GCUR = 0x17  # Get DC current
    GHUM = 0x30  # Get humidity
    GWSP = 0x31  # Get wind speed
    GWDR = 0x32  # Get wind direction
    GRGC = 0x33  # Get rain gauge count

    @property
    def keyword(self) -> str:
        """설정 파일에서 사용하는 키워드 (예: 'gtmp')"""
        return self.name.lower()


class Units(Enum):
    """물리 단위 (값 = 설정 키워드)"""
    FAHRENHEIT = 'fahrenheit'
    CELSIUS = 'celsius'
    VOLTS = 'volts'
    AMPS = 'amps'
    HERTZ = 'hertz'
    OUTPUT = 'output'
    PERCENTRH = '%rh'
    MPH = 'mph'
    KMH = 'kmh'
    WDIRMAP = 'wdirmap'
    IN = 'in.'
    MM = 'mm.'


class OutputState(Enum):
    """GOUT 서브 명령"""
    LOW = 0
    HIGH = 1
    READ_STATUS = 2


@dataclass(frozen=True)
class CommandSpec:
    """명령 키워드 <-> 코드 <-> 허용 단위"""
    command: HANCommand
    valid_units: FrozenSet[Units]

    @property
    def keyword(self) -> str:
        return self.command.keyword


# Command map (명령별 허용 단위)
COMMAND_MAP: Dict[HANCommand, CommandSpec] = {
    spec.command: spec for spec in (
        CommandSpec(HANCommand.GTMP, frozenset({Units.FAHRENHEIT, Units.CELSIUS})),
        CommandSpec(HANCommand.GACD, frozenset({Units.VOLTS, Units.HERTZ})),
        CommandSpec(HANCommand.GOUT, frozenset({Units.OUTPUT})),
        CommandSpec(HANCommand.GVLT, frozenset({Units.VOLTS})),
        CommandSpec(HANCommand.GCUR, frozenset({Units.AMPS})),
        CommandSpec(HANCommand.GHUM, frozenset({Units.PERCENTRH})),
        CommandSpec(HANCommand.GWSP, frozenset({Units.MPH, Units.KMH})),
        CommandSpec(HANCommand.GWDR, frozenset({Units.WDIRMAP})),
        CommandSpec(HANCommand.GRGC, frozenset({Units.IN, Units.MM})),
    )
}

# Units map (키워드 -> 단위)
UNITS_MAP: Dict[str, Units] = {unit.value: unit for unit in Units}


def command_from_keyword(keyword: str) -> HANCommand:
    """
    han-command 키워드를 명령 코드로 변환

    Raises:
        ConfigurationError: 알 수 없는 키워드
    """
    for spec in COMMAND_MAP.values():
        if spec.keyword == keyword:
            return spec.command
    raise ConfigurationError(f"Unrecognized han-command: {keyword}")


def units_from_keyword(keyword: str) -> Units:
    """
    units 키워드를 단위로 변환

    Raises:
        ConfigurationError: 알 수 없는 키워드
    """
    try:
        return UNITS_MAP[keyword]
    except KeyError:
        raise ConfigurationError(f"Unrecognized units: {keyword}")


def units_valid_for(command: HANCommand, units: Optional[Units]) -> bool:
    """단위가 명령의 허용 단위 집합에 포함되는지 확인"""
    return units in COMMAND_MAP[command].valid_units


def hex2(text: str) -> int:
    """
    2자리 hex 문자열을 바이트로 변환

    대문자 hex만 인식. 잘못된 문자를 만나면 그 전까지의 값 반환
    (예: '5G' -> 0x50, 'G5' -> 0x00)
    """
    value = 0
    for i in range(2):
        value <<= 4
        ch = text[i] if i < len(text) else ''
        if ch and ch in HEX_DIGITS:
            value |= HEX_DIGITS.index(ch)
        else:
            break
    return value & 0xFF


# Byte helpers (little-endian)

def u16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], 'little')


def s16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], 'little', signed=True)


def u32(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 4], 'little')


def s8(value: int) -> int:
    return value - 0x100 if value & 0x80 else value


def is_reply(line: str) -> bool:
    """응답 마커('RS')로 시작하는지 확인"""
    return line.startswith(REPLY_MARKER)


@dataclass
class ResponseFrame:
    """디코딩된 HAN 응답"""
    address: int
    command: int
    params: bytes = field(default_factory=bytes)

    @property
    def param_count(self) -> int:
        return len(self.params)

    @classmethod
    def parse(cls, line: str) -> 'ResponseFrame':
        """
        응답 라인 파싱

        Args:
            line: 수신된 라인 (줄바꿈 제외)

        Returns:
            ResponseFrame

        Raises:
            FrameError: 응답 마커 누락, 길이 부족, 파라미터 초과 시
        """
        if not is_reply(line):
            raise FrameError(f"Missing reply marker: {line!r}")

        if len(line) < MIN_REPLY_LENGTH:
            raise FrameError(f"Reply too short: {len(line)} chars")

        pcount = (len(line) - MIN_REPLY_LENGTH) >> 1
        if pcount > MAX_PARAMS:
            raise FrameError(f"Too many parameters: {pcount} (max {MAX_PARAMS})")

        address = hex2(line[2:4])
        command = hex2(line[4:6])
        params = bytes(
            hex2(line[MIN_REPLY_LENGTH + 2 * i:MIN_REPLY_LENGTH + 2 * i + 2])
            for i in range(pcount)
        )
        return cls(address=address, command=command, params=params)

    def hexdump(self) -> str:
        """디버그용 바이너리 덤프"""
        raw = bytes([self.address, self.command]) + self.params
        return raw.hex(' ').upper()
