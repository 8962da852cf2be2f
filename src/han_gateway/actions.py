"""
Command Action Handlers

HAN 응답을 물리 단위로 변환하고 버스 이벤트 생성
- GTMP: 온도
- GACD: AC 전압 / 주파수
- GOUT: 출력 상태
- GVLT: DC 전압
- GCUR: DC 전류
- GHUM: 습도
- GWSP: 풍속
- GWDR: 풍향
- GRGC: 강우량

폴링 응답은 마지막 값과 비교해 바뀐 경우에만 trigger 이벤트 발행,
버스 요청 응답은 항상 status 이벤트 발행
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Union, TYPE_CHECKING

from .protocol import HANCommand, Units, ResponseFrame, u16, s16, u32, s8
from .bus import BusEvent, MessageType
from .exceptions import FrameError, ResponseError

if TYPE_CHECKING:
    from .registry import ServiceEntry
    from .work_queue import WorkQueueEntry

logger = logging.getLogger(__name__)


KMH_TO_MPH = 0.621371
MM_PER_INCH = 25.4

# 풍향 코드 테이블 (장치 정의 순서, 순차적이지 않음)
WIND_DIRECTIONS = (
    "ese", "ene", "e", "sse",
    "se", "ssw", "s", "nne",
    "ne", "wsw", "sw", "nnw",
    "n", "wnw", "nw", "w",
)
WIND_DIR_SHORT = 0xFE
WIND_DIR_OPEN = 0xFF


def trunc_div(numerator: int, denominator: int) -> int:
    """0 방향으로 버림하는 정수 나눗셈 (장치 펌웨어와 동일)"""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


@dataclass
class Reading:
    """디코딩 결과"""
    value: Union[int, float]      # 변경 감지 비교 값
    fields: Dict[str, str] = field(default_factory=dict)


class ActionHandler(ABC):
    """핸들러 기본 클래스"""

    command: HANCommand
    expected_params: int
    uses_float_cache: bool = True

    def handle(self, frame: ResponseFrame, entry: 'WorkQueueEntry') -> Optional[BusEvent]:
        """
        응답 처리

        Args:
            frame: 디코딩된 응답
            entry: 이 응답을 기다리던 명령

        Returns:
            발행할 이벤트 또는 None (값 변화 없음 / 상태 요청이 아닌 응답)

        Raises:
            FrameError: 파라미터 개수가 맞지 않을 때
            ResponseError: 값을 해석할 수 없을 때
        """
        if frame.param_count != self.expected_params:
            raise FrameError(
                f"{self.command.name}: received an incorrect number of parameters, "
                f"got {frame.param_count}, need {self.expected_params}"
            )

        service = entry.service
        reading = self.decode(frame.params, service)
        if reading is None:
            return None

        msg_type = MessageType.STATUS
        if entry.is_poll:
            if self._cached(service) == reading.value:
                logger.debug(f"{service.instance_id}: no change ({reading.value})")
                return None
            self._store(service, reading.value)
            msg_type = MessageType.TRIGGER
            logger.debug(f"{service.instance_id}: sending trigger ({reading.value})")

        return BusEvent(msg_type=msg_type, source=service.instance_id, fields=reading.fields)

    @abstractmethod
    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        """파라미터 바이트를 측정값으로 변환"""
        pass

    def _cached(self, service: 'ServiceEntry') -> Optional[Union[int, float]]:
        return service.last_float_value if self.uses_float_cache else service.last_int_value

    def _store(self, service: 'ServiceEntry', value: Union[int, float]) -> None:
        if self.uses_float_cache:
            service.last_float_value = value
        else:
            service.last_int_value = value


class TemperatureHandler(ActionHandler):
    """
    GTMP: 온도 (5 params)

    params[1] = 단위당 카운트, params[3..4] = 원시 온도 (int16 LE)
    """

    command = HANCommand.GTMP
    expected_params = 5
    uses_float_cache = False

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        counts_per_unit = params[1]
        raw_temp = s16(params, 3)
        logger.debug(f"Raw temp = {raw_temp}, counts per unit = {counts_per_unit}")

        if counts_per_unit == 0:
            raise ResponseError("GTMP: counts per unit is zero")

        if service.units is Units.CELSIUS:
            value = trunc_div(raw_temp, counts_per_unit)
        elif service.units is Units.FAHRENHEIT:
            value = trunc_div(9 * raw_temp, 5 * counts_per_unit) + 32
        else:
            raise ResponseError(f"GTMP: invalid unit for conversion: {service.units}")

        return Reading(value, {
            "device": "0",
            "type": "temp",
            "current": f"{value:d}",
            "units": service.units.value,
        })


class ACLineHandler(ActionHandler):
    """GACD: AC 전압(x10) / 주파수(x100), 각각 uint16 LE"""

    command = HANCommand.GACD
    expected_params = 4

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        volts = u16(params, 0) / 10.0
        freq = u16(params, 2) / 100.0
        logger.debug(f"AC Volts = {volts:.1f}, AC Frequency = {freq:.2f}")

        if service.units is Units.VOLTS:
            return Reading(volts, {
                "type": "volts",
                "current": f"{volts:.1f}",
                "units": Units.VOLTS.value,
            })
        return Reading(freq, {
            "type": "frequency",
            "current": f"{freq:.2f}",
            "units": Units.HERTZ.value,
        })


class OutputHandler(ActionHandler):
    """
    GOUT: 출력 상태 (3 params)

    params[1] == 2 (상태 요청)일 때만 처리, params[2]: 1=high, 0=low
    """

    command = HANCommand.GOUT
    expected_params = 3
    uses_float_cache = False

    STATES = {1: "high", 0: "low"}

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        if params[1] != 2:
            # 쓰기 명령 응답 - 상태 요청이 아니므로 이벤트 없음
            return None

        state = self.STATES.get(params[2])
        if state is None:
            raise ResponseError(f"GOUT: unexpected state received: {params[2]}")

        return Reading(params[2], {
            "device": str(params[0]),
            "type": "output",
            "current": state,
        })


class VoltageHandler(ActionHandler):
    """
    GVLT: DC 전압 (8 params)

    voltage = rawvolts(uint16) * voltres(uint32) * 10^voltexp(int8)
    """

    command = HANCommand.GVLT
    expected_params = 8

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        resolution = u32(params, 4)
        exponent = s8(params[1])
        raw = u16(params, 2)
        voltage = raw * resolution * 10.0 ** exponent
        logger.debug(f"GVLT: res={resolution} exp={exponent} raw={raw} -> {voltage:.3f} V")

        return Reading(voltage, {
            "device": "0",
            "type": "volts",
            "current": f"{voltage:.3f}",
            "units": Units.VOLTS.value,
        })


class CurrentHandler(ActionHandler):
    """GCUR: DC 전류, GVLT와 같은 배치이지만 원시값이 int16"""

    command = HANCommand.GCUR
    expected_params = 8

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        resolution = u32(params, 4)
        exponent = s8(params[1])
        raw = s16(params, 2)
        amps = raw * resolution * 10.0 ** exponent
        logger.debug(f"GCUR: res={resolution} exp={exponent} raw={raw} -> {amps:.3f} A")

        return Reading(amps, {
            "device": "0",
            "type": "amps",
            "current": f"{amps:.3f}",
            "units": Units.AMPS.value,
        })


class HumidityHandler(ActionHandler):
    """GHUM: 습도 (6 params), params[5] != 0 이면 센서 오류"""

    command = HANCommand.GHUM
    expected_params = 6

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        counts_per_unit = params[1]
        raw_hum = s16(params, 3)

        if params[5]:
            logger.warning(f"GHUM: sensor error on {service.instance_id}: code = {params[5]}")
        else:
            logger.debug(f"Raw humidity = {raw_hum}, counts per unit = {counts_per_unit}")

        if counts_per_unit == 0:
            raise ResponseError("GHUM: counts per unit is zero")

        value = raw_hum / counts_per_unit
        return Reading(value, {
            "device": "0",
            "type": "humidity",
            "current": f"{value:.1f}",
            "units": Units.PERCENTRH.value,
        })


class WindSpeedHandler(ActionHandler):
    """
    GWSP: 풍속 (6 params)

    km/h = mantissa(uint16) * 10^exponent(int8) / counts(uint16)
    """

    command = HANCommand.GWSP
    expected_params = 6

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        exponent = s8(params[1])
        mantissa = u16(params, 2)
        counts = u16(params, 4)
        logger.debug(f"GWSP: raw counts = {counts}")

        if counts == 0:
            raise ResponseError("GWSP: counts is zero")

        value = mantissa * 10.0 ** exponent / counts
        logger.debug(f"GWSP: windspeed = {value:.1f} kmh")

        if service.units is Units.MPH:
            value *= KMH_TO_MPH
            units = Units.MPH
        else:
            units = Units.KMH

        return Reading(value, {
            "device": "0",
            "type": "windspeed",
            "current": f"{value:.1f}",
            "units": units.value,
        })


class WindDirectionHandler(ActionHandler):
    """GWDR: 풍향 (3 params), 변경 감지는 원시 코드로 비교"""

    command = HANCommand.GWDR
    expected_params = 3
    uses_float_cache = False

    @staticmethod
    def direction_name(dircode: int) -> str:
        """풍향 코드 -> 방위 문자열"""
        if dircode < len(WIND_DIRECTIONS):
            return WIND_DIRECTIONS[dircode]
        if dircode == WIND_DIR_SHORT:
            return "short"
        if dircode == WIND_DIR_OPEN:
            return "open"
        return "error"

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        dircode = params[0]
        direction = self.direction_name(dircode)
        logger.debug(f"GWDR: wind direction code = {dircode} ({direction})")

        return Reading(dircode, {
            "device": "0",
            "type": "winddir",
            "current": direction,
        })


class RainGaugeHandler(ActionHandler):
    """
    GRGC: 강우량 (9 params)

    mm = mantissa(uint16) * 10^exponent(int8) * counts(uint32)
    """

    command = HANCommand.GRGC
    expected_params = 9

    def decode(self, params: bytes, service: 'ServiceEntry') -> Optional[Reading]:
        exponent = s8(params[1])
        mantissa = u16(params, 2)
        counts = u32(params, 5)
        logger.debug(f"GRGC: raw counts = {counts}")

        value = mantissa * 10.0 ** exponent * counts
        logger.debug(f"GRGC: raingauge = {value:.3f} mm")

        if service.units is Units.IN:
            value /= MM_PER_INCH
            units = Units.IN
        else:
            units = Units.MM

        return Reading(value, {
            "device": "0",
            "type": "raingauge",
            "current": f"{value:.3f}",
            "units": units.value,
        })


# 명령 코드 -> 핸들러
ACTION_HANDLERS: Dict[int, ActionHandler] = {
    handler.command.value: handler for handler in (
        TemperatureHandler(),
        ACLineHandler(),
        OutputHandler(),
        VoltageHandler(),
        CurrentHandler(),
        HumidityHandler(),
        WindSpeedHandler(),
        WindDirectionHandler(),
        RainGaugeHandler(),
    )
}


def get_action_handler(command_code: int) -> Optional[ActionHandler]:
    """명령 코드로 핸들러 조회"""
    return ACTION_HANDLERS.get(command_code)
