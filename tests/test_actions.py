"""
Command Action Handler Unit Tests

응답 디코딩 및 이벤트 생성 테스트:
- 명령별 단위 변환 / 형식
- 폴링 변경 감지 (trigger) vs 요청 응답 (status)
- 잘못된 응답 처리
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from han_gateway.actions import (
    get_action_handler, trunc_div, WindDirectionHandler, ACTION_HANDLERS
)
from han_gateway.protocol import HANCommand, Units, ResponseFrame
from han_gateway.registry import ServiceEntry
from han_gateway.work_queue import WorkQueueEntry
from han_gateway.bus import MessageType
from han_gateway.exceptions import FrameError, ResponseError


def make_entry(command, units=None, is_poll=False, schema_class='sensor'):
    service = ServiceEntry(
        name='svc',
        instance_id='iid',
        address=0x0A,
        command=command,
        schema_class=schema_class,
        schema_type='basic',
        units=units
    )
    return WorkQueueEntry('CA0A', service, is_poll=is_poll)


def handle(command, params, entry):
    frame = ResponseFrame(address=0x0A, command=command.value, params=bytes(params))
    return get_action_handler(command.value).handle(frame, entry)


class TestHandlerTable:
    """핸들러 테이블 테스트"""

    def test_all_commands_registered(self):
        for command in HANCommand:
            assert get_action_handler(command.value).command is command
        assert len(ACTION_HANDLERS) == 9

    def test_unknown_command(self):
        assert get_action_handler(0x99) is None

    def test_trunc_div(self):
        """0 방향 버림"""
        assert trunc_div(7, 2) == 3
        assert trunc_div(-7, 2) == -3
        assert trunc_div(7, -2) == -3
        assert trunc_div(-7, -2) == 3

    def test_param_count_mismatch(self):
        entry = make_entry(HANCommand.GTMP, Units.CELSIUS)
        with pytest.raises(FrameError):
            handle(HANCommand.GTMP, [0, 2, 0, 20], entry)


class TestTemperature:
    """GTMP 테스트"""

    def test_celsius(self):
        event = handle(HANCommand.GTMP, [0, 2, 0, 20, 0], make_entry(HANCommand.GTMP, Units.CELSIUS))

        assert event.msg_type is MessageType.STATUS
        assert event.source == 'iid'
        assert event.fields == {
            'device': '0', 'type': 'temp', 'current': '10', 'units': 'celsius'
        }

    def test_fahrenheit(self):
        event = handle(HANCommand.GTMP, [0, 2, 0, 20, 0], make_entry(HANCommand.GTMP, Units.FAHRENHEIT))

        assert event.fields['current'] == '50'
        assert event.fields['units'] == 'fahrenheit'

    def test_negative_truncates_toward_zero(self):
        """raw = -15, counts = 2"""
        params = [0, 2, 0, 0xF1, 0xFF]
        celsius = handle(HANCommand.GTMP, params, make_entry(HANCommand.GTMP, Units.CELSIUS))
        fahrenheit = handle(HANCommand.GTMP, params, make_entry(HANCommand.GTMP, Units.FAHRENHEIT))

        assert celsius.fields['current'] == '-7'
        assert fahrenheit.fields['current'] == '19'

    def test_zero_counts(self):
        with pytest.raises(ResponseError):
            handle(HANCommand.GTMP, [0, 0, 0, 20, 0], make_entry(HANCommand.GTMP, Units.CELSIUS))


class TestChangeDetection:
    """폴링 변경 감지 테스트"""

    def test_first_poll_triggers(self):
        entry = make_entry(HANCommand.GTMP, Units.CELSIUS, is_poll=True)
        event = handle(HANCommand.GTMP, [0, 2, 0, 20, 0], entry)

        assert event.msg_type is MessageType.TRIGGER
        assert event.is_trigger is True
        assert entry.service.last_int_value == 10

    def test_unchanged_poll_no_event(self):
        """값이 같으면 이벤트 없음, 캐시 유지"""
        entry = make_entry(HANCommand.GTMP, Units.CELSIUS, is_poll=True)
        entry.service.last_int_value = 10

        assert handle(HANCommand.GTMP, [0, 2, 0, 20, 0], entry) is None
        assert entry.service.last_int_value == 10

    def test_changed_poll_one_trigger(self):
        entry = make_entry(HANCommand.GTMP, Units.CELSIUS, is_poll=True)
        entry.service.last_int_value = 10

        event = handle(HANCommand.GTMP, [0, 2, 0, 22, 0], entry)
        assert event.msg_type is MessageType.TRIGGER
        assert event.fields['current'] == '11'
        assert entry.service.last_int_value == 11

    def test_non_poll_always_status(self):
        """요청 응답은 캐시와 관계없이 status, 캐시 변경 없음"""
        entry = make_entry(HANCommand.GTMP, Units.CELSIUS, is_poll=False)
        entry.service.last_int_value = 10

        event = handle(HANCommand.GTMP, [0, 2, 0, 20, 0], entry)
        assert event.msg_type is MessageType.STATUS

        event = handle(HANCommand.GTMP, [0, 2, 0, 40, 0], entry)
        assert event.msg_type is MessageType.STATUS
        assert entry.service.last_int_value == 10

    def test_float_cache(self):
        """실수 값은 last_float_value 사용"""
        entry = make_entry(HANCommand.GHUM, Units.PERCENTRH, is_poll=True)
        params = [0, 10, 0, 0xC7, 0x01, 0]

        assert handle(HANCommand.GHUM, params, entry) is not None
        assert entry.service.last_float_value == pytest.approx(45.5)
        assert entry.service.last_int_value is None
        assert handle(HANCommand.GHUM, params, entry) is None


class TestACLine:
    """GACD 테스트"""

    params = [0xB0, 0x04, 0x70, 0x17]  # 1200 (120.0 V), 6000 (60.00 Hz)

    def test_volts(self):
        event = handle(HANCommand.GACD, self.params, make_entry(HANCommand.GACD, Units.VOLTS))
        assert event.fields == {'type': 'volts', 'current': '120.0', 'units': 'volts'}

    def test_frequency(self):
        event = handle(HANCommand.GACD, self.params, make_entry(HANCommand.GACD, Units.HERTZ))
        assert event.fields == {'type': 'frequency', 'current': '60.00', 'units': 'hertz'}


class TestOutput:
    """GOUT 테스트"""

    def test_status_high(self):
        event = handle(HANCommand.GOUT, [1, 2, 1], make_entry(HANCommand.GOUT, Units.OUTPUT))
        assert event.fields == {'device': '1', 'type': 'output', 'current': 'high'}

    def test_status_low(self):
        event = handle(HANCommand.GOUT, [3, 2, 0], make_entry(HANCommand.GOUT, Units.OUTPUT))
        assert event.fields['current'] == 'low'
        assert event.fields['device'] == '3'

    def test_write_ack_no_event(self):
        """상태 요청이 아닌 응답은 이벤트 없음"""
        entry = make_entry(HANCommand.GOUT, schema_class='control')
        assert handle(HANCommand.GOUT, [1, 1, 1], entry) is None

    def test_unexpected_state(self):
        with pytest.raises(ResponseError):
            handle(HANCommand.GOUT, [1, 2, 5], make_entry(HANCommand.GOUT, Units.OUTPUT))

    def test_poll_caches_state(self):
        entry = make_entry(HANCommand.GOUT, Units.OUTPUT, is_poll=True)
        assert handle(HANCommand.GOUT, [1, 2, 1], entry).is_trigger
        assert entry.service.last_int_value == 1
        assert handle(HANCommand.GOUT, [1, 2, 1], entry) is None


class TestVoltageCurrent:
    """GVLT / GCUR 테스트"""

    def test_voltage(self):
        # exp = -3, raw = 12000, res = 1
        params = [0, 0xFD, 0xE0, 0x2E, 0x01, 0x00, 0x00, 0x00]
        event = handle(HANCommand.GVLT, params, make_entry(HANCommand.GVLT, Units.VOLTS))

        assert event.fields == {
            'device': '0', 'type': 'volts', 'current': '12.000', 'units': 'volts'
        }

    def test_current_signed(self):
        # exp = -3, raw = -500, res = 2
        params = [0, 0xFD, 0x0C, 0xFE, 0x02, 0x00, 0x00, 0x00]
        event = handle(HANCommand.GCUR, params, make_entry(HANCommand.GCUR, Units.AMPS))

        assert event.fields == {
            'device': '0', 'type': 'amps', 'current': '-1.000', 'units': 'amps'
        }


class TestHumidity:
    """GHUM 테스트"""

    def test_humidity(self):
        event = handle(HANCommand.GHUM, [0, 10, 0, 0xC7, 0x01, 0], make_entry(HANCommand.GHUM, Units.PERCENTRH))
        assert event.fields == {
            'device': '0', 'type': 'humidity', 'current': '45.5', 'units': '%rh'
        }

    def test_sensor_error_still_reports(self):
        """센서 오류 코드가 있어도 값은 계산"""
        event = handle(HANCommand.GHUM, [0, 10, 0, 0xC7, 0x01, 3], make_entry(HANCommand.GHUM, Units.PERCENTRH))
        assert event.fields['current'] == '45.5'

    def test_zero_counts(self):
        with pytest.raises(ResponseError):
            handle(HANCommand.GHUM, [0, 0, 0, 0xC7, 0x01, 0], make_entry(HANCommand.GHUM, Units.PERCENTRH))


class TestWindSpeed:
    """GWSP 테스트"""

    params = [0, 0xFF, 0x64, 0x00, 0x01, 0x00]  # exp = -1, mant = 100, counts = 1

    def test_kmh(self):
        event = handle(HANCommand.GWSP, self.params, make_entry(HANCommand.GWSP, Units.KMH))
        assert event.fields == {
            'device': '0', 'type': 'windspeed', 'current': '10.0', 'units': 'kmh'
        }

    def test_mph(self):
        event = handle(HANCommand.GWSP, self.params, make_entry(HANCommand.GWSP, Units.MPH))
        assert event.fields['current'] == '6.2'
        assert event.fields['units'] == 'mph'

    def test_zero_counts(self):
        with pytest.raises(ResponseError):
            handle(HANCommand.GWSP, [0, 0xFF, 0x64, 0, 0, 0], make_entry(HANCommand.GWSP, Units.KMH))


class TestWindDirection:
    """GWDR 테스트"""

    @pytest.mark.parametrize('code,name', [
        (0, 'ese'), (1, 'ene'), (2, 'e'), (6, 's'), (12, 'n'), (15, 'w'),
        (0xFE, 'short'), (0xFF, 'open'), (16, 'error'), (0xFD, 'error'),
    ])
    def test_direction_name(self, code, name):
        assert WindDirectionHandler.direction_name(code) == name

    def test_event_has_no_units(self):
        event = handle(HANCommand.GWDR, [12, 0, 0], make_entry(HANCommand.GWDR, Units.WDIRMAP))
        assert event.fields == {'device': '0', 'type': 'winddir', 'current': 'n'}

    def test_change_detection_on_code(self):
        entry = make_entry(HANCommand.GWDR, Units.WDIRMAP, is_poll=True)
        assert handle(HANCommand.GWDR, [3, 0, 0], entry).is_trigger
        assert entry.service.last_int_value == 3
        assert handle(HANCommand.GWDR, [3, 0, 0], entry) is None


class TestRainGauge:
    """GRGC 테스트"""

    # exp = -1, mant = 2, counts = 127
    params = [0, 0xFF, 0x02, 0x00, 0x00, 0x7F, 0x00, 0x00, 0x00]

    def test_mm(self):
        event = handle(HANCommand.GRGC, self.params, make_entry(HANCommand.GRGC, Units.MM))
        assert event.fields == {
            'device': '0', 'type': 'raingauge', 'current': '25.400', 'units': 'mm.'
        }

    def test_inches(self):
        event = handle(HANCommand.GRGC, self.params, make_entry(HANCommand.GRGC, Units.IN))
        assert event.fields['current'] == '1.000'
        assert event.fields['units'] == 'in.'
