"""
Service Registry Unit Tests

서비스 테이블 테스트:
- 항목 범위 검사
- 중복 검사
- 인스턴스 ID 조회
- 단위-명령 검증
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from han_gateway.registry import ServiceEntry, ServiceRegistry, instance_hash
from han_gateway.protocol import HANCommand, Units
from han_gateway.exceptions import ConfigurationError


def make_entry(name='otemp-svc', instance_id='otemp', **kwargs):
    params = dict(
        name=name,
        instance_id=instance_id,
        address=0x04,
        command=HANCommand.GTMP,
        schema_class='sensor',
        schema_type='basic',
        units=Units.FAHRENHEIT,
    )
    params.update(kwargs)
    return ServiceEntry(**params)


class TestServiceEntry:
    """서비스 항목 테스트"""

    def test_defaults(self):
        """기본값 및 해시"""
        entry = make_entry()

        assert entry.channel == 0
        assert entry.polling_interval == 0
        assert entry.poll_counter == 0
        assert entry.last_int_value is None
        assert entry.last_float_value is None
        assert entry.iid_hash == instance_hash('otemp')

    def test_is_sensor(self):
        assert make_entry().is_sensor is True
        assert make_entry(schema_class='control', units=None).is_sensor is False

    def test_is_polled(self):
        assert make_entry().is_polled is False
        assert make_entry(polling_interval=60).is_polled is True

    @pytest.mark.parametrize('address', [-1, 255, 300])
    def test_address_out_of_range(self, address):
        with pytest.raises(ConfigurationError):
            make_entry(address=address)

    def test_address_limits(self):
        assert make_entry(address=0).address == 0
        assert make_entry(address=254).address == 254

    def test_channel_out_of_range(self):
        with pytest.raises(ConfigurationError):
            make_entry(channel=16)

    def test_polling_interval_out_of_range(self):
        with pytest.raises(ConfigurationError):
            make_entry(polling_interval=604801)

    def test_str(self):
        assert str(make_entry()) == 'otemp-svc (otemp): gtmp @ 0x04 ch0'


class TestServiceRegistry:
    """서비스 테이블 테스트"""

    def test_add_assigns_ids_in_order(self):
        """로드 순서대로 service_id 부여"""
        registry = ServiceRegistry()
        first = registry.add(make_entry('a', 'ia'))
        second = registry.add(make_entry('b', 'ib'))

        assert first.service_id == 0
        assert second.service_id == 1
        assert [e.name for e in registry] == ['a', 'b']
        assert len(registry) == 2

    def test_duplicate_name(self):
        registry = ServiceRegistry()
        registry.add(make_entry('a', 'ia'))

        with pytest.raises(ConfigurationError):
            registry.add(make_entry('a', 'ib'))

    def test_duplicate_instance_id(self):
        registry = ServiceRegistry()
        registry.add(make_entry('a', 'ia'))

        with pytest.raises(ConfigurationError):
            registry.add(make_entry('b', 'ia'))

    def test_lookup(self):
        registry = ServiceRegistry()
        entry = registry.add(make_entry('a', 'ia'))
        registry.add(make_entry('b', 'ib'))

        assert registry.lookup('ia') is entry
        assert registry.lookup('missing') is None

    def test_lookup_hash_collision(self):
        """해시가 같아도 이름이 다르면 찾지 않음"""
        registry = ServiceRegistry()
        entry = registry.add(make_entry('a', 'ia'))

        assert registry.lookup_by_instance_id(entry.iid_hash, 'other') is None
        assert registry.lookup_by_instance_id(entry.iid_hash, 'ia') is entry

    def test_validate_ok(self):
        registry = ServiceRegistry()
        registry.add(make_entry('a', 'ia'))
        registry.add(make_entry('b', 'ib', command=HANCommand.GOUT, schema_class='control', units=None))
        registry.validate()

    def test_validate_bad_units(self):
        """단위가 명령과 맞지 않으면 시작 불가"""
        registry = ServiceRegistry()
        registry.add(make_entry('a', 'ia', command=HANCommand.GWSP, units=Units.CELSIUS))

        with pytest.raises(ConfigurationError, match='fails sanity check'):
            registry.validate()

    def test_polled(self):
        registry = ServiceRegistry()
        registry.add(make_entry('a', 'ia', polling_interval=10))
        registry.add(make_entry('b', 'ib'))

        assert [e.name for e in registry.polled()] == ['a']
