"""
Bus Message Unit Tests

버스 메시지 테스트:
- JSON 메시지 빌드/파싱
- BusRequest 변환
- MQTT 토픽
"""

import json
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from han_gateway.bus import (
    BusMessage, BusEvent, BusRequest, MessageType, MessageHeader
)
from han_gateway.bus_topics import Topics, get_base_topic


class TestBusMessage:
    """JSON 메시지 테스트"""

    def test_build_event(self):
        """이벤트 → HEADER/DATA 구조"""
        event = BusEvent(
            msg_type=MessageType.TRIGGER,
            source='otemp',
            fields={'device': '0', 'type': 'temp', 'current': '50', 'units': 'fahrenheit'}
        )
        message = BusMessage.build(event)

        header = message['HEADER']
        assert header['MSG_TYPE'] == 'trigger'
        assert header['SOURCE'] == 'otemp'
        assert header['TARGET'] == '*'
        assert header['SCHEMA'] == 'sensor.basic'
        assert len(header['DATE']) == 14
        assert header['MSG_ID']
        assert message['DATA'] == event.fields

    def test_data_field_order(self):
        """DATA 필드 순서 유지"""
        event = BusEvent(MessageType.STATUS, 'otemp', {'device': '0', 'type': 'temp', 'current': '1'})
        text = BusMessage.to_json(BusMessage.build(event))

        assert list(json.loads(text)['DATA']) == ['device', 'type', 'current']

    def test_unique_msg_id(self):
        assert MessageHeader('status', 'a', 'sensor.basic').MSG_ID != \
            MessageHeader('status', 'a', 'sensor.basic').MSG_ID

    def test_parse_invalid(self):
        assert BusMessage.parse('{not json') is None
        assert BusMessage.parse('[1, 2]') is None

    def test_to_request(self):
        message = BusMessage.parse(json.dumps({
            'HEADER': {
                'MSG_TYPE': 'command',
                'SOURCE': 'hub',
                'TARGET': 'porch',
                'SCHEMA': 'control.basic',
            },
            'DATA': {'device': 1, 'type': 'output', 'current': 'high'}
        }))
        request = BusMessage.to_request(message)

        assert isinstance(request, BusRequest)
        assert request.instance_id == 'porch'
        assert request.schema_class == 'control'
        assert request.schema_type == 'basic'
        assert request.schema == 'control.basic'
        assert request.msg_type is MessageType.COMMAND
        assert request.broadcast is False
        assert request.source == 'hub'
        assert request.get('device') == '1'
        assert request.get('missing') is None

    def test_to_request_default_target(self):
        """TARGET이 없으면 기본 대상 사용"""
        message = {'HEADER': {'SCHEMA': 'sensor.basic'}, 'DATA': {'request': 'current'}}
        request = BusMessage.to_request(message, default_target='otemp')

        assert request.instance_id == 'otemp'
        assert request.msg_type is MessageType.COMMAND

    def test_to_request_broadcast(self):
        message = {'HEADER': {'SCHEMA': 'sensor.basic', 'TARGET': '*'}, 'DATA': {}}
        assert BusMessage.to_request(message).broadcast is True

    def test_to_request_bad_schema(self):
        assert BusMessage.to_request({'HEADER': {'SCHEMA': 'sensor'}, 'DATA': {}}) is None

    def test_to_request_bad_type(self):
        message = {'HEADER': {'SCHEMA': 'sensor.basic', 'MSG_TYPE': 'shout'}, 'DATA': {}}
        assert BusMessage.to_request(message) is None

    def test_to_request_bad_data(self):
        assert BusMessage.to_request({'HEADER': {'SCHEMA': 'sensor.basic'}, 'DATA': []}) is None


class TestTopics:
    """MQTT 토픽 테스트"""

    def test_base_topic(self):
        assert get_base_topic('otemp') == 'xplhan/otemp'
        assert get_base_topic('otemp', 'home') == 'home/otemp'

    def test_event_topic(self):
        assert Topics.event_topic('otemp', MessageType.STATUS) == 'xplhan/otemp/stat'
        assert Topics.event_topic('otemp', MessageType.TRIGGER) == 'xplhan/otemp/trig'

    def test_subscribe_topics(self):
        topics = Topics.get_subscribe_topics(['otemp', 'porch'], 'home')
        assert topics == {'home/otemp/cmnd': 'otemp', 'home/porch/cmnd': 'porch'}

    def test_instance_from_topic(self):
        assert Topics.instance_from_topic('xplhan/otemp/cmnd') == 'otemp'
        assert Topics.instance_from_topic('xplhan/otemp/stat') is None
        assert Topics.instance_from_topic('other/otemp/cmnd') is None
        assert Topics.instance_from_topic('home/han/otemp/cmnd', 'home/han') == 'otemp'
