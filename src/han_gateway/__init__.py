"""
HAN Gateway Library

HAN(home-area-network) 장치 서버와 홈오토메이션 버스(MQTT) 사이의 게이트웨이
- 설정된 서비스(센서/제어)를 버스에 노출
- 버스 명령 → HAN 명령 프레임 전송, 응답 → status 이벤트
- 센서 주기 폴링, 값이 바뀌면 trigger 이벤트

사용 예:
    from han_gateway import load_config, HANConnection, HANGateway, MQTTBridge

    config = load_config('/etc/xplhan.yaml')
    gateway = HANGateway(config.services, HANConnection(config.host, config.port))

    bridge = MQTTBridge(
        config.mqtt, config.instance_id,
        [s.instance_id for s in config.services], gateway.submit
    )
    gateway.publisher = bridge.publish_event
    bridge.start()
    gateway.run()
"""

__version__ = '1.0.0'
__author__ = 'CRK'

# Core classes
from .gateway import HANGateway
from .transport import HANConnection, LineReader, ConnectionState, ReadStatus
from .registry import ServiceEntry, ServiceRegistry
from .work_queue import WorkQueue, WorkQueueEntry
from .dispatcher import ResponseDispatcher
from .scheduler import PollScheduler

# Protocol
from .protocol import (
    HANCommand, Units, OutputState, ResponseFrame,
    COMMAND_MAP, command_from_keyword, units_from_keyword, hex2
)
from .encoder import build_frame, encode_command, encode_poll
from .actions import ActionHandler, get_action_handler
from .request_handlers import queue_request

# Configuration
from .config import GatewayConfig, MQTTSettings, load_config, setup_logging

# Exceptions
from .exceptions import (
    HANGatewayError,
    ConfigurationError,
    RequestError,
    CommandError,
    FrameError,
    ResponseError,
    CommunicationError,
    ConnectionError
)

# Bus Interface
from .bus import BusRequest, BusEvent, BusMessage, MessageType
from .bus_topics import Topics, get_base_topic
from .mqtt_bridge import MQTTBridge

__all__ = [
    # Version
    '__version__',

    # Core
    'HANGateway',
    'HANConnection',
    'LineReader',
    'ConnectionState',
    'ReadStatus',
    'ServiceEntry',
    'ServiceRegistry',
    'WorkQueue',
    'WorkQueueEntry',
    'ResponseDispatcher',
    'PollScheduler',

    # Protocol
    'HANCommand',
    'Units',
    'OutputState',
    'ResponseFrame',
    'COMMAND_MAP',
    'command_from_keyword',
    'units_from_keyword',
    'hex2',
    'build_frame',
    'encode_command',
    'encode_poll',
    'ActionHandler',
    'get_action_handler',
    'queue_request',

    # Configuration
    'GatewayConfig',
    'MQTTSettings',
    'load_config',
    'setup_logging',

    # Exceptions
    'HANGatewayError',
    'ConfigurationError',
    'RequestError',
    'CommandError',
    'FrameError',
    'ResponseError',
    'CommunicationError',
    'ConnectionError',

    # Bus Interface
    'BusRequest',
    'BusEvent',
    'BusMessage',
    'MessageType',
    'Topics',
    'get_base_topic',
    'MQTTBridge',
]
