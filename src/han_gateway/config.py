"""
Gateway Configuration

YAML 설정 파일 로드 및 검증
- general: HAN 서버 주소, 인스턴스 ID, 응답 타임아웃, 로그 설정
- mqtt: 버스(MQTT 브로커) 설정
- services: 가상 서비스 목록

설정 오류는 모두 ConfigurationError (게이트웨이 시작 불가)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .protocol import (
    MAX_ADDRESS, MAX_CHANNEL, MAX_POLL_INTERVAL,
    command_from_keyword, units_from_keyword
)
from .registry import ServiceEntry, ServiceRegistry, SENSOR_CLASS
from .transport import DEFAULT_HOST, DEFAULT_PORT
from .dispatcher import DEFAULT_RESPONSE_TIMEOUT
from .bus_topics import DEFAULT_BASE_TOPIC, DEFAULT_QOS
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILE = '/etc/xplhan.yaml'
DEFAULT_INSTANCE_ID = 'test'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_MQTT_PORT = 1883

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class MQTTSettings:
    """MQTT 브로커 설정"""
    broker: str = 'localhost'
    port: int = DEFAULT_MQTT_PORT
    client_id: str = ''
    base_topic: str = DEFAULT_BASE_TOPIC
    qos: int = DEFAULT_QOS
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class GatewayConfig:
    """게이트웨이 전체 설정"""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    instance_id: str = DEFAULT_INSTANCE_ID
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_path: Optional[str] = None
    mqtt: MQTTSettings = field(default_factory=MQTTSettings)
    services: ServiceRegistry = field(default_factory=ServiceRegistry)


def _unsigned(value: Any, key: str, minimum: int, maximum: int, stanza: str) -> int:
    """정수 또는 10진 숫자 문자열을 범위 검사하여 변환"""
    if isinstance(value, bool):
        value = None
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)

    if not isinstance(value, int) or not minimum <= value <= maximum:
        raise ConfigurationError(
            f"In stanza {stanza}, {key} must be between {minimum} and {maximum}"
        )
    return value


def _required(stanza: Dict[str, Any], key: str, name: str) -> Any:
    value = stanza.get(key)
    if value is None or value == '':
        raise ConfigurationError(f"{key} missing in stanza: {name}")
    return value


def build_service(stanza: Dict[str, Any]) -> ServiceEntry:
    """
    서비스 항목 하나 생성

    Args:
        stanza: services 목록의 항목 딕셔너리

    Raises:
        ConfigurationError: 필드 누락 또는 잘못된 값
    """
    if not isinstance(stanza, dict):
        raise ConfigurationError(f"Service stanza must be a mapping, got: {stanza!r}")

    name = str(_required(stanza, 'name', '<unnamed>'))
    instance_id = str(_required(stanza, 'instance', name))
    address = _unsigned(_required(stanza, 'address', name), 'the address', 0, MAX_ADDRESS, name)
    schema_class = str(_required(stanza, 'class', name))
    schema_type = str(_required(stanza, 'type', name))
    command = command_from_keyword(str(_required(stanza, 'han-command', name)))
    is_sensor = schema_class == SENSOR_CLASS

    units = None
    if is_sensor:
        units = units_from_keyword(str(_required(stanza, 'units', name)))

    polling_interval = 0
    if stanza.get('polling-interval') is not None:
        if not is_sensor:
            raise ConfigurationError(
                f"In stanza {name}, a polling-interval is specified for non-sensor service"
            )
        polling_interval = _unsigned(
            stanza['polling-interval'], 'polling-interval', 0, MAX_POLL_INTERVAL, name
        )

    channel = 0
    if stanza.get('channel') is not None:
        channel = _unsigned(stanza['channel'], 'channel', 0, MAX_CHANNEL, name)

    return ServiceEntry(
        name=name,
        instance_id=instance_id,
        address=address,
        command=command,
        schema_class=schema_class,
        schema_type=schema_type,
        units=units,
        channel=channel,
        polling_interval=polling_interval,
    )


def parse_config(data: Dict[str, Any]) -> GatewayConfig:
    """
    파싱된 YAML 딕셔너리를 GatewayConfig로 변환

    Raises:
        ConfigurationError: 설정 오류 시
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    general = data.get('general')
    if not isinstance(general, dict):
        raise ConfigurationError("Error in config file: general stanza does not exist")

    config = GatewayConfig(
        host=str(general.get('host', DEFAULT_HOST)),
        port=_unsigned(general.get('port', DEFAULT_PORT), 'port', 1, 65535, 'general'),
        instance_id=str(general.get('instance-id', DEFAULT_INSTANCE_ID)),
        log_level=str(general.get('log-level', DEFAULT_LOG_LEVEL)).upper(),
        log_path=general.get('log-path'),
    )

    timeout = general.get('response-timeout', DEFAULT_RESPONSE_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError("In stanza general, response-timeout must be a positive number")
    config.response_timeout = float(timeout)

    if not isinstance(logging.getLevelName(config.log_level), int):
        raise ConfigurationError(f"Unknown log-level: {config.log_level}")

    mqtt = data.get('mqtt') or {}
    if not isinstance(mqtt, dict):
        raise ConfigurationError("mqtt stanza must be a mapping")
    config.mqtt = MQTTSettings(
        broker=str(mqtt.get('broker', 'localhost')),
        port=_unsigned(mqtt.get('port', DEFAULT_MQTT_PORT), 'port', 1, 65535, 'mqtt'),
        client_id=str(mqtt.get('client-id', f"xplhan-{config.instance_id}")),
        base_topic=str(mqtt.get('base-topic', DEFAULT_BASE_TOPIC)),
        qos=_unsigned(mqtt.get('qos', DEFAULT_QOS), 'qos', 0, 2, 'mqtt'),
        username=mqtt.get('username'),
        password=mqtt.get('password'),
    )

    services = data.get('services')
    if not services or not isinstance(services, list):
        raise ConfigurationError("At least one service must be defined in the services section")

    for stanza in services:
        config.services.add(build_service(stanza))
    config.services.validate()

    logger.info(f"Loaded {len(config.services)} service(s), han server {config.host}:{config.port}")
    return config


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_FILE) -> GatewayConfig:
    """
    YAML 설정 파일 로드

    Raises:
        ConfigurationError: 파일을 읽을 수 없거나 설정 오류 시
    """
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error in config file {path}: {e}")

    return parse_config(data)


def setup_logging(level: str = DEFAULT_LOG_LEVEL, log_path: Optional[str] = None) -> None:
    """
    로깅 설정

    Args:
        level: 로그 레벨 이름 (DEBUG, INFO, ...)
        log_path: 로그 파일 경로 (None이면 콘솔만)
    """
    handlers = [logging.StreamHandler()]
    if log_path:
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
