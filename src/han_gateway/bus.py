"""
Bus Message Module

홈오토메이션 버스와 주고받는 구조화된 메시지
- BusRequest: 수신 명령 (대상 인스턴스, 스키마 class/type, 이름 있는 필드)
- BusEvent: 발행 이벤트 (status / trigger)

JSON 구조 (MQTT 페이로드):
{
    "HEADER": {
        "MSG_TYPE": "command" | "status" | "trigger",
        "SOURCE": "instance id",
        "TARGET": "instance id" | "*",
        "SCHEMA": "sensor.basic",
        "MSG_ID": "uuid",
        "DATE": "yyyyMMddHHmmss"
    },
    "DATA": {
        "device": "0",
        "type": "temp",
        ...
    }
}
"""

import json
import uuid
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


BROADCAST_TARGET = '*'
SENSOR_SCHEMA_CLASS = 'sensor'
SENSOR_SCHEMA_TYPE = 'basic'


class MessageType(Enum):
    """버스 메시지 타입"""
    COMMAND = 'command'
    STATUS = 'status'
    TRIGGER = 'trigger'


@dataclass
class BusRequest:
    """버스에서 들어온 명령"""
    instance_id: str
    schema_class: str
    schema_type: str
    fields: Dict[str, str] = field(default_factory=dict)
    msg_type: MessageType = MessageType.COMMAND
    broadcast: bool = False
    source: str = ""

    def get(self, name: str) -> Optional[str]:
        """필드 값 조회 (없으면 None)"""
        return self.fields.get(name)

    @property
    def schema(self) -> str:
        return f"{self.schema_class}.{self.schema_type}"


@dataclass
class BusEvent:
    """버스로 발행할 이벤트"""
    msg_type: MessageType
    source: str
    fields: Dict[str, str] = field(default_factory=dict)
    schema_class: str = SENSOR_SCHEMA_CLASS
    schema_type: str = SENSOR_SCHEMA_TYPE

    @property
    def schema(self) -> str:
        return f"{self.schema_class}.{self.schema_type}"

    @property
    def is_trigger(self) -> bool:
        return self.msg_type is MessageType.TRIGGER


@dataclass
class MessageHeader:
    """버스 메시지 헤더"""
    MSG_TYPE: str
    SOURCE: str
    SCHEMA: str
    TARGET: str = BROADCAST_TARGET
    MSG_ID: str = field(default_factory=lambda: str(uuid.uuid4()))
    DATE: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d%H%M%S"))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class BusMessage:
    """
    버스 JSON 메시지 빌더/파서
    """

    @staticmethod
    def build(event: BusEvent) -> Dict[str, Any]:
        """
        이벤트를 JSON 딕셔너리로 변환

        Args:
            event: 발행할 이벤트

        Returns:
            완성된 JSON 딕셔너리
        """
        header = MessageHeader(
            MSG_TYPE=event.msg_type.value,
            SOURCE=event.source,
            SCHEMA=event.schema
        )
        return {
            "HEADER": header.to_dict(),
            "DATA": dict(event.fields)
        }

    @staticmethod
    def parse(json_str: str) -> Optional[Dict[str, Any]]:
        """
        JSON 문자열 파싱

        Returns:
            파싱된 딕셔너리 또는 None
        """
        try:
            message = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON: {e}")
            return None

        if not isinstance(message, dict):
            logger.error(f"Unexpected JSON payload type: {type(message).__name__}")
            return None
        return message

    @staticmethod
    def to_request(message: Dict[str, Any], default_target: str = "") -> Optional[BusRequest]:
        """
        파싱된 메시지를 BusRequest로 변환

        SCHEMA는 'class.type' 형식. TARGET이 없으면 default_target 사용
        (토픽에서 대상 인스턴스를 알 수 있는 경우)

        Returns:
            BusRequest 또는 None (형식 오류 시)
        """
        header = message.get("HEADER", {})
        data = message.get("DATA", {})
        if not isinstance(header, dict) or not isinstance(data, dict):
            logger.error("HEADER and DATA must be objects")
            return None

        schema = header.get("SCHEMA", "")
        schema_class, sep, schema_type = str(schema).partition(".")
        if not sep or not schema_class or not schema_type:
            logger.error(f"Invalid schema: {schema!r}")
            return None

        try:
            msg_type = MessageType(header.get("MSG_TYPE", MessageType.COMMAND.value))
        except ValueError:
            logger.error(f"Unknown message type: {header.get('MSG_TYPE')!r}")
            return None

        target = str(header.get("TARGET") or default_target)
        return BusRequest(
            instance_id=target,
            schema_class=schema_class,
            schema_type=schema_type,
            fields={str(k): str(v) for k, v in data.items()},
            msg_type=msg_type,
            broadcast=(target == BROADCAST_TARGET),
            source=str(header.get("SOURCE", ""))
        )

    @staticmethod
    def to_json(message: Dict[str, Any], indent: Optional[int] = None) -> str:
        """
        딕셔너리를 JSON 문자열로 변환

        Args:
            message: 메시지 딕셔너리
            indent: 들여쓰기 (None이면 압축)
        """
        return json.dumps(message, ensure_ascii=False, indent=indent)
