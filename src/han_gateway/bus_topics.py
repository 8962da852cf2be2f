"""
Bus Topics Module

MQTT Topic 상수 정의 (서비스 인스턴스별)
- cmnd: 명령 수신 (SUB)
- stat: status 이벤트 발행 (PUB)
- trig: trigger 이벤트 발행 (PUB)
- lwt: 서비스 가용 상태 (PUB, retained)
"""

from typing import Dict, Iterable, Optional

from .bus import MessageType


# MQTT 기본 설정
DEFAULT_BASE_TOPIC = "xplhan"
DEFAULT_QOS = 1
DEFAULT_RETAIN = False


def get_base_topic(instance_id: str, base: str = DEFAULT_BASE_TOPIC) -> str:
    """
    인스턴스 기반 MQTT Topic 생성

    Args:
        instance_id: 서비스 인스턴스 ID (예: "otemp")
        base: 최상위 토픽

    Returns:
        기본 토픽 경로 (예: "xplhan/otemp")
    """
    return f"{base}/{instance_id}"


class Topics:
    """MQTT Topic 상수 클래스"""

    COMMAND = "cmnd"    # SUB: 명령 수신
    STATUS = "stat"     # PUB: status 이벤트
    TRIGGER = "trig"    # PUB: trigger 이벤트 (폴링 변경 감지)
    AVAILABILITY = "lwt"  # PUB: online / offline (retained)

    ONLINE = "online"
    OFFLINE = "offline"

    @classmethod
    def get_full_topic(cls, instance_id: str, topic: str, base: str = DEFAULT_BASE_TOPIC) -> str:
        """
        전체 토픽 경로 생성

        예: ("otemp", "stat") -> "xplhan/otemp/stat"
        """
        return f"{get_base_topic(instance_id, base)}/{topic}"

    @classmethod
    def event_topic(cls, instance_id: str, msg_type: MessageType, base: str = DEFAULT_BASE_TOPIC) -> str:
        """이벤트 타입에 맞는 발행 토픽"""
        suffix = cls.TRIGGER if msg_type is MessageType.TRIGGER else cls.STATUS
        return cls.get_full_topic(instance_id, suffix, base)

    @classmethod
    def get_subscribe_topics(cls, instance_ids: Iterable[str], base: str = DEFAULT_BASE_TOPIC) -> Dict[str, str]:
        """
        구독할 토픽 목록

        Returns:
            {전체 토픽: 인스턴스 ID} 딕셔너리
        """
        return {
            cls.get_full_topic(instance_id, cls.COMMAND, base): instance_id
            for instance_id in instance_ids
        }

    @classmethod
    def instance_from_topic(cls, topic: str, base: str = DEFAULT_BASE_TOPIC) -> Optional[str]:
        """명령 토픽에서 인스턴스 ID 추출 ("xplhan/otemp/cmnd" -> "otemp")"""
        prefix = f"{base}/"
        suffix = f"/{cls.COMMAND}"
        if not topic.startswith(prefix) or not topic.endswith(suffix):
            return None
        instance_id = topic[len(prefix):-len(suffix)]
        return instance_id or None
