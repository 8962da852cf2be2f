"""
MQTT Bus Bridge

게이트웨이와 MQTT 브로커 연결
- {base}/{instance}/cmnd 구독 → BusRequest로 변환하여 게이트웨이에 전달
- BusEvent → {base}/{instance}/stat 또는 /trig 발행
- {base}/{instance}/lwt: online / offline (retained, 게이트웨이는 will로 등록)

paho 네트워크 스레드에서는 요청을 전달만 하고, 처리는 게이트웨이 reactor에서 수행
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

import paho.mqtt.client as mqtt

from .bus import BusEvent, BusMessage, BusRequest
from .bus_topics import Topics, DEFAULT_RETAIN
from .config import MQTTSettings

logger = logging.getLogger(__name__)


def create_client(client_id: str) -> mqtt.Client:
    """paho 클라이언트 생성 (콜백 API v2)"""
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)


class MQTTBridge:
    """
    MQTT 브리지

    사용 예:
        bridge = MQTTBridge(settings, 'han', ['otemp', 'lamp'], gateway.submit)
        gateway.publisher = bridge.publish_event
        bridge.start()
        ...
        bridge.stop()
    """

    def __init__(
        self,
        settings: MQTTSettings,
        gateway_id: str,
        instance_ids: Iterable[str],
        on_request: Callable[[BusRequest], None],
        client_factory: Callable[[str], Any] = create_client
    ):
        """
        Args:
            settings: 브로커 설정
            gateway_id: 게이트웨이 인스턴스 ID (will 토픽에 사용)
            instance_ids: 노출할 서비스 인스턴스 ID 목록
            on_request: 수신 요청 전달 콜백 (보통 gateway.submit)
            client_factory: client_id -> paho 클라이언트 (테스트용 주입)
        """
        self.settings = settings
        self.gateway_id = gateway_id
        self.instance_ids = list(instance_ids)
        self.base = settings.base_topic
        self.qos = settings.qos
        self._on_request = on_request

        self.subscriptions: Dict[str, str] = Topics.get_subscribe_topics(self.instance_ids, self.base)

        self._client = client_factory(settings.client_id)
        if settings.username:
            self._client.username_pw_set(settings.username, settings.password or "")
        self._client.will_set(
            self._availability_topic(gateway_id), Topics.OFFLINE, qos=self.qos, retain=True
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

    def start(self) -> None:
        """브로커 연결 및 네트워크 루프 시작"""
        logger.info(f"Connecting to MQTT broker {self.settings.broker}:{self.settings.port}")
        self._client.connect(self.settings.broker, self.settings.port)
        self._client.loop_start()

    def stop(self) -> None:
        """서비스를 offline으로 알리고 연결 해제"""
        for instance_id in self._all_instances():
            self.publish_availability(instance_id, Topics.OFFLINE)
        self._client.loop_stop()
        self._client.disconnect()
        logger.info("MQTT bridge stopped")

    def publish_event(self, event: BusEvent) -> None:
        """이벤트 발행 (status → stat, trigger → trig)"""
        topic = Topics.event_topic(event.source, event.msg_type, self.base)
        payload = BusMessage.to_json(BusMessage.build(event))
        self._client.publish(topic, payload, qos=self.qos, retain=DEFAULT_RETAIN)
        logger.debug(f"Published to {topic}: {payload}")

    def publish_availability(self, instance_id: str, value: str) -> None:
        self._client.publish(
            self._availability_topic(instance_id), value, qos=self.qos, retain=True
        )

    def _availability_topic(self, instance_id: str) -> str:
        return Topics.get_full_topic(instance_id, Topics.AVAILABILITY, self.base)

    def _all_instances(self):
        return [self.gateway_id] + [i for i in self.instance_ids if i != self.gateway_id]

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"MQTT connection refused: {reason_code}")
            return

        logger.info(f"MQTT connected ({reason_code})")
        for topic in self.subscriptions:
            client.subscribe(topic, qos=self.qos)
            logger.debug(f"Subscribed: {topic}")
        for instance_id in self._all_instances():
            self.publish_availability(instance_id, Topics.ONLINE)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        logger.warning(f"MQTT disconnected ({reason_code})")

    def _on_message(self, client, userdata, msg):
        request = self.parse_request(msg.topic, msg.payload)
        if request is not None:
            self._on_request(request)

    def parse_request(self, topic: str, payload: bytes) -> Optional[BusRequest]:
        """
        명령 토픽 메시지를 BusRequest로 변환

        TARGET이 없으면 토픽의 인스턴스 ID를 대상으로 사용

        Returns:
            BusRequest 또는 None (형식 오류 / 알 수 없는 토픽)
        """
        instance_id = self.subscriptions.get(topic)
        if instance_id is None:
            instance_id = Topics.instance_from_topic(topic, self.base)
        if instance_id is None:
            logger.warning(f"Message on unexpected topic ignored: {topic}")
            return None

        try:
            text = payload.decode('utf-8')
        except UnicodeDecodeError as e:
            logger.error(f"Failed to decode MQTT payload on {topic}: {e}")
            return None

        logger.info(f"MQTT command received on {topic}: {text}")
        message = BusMessage.parse(text)
        if message is None:
            return None
        return BusMessage.to_request(message, default_target=instance_id)
