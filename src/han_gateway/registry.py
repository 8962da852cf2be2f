"""
Service Registry Module

게이트웨이가 버스에 노출하는 가상 서비스(장치/센서) 테이블
- 시작 시 한 번 로드, 이후 구조는 변경되지 않음
- 폴링 카운터와 마지막 측정값 캐시만 런타임에 갱신
"""

import logging
import zlib
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from .protocol import (
    HANCommand, Units, COMMAND_MAP,
    MAX_ADDRESS, MAX_CHANNEL, MAX_POLL_INTERVAL,
    units_valid_for
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


SENSOR_CLASS = 'sensor'


def instance_hash(instance_id: str) -> int:
    """인스턴스 ID 해시 (빠른 1차 비교용)"""
    return zlib.crc32(instance_id.encode('utf-8'))


@dataclass
class ServiceEntry:
    """가상 서비스 하나 (HAN 주소/명령/채널 1개에 매핑)"""
    name: str
    instance_id: str
    address: int
    command: HANCommand
    schema_class: str
    schema_type: str
    units: Optional[Units] = None
    channel: int = 0
    polling_interval: int = 0
    service_id: int = 0

    # 런타임 상태
    poll_counter: int = 0
    last_int_value: Optional[int] = None
    last_float_value: Optional[float] = None

    iid_hash: int = field(init=False)

    def __post_init__(self):
        if not 0 <= self.address <= MAX_ADDRESS:
            raise ConfigurationError(
                f"In service {self.name}, the address must be between 0 and {MAX_ADDRESS}"
            )
        if not 0 <= self.channel <= MAX_CHANNEL:
            raise ConfigurationError(
                f"In service {self.name}, channel must be between 0 and {MAX_CHANNEL}"
            )
        if not 0 <= self.polling_interval <= MAX_POLL_INTERVAL:
            raise ConfigurationError(
                f"In service {self.name}, polling-interval must be between 0 and {MAX_POLL_INTERVAL}"
            )
        self.iid_hash = instance_hash(self.instance_id)

    @property
    def is_sensor(self) -> bool:
        """센서 클래스 여부"""
        return self.schema_class == SENSOR_CLASS

    @property
    def is_polled(self) -> bool:
        return self.polling_interval > 0

    def __str__(self) -> str:
        return (
            f"{self.name} ({self.instance_id}): {self.command.keyword} "
            f"@ 0x{self.address:02X} ch{self.channel}"
        )


class ServiceRegistry:
    """
    서비스 테이블

    사용 예:
        registry = ServiceRegistry()
        registry.add(ServiceEntry(...))
        registry.validate()

        entry = registry.lookup('otemp')
    """

    def __init__(self):
        self._services: List[ServiceEntry] = []

    def add(self, entry: ServiceEntry) -> ServiceEntry:
        """
        서비스 추가 (로드 순서 유지)

        Raises:
            ConfigurationError: 서비스 이름 또는 인스턴스 ID 중복 시
        """
        for existing in self._services:
            if existing.name == entry.name:
                raise ConfigurationError(f"Service name {entry.name} is already defined")
            if existing.instance_id == entry.instance_id:
                raise ConfigurationError(f"Instance id {entry.instance_id} is already defined")

        entry.service_id = len(self._services)
        self._services.append(entry)
        logger.debug(f"Service added: {entry}")
        return entry

    def lookup_by_instance_id(self, iid_hash: int, instance_id: str) -> Optional[ServiceEntry]:
        """
        인스턴스 ID로 서비스 검색

        해시를 먼저 비교하고, 같으면 이름을 정확히 비교 (해시 충돌 방지)
        """
        for entry in self._services:
            if entry.iid_hash == iid_hash and entry.instance_id == instance_id:
                return entry
        return None

    def lookup(self, instance_id: str) -> Optional[ServiceEntry]:
        """인스턴스 ID 문자열로 서비스 검색"""
        return self.lookup_by_instance_id(instance_hash(instance_id), instance_id)

    def validate(self) -> None:
        """
        센서 서비스의 단위가 명령의 허용 단위인지 확인

        Raises:
            ConfigurationError: 단위-명령 조합이 잘못된 경우 (시작 불가)
        """
        for entry in self._services:
            if not entry.is_sensor:
                continue
            if not units_valid_for(entry.command, entry.units):
                valid = ', '.join(sorted(u.value for u in COMMAND_MAP[entry.command].valid_units))
                raise ConfigurationError(
                    f"Instance {entry.instance_id} fails sanity check of han command to units "
                    f"({entry.command.keyword} accepts: {valid})"
                )

    def polled(self) -> List[ServiceEntry]:
        """폴링이 설정된 서비스 목록"""
        return [entry for entry in self._services if entry.is_polled]

    def __iter__(self) -> Iterator[ServiceEntry]:
        return iter(self._services)

    def __len__(self) -> int:
        return len(self._services)
