"""
HAN Command Encoder

명령 타입별 고정 길이 hex 프레임 생성
    "CA" + 주소(2) + 명령(2) + 명령별 파라미터 (0 채움)

프레임 길이는 명령마다 고정이며 장치 프로토콜과 정확히 일치해야 함
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from .protocol import HANCommand, OutputState, COMMAND_PREFIX
from .exceptions import CommandError

if TYPE_CHECKING:
    from .registry import ServiceEntry

logger = logging.getLogger(__name__)


# 명령별 프레임 템플릿 (a=주소, c=명령, ch=채널, sub=서브명령)
# GWSP 채널 바이트만 소문자 hex (장치 호환성 유지)
FRAME_TEMPLATES: Dict[HANCommand, str] = {
    HANCommand.GOUT: COMMAND_PREFIX + '{a:02X}{c:02X}{ch:02X}{sub:02X}00',
    HANCommand.GACD: COMMAND_PREFIX + '{a:02X}{c:02X}00000000',
    HANCommand.GTMP: COMMAND_PREFIX + '{a:02X}{c:02X}{ch:02X}00000000',
    HANCommand.GVLT: COMMAND_PREFIX + '{a:02X}{c:02X}0000000000000000',
    HANCommand.GCUR: COMMAND_PREFIX + '{a:02X}{c:02X}0000000000000000',
    HANCommand.GHUM: COMMAND_PREFIX + '{a:02X}{c:02X}{ch:02X}0000000000',
    HANCommand.GWSP: COMMAND_PREFIX + '{a:02X}{c:02X}{ch:02x}0000000000',
    HANCommand.GWDR: COMMAND_PREFIX + '{a:02X}{c:02X}000000',
    HANCommand.GRGC: COMMAND_PREFIX + '{a:02X}{c:02X}00000000{ch:02X}00000000',
}


def build_frame(
    command: HANCommand,
    address: int,
    channel: int = 0,
    subcommand: Optional[OutputState] = None
) -> str:
    """
    명령 프레임 생성

    Args:
        command: HAN 명령
        address: HAN 버스 주소 (0-254)
        channel: 서브 주소 (0-15)
        subcommand: GOUT 전용 서브 명령 (LOW/HIGH/READ_STATUS)

    Returns:
        hex 프레임 문자열 (줄바꿈 없음)

    Raises:
        CommandError: 알 수 없는 명령 또는 GOUT 서브 명령 누락
    """
    try:
        template = FRAME_TEMPLATES[command]
    except KeyError:
        raise CommandError(f"No encoder for han command: {command}")

    if command is HANCommand.GOUT and subcommand is None:
        raise CommandError("GOUT requires a subcommand")

    return template.format(
        a=address,
        c=command.value,
        ch=channel,
        sub=subcommand.value if subcommand is not None else 0
    )


def encode_command(service: 'ServiceEntry', subcommand: Optional[OutputState] = None) -> str:
    """서비스 설정(주소/명령/채널)으로 명령 프레임 생성"""
    frame = build_frame(service.command, service.address, service.channel, subcommand)
    logger.debug(f"Encoded {service.command.name} for {service.instance_id}: {frame}")
    return frame


def encode_poll(service: 'ServiceEntry') -> str:
    """
    폴링용 읽기 명령 생성

    GOUT은 상태 읽기(READ_STATUS) 서브 명령 사용
    """
    subcommand = OutputState.READ_STATUS if service.command is HANCommand.GOUT else None
    return encode_command(service, subcommand)
