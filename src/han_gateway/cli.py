"""
HAN Gateway Command Line

설정 로드 → 로깅 설정 → HAN 서버 연결 확인 → MQTT 브리지 시작 → reactor 실행
SIGINT / SIGTERM 수신 시 reactor 루프를 멈추고 정리 후 종료
"""

import sys
import signal
import argparse
import logging
from typing import List, Optional

from .config import load_config, setup_logging, DEFAULT_CONFIG_FILE
from .transport import HANConnection
from .gateway import HANGateway
from .mqtt_bridge import MQTTBridge
from .exceptions import ConfigurationError, ConnectionError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='HAN to MQTT bus gateway',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                            # Use /etc/xplhan.yaml
  %(prog)s --config ./xplhan.yaml     # Use a local config file
  %(prog)s -c ./xplhan.yaml --debug   # Debug logging
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help=f'Configuration file (default: {DEFAULT_CONFIG_FILE})'
    )

    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging('DEBUG' if args.debug else config.log_level, config.log_path)

    connection = HANConnection(config.host, config.port)
    gateway = HANGateway(
        config.services,
        connection,
        response_timeout=config.response_timeout
    )

    try:
        gateway.probe()
    except ConnectionError as e:
        logger.error(f"Could not connect to han server: {e}")
        return 1

    bridge = MQTTBridge(
        config.mqtt,
        config.instance_id,
        [service.instance_id for service in config.services],
        gateway.submit
    )
    gateway.publisher = bridge.publish_event

    def _shutdown(signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}, shutting down")
        gateway.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        bridge.start()
    except OSError as e:
        logger.error(f"Could not connect to MQTT broker: {e}")
        return 1

    try:
        gateway.run()
    finally:
        bridge.stop()

    return 0


if __name__ == '__main__':
    sys.exit(main())
