"""
HAN Gateway Basic Usage Example

HAN 게이트웨이 라이브러리 기본 사용 예제 (MQTT 없이 이벤트를 콘솔에 출력)
"""

import logging

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_event(event):
    """게이트웨이 이벤트 출력"""
    print(f"  [{event.msg_type.value}] {event.source}: {event.fields}")


def example_registry():
    """
    서비스 테이블을 코드로 구성하는 예제

    설정 파일 없이 ServiceRegistry에 직접 서비스를 추가합니다.
    """
    from han_gateway import ServiceEntry, ServiceRegistry, HANCommand, Units

    registry = ServiceRegistry()
    registry.add(ServiceEntry(
        name='outside-temp',
        instance_id='otemp',
        address=0x04,
        command=HANCommand.GTMP,
        schema_class='sensor',
        schema_type='basic',
        units=Units.FAHRENHEIT,
        polling_interval=60
    ))
    registry.add(ServiceEntry(
        name='porch-light',
        instance_id='porch',
        address=0x0A,
        command=HANCommand.GOUT,
        schema_class='control',
        schema_type='basic',
        channel=1
    ))
    registry.validate()
    return registry


def example_request(gateway):
    """
    버스 요청을 직접 넣는 예제

    porch 출력을 high로 설정하고, otemp의 현재 값을 요청합니다.
    """
    from han_gateway import BusRequest

    gateway.submit(BusRequest(
        instance_id='porch',
        schema_class='control',
        schema_type='basic',
        fields={'device': '1', 'type': 'output', 'current': 'high'}
    ))
    gateway.submit(BusRequest(
        instance_id='otemp',
        schema_class='sensor',
        schema_type='basic',
        fields={'request': 'current', 'device': '0'}
    ))


def main():
    """메인 함수"""
    import threading
    from han_gateway import HANConnection, HANGateway

    host, port = 'localhost', 1129

    print(f"\n{'='*50}")
    print("HAN Gateway Basic Usage Example")
    print(f"Server: {host}:{port}")
    print(f"{'='*50}\n")

    registry = example_registry()
    for service in registry:
        print(f"  {service}")

    gateway = HANGateway(registry, HANConnection(host, port), publisher=print_event)
    gateway.probe()
    example_request(gateway)

    # 30초 후 종료
    threading.Timer(30.0, gateway.stop).start()
    gateway.run()


if __name__ == '__main__':
    main()
