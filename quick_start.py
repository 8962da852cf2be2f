from han_gateway import load_config, setup_logging, HANConnection, HANGateway

# 설정 파일 로드 (examples/xplhan.yaml 참고)
config = load_config('examples/xplhan.yaml')
setup_logging(config.log_level)

# 이벤트는 콘솔에 출력 (MQTT 브리지 대신)
gateway = HANGateway(
    config.services,
    HANConnection(config.host, config.port),
    publisher=lambda event: print(f"{event.msg_type.value} {event.source}: {event.fields}"),
    response_timeout=config.response_timeout
)

# Ctrl+C로 종료
try:
    gateway.run()
except KeyboardInterrupt:
    gateway.stop()
