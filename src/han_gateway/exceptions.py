"""
HAN Gateway Custom Exceptions
"""


class HANGatewayError(Exception):
    """HAN 게이트웨이 기본 예외"""
    pass


class ConfigurationError(HANGatewayError):
    """설정 오류 (주소/채널/단위/명령 매핑, 중복 인스턴스 ID) - 시작 불가"""
    pass


class RequestError(HANGatewayError):
    """버스 요청 필드 누락 또는 잘못된 값"""
    pass


class CommandError(HANGatewayError):
    """알 수 없는 HAN 명령"""
    pass


class FrameError(HANGatewayError):
    """응답 프레임 구조 오류 (잘못된 길이, 파라미터 개수)"""
    pass


class ResponseError(HANGatewayError):
    """응답 처리 오류 (예상하지 못한 값, 0 나눗셈)"""
    pass


class CommunicationError(HANGatewayError):
    """통신 오류 (전송/수신 오류)"""
    pass


class ConnectionError(CommunicationError):
    """HAN 서버 연결 오류"""
    pass