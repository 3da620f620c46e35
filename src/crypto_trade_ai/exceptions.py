"""서비스 예외 정의"""


class CryptoTradeError(Exception):
    """crypto-trade-ai 기본 예외"""


class ConfigurationError(CryptoTradeError):
    """필수 설정(API 키 등) 누락 - 재시도해도 해결되지 않음"""


class AnalysisError(CryptoTradeError):
    """차트 분석 실패 (호출자는 재시도 가능)"""


class TransportError(AnalysisError):
    """모델 서비스 요청 실패 (네트워크, 인증, 쿼터)"""


class MalformedResponseError(AnalysisError):
    """모델 응답을 JSON으로 해석할 수 없음"""


class ImageEncodingError(AnalysisError):
    """이미지 리소스를 읽을 수 없음"""
