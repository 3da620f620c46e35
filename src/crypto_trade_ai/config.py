"""서비스 설정 및 대시보드 상수"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from crypto_trade_ai.exceptions import ConfigurationError

# 대시보드 상수
WATCHLIST_COINS = ["sui", "solana", "berachain"]  # CoinGecko ID
TOP_COINS_LIMIT = 10
DEFAULT_MACD_SETTINGS = (12, 26, 9)  # fast, slow, signal

SENTIMENT_SEARCH_QUERY = "Thuan Capital crypto market sentiment latest video"

DEFAULT_CHART_MODEL = "gemini-flash-latest"
DEFAULT_SENTIMENT_MODEL = "gemini-3-flash-preview"


@dataclass(frozen=True)
class AIConfig:
    """Gemini 클라이언트 설정"""
    api_key: str
    chart_model: str = DEFAULT_CHART_MODEL
    sentiment_model: str = DEFAULT_SENTIMENT_MODEL

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "GEMINI_API_KEY가 필요합니다. "
                ".env 파일에 설정하거나 AIConfig에 전달하세요."
            )

    @classmethod
    def from_env(cls) -> "AIConfig":
        """환경변수(.env 포함)에서 설정 로드"""
        load_dotenv()
        return cls(
            api_key=os.getenv("GEMINI_API_KEY", ""),
            chart_model=os.getenv("GEMINI_CHART_MODEL") or DEFAULT_CHART_MODEL,
            sentiment_model=os.getenv("GEMINI_SENTIMENT_MODEL") or DEFAULT_SENTIMENT_MODEL,
        )


@dataclass(frozen=True)
class MarketConfig:
    """시장 데이터 설정"""
    coingecko_api_key: str | None = None
    watchlist: tuple[str, ...] = tuple(WATCHLIST_COINS)
    top_limit: int = TOP_COINS_LIMIT

    @classmethod
    def from_env(cls) -> "MarketConfig":
        load_dotenv()
        return cls(coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None)
