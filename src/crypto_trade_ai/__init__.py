"""
CryptoTrade AI Support
Gemini 기반 차트 스크린샷 분석 + 암호화폐 시장 대시보드 서비스
"""

import asyncio
from pathlib import Path

from crypto_trade_ai.chart import TIMEFRAME_15M, TIMEFRAME_1H, ChartAnalyzer
from crypto_trade_ai.config import AIConfig, MarketConfig
from crypto_trade_ai.encoder import encode_file
from crypto_trade_ai.exceptions import (
    AnalysisError,
    ConfigurationError,
    CryptoTradeError,
    ImageEncodingError,
    MalformedResponseError,
    TransportError,
)
from crypto_trade_ai.gemini import GeminiClient
from crypto_trade_ai.market import CoinGeckoClient
from crypto_trade_ai.models import (
    AnalysisResult,
    AnalysisTrend,
    EncodedImage,
    MarketCoin,
    PositionDirection,
    Sentiment,
    SentimentData,
    TradeRecommendation,
)
from crypto_trade_ai.sentiment import SentimentFetcher

__version__ = "0.1.0"
__all__ = [
    "CryptoTradeService",
    "AIConfig",
    "MarketConfig",
    "ChartAnalyzer",
    "SentimentFetcher",
    "CoinGeckoClient",
    "GeminiClient",
    # 모델
    "AnalysisResult",
    "AnalysisTrend",
    "EncodedImage",
    "MarketCoin",
    "PositionDirection",
    "Sentiment",
    "SentimentData",
    "TradeRecommendation",
    # 예외
    "CryptoTradeError",
    "ConfigurationError",
    "AnalysisError",
    "TransportError",
    "MalformedResponseError",
    "ImageEncodingError",
]


class CryptoTradeService:
    """통합 대시보드 서비스"""

    def __init__(
        self,
        config: AIConfig | None = None,
        market_config: MarketConfig | None = None,
    ):
        # API 키가 없으면 여기서 ConfigurationError 발생
        self.config = config or AIConfig.from_env()
        self.market_config = market_config or MarketConfig.from_env()

        gemini = GeminiClient(self.config)
        self.market = CoinGeckoClient(self.market_config)
        self.sentiment = SentimentFetcher(self.config, gemini)
        self.chart_analyzer = ChartAnalyzer(self.config, gemini)

    async def load_dashboard(self) -> dict:
        """상위 코인, 워치리스트, 센티멘트 동시 조회"""
        top_coins, watchlist, sentiment = await asyncio.gather(
            self.market.fetch_top_coins(),
            self.market.fetch_watchlist_coins(),
            self.sentiment.fetch_market_sentiment(),
        )
        return {
            "top_coins": top_coins,
            "watchlist": watchlist,
            "sentiment": sentiment,
        }

    async def analyze_charts(
        self,
        chart_15m: str | Path | None = None,
        chart_1h: str | Path | None = None,
        context: str = "",
    ) -> AnalysisResult:
        """15분봉/1시간봉 스크린샷 파일 분석"""
        paths = {TIMEFRAME_15M: chart_15m, TIMEFRAME_1H: chart_1h}
        paths = {timeframe: path for timeframe, path in paths.items() if path}

        encoded = await asyncio.gather(*(encode_file(path) for path in paths.values()))
        images = dict(zip(paths.keys(), encoded))
        return await self.chart_analyzer.analyze(images, context)
