"""데이터 모델"""

from dataclasses import dataclass, field
from enum import Enum


class AnalysisTrend(str, Enum):
    """차트 추세 방향"""
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class PositionDirection(str, Enum):
    """포지션 추천 (WAIT = 신호 없음)"""
    LONG = "LONG"
    SHORT = "SHORT"
    WAIT = "WAIT"


class Sentiment(str, Enum):
    """시장 센티멘트"""
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


@dataclass(frozen=True)
class EncodedImage:
    """base64 인코딩된 차트 이미지"""
    data: str
    mime_type: str
    file_name: str = ""


@dataclass(frozen=True)
class TradeRecommendation:
    """매매 추천 (모든 필드는 항상 채워져 있음)"""
    trend: AnalysisTrend
    direction: PositionDirection
    entry_price: str
    target_price: str
    stop_loss: str
    pnl_projection: str
    reasoning: str
    confidence: str
    macd_status: str

    def to_dict(self) -> dict:
        return {
            "trend": self.trend.value,
            "direction": self.direction.value,
            "entryPrice": self.entry_price,
            "targetPrice": self.target_price,
            "stopLoss": self.stop_loss,
            "pnlProjection": self.pnl_projection,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "macdStatus": self.macd_status,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """차트 분석 결과"""
    file_name: str
    timestamp: str  # ISO-8601
    recommendation: TradeRecommendation
    grounding_urls: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        result = {
            "fileName": self.file_name,
            "timestamp": self.timestamp,
            "recommendation": self.recommendation.to_dict(),
        }
        if self.grounding_urls is not None:
            result["groundingUrls"] = list(self.grounding_urls)
        return result


@dataclass(frozen=True)
class SentimentData:
    """시장 센티멘트 요약"""
    sentiment: Sentiment
    summary: str
    key_points: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "sentiment": self.sentiment.value,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
        }


@dataclass
class MarketCoin:
    """CoinGecko 마켓 데이터"""
    id: str
    symbol: str
    name: str
    image: str = ""
    current_price: float = 0.0
    market_cap: float = 0.0
    market_cap_rank: int = 999
    price_change_percentage_24h: float = 0.0
    total_volume: float = 0.0

    @classmethod
    def from_api(cls, row: dict) -> "MarketCoin":
        """/coins/markets 응답 행 변환 (null 값은 0으로)"""
        return cls(
            id=row["id"],
            symbol=row["symbol"],
            name=row["name"],
            image=row.get("image") or "",
            current_price=row.get("current_price") or 0.0,
            market_cap=row.get("market_cap") or 0.0,
            market_cap_rank=row.get("market_cap_rank") or 999,
            price_change_percentage_24h=row.get("price_change_percentage_24h") or 0.0,
            total_volume=row.get("total_volume") or 0.0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "image": self.image,
            "current_price": self.current_price,
            "market_cap": self.market_cap,
            "market_cap_rank": self.market_cap_rank,
            "price_change_percentage_24h": self.price_change_percentage_24h,
            "total_volume": self.total_volume,
        }


@dataclass
class ModelReply:
    """모델 원본 응답"""
    text: str
    grounding_urls: list[str] = field(default_factory=list)
