"""검색 그라운딩 기반 시장 센티멘트 조회"""

import json
import logging

from crypto_trade_ai.config import AIConfig, SENTIMENT_SEARCH_QUERY
from crypto_trade_ai.exceptions import MalformedResponseError
from crypto_trade_ai.gemini import GeminiClient, strip_code_fences
from crypto_trade_ai.models import Sentiment, SentimentData

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Unable to fetch sentiment data due to an error."

FALLBACK_SENTIMENT = SentimentData(
    sentiment=Sentiment.NEUTRAL,
    summary=FALLBACK_SUMMARY,
    key_points=(),
)

SENTIMENT_PROMPT = f"""Search for the latest crypto market sentiment from major sources like CoinMarketCap news and "Thuan Capital" youtube channel updates.
Search hint: {SENTIMENT_SEARCH_QUERY}

Return a JSON object with the following structure:
{{
    "sentiment": "Bullish" | "Bearish" | "Neutral",
    "summary": "A concise summary of the market mood (max 2-3 sentences).",
    "keyPoints": ["Key point 1", "Key point 2", "Key point 3"]
}}"""


def parse_sentiment_reply(text: str) -> SentimentData:
    """
    센티멘트 응답 파싱

    직접 JSON 파싱을 먼저 시도하고, 실패하면 코드 펜스를 제거한 뒤 한 번 더 시도한다.

    Raises:
        MalformedResponseError: 두 번 모두 실패하거나 JSON 객체가 아닌 경우
    """
    text = text or "{}"
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"센티멘트 응답 파싱 실패: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f"센티멘트 응답이 JSON 객체가 아닙니다: {type(data).__name__}")

    return _to_sentiment_data(data)


_SENTIMENT_BY_NAME = {s.value.lower(): s for s in Sentiment}


def _to_sentiment_data(data: dict) -> SentimentData:
    raw = data.get("sentiment")
    sentiment = Sentiment.NEUTRAL
    if isinstance(raw, str):
        sentiment = _SENTIMENT_BY_NAME.get(raw.strip().lower(), Sentiment.NEUTRAL)

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = FALLBACK_SUMMARY

    key_points = data.get("keyPoints")
    if not isinstance(key_points, list):
        key_points = []

    return SentimentData(
        sentiment=sentiment,
        summary=summary,
        key_points=tuple(str(point) for point in key_points if point is not None),
    )


class SentimentFetcher:
    """시장 센티멘트 조회 (실패 시 중립 기본값 반환)"""

    def __init__(self, config: AIConfig, client: GeminiClient | None = None):
        self.config = config
        self.client = client or GeminiClient(config)

    async def fetch_market_sentiment(self) -> SentimentData:
        """센티멘트 조회 - 호출자에게 예외를 전파하지 않음"""
        try:
            reply = await self.client.generate(
                SENTIMENT_PROMPT,
                model=self.config.sentiment_model,
                grounded=True,
            )
            return parse_sentiment_reply(reply.text)
        except Exception:
            # 요청/파싱 실패 모두 기본값으로 대체
            logger.exception("Sentiment fetch failed")
            return FALLBACK_SENTIMENT
