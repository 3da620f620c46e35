"""Gemini 멀티모달 차트 분석 (MACD 전략)"""

import binascii
import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, field_validator

from crypto_trade_ai.config import AIConfig, DEFAULT_MACD_SETTINGS
from crypto_trade_ai.encoder import decode_image
from crypto_trade_ai.exceptions import ImageEncodingError, MalformedResponseError
from crypto_trade_ai.gemini import GeminiClient, strip_code_fences
from crypto_trade_ai.models import (
    AnalysisResult,
    AnalysisTrend,
    EncodedImage,
    PositionDirection,
    TradeRecommendation,
)

logger = logging.getLogger(__name__)

COMBINED_LABEL = "Combined Analysis"

# 응답에 없는 필드의 기본값
DEFAULT_PRICE = "N/A"
DEFAULT_REASONING = "Analysis failed to produce reasoning."
DEFAULT_CONFIDENCE = "Low"
DEFAULT_MACD_STATUS = "Unknown"

TIMEFRAME_15M = "15-minute"
TIMEFRAME_1H = "1-hour"


class RecommendationPayload(BaseModel):
    """모델 응답 JSON의 1차 디코딩 결과 (모든 필드 선택적)"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    trend: AnalysisTrend | None = None
    direction: PositionDirection | None = None
    entry_price: str | None = Field(None, alias="entryPrice")
    target_price: str | None = Field(None, alias="targetPrice")
    stop_loss: str | None = Field(None, alias="stopLoss")
    pnl_projection: str | None = Field(None, alias="pnlProjection")
    reasoning: str | None = None
    confidence: str | None = None
    macd_status: str | None = Field(None, alias="macdStatus")

    @field_validator("trend", mode="before")
    @classmethod
    def _normalize_trend(cls, value):
        return _enum_value(value, AnalysisTrend)

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value):
        return _enum_value(value, PositionDirection)

    @field_validator(
        "entry_price", "target_price", "stop_loss", "pnl_projection",
        "reasoning", "confidence", "macd_status",
        mode="before",
    )
    @classmethod
    def _normalize_text(cls, value):
        # 숫자는 문자열로, 빈 문자열/리스트/객체 등은 누락으로 처리
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
        return None


def _enum_value(value, enum_cls) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip().upper()
    return value if value in enum_cls.__members__ else None


def apply_defaults(payload: RecommendationPayload) -> TradeRecommendation:
    """누락 필드를 기본값으로 채워 TradeRecommendation 생성"""
    return TradeRecommendation(
        trend=payload.trend or AnalysisTrend.NEUTRAL,
        direction=payload.direction or PositionDirection.WAIT,
        entry_price=payload.entry_price or DEFAULT_PRICE,
        target_price=payload.target_price or DEFAULT_PRICE,
        stop_loss=payload.stop_loss or DEFAULT_PRICE,
        pnl_projection=payload.pnl_projection or DEFAULT_PRICE,
        reasoning=payload.reasoning or DEFAULT_REASONING,
        confidence=payload.confidence or DEFAULT_CONFIDENCE,
        macd_status=payload.macd_status or DEFAULT_MACD_STATUS,
    )


def parse_chart_reply(text: str) -> TradeRecommendation:
    """
    차트 분석 응답 파싱

    코드 펜스를 항상 먼저 제거한 뒤 파싱한다. 빈 응답은 "{}"로 간주하여
    모든 필드가 기본값인 추천을 반환한다.

    Raises:
        MalformedResponseError: JSON 파싱 실패 또는 최상위 값이 객체가 아닌 경우
    """
    cleaned = strip_code_fences(text or "") or "{}"
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"차트 분석 응답 파싱 실패: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"차트 분석 응답이 JSON 객체가 아닙니다: {type(data).__name__}"
        )

    return apply_defaults(RecommendationPayload.model_validate(data))


def build_prompt(timeframes: list[str], context: str) -> str:
    """분석 지시 프롬프트"""
    fast, slow, signal = DEFAULT_MACD_SETTINGS
    return f"""
You are an expert technical analyst for cryptocurrency trading.
Analyze the attached chart screenshot(s) (likely Binance).
Charts provided: {", ".join(timeframes)}.

CRITICAL INSTRUCTION:
Focus specifically on the MACD indicator ({fast}, {slow}, {signal}) at the bottom of the chart.

THE TRADING STRATEGY:
- We are looking for a specific pattern: "MACD entering the second half of the red zone".
- This means the MACD histogram bars are red (negative) but are starting to get shorter (lighter color in some themes), indicating bearish momentum is weakening and a potential reversal to the upside is coming.
- If this pattern is detected on a 15-minute or 1-hour timeframe, it is a strong signal for a LONG position.
- When both a 15-minute and a 1-hour chart are provided, use the 1-hour chart for the trend and the 15-minute chart for the entry.

TASK:
1. Identify the coin symbol and timeframe from the image if possible.
2. Analyze the price trend.
3. Analyze the MACD histogram state closely.
4. Provide a trading recommendation based on the strategy above.

OUTPUT FORMAT:
Return valid JSON adhering to this schema:
{{
  "trend": "UP" | "DOWN" | "NEUTRAL",
  "direction": "LONG" | "SHORT" | "WAIT",
  "entryPrice": "Suggest specific price or 'Current Market Price'",
  "targetPrice": "Suggest specific target based on resistance",
  "stopLoss": "Suggest stop loss based on recent support",
  "pnlProjection": "Estimated Risk/Reward ratio (e.g., 1:3)",
  "reasoning": "Detailed technical analysis explanation focusing on MACD",
  "confidence": "High" | "Medium" | "Low",
  "macdStatus": "Describe the specific look of the MACD histogram"
}}

CONTEXT PROVIDED BY USER:
"{context}"
"""


def build_request_parts(images: Mapping[str, EncodedImage], context: str) -> list[types.Part]:
    """타임프레임 라벨 + 이미지 Part 목록 생성, 마지막에 지시 프롬프트"""
    parts: list[types.Part] = []
    for timeframe, image in images.items():
        try:
            raw = decode_image(image)
        except (binascii.Error, ValueError) as e:
            raise ImageEncodingError(f"{timeframe} 이미지 데이터가 올바르지 않습니다: {e}") from e

        parts.append(types.Part.from_text(text=f"Chart for the {timeframe} timeframe:"))
        parts.append(types.Part.from_bytes(data=raw, mime_type=image.mime_type))

    parts.append(types.Part.from_text(text=build_prompt(list(images), context)))
    return parts


def result_label(images: Mapping[str, EncodedImage]) -> str:
    """단일 이미지면 파일명, 여러 장이면 통합 분석 라벨"""
    if len(images) > 1:
        return COMBINED_LABEL
    timeframe, image = next(iter(images.items()))
    return image.file_name or timeframe


class ChartAnalyzer:
    """차트 스크린샷 기반 매매 추천 생성"""

    def __init__(self, config: AIConfig, client: GeminiClient | None = None):
        self.config = config
        self.client = client or GeminiClient(config)

    async def analyze(
        self,
        images: Mapping[str, EncodedImage],
        context: str = "",
    ) -> AnalysisResult:
        """
        차트 분석 수행

        Args:
            images: 타임프레임 라벨 -> 인코딩된 이미지 (1~2개)
            context: 사용자 추가 설명 (프롬프트 끝에 그대로 삽입)

        Raises:
            ValueError: 이미지가 하나도 없는 경우 (요청 전에 거부)
            AnalysisError: 요청 실패 또는 응답 파싱 실패
        """
        if not images:
            raise ValueError("분석할 차트 이미지가 최소 1개 필요합니다.")

        parts = build_request_parts(images, context)
        logger.info(
            "Chart analysis requested (timeframes=%s, model=%s)",
            ", ".join(images), self.config.chart_model,
        )

        reply = await self.client.generate(parts, model=self.config.chart_model)
        recommendation = parse_chart_reply(reply.text)

        return AnalysisResult(
            file_name=result_label(images),
            timestamp=datetime.now(timezone.utc).isoformat(),
            recommendation=recommendation,
            grounding_urls=tuple(reply.grounding_urls) or None,
        )
