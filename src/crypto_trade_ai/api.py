"""FastAPI 서버"""

import asyncio
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from crypto_trade_ai.chart import TIMEFRAME_15M, TIMEFRAME_1H
from crypto_trade_ai.encoder import encode_data_url, encode_upload
from crypto_trade_ai.exceptions import AnalysisError, ConfigurationError

# 전역 서비스 인스턴스
_service = None

ANALYSIS_FAILED_MESSAGE = "차트 분석에 실패했습니다. 잠시 후 다시 시도하세요."


def get_service():
    """서비스 인스턴스 반환 (lazy initialization)"""
    global _service
    if _service is None:
        from crypto_trade_ai import CryptoTradeService

        try:
            _service = CryptoTradeService()
        except ConfigurationError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
    return _service


# ============================================================
# Pydantic Models
# ============================================================


class HealthResponse(BaseModel):
    status: str
    chart_model: str
    sentiment_model: str


class CoinResponse(BaseModel):
    id: str
    symbol: str
    name: str
    image: str
    current_price: float
    market_cap: float
    market_cap_rank: int
    price_change_percentage_24h: float
    total_volume: float


class CoinsResponse(BaseModel):
    coins: list[CoinResponse]


class SentimentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sentiment: str
    summary: str
    key_points: list[str] = Field(alias="keyPoints")


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trend: str
    direction: str
    entry_price: str = Field(alias="entryPrice")
    target_price: str = Field(alias="targetPrice")
    stop_loss: str = Field(alias="stopLoss")
    pnl_projection: str = Field(alias="pnlProjection")
    reasoning: str
    confidence: str
    macd_status: str = Field(alias="macdStatus")


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    timestamp: str
    recommendation: RecommendationResponse
    grounding_urls: list[str] | None = Field(default=None, alias="groundingUrls")


class DashboardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_coins: list[CoinResponse] = Field(alias="topCoins")
    watchlist: list[CoinResponse]
    sentiment: SentimentResponse


# ============================================================
# Lifespan
# ============================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작/종료 관리"""
    print("🚀 CryptoTrade AI API 서버 시작")
    yield
    print("👋 서버 종료")


# ============================================================
# App
# ============================================================

app = FastAPI(
    title="CryptoTrade AI API",
    description="Gemini 기반 차트 분석 + 암호화폐 대시보드 서비스",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# Endpoints
# ============================================================


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """서비스 상태 확인"""
    service = get_service()
    return HealthResponse(
        status="healthy",
        chart_model=service.config.chart_model,
        sentiment_model=service.config.sentiment_model,
    )


@app.get("/market/top", response_model=CoinsResponse, tags=["Market"])
async def get_top_coins():
    """시가총액 상위 코인"""
    service = get_service()
    coins = await service.market.fetch_top_coins()
    return {"coins": [coin.to_dict() for coin in coins]}


@app.get("/market/watchlist", response_model=CoinsResponse, tags=["Market"])
async def get_watchlist():
    """워치리스트 코인 (SUI, SOL, BERA)"""
    service = get_service()
    coins = await service.market.fetch_watchlist_coins()
    return {"coins": [coin.to_dict() for coin in coins]}


@app.get("/sentiment", response_model=SentimentResponse, tags=["Insights"])
async def get_sentiment():
    """시장 센티멘트 (실패 시 중립 기본값)"""
    service = get_service()
    sentiment = await service.sentiment.fetch_market_sentiment()
    return sentiment.to_dict()


@app.get("/dashboard", response_model=DashboardResponse, tags=["Insights"])
async def get_dashboard():
    """대시보드 데이터 일괄 조회"""
    service = get_service()
    data = await service.load_dashboard()
    return {
        "topCoins": [coin.to_dict() for coin in data["top_coins"]],
        "watchlist": [coin.to_dict() for coin in data["watchlist"]],
        "sentiment": data["sentiment"].to_dict(),
    }


@app.post(
    "/analyze/chart",
    response_model=AnalysisResponse,
    response_model_exclude_none=True,
    tags=["Analysis"],
)
async def analyze_chart(
    chart_15m: Annotated[UploadFile | None, File(description="15분봉 스크린샷 (진입)")] = None,
    chart_1h: Annotated[UploadFile | None, File(description="1시간봉 스크린샷 (추세)")] = None,
    chart_15m_data: Annotated[str | None, Form(description="15분봉 data URL (파일 대신)")] = None,
    chart_1h_data: Annotated[str | None, Form(description="1시간봉 data URL (파일 대신)")] = None,
    context: Annotated[str, Form(description="추가 설명")] = "",
):
    """
    차트 스크린샷 AI 분석

    - **chart_15m**: 15분봉 차트 이미지 (선택)
    - **chart_1h**: 1시간봉 차트 이미지 (선택)
    - **chart_15m_data** / **chart_1h_data**: 브라우저 FileReader 결과
      ("data:image/png;base64,...") 형식. 같은 타임프레임에 파일이 있으면 무시
    - **context**: 프롬프트에 그대로 추가되는 사용자 설명

    최소 1개의 이미지가 필요합니다. 2개를 함께 보내면 통합 분석
    ("Combined Analysis")을 반환합니다.
    """
    sources = {}
    for timeframe, upload, data_url in (
        (TIMEFRAME_15M, chart_15m, chart_15m_data),
        (TIMEFRAME_1H, chart_1h, chart_1h_data),
    ):
        if upload is not None:
            sources[timeframe] = upload
        elif data_url:
            sources[timeframe] = data_url
    if not sources:
        raise HTTPException(status_code=400, detail="차트 이미지를 최소 1개 업로드하세요.")

    service = get_service()

    try:
        encoded = await asyncio.gather(*(_encode_source(source) for source in sources.values()))
        result = await service.chart_analyzer.analyze(dict(zip(sources.keys(), encoded)), context)
    except AnalysisError as e:
        raise HTTPException(status_code=502, detail=ANALYSIS_FAILED_MESSAGE) from e

    return result.to_dict()


async def _encode_source(source: UploadFile | str):
    if isinstance(source, str):
        return encode_data_url(source)
    return await encode_upload(source)
