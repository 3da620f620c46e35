"""ChartAnalyzer 테스트 (Gemini 모킹)"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import httpx
import pytest

from crypto_trade_ai.chart import (
    COMBINED_LABEL,
    DEFAULT_REASONING,
    TIMEFRAME_15M,
    TIMEFRAME_1H,
    ChartAnalyzer,
    RecommendationPayload,
    apply_defaults,
    build_request_parts,
    parse_chart_reply,
)
from crypto_trade_ai.config import AIConfig
from crypto_trade_ai.encoder import encode_bytes
from crypto_trade_ai.exceptions import (
    AnalysisError,
    ImageEncodingError,
    MalformedResponseError,
    TransportError,
)
from crypto_trade_ai.models import (
    AnalysisTrend,
    EncodedImage,
    ModelReply,
    PositionDirection,
    TradeRecommendation,
)

FULL_REPLY = (
    '{"trend":"UP","direction":"LONG","entryPrice":"100","targetPrice":"120",'
    '"stopLoss":"90","pnlProjection":"1:2","reasoning":"uptrend confirmed",'
    '"confidence":"High","macdStatus":"second half red zone"}'
)

FULL_RECOMMENDATION = TradeRecommendation(
    trend=AnalysisTrend.UP,
    direction=PositionDirection.LONG,
    entry_price="100",
    target_price="120",
    stop_loss="90",
    pnl_projection="1:2",
    reasoning="uptrend confirmed",
    confidence="High",
    macd_status="second half red zone",
)

ALL_DEFAULTS = TradeRecommendation(
    trend=AnalysisTrend.NEUTRAL,
    direction=PositionDirection.WAIT,
    entry_price="N/A",
    target_price="N/A",
    stop_loss="N/A",
    pnl_projection="N/A",
    reasoning=DEFAULT_REASONING,
    confidence="Low",
    macd_status="Unknown",
)


class TestParseChartReply:
    """응답 파싱 및 기본값 치환 테스트"""

    def test_full_reply_maps_without_substitution(self):
        assert parse_chart_reply(FULL_REPLY) == FULL_RECOMMENDATION

    @pytest.mark.parametrize(
        "wrapped",
        [
            f"```json\n{FULL_REPLY}\n```",
            f"```\n{FULL_REPLY}\n```",
            f"  ```json{FULL_REPLY}```  ",
        ],
    )
    def test_fenced_reply_matches_unwrapped(self, wrapped):
        assert parse_chart_reply(wrapped) == parse_chart_reply(FULL_REPLY)

    def test_missing_fields_get_defaults(self):
        reply = json.dumps({"trend": "DOWN", "stopLoss": "95.5", "confidence": None})

        rec = parse_chart_reply(reply)

        assert rec.trend == AnalysisTrend.DOWN
        assert rec.stop_loss == "95.5"
        assert rec.direction == PositionDirection.WAIT
        assert rec.entry_price == "N/A"
        assert rec.target_price == "N/A"
        assert rec.pnl_projection == "N/A"
        assert rec.reasoning == DEFAULT_REASONING
        assert rec.confidence == "Low"
        assert rec.macd_status == "Unknown"

    def test_null_fields_get_defaults(self):
        data = json.loads(FULL_REPLY)
        data["direction"] = None
        data["macdStatus"] = None

        rec = parse_chart_reply(json.dumps(data))

        assert rec.direction == PositionDirection.WAIT
        assert rec.macd_status == "Unknown"
        # 나머지 필드는 그대로
        assert rec.trend == AnalysisTrend.UP
        assert rec.entry_price == "100"
        assert rec.reasoning == "uptrend confirmed"

    def test_unexpected_shapes_get_defaults(self):
        reply = json.dumps({
            "trend": "SIDEWAYS",
            "direction": ["LONG"],
            "entryPrice": {"price": 1},
            "targetPrice": "",
            "confidence": True,
        })

        assert parse_chart_reply(reply) == ALL_DEFAULTS

    def test_numeric_prices_become_strings(self):
        rec = parse_chart_reply(json.dumps({"entryPrice": 1.92, "targetPrice": 2}))

        assert rec.entry_price == "1.92"
        assert rec.target_price == "2"

    def test_enum_values_are_case_insensitive(self):
        rec = parse_chart_reply(json.dumps({"trend": "up", "direction": " short "}))

        assert rec.trend == AnalysisTrend.UP
        assert rec.direction == PositionDirection.SHORT

    def test_empty_reply_yields_all_defaults(self):
        assert parse_chart_reply("") == ALL_DEFAULTS
        assert parse_chart_reply("{}") == ALL_DEFAULTS

    def test_unparsable_reply_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_chart_reply("```json\nThe chart shows a bullish trend\n```")

    def test_non_object_reply_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_chart_reply("[1, 2, 3]")

    def test_apply_defaults_on_empty_payload(self):
        assert apply_defaults(RecommendationPayload()) == ALL_DEFAULTS


class TestBuildRequestParts:
    """요청 Part 구성 테스트"""

    def test_two_timeframes(self):
        images = {
            TIMEFRAME_15M: encode_bytes(b"chart-15m", "image/png", "sui_15m.png"),
            TIMEFRAME_1H: encode_bytes(b"chart-1h", "image/jpeg", "sui_1h.jpg"),
        }

        parts = build_request_parts(images, "SUI near support")

        assert len(parts) == 5
        assert "15-minute" in parts[0].text
        assert parts[1].inline_data.mime_type == "image/png"
        assert parts[1].inline_data.data == b"chart-15m"
        assert "1-hour" in parts[2].text
        assert parts[3].inline_data.mime_type == "image/jpeg"
        assert parts[3].inline_data.data == b"chart-1h"
        assert parts[4].text.rstrip().endswith('"SUI near support"')
        assert "second half of the red zone" in parts[4].text
        assert "MACD indicator (12, 26, 9)" in parts[4].text

    def test_context_is_verbatim(self):
        context = 'Watch "BERA" {not json} \n second line'
        images = {TIMEFRAME_1H: encode_bytes(b"x", "image/png")}

        parts = build_request_parts(images, context)

        assert context in parts[-1].text

    def test_invalid_base64(self):
        images = {TIMEFRAME_1H: EncodedImage(data="@@@", mime_type="image/png")}

        with pytest.raises(ImageEncodingError):
            build_request_parts(images, "")


class TestChartAnalyzer:
    """ChartAnalyzer 테스트"""

    @pytest.fixture
    def config(self):
        return AIConfig(api_key="test-api-key")

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.generate = AsyncMock(return_value=ModelReply(text=FULL_REPLY))
        return client

    @pytest.fixture
    def analyzer(self, config, client):
        return ChartAnalyzer(config, client)

    @pytest.fixture
    def image_15m(self):
        return encode_bytes(b"chart-15m", "image/png", "sui_15m.png")

    @pytest.fixture
    def image_1h(self):
        return encode_bytes(b"chart-1h", "image/png", "sui_1h.png")

    def test_single_image(self, analyzer, client, config, image_15m):
        result = asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}, "context"))

        assert result.file_name == "sui_15m.png"
        assert result.recommendation == FULL_RECOMMENDATION
        assert result.grounding_urls is None
        assert result.timestamp.endswith("+00:00")

        client.generate.assert_awaited_once()
        assert client.generate.call_args.kwargs["model"] == config.chart_model

    def test_single_image_without_file_name(self, analyzer):
        image = encode_bytes(b"x", "image/png")

        result = asyncio.run(analyzer.analyze({TIMEFRAME_1H: image}))

        assert result.file_name == TIMEFRAME_1H

    def test_combined_analysis(self, analyzer, client, image_15m, image_1h):
        images = {TIMEFRAME_15M: image_15m, TIMEFRAME_1H: image_1h}

        result = asyncio.run(analyzer.analyze(images, "context"))

        assert result.file_name == COMBINED_LABEL
        parts = client.generate.call_args.args[0]
        inline = [part.inline_data for part in parts if part.inline_data is not None]
        assert [blob.data for blob in inline] == [b"chart-15m", b"chart-1h"]

    def test_grounding_urls(self, analyzer, client, image_15m):
        client.generate.return_value = ModelReply(
            text=FULL_REPLY, grounding_urls=["https://a.example", "https://b.example"]
        )

        result = asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}))

        assert result.grounding_urls == ("https://a.example", "https://b.example")
        assert result.to_dict()["groundingUrls"] == ["https://a.example", "https://b.example"]

    def test_empty_reply(self, analyzer, client, image_15m):
        client.generate.return_value = ModelReply(text="")

        result = asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}))

        assert result.recommendation == ALL_DEFAULTS

    def test_empty_image_set_is_rejected(self, analyzer, client):
        with pytest.raises(ValueError):
            asyncio.run(analyzer.analyze({}, "context"))

        client.generate.assert_not_called()

    def test_transport_error_propagates(self, analyzer, client, image_15m):
        client.generate.side_effect = TransportError("quota exceeded")

        with pytest.raises(AnalysisError):
            asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}))

    def test_unparsable_reply_propagates(self, analyzer, client, image_15m):
        client.generate.return_value = ModelReply(text="```json\nnot json\n```")

        with pytest.raises(AnalysisError):
            asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}))

    def test_to_dict_uses_camel_case(self, analyzer, image_15m):
        result = asyncio.run(analyzer.analyze({TIMEFRAME_15M: image_15m}))

        data = result.to_dict()
        assert data["fileName"] == "sui_15m.png"
        assert data["recommendation"] == json.loads(FULL_REPLY)
        assert "groundingUrls" not in data


class TestGeminiTransport:
    """GeminiClient 오류 변환 테스트"""

    def test_network_error_becomes_transport_error(self):
        from crypto_trade_ai.gemini import GeminiClient

        sdk_client = MagicMock()
        sdk_client.aio.models.generate_content = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )
        client = GeminiClient(AIConfig(api_key="test-api-key"), client=sdk_client)

        with pytest.raises(TransportError):
            asyncio.run(client.generate("prompt", model="gemini-flash-latest"))

    @pytest.mark.parametrize(
        "error",
        [
            aiohttp.ClientConnectionError("connection reset"),
            asyncio.TimeoutError(),
            ConnectionResetError("connection reset by peer"),
        ],
    )
    def test_aiohttp_transport_errors_become_analysis_error(self, error):
        from crypto_trade_ai.gemini import GeminiClient

        sdk_client = MagicMock()
        sdk_client.aio.models.generate_content = AsyncMock(side_effect=error)
        config = AIConfig(api_key="test-api-key")
        analyzer = ChartAnalyzer(config, GeminiClient(config, client=sdk_client))
        image = encode_bytes(b"chart-15m", "image/png", "sui_15m.png")

        with pytest.raises(AnalysisError) as exc_info:
            asyncio.run(analyzer.analyze({TIMEFRAME_15M: image}))

        assert isinstance(exc_info.value, TransportError)
        assert exc_info.value.__cause__ is error
