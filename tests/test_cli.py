"""CLI 테스트"""

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crypto_trade_ai import cli
from crypto_trade_ai.exceptions import TransportError
from crypto_trade_ai.models import (
    AnalysisResult,
    AnalysisTrend,
    PositionDirection,
    TradeRecommendation,
)

RESULT = AnalysisResult(
    file_name="sol_15m.png",
    timestamp="2026-10-17T09:00:00+00:00",
    recommendation=TradeRecommendation(
        trend=AnalysisTrend.DOWN,
        direction=PositionDirection.WAIT,
        entry_price="N/A",
        target_price="N/A",
        stop_loss="N/A",
        pnl_projection="N/A",
        reasoning="Histogram still expanding to the downside.",
        confidence="Low",
        macd_status="first half red zone",
    ),
)


class TestAnalyzeCommand:
    """analyze 명령 테스트"""

    @pytest.fixture
    def service(self):
        service = MagicMock()
        service.analyze_charts = AsyncMock(return_value=RESULT)
        return service

    def test_requires_an_image(self):
        with pytest.raises(SystemExit):
            cli.analyze_chart(None, None, "")

    def test_prints_recommendation(self, service, capsys):
        with patch("crypto_trade_ai.cli._create_service", return_value=service):
            cli.analyze_chart("sol_15m.png", None, "watch 185")

        output = capsys.readouterr().out
        assert "sol_15m.png" in output
        assert "WAIT" in output
        assert "first half red zone" in output
        service.analyze_charts.assert_awaited_once_with("sol_15m.png", None, "watch 185")

    def test_analysis_failure_exits(self, service):
        service.analyze_charts.side_effect = TransportError("quota exceeded")

        with patch("crypto_trade_ai.cli._create_service", return_value=service):
            with pytest.raises(SystemExit):
                cli.analyze_chart("sol_15m.png", None, "")

    def test_main_parses_timeframe_options(self, monkeypatch):
        monkeypatch.setattr(
            sys, "argv",
            ["crypto-trade-ai", "analyze", "--15m", "a.png", "--1h", "b.png", "-c", "ctx"],
        )

        with patch("crypto_trade_ai.cli.analyze_chart") as analyze_chart:
            cli.main()

        analyze_chart.assert_called_once_with("a.png", "b.png", "ctx")


class TestServeCommand:
    """serve 명령 테스트"""

    def test_serve_runs_uvicorn(self):
        with patch("crypto_trade_ai.cli.uvicorn.run") as run:
            cli.serve("0.0.0.0", 9000)

        run.assert_called_once_with("crypto_trade_ai.api:app", host="0.0.0.0", port=9000)

    def test_main_parses_serve_options(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["crypto-trade-ai", "serve", "--port", "8080"])

        with patch("crypto_trade_ai.cli.uvicorn.run") as run:
            cli.main()

        run.assert_called_once_with("crypto_trade_ai.api:app", host="127.0.0.1", port=8080)
