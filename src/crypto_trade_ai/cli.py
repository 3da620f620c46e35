"""CLI 명령어"""

import argparse
import asyncio
import sys

import uvicorn

from crypto_trade_ai.config import AIConfig
from crypto_trade_ai.exceptions import AnalysisError, ConfigurationError
from crypto_trade_ai.models import AnalysisTrend, PositionDirection


def _create_service():
    from crypto_trade_ai import CryptoTradeService

    try:
        return CryptoTradeService()
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)


def check_config():
    """설정 상태 확인"""
    print("🔍 설정 체크")
    print("=" * 50)

    try:
        config = AIConfig.from_env()
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

    masked = config.api_key[:4] + "*" * max(len(config.api_key) - 4, 0)
    print(f"GEMINI_API_KEY: {masked}")
    print(f"차트 분석 모델: {config.chart_model}")
    print(f"센티멘트 모델: {config.sentiment_model}")
    print("✅ 설정 완료")


def show_market():
    """상위 코인 + 워치리스트 시세"""
    service = _create_service()

    async def load():
        return await asyncio.gather(
            service.market.fetch_top_coins(),
            service.market.fetch_watchlist_coins(),
        )

    print("🌍 시장 데이터 조회 중...")
    top_coins, watchlist = asyncio.run(load())

    for title, coins in (("📈 시가총액 상위", top_coins), ("👀 워치리스트", watchlist)):
        print(f"\n{title}")
        print("-" * 40)
        for coin in coins:
            print(
                f"  #{coin.market_cap_rank:<4} {coin.symbol.upper():<6} "
                f"${coin.current_price:>12,.2f}  {coin.price_change_percentage_24h:+.1f}%"
            )


def show_sentiment():
    """시장 센티멘트"""
    service = _create_service()

    print("📰 시장 센티멘트 조회 중...")
    data = asyncio.run(service.sentiment.fetch_market_sentiment())

    emoji = {"Bullish": "🟢", "Bearish": "🔴"}.get(data.sentiment.value, "🟡")
    print(f"\n{emoji} {data.sentiment.value}")
    print(f"  {data.summary}")
    for point in data.key_points:
        print(f"  • {point}")


def analyze_chart(chart_15m: str | None, chart_1h: str | None, context: str):
    """차트 스크린샷 분석"""
    if not chart_15m and not chart_1h:
        print("❌ --15m 또는 --1h 중 최소 1개의 차트 이미지가 필요합니다.")
        sys.exit(1)

    service = _create_service()

    print("🤖 차트 분석 중...")
    try:
        result = asyncio.run(service.analyze_charts(chart_15m, chart_1h, context))
    except AnalysisError as e:
        print(f"❌ 분석 실패: {e}")
        print("   잠시 후 다시 시도하세요.")
        sys.exit(1)

    rec = result.recommendation
    direction_colors = {
        PositionDirection.LONG: "\033[92m",
        PositionDirection.SHORT: "\033[91m",
        PositionDirection.WAIT: "\033[93m",
    }
    trend_labels = {
        AnalysisTrend.UP: "상승 📈",
        AnalysisTrend.DOWN: "하락 📉",
        AnalysisTrend.NEUTRAL: "횡보 ➡️",
    }
    reset_color = "\033[0m"

    print(f"\n{'=' * 50}")
    print(f"📂 {result.file_name} ({result.timestamp})")
    print(f"🎯 추천: {direction_colors[rec.direction]}{rec.direction.value}{reset_color} (신뢰도: {rec.confidence})")
    print(f"   추세: {trend_labels[rec.trend]}")
    print(f"{'=' * 50}")
    print(f"  진입가: {rec.entry_price}")
    print(f"  목표가: {rec.target_price}")
    print(f"  손절가: {rec.stop_loss}")
    print(f"  손익비: {rec.pnl_projection}")
    print(f"  MACD: {rec.macd_status}")
    print(f"\n💡 {rec.reasoning}")

    if result.grounding_urls:
        print("\n🔗 출처:")
        for url in result.grounding_urls:
            print(f"  {url}")

    print("\n⚠️  주의: AI 분석은 참고용이며, 투자 결정은 본인 책임입니다.")


def serve(host: str, port: int):
    """API 서버 실행"""
    print(f"🌐 API 서버: http://{host}:{port}/docs")
    uvicorn.run("crypto_trade_ai.api:app", host=host, port=port)


def main():
    """메인 CLI 진입점"""
    parser = argparse.ArgumentParser(
        prog="crypto-trade-ai",
        description="Gemini 기반 암호화폐 차트 분석 서비스",
    )
    subparsers = parser.add_subparsers(dest="command", help="명령어")

    # check
    subparsers.add_parser("check", help="설정 상태 확인")

    # market
    subparsers.add_parser("market", help="시세 조회 (상위 코인 + 워치리스트)")

    # sentiment
    subparsers.add_parser("sentiment", help="시장 센티멘트")

    # analyze
    analyze_parser = subparsers.add_parser("analyze", help="차트 스크린샷 분석")
    analyze_parser.add_argument("--15m", dest="chart_15m", help="15분봉 차트 이미지 (진입)")
    analyze_parser.add_argument("--1h", dest="chart_1h", help="1시간봉 차트 이미지 (추세)")
    analyze_parser.add_argument(
        "--context", "-c",
        default="",
        help="추가 설명 (프롬프트에 그대로 포함)"
    )

    # serve
    serve_parser = subparsers.add_parser("serve", help="API 서버 실행")
    serve_parser.add_argument("--host", default="127.0.0.1", help="바인드 주소")
    serve_parser.add_argument("--port", "-p", type=int, default=8000, help="포트")

    args = parser.parse_args()

    if args.command == "check":
        check_config()
    elif args.command == "market":
        show_market()
    elif args.command == "sentiment":
        show_sentiment()
    elif args.command == "analyze":
        analyze_chart(args.chart_15m, args.chart_1h, args.context)
    elif args.command == "serve":
        serve(args.host, args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
