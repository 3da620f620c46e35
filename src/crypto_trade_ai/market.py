"""
CoinGecko 시장 데이터 클라이언트
- 무료 (30 calls/min), Pro API 키 선택
- rate limit/CORS 등으로 실패하면 내장 목업 데이터로 대체
"""

import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from crypto_trade_ai.config import MarketConfig
from crypto_trade_ai.models import MarketCoin

logger = logging.getLogger(__name__)


# API 한도 초과 시 대시보드가 비지 않도록 사용하는 목업 데이터
MOCK_COINS: dict[str, MarketCoin] = {
    "bitcoin": MarketCoin(
        id="bitcoin", symbol="btc", name="Bitcoin",
        image="https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
        current_price=96542, market_cap=1_900_000_000_000, market_cap_rank=1,
        price_change_percentage_24h=2.5, total_volume=50_000_000_000,
    ),
    "ethereum": MarketCoin(
        id="ethereum", symbol="eth", name="Ethereum",
        image="https://assets.coingecko.com/coins/images/279/large/ethereum.png",
        current_price=3650, market_cap=420_000_000_000, market_cap_rank=2,
        price_change_percentage_24h=1.2, total_volume=20_000_000_000,
    ),
    "solana": MarketCoin(
        id="solana", symbol="sol", name="Solana",
        image="https://assets.coingecko.com/coins/images/4128/large/solana.png",
        current_price=185.5, market_cap=85_000_000_000, market_cap_rank=4,
        price_change_percentage_24h=-3.5, total_volume=4_000_000_000,
    ),
    "sui": MarketCoin(
        id="sui", symbol="sui", name="Sui",
        image="https://assets.coingecko.com/coins/images/26375/large/sui_asset.jpeg",
        current_price=1.92, market_cap=2_200_000_000, market_cap_rank=45,
        price_change_percentage_24h=5.4, total_volume=600_000_000,
    ),
    "berachain": MarketCoin(
        id="berachain-bjet", symbol="bera", name="Berachain",
        image="https://assets.coingecko.com/coins/images/33454/standard/berachain_logo.png",
        current_price=69.42, market_cap=100_000_000, market_cap_rank=200,
        price_change_percentage_24h=12.5, total_volume=1_000_000,
    ),
}


def mock_top_coins(limit: int) -> list[MarketCoin]:
    return list(MOCK_COINS.values())[:limit]


def mock_watchlist(coin_ids: list[str] | tuple[str, ...]) -> list[MarketCoin]:
    """목업 워치리스트 (목업에 없는 ID는 빈 값 코인으로 채움)"""
    return [
        MOCK_COINS.get(coin_id) or MarketCoin(id=coin_id, symbol=coin_id, name=coin_id.upper())
        for coin_id in coin_ids
    ]


class CoinGeckoClient:
    """CoinGecko 공개 API 클라이언트 (비동기)"""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        config: MarketConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: 시장 데이터 설정 (Pro API 키, 워치리스트)
            transport: httpx 전송 계층 (테스트용)
        """
        self.config = config or MarketConfig()
        self.transport = transport
        self.headers = {"Accept": "application/json"}
        if self.config.coingecko_api_key:
            self.headers["x-cg-pro-api-key"] = self.config.coingecko_api_key

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(self, endpoint: str, params: dict | None = None):
        """API 요청 (네트워크 오류만 재시도)"""
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.get(
                f"{self.BASE_URL}{endpoint}",
                params=params or {},
                headers=self.headers,
                timeout=30,
            )
            response.raise_for_status()
            return response.json()

    async def get_coin_markets(
        self,
        vs_currency: str = "usd",
        ids: list[str] | tuple[str, ...] | None = None,
        order: str = "market_cap_desc",
        per_page: int | None = None,
        page: int = 1,
    ) -> list[MarketCoin]:
        """
        시가총액 순 코인 목록 + 시세

        Raises:
            httpx.HTTPError: 요청 실패
            ValueError: 응답이 목록 형식이 아닌 경우
        """
        params = {
            "vs_currency": vs_currency,
            "order": order,
            "page": page,
            "sparkline": "false",
        }
        if ids:
            params["ids"] = ",".join(ids)
        if per_page:
            params["per_page"] = per_page

        data = await self._request("/coins/markets", params)
        if not isinstance(data, list):
            raise ValueError("Invalid response format")
        return [MarketCoin.from_api(row) for row in data]

    async def fetch_top_coins(self) -> list[MarketCoin]:
        """시가총액 상위 코인 (실패 시 목업)"""
        try:
            return await self.get_coin_markets(per_page=self.config.top_limit)
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Fetching top coins failed (using mock data): %s", e)
            return mock_top_coins(self.config.top_limit)

    async def fetch_watchlist_coins(self) -> list[MarketCoin]:
        """워치리스트 코인 (실패 시 목업)"""
        try:
            return await self.get_coin_markets(ids=self.config.watchlist)
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Fetching watchlist failed (using mock data): %s", e)
            return mock_watchlist(self.config.watchlist)
