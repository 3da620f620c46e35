"""Google Gemini 클라이언트 래퍼 (google-genai SDK)"""

import asyncio
import logging

import aiohttp
import httpx
from google import genai
from google.genai import errors, types

from crypto_trade_ai.config import AIConfig
from crypto_trade_ai.exceptions import TransportError
from crypto_trade_ai.models import ModelReply

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """마크다운 코드 펜스(```json, ```) 제거"""
    return text.replace("```json", "").replace("```", "").strip()


def extract_grounding_urls(response: types.GenerateContentResponse) -> list[str]:
    """검색 그라운딩 메타데이터에서 출처 URL 추출 (순서 유지, 중복 제거)"""
    urls: list[str] = []
    for candidate in response.candidates or []:
        metadata = candidate.grounding_metadata
        if metadata is None:
            continue
        for chunk in metadata.grounding_chunks or []:
            uri = chunk.web.uri if chunk.web else None
            if uri and uri not in urls:
                urls.append(uri)
    return urls


class GeminiClient:
    """Gemini generate_content 호출 (비동기)"""

    def __init__(self, config: AIConfig, client: genai.Client | None = None):
        self.config = config
        self.client = client or genai.Client(api_key=config.api_key)

    async def generate(
        self,
        contents: str | list[types.Part],
        model: str,
        grounded: bool = False,
        json_output: bool = True,
    ) -> ModelReply:
        """
        콘텐츠 생성 요청

        Args:
            contents: 프롬프트 문자열 또는 Part 목록 (이미지 + 텍스트)
            model: 모델 이름
            grounded: Google Search 그라운딩 활성화
            json_output: JSON 형식 응답 요청

        Raises:
            TransportError: 네트워크 오류, 인증/쿼터 거부 등
        """
        config = types.GenerateContentConfig(
            response_mime_type="application/json" if json_output else None,
            tools=[types.Tool(google_search=types.GoogleSearch())] if grounded else None,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except errors.APIError as e:
            raise TransportError(f"Gemini API 오류 ({e.code}): {e.message}") from e
        except (httpx.HTTPError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            # 비동기 전송 계층은 httpx 또는 aiohttp (SDK 설치 구성에 따라 다름)
            raise TransportError(f"Gemini 요청 실패: {e!r}") from e

        text = response.text or ""
        logger.debug("Gemini 응답 수신 (model=%s, %d chars)", model, len(text))
        return ModelReply(text=text, grounding_urls=extract_grounding_urls(response))
