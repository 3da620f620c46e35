"""차트 이미지 인코딩 (base64)"""

import asyncio
import base64
import mimetypes
from pathlib import Path
from typing import Protocol

from crypto_trade_ai.exceptions import ImageEncodingError
from crypto_trade_ai.models import EncodedImage

DEFAULT_MIME_TYPE = "application/octet-stream"


class AsyncReadable(Protocol):
    """Starlette UploadFile 호환 인터페이스"""
    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


def guess_mime_type(file_name: str) -> str:
    """파일명으로 MIME 타입 추정 (검증은 모델 서비스가 담당)"""
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or DEFAULT_MIME_TYPE


def encode_bytes(raw: bytes, mime_type: str, file_name: str = "") -> EncodedImage:
    """바이트를 base64 텍스트로 변환"""
    return EncodedImage(
        data=base64.b64encode(raw).decode("ascii"),
        mime_type=mime_type,
        file_name=file_name,
    )


def encode_data_url(data_url: str, file_name: str = "") -> EncodedImage:
    """
    data URL에서 메타데이터 접두사 제거

    "data:image/jpeg;base64,/9j/4AAQ..." -> data="/9j/4AAQ...", mime_type="image/jpeg"
    접두사가 없으면 이미 base64 텍스트로 간주한다.
    """
    if not data_url.startswith("data:") or "," not in data_url:
        return EncodedImage(
            data=data_url,
            mime_type=guess_mime_type(file_name) if file_name else DEFAULT_MIME_TYPE,
            file_name=file_name,
        )

    header, data = data_url.split(",", 1)
    mime_type = header[len("data:"):].split(";", 1)[0] or DEFAULT_MIME_TYPE
    return EncodedImage(data=data, mime_type=mime_type, file_name=file_name)


def decode_image(image: EncodedImage) -> bytes:
    """EncodedImage -> 원본 바이트"""
    return base64.b64decode(image.data, validate=True)


async def encode_file(path: str | Path, mime_type: str | None = None) -> EncodedImage:
    """디스크 파일 인코딩 (읽기는 워커 스레드에서 수행)"""
    path = Path(path)
    try:
        raw = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise ImageEncodingError(f"이미지를 읽을 수 없습니다: {path} ({e})") from e

    return encode_bytes(raw, mime_type or guess_mime_type(path.name), path.name)


async def encode_upload(upload: AsyncReadable) -> EncodedImage:
    """업로드 파일 인코딩"""
    file_name = upload.filename or ""
    try:
        raw = await upload.read()
    except OSError as e:
        raise ImageEncodingError(f"업로드 파일을 읽을 수 없습니다: {file_name} ({e})") from e

    mime_type = upload.content_type or guess_mime_type(file_name)
    return encode_bytes(raw, mime_type, file_name)
