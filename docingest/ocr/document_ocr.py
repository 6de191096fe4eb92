"""Client for a hosted document-OCR endpoint (Mistral OCR API shape).

The document is sent inline as a base64 data URL; the response carries
one markdown string per page.
"""

import asyncio
import base64
from typing import Any

import httpx

from docingest.utils.logger import get_logger
from docingest.utils.retry import RetryPolicy, SleepFn, retry_call

logger = get_logger(__name__)


def to_data_url(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class DocumentOCRClient:
    """OCR backend backed by a remote document-OCR service.

    Args:
        http_client: Shared async HTTP client.
        api_key: Bearer token for the OCR service.
        base_url: API root, without the trailing ``/ocr``.
        model: OCR model identifier.
        retry: Retry policy for the HTTP call.
        sleep: Awaitable sleep used between retries.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.mistral.ai/v1",
        model: str = "mistral-ocr-latest",
        retry: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.http_client = http_client
        self.api_key = api_key
        self.endpoint = f"{base_url.rstrip('/')}/ocr"
        self.model = model
        self.retry = retry or RetryPolicy(max_attempts=2)
        self.sleep = sleep

    def _build_payload(self, content: bytes, mime_type: str) -> dict[str, Any]:
        data_url = to_data_url(content, mime_type)
        if mime_type.startswith("image/"):
            document = {"type": "image_url", "image_url": data_url}
        else:
            document = {"type": "document_url", "document_url": data_url}
        return {
            "model": self.model,
            "document": document,
            "include_image_base64": False,
        }

    async def _request(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self.http_client.post(
            self.endpoint,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        return response.json()

    async def ocr(self, content: bytes, mime_type: str) -> str:
        """Recognize text in a PDF or image.

        Args:
            content: Raw document bytes.
            mime_type: Normalized MIME type of ``content``.

        Returns:
            Page markdown joined by blank lines, or ``""`` on any failure.
        """
        payload = self._build_payload(content, mime_type)
        try:
            body = await retry_call(
                lambda: self._request(payload),
                self.retry,
                operation="Document OCR",
                sleep=self.sleep,
            )
        except Exception as exc:
            logger.error("OCR failed: %s", exc)
            return ""

        pages = body.get("pages") or []
        text = "\n\n".join(page.get("markdown") or "" for page in pages)
        logger.info("OCR recognized %d pages, %d characters", len(pages), len(text))
        return text
