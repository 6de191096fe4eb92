"""Shared machinery for the invoice and receipt field extractors."""

import asyncio
from typing import TypeVar

import httpx
from pydantic import BaseModel

from docingest.exceptions import DocumentTextError
from docingest.inference.client import ImageContent, InferenceClient
from docingest.loaders.document_loader import DocumentLoader, DocumentRef, read_document
from docingest.utils.logger import get_logger
from docingest.utils.retry import RetryPolicy, SleepFn, retry_call
from docingest.utils.text import get_domain_from_email, remove_protocol_from_domain

logger = get_logger(__name__)

RawT = TypeVar("RawT", bound=BaseModel)


def resolve_website(website: str | None, email: str | None) -> str | None:
    """Use the stated website, else infer the root domain from the email."""
    if website:
        return remove_protocol_from_domain(website)
    return remove_protocol_from_domain(get_domain_from_email(email))


class StructuredExtractor:
    """Runs retried, schema-constrained extraction calls.

    Args:
        client: Schema-constrained inference client.
        loader: Document loader used to turn documents into text.
        http_client: Client used to fetch URL document references.
        retry: Retry policy for each extraction call.
        temperature: Sampling temperature for extraction.
        max_words: Upper bound on words of text sent to the model.
        sleep: Awaitable sleep used between retries.
    """

    document_kind = "document"

    def __init__(
        self,
        client: InferenceClient,
        loader: DocumentLoader | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        temperature: float = 0.1,
        max_words: int = 10000,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = client
        self.loader = loader or DocumentLoader()
        self.http_client = http_client
        self.retry = retry or RetryPolicy(max_attempts=3, base_delay=1.0)
        self.temperature = temperature
        self.max_words = max_words
        self.sleep = sleep

    async def _generate(
        self,
        system: str,
        content: str | ImageContent,
        schema: type[RawT],
    ) -> RawT:
        return await retry_call(
            lambda: self.client.generate_object(
                system=system,
                content=content,
                schema=schema,
                temperature=self.temperature,
            ),
            self.retry,
            operation=f"{self.document_kind.capitalize()} extraction",
            sleep=self.sleep,
        )

    async def _load_text(self, ref: DocumentRef) -> str:
        request = await read_document(ref, self.http_client)
        result = await self.loader.load(request)
        return result.text or ""

    def _check_text(self, text: str) -> None:
        if not text.strip():
            raise DocumentTextError(f"No text to extract {self.document_kind} fields from")
