"""Schema-constrained inference client.

Wraps the OpenAI chat completions API so that every call returns a
validated pydantic object instead of free text.
"""

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from docingest.exceptions import InferenceError
from docingest.ocr.document_ocr import to_data_url
from docingest.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ImageContent:
    """Binary image passed to a vision-capable model."""

    data: bytes
    mime_type: str


class InferenceClient(Protocol):
    """Anything that can turn an instruction plus content into a typed object."""

    async def generate_object(
        self,
        *,
        system: str,
        content: str | ImageContent,
        schema: type[ModelT],
        temperature: float = 0.1,
    ) -> ModelT: ...


def clean_json_response(content: str) -> str:
    """Remove a markdown code fence around a JSON reply."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class OpenAIInferenceClient:
    """Inference client backed by ``AsyncOpenAI``.

    The response schema is sent as a JSON-schema response format and
    the reply is validated against the same pydantic model. API errors
    from the ``openai`` package propagate unchanged.

    Args:
        client: Configured async OpenAI client.
        model: Chat model identifier.
    """

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        self.client = client
        self.model = model

    @staticmethod
    def _user_message(content: str | ImageContent) -> dict[str, Any]:
        if isinstance(content, ImageContent):
            url = to_data_url(content.data, content.mime_type)
            return {
                "role": "user",
                "content": [{"type": "image_url", "image_url": {"url": url}}],
            }
        return {"role": "user", "content": content}

    async def generate_object(
        self,
        *,
        system: str,
        content: str | ImageContent,
        schema: type[ModelT],
        temperature: float = 0.1,
    ) -> ModelT:
        """Run one schema-constrained completion.

        Args:
            system: Instruction prompt.
            content: Document text or image.
            schema: Pydantic model the reply must validate against.
            temperature: Sampling temperature.

        Returns:
            The validated reply.

        Raises:
            InferenceError: If the reply is empty or does not match ``schema``.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                self._user_message(content),
            ],
            temperature=temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "schema": schema.model_json_schema(),
                    "strict": False,
                },
            },
        )

        choice = response.choices[0]
        raw = choice.message.content
        if not raw:
            raise InferenceError(
                f"Empty response from {self.model} (finish_reason={choice.finish_reason})"
            )

        try:
            result = schema.model_validate_json(clean_json_response(raw))
        except ValidationError as exc:
            logger.debug("Rejected %s reply: %s", schema.__name__, raw)
            raise InferenceError(
                f"Response from {self.model} does not match {schema.__name__}: {exc}"
            ) from exc

        logger.debug("Generated %s with %s", schema.__name__, self.model)
        return result
