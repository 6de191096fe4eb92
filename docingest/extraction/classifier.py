"""Document classification into invoice, receipt, contract or other."""

from docingest.inference.client import ImageContent, InferenceClient
from docingest.utils.logger import get_logger

from .prompts import ClassifierPrompts
from .schemas import ClassificationResult, ImageClassificationResult

logger = get_logger(__name__)


class DocumentClassifier:
    """Classifies document text or images with one inference call.

    There is no retry here: inference and validation errors reach the
    caller unchanged.

    Args:
        client: Schema-constrained inference client.
        temperature: Sampling temperature for classification.
        prompts: Text and image instruction templates.
    """

    def __init__(
        self,
        client: InferenceClient,
        temperature: float = 0.1,
        prompts: ClassifierPrompts | None = None,
    ) -> None:
        self.client = client
        self.temperature = temperature
        self.prompts = prompts or ClassifierPrompts()

    async def classify(
        self,
        content: str | bytes,
        is_image: bool,
        mime_type: str = "image/jpeg",
    ) -> ClassificationResult:
        """Classify a document.

        Args:
            content: Document text, or raw image bytes when ``is_image``.
            is_image: Whether ``content`` is an image.
            mime_type: Image MIME type; ignored for text.

        Returns:
            The validated classification as returned by the model.
        """
        if is_image:
            if isinstance(content, str):
                raise TypeError("Image classification expects raw bytes")
            payload: str | ImageContent = ImageContent(content, mime_type)
            schema: type[ClassificationResult] = ImageClassificationResult
        else:
            if isinstance(content, bytes):
                content = content.decode("utf-8", errors="replace")
            payload = content
            schema = ClassificationResult

        result = await self.client.generate_object(
            system=self.prompts.for_input(is_image),
            content=payload,
            schema=schema,
            temperature=self.temperature,
        )
        logger.info(
            "Classified document as %s (confidence %.2f, language %s)",
            result.type,
            result.confidence,
            result.language,
        )
        return result
