import asyncio
from typing import List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import language_v1

from common.core.config import settings
from common.core.exceptions import ExtractionUnavailable
from common.core.otel_axiom_exporter import get_logger, trace_span
from packages.extraction.models.domain.keyword import Keyword
from .interface import EntityExtractionInterface

logger = get_logger(__name__)


class GoogleLanguageProvider(EntityExtractionInterface):
    """Google Cloud Natural Language entity analysis."""

    def __init__(
        self, api_key: Optional[str] = None, timeout_seconds: Optional[float] = None
    ):
        self.api_key = api_key or settings.google_extractor_api_key
        self.timeout_seconds = timeout_seconds or settings.extraction_timeout_seconds
        self._client: Optional[language_v1.LanguageServiceClient] = None

    @property
    def client(self) -> language_v1.LanguageServiceClient:
        if self._client is None:
            if not self.api_key:
                raise ExtractionUnavailable("google_extractor_api_key is not configured")
            self._client = language_v1.LanguageServiceClient(
                client_options={"api_key": self.api_key}
            )
        return self._client

    @trace_span
    async def extract_keywords(self, text: str, min_salience: float) -> List[Keyword]:
        document = language_v1.Document(
            content=text, type_=language_v1.Document.Type.PLAIN_TEXT
        )

        try:
            # Run synchronous Google API call in thread pool to avoid blocking event loop
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self.client.analyze_entities,
                    document=document,
                    timeout=self.timeout_seconds,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Google Natural Language timed out after {self.timeout_seconds}s")
            raise ExtractionUnavailable("Entity analysis timed out") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Google Natural Language API error: {e}")
            raise ExtractionUnavailable("Entity analysis failed") from e

        keywords = [
            Keyword(name=entity.name, type=entity.type_.name, salience=entity.salience)
            for entity in response.entities
            if entity.salience > min_salience
        ]
        logger.info(
            f"Extracted {len(keywords)} of {len(response.entities)} entities",
            extra={"min_salience": min_salience},
        )
        return keywords
