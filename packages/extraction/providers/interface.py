from abc import ABC, abstractmethod
from typing import List

from packages.extraction.models.domain.keyword import Keyword


class EntityExtractionInterface(ABC):
    """Interface for keyword/entity extraction providers."""

    @abstractmethod
    async def extract_keywords(self, text: str, min_salience: float) -> List[Keyword]:
        """
        Extract entities from plain text.

        Args:
            text: The document content
            min_salience: Entities at or below this salience are dropped

        Returns:
            Keywords in the order the service returned them

        Raises:
            ExtractionUnavailable: if the service fails or times out
        """
        pass
