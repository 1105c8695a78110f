from typing import Optional

from .interface import EntityExtractionInterface
from .google_language import GoogleLanguageProvider

# Global instance
_extraction_provider: Optional[EntityExtractionInterface] = None


def get_entity_extraction_provider() -> EntityExtractionInterface:
    """
    Get the entity extraction provider.

    Returns:
        EntityExtractionInterface: The provider instance
    """
    global _extraction_provider

    if _extraction_provider is None:
        _extraction_provider = GoogleLanguageProvider()
    return _extraction_provider
