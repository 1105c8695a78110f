import pytest
from unittest.mock import MagicMock
from google.api_core import exceptions as google_exceptions
from google.cloud import language_v1

from common.core.exceptions import ExtractionUnavailable
from packages.extraction.providers.google_language import GoogleLanguageProvider


def entity(name: str, salience: float):
    return language_v1.Entity(
        name=name, type_=language_v1.Entity.Type.ORGANIZATION, salience=salience
    )


@pytest.fixture
def language_client():
    client = MagicMock()
    client.analyze_entities.return_value = language_v1.AnalyzeEntitiesResponse(
        entities=[entity("Stripe", 0.5), entity("Auth0", 0.25), entity("noise", 0.0625)]
    )
    return client


@pytest.fixture
def provider(language_client):
    provider = GoogleLanguageProvider(api_key="key", timeout_seconds=5)
    provider._client = language_client
    return provider


class TestGoogleLanguageProvider:
    async def test_filters_by_salience(self, provider):
        keywords = await provider.extract_keywords("Stripe and Auth0", 0.1)

        assert [k.name for k in keywords] == ["Stripe", "Auth0"]
        assert keywords[0].type == "ORGANIZATION"

    async def test_threshold_is_exclusive(self, provider):
        keywords = await provider.extract_keywords("Stripe and Auth0", 0.25)

        assert [k.name for k in keywords] == ["Stripe"]

    async def test_sends_plain_text_document(self, provider, language_client):
        await provider.extract_keywords("Stripe and Auth0", 0.1)

        document = language_client.analyze_entities.call_args.kwargs["document"]
        assert document.content == "Stripe and Auth0"
        assert document.type_ == language_v1.Document.Type.PLAIN_TEXT

    async def test_api_error_maps_to_unavailable(self, provider, language_client):
        language_client.analyze_entities.side_effect = (
            google_exceptions.ServiceUnavailable("down")
        )

        with pytest.raises(ExtractionUnavailable):
            await provider.extract_keywords("text", 0.1)

    async def test_missing_api_key(self):
        provider = GoogleLanguageProvider(timeout_seconds=5)
        provider.api_key = ""

        with pytest.raises(ExtractionUnavailable):
            await provider.extract_keywords("text", 0.1)
