from packages.identity.models.domain.metadata import MetadataPatch, UserMetadata
from packages.identity.providers.memory_metadata import MemoryMetadataProvider


class TestUserMetadata:
    def test_nulls_read_as_defaults(self):
        metadata = UserMetadata.model_validate(
            {"isRegistered": None, "usageCount": None}
        )

        assert metadata.is_registered is False
        assert metadata.usage_count == 0

    def test_unknown_keys_survive_round_trip(self):
        metadata = UserMetadata.model_validate({"usageCount": 2, "theme": "dark"})

        assert metadata.to_app_metadata() == {
            "isRegistered": False,
            "usageCount": 2,
            "theme": "dark",
        }


class TestMetadataPatch:
    def test_only_set_fields_are_sent(self):
        assert MetadataPatch(is_registered=True).to_app_metadata() == {
            "isRegistered": True
        }
        assert MetadataPatch(stripe_customer_id="cus_1").to_app_metadata() == {
            "stripeCustomerId": "cus_1"
        }


class TestMemoryMetadataProvider:
    async def test_unknown_user_has_defaults(self):
        provider = MemoryMetadataProvider()

        metadata = await provider.get_metadata("auth0|new")

        assert metadata.usage_count == 0
        assert metadata.stripe_customer_id is None

    async def test_patch_merges_into_existing(self):
        provider = MemoryMetadataProvider(
            users={"auth0|1": {"usageCount": 2, "stripeCustomerId": "cus_1"}}
        )

        await provider.patch_metadata("auth0|1", MetadataPatch(is_registered=True))
        metadata = await provider.get_metadata("auth0|1")

        assert metadata.is_registered is True
        assert metadata.usage_count == 2
        assert metadata.stripe_customer_id == "cus_1"

    async def test_find_user_by_customer_id(self):
        provider = MemoryMetadataProvider(
            users={"auth0|1": {"stripeCustomerId": "cus_1"}, "auth0|2": {}}
        )

        assert await provider.find_user_by_customer_id("cus_1") == "auth0|1"
        assert await provider.find_user_by_customer_id("cus_2") is None
