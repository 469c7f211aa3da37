from voicereview.application import ReviewService, build_service
from voicereview.infrastructure.config import LLMSettings, MessagingSettings, Settings
from voicereview.infrastructure.whatsapp import LoggingProvider


def test_build_service_creates_catalog_database(tmp_path):
    settings = Settings(
        llm=LLMSettings(api_key=""),
        messaging=MessagingSettings(api_key="", api_secret="", sender_number=""),
        database_file=tmp_path / "venues.db",
    )

    service = build_service(settings)

    assert isinstance(service, ReviewService)
    assert isinstance(service.provider, LoggingProvider)
    assert (tmp_path / "venues.db").exists()
