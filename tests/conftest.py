import pytest
from storefront.config import GatewayCredentials, resolve_credentials

@pytest.fixture
def mock_message_context():
    """Async context manager standing in for message.process()"""
    class AsyncContextManager:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            pass

    return AsyncContextManager()

@pytest.fixture
def mock_credentials(monkeypatch):
    """Credentials resolved with nothing configured (mock mode)."""
    for name in (
        "PAYMOB_API_KEY", "PAYMOB_HMAC", "PAYMOB_MERCHANT_ID",
        "PAYMOB_INTEGRATION_ID_CARD", "PAYMOB_INTEGRATION_ID_WALLET",
    ):
        monkeypatch.delenv(name, raising=False)
    return resolve_credentials()

@pytest.fixture
def live_credentials():
    return GatewayCredentials(
        api_key="live_api_key",
        hmac_secret="s3cr3t-hmac",
        merchant_id="merchant-1",
        integration_id_card="111",
        integration_id_wallet="222",
    )
