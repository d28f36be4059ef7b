"""Tests for the Graph client, send adapters and credential resolution."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from omnichat.core.exceptions import CredentialError
from omnichat.messaging.errors import (
    AuthenticationError,
    PlatformSendError,
    RateLimitError,
    UnsupportedOperationError,
    classify_graph_error,
)
from omnichat.messaging.factory import SenderFactory
from omnichat.messaging.interface import build_body_parameters
from omnichat.messaging.meta.client import MetaGraphClient
from omnichat.messaging.meta.messenger_sender import MessengerSender
from omnichat.messaging.meta.whatsapp_sender import WhatsAppSender
from omnichat.models.database_models import Channel
from omnichat.models.enums import MediaKind, Platform
from omnichat.services.credentials import EnvironmentCredentialResolver


def mock_session(status: int = 200, body=None, headers=None) -> MagicMock:
    """aiohttp-like session whose request() yields a canned response."""
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(return_value=body)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.request = MagicMock(return_value=context)
    return session


@pytest.fixture
def graph_client():
    client = MagicMock()
    client.post = AsyncMock(return_value={"messages": [{"id": "wamid.OK"}]})
    return client


class TestClassifyGraphError:
    def test_rate_limit_codes(self):
        error = classify_graph_error(
            400, {"error": {"code": 130429, "message": "Too many"}}, retry_after="12"
        )
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 12.0
        assert error.provider_code == 130429

    def test_http_429_without_body(self):
        assert isinstance(classify_graph_error(429, None), RateLimitError)

    def test_expired_token(self):
        error = classify_graph_error(
            401, {"error": {"code": 190, "type": "OAuthException", "message": "expired"}}
        )
        assert isinstance(error, AuthenticationError)

    def test_generic_error_message(self):
        error = classify_graph_error(
            400, {"error": {"code": 131026, "message": "Message undeliverable"}}
        )
        assert type(error) is PlatformSendError
        assert str(error) == "Meta API Error (131026): Message undeliverable"


class TestMetaGraphClient:
    async def test_post_sends_bearer_token(self):
        session = mock_session(body={"messages": [{"id": "wamid.1"}]})
        client = MetaGraphClient(
            session, "secret-token", api_version="v19.0", base_url="https://graph.test/"
        )

        data = await client.post("123/messages", {"to": "55"})

        assert data == {"messages": [{"id": "wamid.1"}]}
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://graph.test/v19.0/123/messages"
        assert kwargs["headers"]["Authorization"] == "Bearer secret-token"
        assert kwargs["json"] == {"to": "55"}

    async def test_error_body_raises_classified_error(self):
        session = mock_session(
            status=400, body={"error": {"code": 4, "message": "Application request limit"}}
        )
        client = MetaGraphClient(session, "t", api_version="v19.0", base_url="https://g/")

        with pytest.raises(RateLimitError):
            await client.get("waba/message_templates")

    async def test_network_error_is_wrapped(self):
        session = MagicMock()
        session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("reset"))
        client = MetaGraphClient(session, "t", api_version="v19.0", base_url="https://g/")

        with pytest.raises(PlatformSendError, match="Network error"):
            await client.post("1/messages", {})


class TestWhatsAppSender:
    async def test_send_text(self, graph_client):
        sender = WhatsAppSender(graph_client, "PHONE_ID")

        result = await sender.send_text("5511999", "Hello")

        assert result.message_id == "wamid.OK"
        assert result.platform == Platform.WHATSAPP
        endpoint, payload = graph_client.post.await_args.args
        assert endpoint == "PHONE_ID/messages"
        assert payload["messaging_product"] == "whatsapp"
        assert payload["to"] == "5511999"
        assert payload["text"]["body"] == "Hello"

    async def test_send_template_with_components(self, graph_client):
        sender = WhatsAppSender(graph_client, "PHONE_ID")
        components = build_body_parameters({"name": "Ana"})

        await sender.send_template("5511999", "welcome", "en", components)

        _, payload = graph_client.post.await_args.args
        assert payload["type"] == "template"
        assert payload["template"]["name"] == "welcome"
        assert payload["template"]["language"] == {"code": "en"}
        assert payload["template"]["components"] == components

    async def test_send_document_uses_caption_as_filename(self, graph_client):
        sender = WhatsAppSender(graph_client, "PHONE_ID")

        await sender.send_media("5511999", MediaKind.DOCUMENT, "https://x/a.pdf", "a.pdf")

        _, payload = graph_client.post.await_args.args
        assert payload["document"] == {"link": "https://x/a.pdf", "filename": "a.pdf"}

    async def test_response_without_message_id_is_a_failure(self, graph_client):
        graph_client.post.return_value = {"messages": []}
        sender = WhatsAppSender(graph_client, "PHONE_ID")

        with pytest.raises(PlatformSendError):
            await sender.send_text("5511999", "Hello")


class TestMessengerSender:
    async def test_send_text(self, graph_client):
        graph_client.post.return_value = {"recipient_id": "PSID", "message_id": "m_1"}
        sender = MessengerSender(graph_client, "PAGE", Platform.INSTAGRAM)

        result = await sender.send_text("PSID", "Hi")

        assert result.message_id == "m_1"
        assert result.platform == Platform.INSTAGRAM
        endpoint, payload = graph_client.post.await_args.args
        assert endpoint == "PAGE/messages"
        assert payload["recipient"] == {"id": "PSID"}
        assert payload["message"] == {"text": "Hi"}

    async def test_templates_are_unsupported(self, graph_client):
        sender = MessengerSender(graph_client, "PAGE", Platform.FACEBOOK)

        with pytest.raises(UnsupportedOperationError):
            await sender.send_template("PSID", "welcome", "en")
        graph_client.post.assert_not_awaited()


class TestBuildBodyParameters:
    def test_empty_params(self):
        assert build_body_parameters(None) == []
        assert build_body_parameters({}) == []

    def test_values_are_stringified_in_order(self):
        [component] = build_body_parameters({"b": 2, "a": "x"})
        assert [p["text"] for p in component["parameters"]] == ["2", "x"]


class TestSenderFactory:
    async def test_builds_sender_per_platform(self, test_settings):
        credentials = EnvironmentCredentialResolver(test_settings)
        factory = SenderFactory(MagicMock(), credentials, test_settings)

        whatsapp = await factory.create_sender(
            Channel(id=1, name="wa", platform=Platform.WHATSAPP, platform_id="PHONE")
        )
        page = await factory.create_sender(
            Channel(id=2, name="fb", platform=Platform.FACEBOOK, platform_id="PAGE")
        )

        assert isinstance(whatsapp, WhatsAppSender)
        assert whatsapp.sender_id == "PHONE"
        assert isinstance(page, MessengerSender)
        assert page.platform == Platform.FACEBOOK


class TestEnvironmentCredentialResolver:
    async def test_channel_specific_variable(self, monkeypatch, test_settings):
        monkeypatch.setenv("SHOP_TOKEN", "shop-token")
        channel = Channel(
            id=1,
            name="shop",
            platform=Platform.WHATSAPP,
            platform_id="P",
            settings={"access_token_env": "SHOP_TOKEN"},
        )

        assert await EnvironmentCredentialResolver(test_settings).resolve(channel) == "shop-token"

    async def test_falls_back_to_global_token(self, test_settings):
        channel = Channel(id=1, name="c", platform=Platform.WHATSAPP, platform_id="P")
        assert await EnvironmentCredentialResolver(test_settings).resolve(channel) == "test_token"

    async def test_missing_token(self, test_settings):
        test_settings.meta_access_token = None
        channel = Channel(id=1, name="c", platform=Platform.WHATSAPP, platform_id="P")

        with pytest.raises(CredentialError):
            await EnvironmentCredentialResolver(test_settings).resolve(channel)
