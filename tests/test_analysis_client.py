import httpx
import openai
import pytest

from app.config import Settings
from app.models.image import EncodedPayload
from app.services.analysis_client import AnalysisClient, create_analysis_client, mask_secrets
from app.services.prompts import EMBRYO_ANALYSIS_INSTRUCTIONS
from app.utils.exceptions import ConfigurationError, EmptyResponse, ModelError, NetworkError

PAYLOAD = EncodedPayload(mime_type="image/png", base64_data="iVBORw0KGgo=")
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def test_build_request_structure(fake_openai):
    client = AnalysisClient(fake_openai(), model="gpt-4-turbo", temperature=0.7)
    request = client.build_request(PAYLOAD, generation=3)

    assert request.generation == 3
    system, user = request.messages
    assert system["role"] == "system"
    assert system["content"] == EMBRYO_ANALYSIS_INSTRUCTIONS.render()
    assert user["role"] == "user"
    text_part, image_part = user["content"]
    assert text_part == {"type": "text", "text": "Here is the embryo image I uploaded."}
    assert image_part["type"] == "image_url"
    assert image_part["image_url"]["url"] == "data:image/png;base64,iVBORw0KGgo="


def test_build_request_is_deterministic(fake_openai):
    client = AnalysisClient(fake_openai())
    assert client.build_request(PAYLOAD, 1) == client.build_request(PAYLOAD, 1)


def test_build_request_gpt_options(fake_openai):
    request = AnalysisClient(fake_openai(), model="gpt-4o", temperature=0.2).build_request(PAYLOAD)
    assert request.options == {"max_tokens": 2048, "temperature": 0.2}


def test_build_request_reasoning_model_options(fake_openai):
    request = AnalysisClient(fake_openai(), model="o4-mini").build_request(PAYLOAD)
    assert request.options == {"max_completion_tokens": 4096}
    assert "temperature" not in request.to_api_kwargs()


def test_client_required():
    with pytest.raises(ValueError):
        AnalysisClient(None)


@pytest.mark.asyncio
async def test_analyze_returns_markdown(fake_openai):
    fake = fake_openai("## Key Structures\n- zona pellucida visible\n")
    client = AnalysisClient(fake, model="gpt-4-turbo")
    result = await client.analyze(client.build_request(PAYLOAD, generation=5))

    assert result.markdown == "## Key Structures\n- zona pellucida visible"
    assert result.generation == 5
    assert len(fake.calls) == 1
    assert fake.calls[0]["model"] == "gpt-4-turbo"
    assert fake.calls[0]["temperature"] == 0.7


@pytest.mark.asyncio
async def test_analyze_transport_failure_is_network_error(fake_openai):
    fake = fake_openai(openai.APIConnectionError(request=_REQUEST))
    client = AnalysisClient(fake)

    with pytest.raises(NetworkError) as exc_info:
        await client.analyze(client.build_request(PAYLOAD, generation=2))

    assert exc_info.value.generation == 2
    assert exc_info.value.message == "Failed to analyze image. Please try again."
    assert isinstance(exc_info.value.__cause__, openai.APIConnectionError)


@pytest.mark.asyncio
async def test_analyze_timeout_is_network_error(fake_openai):
    client = AnalysisClient(fake_openai(openai.APITimeoutError(request=_REQUEST)))
    with pytest.raises(NetworkError):
        await client.analyze(client.build_request(PAYLOAD))


@pytest.mark.asyncio
async def test_analyze_status_error_is_model_error(fake_openai):
    response = httpx.Response(500, request=_REQUEST)
    error = openai.InternalServerError("Server error", response=response, body=None)
    client = AnalysisClient(fake_openai(error))

    with pytest.raises(ModelError) as exc_info:
        await client.analyze(client.build_request(PAYLOAD))
    assert "500" in exc_info.value.detail


@pytest.mark.asyncio
async def test_analyze_masks_credentials_in_detail(fake_openai):
    response = httpx.Response(401, request=_REQUEST)
    error = openai.AuthenticationError("Incorrect API key provided: sk-abc123XYZ", response=response, body=None)
    client = AnalysisClient(fake_openai(error))

    with pytest.raises(ModelError) as exc_info:
        await client.analyze(client.build_request(PAYLOAD))
    assert "sk-abc123XYZ" not in exc_info.value.detail
    assert "sk-***" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   \n"])
async def test_analyze_without_content_is_empty_response(content, fake_openai):
    client = AnalysisClient(fake_openai(content))
    with pytest.raises(EmptyResponse):
        await client.analyze(client.build_request(PAYLOAD))


def test_mask_secrets():
    assert mask_secrets("key sk-proj_ABC-123 rejected") == "key sk-*** rejected"


def test_create_analysis_client_requires_key():
    with pytest.raises(ConfigurationError) as exc_info:
        create_analysis_client(Settings(openai_api_key=""))
    assert "OPENAI_API_KEY" in exc_info.value.message
    assert exc_info.value.status_code == 503


def test_create_analysis_client_uses_settings():
    client = create_analysis_client(
        Settings(openai_api_key="sk-test", openai_model="gpt-4o-mini", openai_temperature=0.3)
    )
    assert isinstance(client.client, openai.AsyncOpenAI)
    assert client.model == "gpt-4o-mini"
    assert client.temperature == 0.3
    assert client.client.max_retries == 0
