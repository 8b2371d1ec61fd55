import base64
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import PHOTO_DATA_URL, STYLE_DATA_URL
from generation.providers import (
    create_ai_provider, StubProvider, GeminiProvider, OpenAIProvider,
)
from generation.providers.base import load_image, parse_data_url
from generation.providers import rendering
from salon import config
from salon.errors import ProviderError, ProviderUnavailable


def decode_svg(data_url):
    assert data_url.startswith('data:image/svg+xml;base64,')
    return base64.b64decode(data_url.split(',', 1)[1]).decode('utf-8')


# =============================================================================
# STUB
# =============================================================================

def test_stub_is_deterministic():
    provider = StubProvider()

    first = provider.generate(PHOTO_DATA_URL, prompt='curtain bangs')
    second = provider.generate(PHOTO_DATA_URL, prompt='curtain bangs')
    other = provider.generate(PHOTO_DATA_URL, prompt='buzz cut')

    assert first.output_ref == second.output_ref
    assert first.output_ref != other.output_ref
    assert first.kind == 'prompt'
    assert first.duration_ms >= 0
    assert 'curtain bangs' in decode_svg(first.output_ref)


def test_stub_style_reference():
    result = StubProvider().generate(PHOTO_DATA_URL, style_ref=STYLE_DATA_URL)
    assert result.kind == 'style-reference'
    assert 'Style Transfer' in decode_svg(result.output_ref)


def test_stub_escapes_prompt_markup():
    result = StubProvider().generate(PHOTO_DATA_URL, prompt='<script>bob</script>')
    svg = decode_svg(result.output_ref)
    assert '<script>' not in svg
    assert '&lt;script&gt;' in svg


def test_wrap_text():
    assert rendering.wrap_text('one two three four', 9) == ['one two', 'three', 'four']
    assert rendering.wrap_text('', 10) == []


# =============================================================================
# SELECTION
# =============================================================================

def test_factory_prefers_gemini(monkeypatch):
    monkeypatch.setattr(config, 'GEMINI_API_KEY', 'g-key')
    monkeypatch.setattr(config, 'OPENAI_API_KEY', 'o-key')
    assert isinstance(create_ai_provider(), GeminiProvider)


def test_factory_falls_back_to_openai(monkeypatch):
    monkeypatch.setattr(config, 'GEMINI_API_KEY', '')
    monkeypatch.setattr(config, 'OPENAI_API_KEY', 'o-key')
    assert isinstance(create_ai_provider(), OpenAIProvider)


def test_factory_falls_back_to_stub(monkeypatch):
    monkeypatch.setattr(config, 'GEMINI_API_KEY', '')
    monkeypatch.setattr(config, 'OPENAI_API_KEY', '')
    provider = create_ai_provider()
    assert isinstance(provider, StubProvider)
    assert provider.timeout == config.PROVIDER_TIMEOUT_SECONDS


# =============================================================================
# IMAGE REFERENCES
# =============================================================================

def test_parse_data_url():
    data, mime = parse_data_url(PHOTO_DATA_URL)
    assert data == b'client-photo'
    assert mime == 'image/png'


def test_load_remote_image_uses_timeout():
    response = MagicMock(content=b'jpeg-bytes', headers={'Content-Type': 'image/jpeg; charset=binary'})
    with patch('generation.providers.base.requests.get', return_value=response) as get:
        data, mime = load_image('https://i.ibb.co/abc/photo.jpg', timeout=12)

    get.assert_called_once_with('https://i.ibb.co/abc/photo.jpg', timeout=12)
    assert data == b'jpeg-bytes'
    assert mime == 'image/jpeg'


def test_load_remote_image_timeout_is_provider_error():
    with patch('generation.providers.base.requests.get', side_effect=requests.Timeout('slow')):
        with pytest.raises(ProviderError):
            load_image('https://i.ibb.co/abc/photo.jpg', timeout=1)


def test_unsupported_reference():
    with pytest.raises(ProviderError):
        load_image('/tmp/photo.jpg', timeout=1)


# =============================================================================
# GEMINI
# =============================================================================

def gemini_response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def test_gemini_returns_first_inline_image():
    client = MagicMock()
    client.models.generate_content.return_value = gemini_response(
        SimpleNamespace(inline_data=None, text='Here you go'),
        SimpleNamespace(inline_data=SimpleNamespace(data=b'png-bytes', mime_type='image/png')),
    )
    provider = GeminiProvider(api_key=None, model='gemini-test', client=client)

    result = provider.generate(PHOTO_DATA_URL, prompt='bob')

    assert result.output_ref == 'data:image/png;base64,' + base64.b64encode(b'png-bytes').decode('ascii')
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs['model'] == 'gemini-test'
    assert 'bob' in kwargs['contents'][0]


def test_gemini_style_transfer_sends_both_images():
    client = MagicMock()
    client.models.generate_content.return_value = gemini_response(
        SimpleNamespace(inline_data=SimpleNamespace(data=b'png', mime_type=None)),
    )
    provider = GeminiProvider(api_key=None, model='gemini-test', client=client)

    result = provider.generate(PHOTO_DATA_URL, style_ref=STYLE_DATA_URL)

    assert result.kind == 'style-reference'
    assert len(client.models.generate_content.call_args.kwargs['contents']) == 4


def test_gemini_text_only_answer_is_unavailable():
    client = MagicMock()
    client.models.generate_content.return_value = gemini_response(
        SimpleNamespace(inline_data=None, text='I cannot edit photos'),
    )
    provider = GeminiProvider(api_key=None, model='gemini-test', client=client)

    with pytest.raises(ProviderUnavailable):
        provider.generate(PHOTO_DATA_URL, prompt='bob')


def test_gemini_no_candidates_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        GeminiProvider.extract_image(SimpleNamespace(candidates=[]))


def test_gemini_client_error_is_provider_error():
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError('deadline exceeded')
    provider = GeminiProvider(api_key=None, model='gemini-test', client=client)

    with pytest.raises(ProviderError) as exc:
        provider.generate(PHOTO_DATA_URL, prompt='bob')
    assert not isinstance(exc.value, ProviderUnavailable)


def test_gemini_requires_key():
    with pytest.raises(ValueError):
        GeminiProvider(api_key='', model='gemini-test')


# =============================================================================
# OPENAI
# =============================================================================

def openai_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def test_openai_renders_consultation_card():
    client = MagicMock()
    client.chat.completions.create.return_value = openai_response('Keep the sides short.')
    provider = OpenAIProvider(api_key=None, model='gpt-test', client=client)

    result = provider.generate(PHOTO_DATA_URL, prompt='crew cut')

    svg = decode_svg(result.output_ref)
    assert 'Keep the sides short.' in svg
    assert 'crew cut' in svg

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs['model'] == 'gpt-test'
    content = kwargs['messages'][0]['content']
    assert content[1]['image_url']['url'] == PHOTO_DATA_URL


def test_openai_inlines_remote_style_reference():
    client = MagicMock()
    client.chat.completions.create.return_value = openai_response('Match the layers.')
    provider = OpenAIProvider(api_key=None, model='gpt-test', client=client)

    response = MagicMock(content=b'jpeg', headers={'Content-Type': 'image/jpeg'})
    with patch('generation.providers.base.requests.get', return_value=response):
        result = provider.generate(PHOTO_DATA_URL, style_ref='https://i.ibb.co/ref.jpg')

    assert result.kind == 'style-reference'
    content = client.chat.completions.create.call_args.kwargs['messages'][0]['content']
    assert content[3]['image_url']['url'] == 'data:image/jpeg;base64,' + base64.b64encode(b'jpeg').decode('ascii')


def test_openai_empty_answer_is_unavailable():
    client = MagicMock()
    client.chat.completions.create.return_value = openai_response('   ')
    provider = OpenAIProvider(api_key=None, model='gpt-test', client=client)

    with pytest.raises(ProviderUnavailable):
        provider.generate(PHOTO_DATA_URL, prompt='bob')
