"""Unit tests for the ElevenLabs synthesis client."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from foley.config.models import SynthesisConfig
from foley.providers.elevenlabs import (
    ElevenLabsSynthesizer,
    SynthesisAuthError,
    SynthesisQuotaError,
)
from foley.providers.interface import SynthesisError

CLIENT_PATH = "foley.providers.elevenlabs.httpx.Client"


@pytest.fixture
def config() -> SynthesisConfig:
    """Create a test synthesis config."""
    return SynthesisConfig(
        api_key="xi-test",
        url="https://api.elevenlabs.io/",
        duration_seconds=3.0,
        prompt_influence=0.4,
        timeout_seconds=30,
    )


@pytest.fixture
def synthesizer(config: SynthesisConfig) -> ElevenLabsSynthesizer:
    return ElevenLabsSynthesizer(config)


def _response(status_code: int = 200, content: bytes = b"ID3-audio") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    return response


class TestElevenLabsSynthesizer:
    """Tests for ElevenLabsSynthesizer.synthesize()."""

    def test_mime_type(self, synthesizer: ElevenLabsSynthesizer) -> None:
        assert synthesizer.mime_type == "audio/mpeg"

    @patch(CLIENT_PATH)
    def test_success(self, mock_client_class: MagicMock, synthesizer) -> None:
        """Posts the prompt and returns the response body."""
        http = mock_client_class.return_value
        http.post.return_value = _response()

        audio = synthesizer.synthesize("Door slams", duration_hint=1.5)

        assert audio == b"ID3-audio"
        http.post.assert_called_once_with(
            "/v1/sound-generation",
            json={
                "text": "Door slams",
                "model_id": "eleven_text_to_sound_v2",
                "duration_seconds": 1.5,
                "prompt_influence": 0.4,
            },
        )
        _, kwargs = mock_client_class.call_args
        assert kwargs["base_url"] == "https://api.elevenlabs.io"
        assert kwargs["headers"]["xi-api-key"] == "xi-test"

    @patch(CLIENT_PATH)
    def test_default_duration(self, mock_client_class: MagicMock, synthesizer) -> None:
        http = mock_client_class.return_value
        http.post.return_value = _response()

        synthesizer.synthesize("Rain")

        assert http.post.call_args.kwargs["json"]["duration_seconds"] == 3.0

    def test_missing_key(self) -> None:
        synthesizer = ElevenLabsSynthesizer(SynthesisConfig(api_key=None))
        with pytest.raises(SynthesisAuthError, match="not set"):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_unauthorized(self, mock_client_class: MagicMock, synthesizer) -> None:
        mock_client_class.return_value.post.return_value = _response(401)

        with pytest.raises(SynthesisAuthError, match="Invalid"):
            synthesizer.synthesize("Door slams")

    @pytest.mark.parametrize("status_code", [402, 429])
    @patch(CLIENT_PATH)
    def test_quota(
        self, mock_client_class: MagicMock, status_code: int, synthesizer
    ) -> None:
        mock_client_class.return_value.post.return_value = _response(status_code)

        with pytest.raises(SynthesisQuotaError, match=str(status_code)):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_server_error(self, mock_client_class: MagicMock, synthesizer) -> None:
        response = _response(500)
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "500 Internal Server Error", request=MagicMock(), response=MagicMock()
        )
        mock_client_class.return_value.post.return_value = response

        with pytest.raises(SynthesisError, match="HTTP error"):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_connection_error(self, mock_client_class: MagicMock, synthesizer) -> None:
        mock_client_class.return_value.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(SynthesisError, match="Cannot connect"):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_timeout(self, mock_client_class: MagicMock, synthesizer) -> None:
        mock_client_class.return_value.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(SynthesisError, match="timeout"):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_empty_body(self, mock_client_class: MagicMock, synthesizer) -> None:
        mock_client_class.return_value.post.return_value = _response(content=b"")

        with pytest.raises(SynthesisError, match="empty body"):
            synthesizer.synthesize("Door slams")

    @patch(CLIENT_PATH)
    def test_close(self, mock_client_class: MagicMock, synthesizer) -> None:
        mock_client_class.return_value.post.return_value = _response()
        synthesizer.synthesize("Door slams")

        synthesizer.close()

        mock_client_class.return_value.close.assert_called_once()
        assert synthesizer._client is None
