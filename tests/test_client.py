import httpx
import openai

from .test_base import BaseChatCLITest, make_completion
from routerchat.core.client import APP_TITLE, OpenRouterClient

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


class TestOpenRouterClient(BaseChatCLITest):
    def payload(self):
        return {
            "model": "openai/gpt-4o-mini",
            "messages": [{"role": "user", "content": "Hi"}],
            "temperature": 0.7,
            "max_tokens": 256,
        }

    def test_complete_returns_first_choice(self):
        self.mock_client.chat.completions.create.return_value = make_completion("Hello!")

        result = self.mock_wrapper.complete(self.payload())

        self.assertTrue(result.ok)
        self.assertIsNone(result.error)
        self.assertEqual(result.reply, {"role": "assistant", "content": "Hello!"})
        self.mock_client.chat.completions.create.assert_called_once_with(**self.payload())

    def test_connection_error(self):
        self.mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=REQUEST
        )

        result = self.mock_wrapper.complete(self.payload())

        self.assertFalse(result.ok)
        self.assertIn("Request failed", result.error)

    def test_status_error(self):
        self.mock_client.chat.completions.create.side_effect = openai.AuthenticationError(
            "No auth credentials found",
            response=httpx.Response(401, request=REQUEST),
            body=None,
        )

        result = self.mock_wrapper.complete(self.payload())

        self.assertFalse(result.ok)
        self.assertIn("401", result.error)

    def test_interrupted_request(self):
        self.mock_client.chat.completions.create.side_effect = KeyboardInterrupt

        result = self.mock_wrapper.complete(self.payload())

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "Request interrupted.")

    def test_empty_choices(self):
        completion = make_completion("x")
        completion.choices = []
        self.mock_client.chat.completions.create.return_value = completion

        result = self.mock_wrapper.complete(self.payload())

        self.assertFalse(result.ok)

    def test_validate_key(self):
        self.mock_client.chat.completions.create.return_value = make_completion("p")

        self.assertTrue(self.mock_wrapper.validate_key("openai/gpt-4o-mini"))
        kwargs = self.mock_client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["max_tokens"], 1)

    def test_validate_key_rejected(self):
        self.mock_client.chat.completions.create.side_effect = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=REQUEST), body=None
        )
        self.assertFalse(self.mock_wrapper.validate_key("openai/gpt-4o-mini"))

    def test_set_api_key_rebinds_client(self):
        replacement = self.mock_client.with_options.return_value

        self.mock_wrapper.set_api_key("sk-other")

        self.mock_client.with_options.assert_called_once_with(api_key="sk-other")
        self.assertIs(self.mock_wrapper.client, replacement)

    def test_from_settings(self):
        wrapper = OpenRouterClient.from_settings(self.settings)

        self.assertEqual(str(wrapper.client.base_url).rstrip("/"), "https://openrouter.ai/api/v1")
        self.assertEqual(wrapper.client.api_key, "sk-or-test-key")
        headers = wrapper.client.default_headers
        self.assertEqual(headers["X-Title"], APP_TITLE)
        self.assertIn("HTTP-Referer", headers)
        self.assertEqual(headers["Authorization"], "Bearer sk-or-test-key")
