import asyncio
import os
import unittest
from types import SimpleNamespace
from unittest import mock

from batch_ai_pr_reviewer.llm_client import LLMClient, setup_litellm_provider_env
from batch_ai_pr_reviewer.plugin_config import PluginConfig
from batch_ai_pr_reviewer.review_schema import REVIEW_RESPONSE_FORMAT


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_config(**overrides):
    values = dict(llm_model="openai/o1-preview", llm_format_model="openai/gpt-4o-mini", llm_api_key="sk-test",
                  scm_token="t", temperature=None, max_tokens=None, llm_timeout=5.0)
    values.update(overrides)
    return PluginConfig(**values)


class TestLLMClient(unittest.IsolatedAsyncioTestCase):
    async def test_complete_returns_stripped_content(self):
        client = LLMClient(make_config())
        with mock.patch("litellm.acompletion", new=mock.AsyncMock(return_value=completion("  [ ]  "))) as acompletion:
            result = await client.complete("review this")

        self.assertEqual(result, "[ ]")
        kwargs = acompletion.call_args.kwargs
        self.assertEqual(kwargs["model"], "openai/o1-preview")
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "review this"}])
        self.assertEqual(kwargs["api_key"], "sk-test")
        self.assertEqual(kwargs["timeout"], 5.0)
        self.assertNotIn("temperature", kwargs)
        self.assertNotIn("response_format", kwargs)

    async def test_complete_structured_uses_format_model_and_schema(self):
        client = LLMClient(make_config(temperature=0.0))
        with mock.patch("litellm.acompletion", new=mock.AsyncMock(return_value=completion('{"review": []}'))) as acompletion:
            result = await client.complete_structured("format this", REVIEW_RESPONSE_FORMAT)

        self.assertEqual(result, '{"review": []}')
        kwargs = acompletion.call_args.kwargs
        self.assertEqual(kwargs["model"], "openai/gpt-4o-mini")
        self.assertIs(kwargs["response_format"], REVIEW_RESPONSE_FORMAT)
        self.assertEqual(kwargs["temperature"], 0.0)

    async def test_errors_become_none(self):
        client = LLMClient(make_config())
        with mock.patch("litellm.acompletion", new=mock.AsyncMock(side_effect=RuntimeError("provider down"))):
            self.assertIsNone(await client.complete("review this"))

    async def test_empty_content_becomes_none(self):
        client = LLMClient(make_config())
        with mock.patch("litellm.acompletion", new=mock.AsyncMock(return_value=completion("   "))):
            self.assertIsNone(await client.complete("review this"))
        with mock.patch("litellm.acompletion", new=mock.AsyncMock(return_value=SimpleNamespace(choices=[]))):
            self.assertIsNone(await client.complete("review this"))

    async def test_timeout_becomes_none(self):
        async def slow_completion(**kwargs):
            await asyncio.sleep(1)
            return completion("late")

        client = LLMClient(make_config(llm_timeout=0.01))
        with mock.patch("litellm.acompletion", new=slow_completion):
            self.assertIsNone(await client.complete("review this"))

    async def test_missing_model_makes_no_call(self):
        client = LLMClient(make_config(llm_model=None, llm_format_model=None))
        with mock.patch("litellm.acompletion", new=mock.AsyncMock()) as acompletion:
            self.assertIsNone(await client.complete("review this"))
            self.assertIsNone(await client.complete_structured("format this", REVIEW_RESPONSE_FORMAT))
        acompletion.assert_not_called()


class TestProviderEnv(unittest.TestCase):
    def test_vertex_settings_are_exported(self):
        config = make_config(llm_model="vertex_ai/gemini-1.5-pro", vertex_project="proj", vertex_location="us-central1")
        with mock.patch.dict(os.environ, {}, clear=True):
            setup_litellm_provider_env(config)
            self.assertEqual(os.environ["VERTEXAI_PROJECT"], "proj")
            self.assertEqual(os.environ["VERTEXAI_LOCATION"], "us-central1")

    def test_bedrock_region_is_exported(self):
        config = make_config(llm_model="bedrock/anthropic.claude-v2", aws_region_name="eu-west-1")
        with mock.patch.dict(os.environ, {}, clear=True):
            setup_litellm_provider_env(config)
            self.assertEqual(os.environ["AWS_REGION_NAME"], "eu-west-1")


if __name__ == '__main__':
    unittest.main()
