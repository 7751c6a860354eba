import json
import os
import threading
import time
import unittest
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai

from zing.errors import BackendError, GenerationTimeout, MissingCredential
from zing.llm.base import Deadline
from zing.llm.openai_backend import OpenAIBackend


class FakeStream:
    def __init__(self, *chunks):
        self.chunks = chunks
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def __iter__(self):
        return iter(self.chunks)


class StalledStream(FakeStream):
    def __iter__(self):
        yield chunk("feat: ")
        raise httpx.ReadTimeout("stalled", request=request())


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def request():
    return httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class TestOpenAIBackend(unittest.TestCase):
    def setUp(self):
        patcher = patch("zing.llm.openai_backend.OpenAI")
        self.mock_openai = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = MagicMock()
        self.client.with_options.return_value = self.client
        self.mock_openai.return_value = self.client

    def test_missing_credential_before_any_client(self):
        with self.assertRaises(MissingCredential) as ctx:
            OpenAIBackend("gpt-4o-mini")
        self.assertIn("OPENAI_API_KEY", str(ctx.exception))
        self.assertFalse(ctx.exception.retryable)
        self.mock_openai.assert_not_called()

    def test_credential_from_environment(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            backend = OpenAIBackend("gpt-4o-mini")
        self.assertEqual(backend.api_key, "sk-test")
        self.mock_openai.assert_called_once_with(api_key="sk-test", base_url=None, max_retries=0)

    def test_generate_streams_single_user_message(self):
        stream = FakeStream(chunk("fix(api): "), chunk(None), chunk("handle nulls"), SimpleNamespace(choices=[]))
        self.client.chat.completions.create.return_value = stream
        backend = OpenAIBackend("gpt-4o-mini", max_tokens=300, temperature=0.4, api_key="sk-test")

        self.assertEqual(backend.generate("the prompt"), "fix(api): handle nulls")
        self.client.chat.completions.create.assert_called_once_with(
            model="gpt-4o-mini",
            messages=[{"role": "user", "content": "the prompt"}],
            max_tokens=300,
            temperature=0.4,
            stream=True,
        )
        self.assertTrue(stream.closed)

    def test_deadline_sets_client_timeout(self):
        self.client.chat.completions.create.return_value = FakeStream(chunk("ok"))
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        backend.generate("prompt", Deadline(12, clock=lambda: 5.0))
        self.client.with_options.assert_called_once_with(timeout=12.0)

    def test_deadline_passing_mid_stream(self):
        stream = FakeStream(chunk("feat: "), chunk("late"))
        self.client.chat.completions.create.return_value = stream
        # deadline is created at 0, the request sees 1, the first chunk arrives at 13
        clock = MagicMock(side_effect=[0.0, 1.0, 13.0])
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")

        with self.assertRaises(GenerationTimeout):
            backend.generate("prompt", Deadline(12, clock=clock))
        self.assertTrue(stream.closed)

    def test_timeout_error(self):
        self.client.chat.completions.create.side_effect = openai.APITimeoutError(request=request())
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        with self.assertRaises(GenerationTimeout):
            backend.generate("prompt")

    def test_read_timeout_while_streaming(self):
        self.client.chat.completions.create.return_value = StalledStream()
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        with self.assertRaises(GenerationTimeout):
            backend.generate("prompt")

    def test_connection_error(self):
        self.client.chat.completions.create.side_effect = openai.APIConnectionError(request=request())
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        with self.assertRaises(BackendError) as ctx:
            backend.generate("prompt")
        self.assertNotIsInstance(ctx.exception, GenerationTimeout)

    def test_no_choices(self):
        self.client.chat.completions.create.return_value = FakeStream(SimpleNamespace(choices=[]))
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        with self.assertRaises(BackendError):
            backend.generate("prompt")

    def test_null_content(self):
        self.client.chat.completions.create.return_value = FakeStream(chunk(None))
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test")
        with self.assertRaises(BackendError):
            backend.generate("prompt")


class EventStreamHandler(BaseHTTPRequestHandler):
    """Streams one chat completion chunk per word, ``delay`` seconds apart."""

    words = ()
    delay = 0.0

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.end_headers()
        try:
            for word in self.words:
                event = {
                    "id": "chatcmpl-1",
                    "object": "chat.completion.chunk",
                    "created": 0,
                    "model": "gpt-4o-mini",
                    "choices": [{"index": 0, "delta": {"content": word}, "finish_reason": None}],
                }
                self.wfile.write(f"data: {json.dumps(event)}\n\n".encode("utf-8"))
                self.wfile.flush()
                time.sleep(self.delay)
            self.wfile.write(b"data: [DONE]\n\n")
        except OSError:
            # client hung up
            pass

    def log_message(self, format, *args):
        pass


class TestOpenAIBackendWallClock(unittest.TestCase):
    WORDS = ("feat", ":", " stream", " the", " reply", " one", " word", " at", " a", " time")

    def setUp(self):
        patcher = patch.dict(os.environ, {"NO_PROXY": "127.0.0.1", "no_proxy": "127.0.0.1"})
        patcher.start()
        self.addCleanup(patcher.stop)

    def serve(self, delay):
        handler = type("Handler", (EventStreamHandler,), {"words": self.WORDS, "delay": delay})
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        self.addCleanup(server.server_close)
        self.addCleanup(server.shutdown)
        return f"http://127.0.0.1:{server.server_address[1]}/v1"

    def test_slow_stream_times_out_at_deadline(self):
        # the whole stream takes about 1.5 seconds
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test", base_url=self.serve(delay=0.15))

        started = time.monotonic()
        with self.assertRaises(GenerationTimeout):
            backend.generate("prompt", Deadline(0.4))
        self.assertLess(time.monotonic() - started, 1.0)

    def test_stream_within_deadline(self):
        backend = OpenAIBackend("gpt-4o-mini", api_key="sk-test", base_url=self.serve(delay=0.0))
        self.assertEqual(backend.generate("prompt", Deadline(5)), "".join(self.WORDS))


if __name__ == "__main__":
    unittest.main()
