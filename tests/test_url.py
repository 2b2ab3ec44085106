import unittest
from unittest import mock

import httpx

from askmd.errors import FetchError
from askmd.url import fetch_url, html_to_markdown, is_url


class HtmlToMarkdownTests(unittest.TestCase):
    def test_extracts_title_and_strips_noise(self) -> None:
        html = """
        <html>
          <head><title>Example Page</title><style>.x{}</style></head>
          <body>
            <nav>Menu</nav>
            <h1>Hello</h1>
            <script>alert(1)</script>
            <p>World &amp; friends</p>
            <ul><li>one</li><li>two</li></ul>
            <pre>x = 1
y = 2</pre>
          </body>
        </html>
        """
        result = html_to_markdown(html)
        self.assertEqual(result.title, "Example Page")
        self.assertIn("# Hello", result.content)
        self.assertIn("World & friends", result.content)
        self.assertIn("- one", result.content)
        self.assertIn("```\nx = 1\ny = 2\n```", result.content)
        self.assertNotIn("alert(1)", result.content)
        self.assertNotIn("Menu", result.content)
        self.assertNotIn("Example Page", result.content)

    def test_is_url(self) -> None:
        self.assertTrue(is_url("https://example.com"))
        self.assertTrue(is_url("http://example.com/a"))
        self.assertFalse(is_url("docs/readme.md"))


class FetchUrlTests(unittest.TestCase):
    def _patch_client(self, handler):
        transport = httpx.MockTransport(handler)
        real_client = httpx.Client

        def factory(*args, **kwargs):
            kwargs["transport"] = transport
            return real_client(*args, **kwargs)

        return mock.patch("askmd.url.httpx.Client", side_effect=factory)

    def test_html_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text="<title>T</title><p>Body</p>",
            )

        with self._patch_client(handler):
            result = fetch_url("https://example.com")
        self.assertEqual(result.title, "T")
        self.assertEqual(result.content, "Body")

    def test_plain_text_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"content-type": "text/plain"}, text="raw text")

        with self._patch_client(handler):
            result = fetch_url("https://example.com/a.txt")
        self.assertIsNone(result.title)
        self.assertEqual(result.content, "raw text")

    def test_http_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        with self._patch_client(handler):
            with self.assertRaises(FetchError) as ctx:
                fetch_url("https://example.com/missing")
        self.assertIn("404", ctx.exception.message)

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self._patch_client(handler):
            with self.assertRaises(FetchError) as ctx:
                fetch_url("https://example.com")
        self.assertIn("connection refused", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
