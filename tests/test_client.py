import unittest
from unittest.mock import MagicMock

from stubs import SlowPage, TransportRecorder

from lazyxhr import (
    BrowserInitError,
    Client,
    ClientConfig,
    InvalidOptionError,
    JsonResponse,
    MemoryCookieStore,
    NetworkError,
    RequestAborted,
    RequestTimeout,
    Response,
    TextResponse,
)
from lazyxhr.cookies import BrowserCookieStore
from lazyxhr.transport import BrowserTransport


class ClientTestCase(unittest.TestCase):
    def setUp(self):
        self.page = MagicMock()
        self.cookies = MemoryCookieStore({"csrf": "abc123"})
        self.transports = TransportRecorder()

    def make_client(self, **kwargs):
        kwargs.setdefault("cookie_store", self.cookies)
        kwargs.setdefault("transport_factory", self.transports)
        kwargs.setdefault("page_factory", lambda options: self.page)
        return Client(**kwargs)


class TestClientInit(ClientTestCase):
    def test_defaults(self):
        client = self.make_client()
        self.assertIsNone(client.config.timeout)
        self.assertEqual(client.config.response_type, "json")
        self.assertTrue(client.config.with_csrf)
        self.assertTrue(client.config.with_credentials)
        self.assertEqual(client.config.csrf_cookie_name, "csrf")
        self.assertEqual(client.config.csrf_header_name, "x-csrf-token")
        self.assertEqual(client.config.csrf_safe_methods, {"get", "options", "head"})
        self.assertIs(client.page, self.page)

    def test_keyword_defaults_override_config(self):
        config = ClientConfig(timeout=1000, with_csrf=False)
        client = self.make_client(config=config, timeout=250)
        self.assertEqual(client.config.timeout, 250)
        self.assertFalse(client.config.with_csrf)

    def test_unknown_default_rejected(self):
        with self.assertRaises(InvalidOptionError):
            self.make_client(retries=3)

    def test_browser_init_error(self):
        def broken(options):
            raise RuntimeError("no chromium")

        with self.assertRaises(BrowserInitError):
            self.make_client(page_factory=broken)

    def test_default_cookie_store_reads_browser(self):
        client = self.make_client(cookie_store=None)
        self.assertIsInstance(client.cookies, BrowserCookieStore)

    def test_close_quits_browser(self):
        with self.make_client() as client:
            pass
        self.page.quit.assert_called_once()
        with self.assertRaises(BrowserInitError):
            client.page

    def test_supports_cors(self):
        self.page.run_js.return_value = True
        client = self.make_client()
        self.assertTrue(client.supports_cors())
        self.assertIn("withCredentials", self.page.run_js.call_args[0][0])


class TestVerbs(ClientTestCase):
    def test_each_verb_sets_method(self):
        client = self.make_client()
        verbs = {
            client.get: "GET",
            client.post: "POST",
            client.put: "PUT",
            client.patch: "PATCH",
            client.delete: "DELETE",
            client.options: "OPTIONS",
            client.head: "HEAD",
        }
        for verb, method in verbs.items():
            verb("/api/items")
            self.assertEqual(self.transports.last.method, method)
            self.assertTrue(self.transports.last.sent)

    def test_dispatch_defaults_to_get(self):
        client = self.make_client()
        client.dispatch("/api/items")
        self.assertEqual(self.transports.last.method, "GET")

    def test_dispatch_lowercase_method(self):
        client = self.make_client()
        client.dispatch("/api/items", method="post")
        self.assertEqual(self.transports.last.method, "POST")

    def test_each_dispatch_gets_own_transport(self):
        client = self.make_client()
        client.get("/a")
        client.get("/b")
        self.assertEqual(len(self.transports.transports), 2)
        self.assertIsNot(self.transports.transports[0], self.transports.transports[1])

    def test_base_url(self):
        client = self.make_client(base_url="https://example.com/")
        client.get("/api/items")
        self.assertEqual(self.transports.last.url, "https://example.com/api/items")
        client.get("https://other.example.com/x")
        self.assertEqual(self.transports.last.url, "https://other.example.com/x")


class TestOptions(ClientTestCase):
    def test_payload_is_sent(self):
        client = self.make_client()
        client.post("/api/items", payload='{"name":"x"}')
        self.assertEqual(self.transports.last.payload, '{"name":"x"}')

    def test_headers_applied_verbatim(self):
        client = self.make_client()
        client.get("/api/items", headers={"Accept": "application/json", "X-Trace": "1"})
        self.assertEqual(
            self.transports.last.request_headers,
            {"Accept": "application/json", "X-Trace": "1"},
        )

    def test_credentials_default_and_override(self):
        client = self.make_client()
        client.get("/a")
        self.assertTrue(self.transports.last.with_credentials)
        client.get("/a", with_credentials=False)
        self.assertFalse(self.transports.last.with_credentials)

    def test_timeout_default_and_override(self):
        client = self.make_client(timeout=3000)
        client.get("/a")
        self.assertEqual(self.transports.last.timeout, 3000)
        client.get("/a", timeout=0)
        self.assertEqual(self.transports.last.timeout, 0)
        client.get("/a", timeout=10_000)
        self.assertEqual(self.transports.last.timeout, 10_000)

    def test_no_timeout_by_default(self):
        client = self.make_client()
        client.get("/a")
        self.assertEqual(self.transports.last.timeout, 0)

    def test_unknown_option_rejected(self):
        client = self.make_client()
        with self.assertRaises(InvalidOptionError):
            client.get("/a", retries=2)
        self.assertEqual(self.transports.transports, [])

    def test_before_send_sees_configured_transport(self):
        seen = []

        def hook(client, transport):
            seen.append((client, transport.response_type, transport.sent))
            transport.set_request_header("X-Late", "yes")

        client = self.make_client(before_send=hook)
        client.get("/a")
        self.assertEqual(seen, [(client, "text", False)])
        self.assertEqual(self.transports.last.request_headers["X-Late"], "yes")

    def test_per_call_before_send_wins(self):
        calls = []
        client = self.make_client(before_send=lambda c, t: calls.append("default"))
        client.get("/a", before_send=lambda c, t: calls.append("call"))
        self.assertEqual(calls, ["call"])


class TestResponseTypes(ClientTestCase):
    def test_json_is_transported_as_text(self):
        client = self.make_client()
        client.get("/a")
        self.assertEqual(self.transports.last.response_type, "text")

    def test_other_types_map_directly(self):
        client = self.make_client()
        cases = {
            "text": "text",
            "arraybuffer": "arraybuffer",
            "buffer": "arraybuffer",
            "blob": "blob",
            "document": "document",
            "html": "document",
            "XML": "document",
        }
        for given, expected in cases.items():
            client.get("/a", response_type=given)
            self.assertEqual(self.transports.last.response_type, expected, given)

    def test_unsupported_response_type(self):
        client = self.make_client()
        with self.assertRaises(InvalidOptionError):
            client.get("/a", response_type="stream")

    def test_decoder_matches_negotiated_type(self):
        client = self.make_client()
        cases = {"json": JsonResponse, "text": TextResponse, "blob": Response}
        for response_type, cls in cases.items():
            future = client.get("/a", response_type=response_type)
            self.transports.last.respond(text='{"a": 1}')
            self.assertIs(type(future.result(timeout=1)), cls)

    def test_json_body(self):
        client = self.make_client()
        future = client.get("/api/items")
        self.transports.last.respond(text='{"items":[]}')
        response = future.result(timeout=1)
        self.assertEqual(response.body, {"items": []})
        self.assertIs(response.client, client)
        self.assertEqual(response.status_code, 200)

    def test_text_body(self):
        client = self.make_client(response_type="text")
        future = client.get("/a")
        self.transports.last.respond(text="hello")
        self.assertEqual(future.result(timeout=1).body, "hello")

    def test_buffer_body_passes_through(self):
        client = self.make_client()
        future = client.get("/a", response_type="arraybuffer")
        self.transports.last.respond(response=b"\x00\x01")
        self.assertEqual(future.result(timeout=1).body, b"\x00\x01")


class TestCsrf(ClientTestCase):
    def test_get_has_no_csrf_header(self):
        client = self.make_client()
        future = client.get("/api/items")
        self.assertNotIn("x-csrf-token", self.transports.last.request_headers)
        self.transports.last.respond(text='{"items":[]}')
        self.assertEqual(future.result(timeout=1).body, {"items": []})

    def test_post_carries_csrf_header(self):
        client = self.make_client()
        client.post("/api/items", payload='{"name":"x"}')
        self.assertEqual(self.transports.last.request_headers["x-csrf-token"], "abc123")

    def test_per_call_with_csrf_false(self):
        client = self.make_client()
        client.post("/api/items", with_csrf=False)
        self.assertNotIn("x-csrf-token", self.transports.last.request_headers)

    def test_instance_with_csrf_false_overridden_per_call(self):
        client = self.make_client(with_csrf=False)
        client.put("/a")
        self.assertNotIn("x-csrf-token", self.transports.last.request_headers)
        client.put("/a", with_csrf=True)
        self.assertEqual(self.transports.last.request_headers["x-csrf-token"], "abc123")

    def test_custom_names(self):
        self.cookies.set("XSRF-TOKEN", "tok")
        client = self.make_client(csrf_cookie_name="XSRF-TOKEN", csrf_header_name="X-XSRF-TOKEN")
        client.delete("/a")
        self.assertEqual(self.transports.last.request_headers["X-XSRF-TOKEN"], "tok")

    def test_missing_cookie_is_silent(self):
        self.cookies.delete("csrf")
        client = self.make_client()
        client.post("/a")
        self.assertEqual(self.transports.last.request_headers, {})


class TestEvents(ClientTestCase):
    def test_events_relayed_in_order(self):
        client = self.make_client()
        seen = []
        for name in ("readystatechange", "start", "progress", "success", "done"):
            client.on(name, lambda e, name=name: seen.append((name, e.type)))

        client.get("/a")
        transport = self.transports.last
        transport.fire("progress", loaded=5, total=10)
        transport.fire("progress", loaded=10, total=10)
        transport.respond(text="{}")

        self.assertEqual(
            seen,
            [
                ("start", "loadstart"),
                ("progress", "progress"),
                ("progress", "progress"),
                ("readystatechange", "readystatechange"),
                ("success", "load"),
                ("done", "loadend"),
            ],
        )

    def test_success_event_before_resolution(self):
        client = self.make_client()
        states = []
        future = client.get("/a")
        client.on("success", lambda e: states.append(future.done()))
        self.transports.last.respond(text="{}")
        self.assertEqual(states, [False])
        self.assertTrue(future.done())

    def test_raw_event_payload(self):
        client = self.make_client()
        events = []
        client.on("progress", events.append)
        client.get("/a")
        self.transports.last.fire("progress", loaded=3, total=9)
        self.assertEqual((events[0].loaded, events[0].total), (3, 9))

    def test_failing_callback_does_not_block_settlement(self):
        client = self.make_client()
        client.on("success", lambda e: 1 / 0)
        future = client.get("/a")
        with self.assertLogs("lazyxhr.events", level="ERROR"):
            self.transports.last.respond(text="[1]")
        self.assertEqual(future.result(timeout=1).body, [1])

    def test_off(self):
        client = self.make_client()
        seen = []
        callback_id = client.on("done", seen.append)
        self.assertTrue(client.off(callback_id))
        client.get("/a")
        self.transports.last.respond(text="{}")
        self.assertEqual(seen, [])


class TestSettlement(ClientTestCase):
    def test_success_then_error_settles_once(self):
        client = self.make_client()
        future = client.get("/a")
        transport = self.transports.last
        transport.respond(text='{"ok": true}')
        transport.fire("error")
        self.assertEqual(future.result(timeout=1).body, {"ok": True})
        self.assertIsNone(future.exception(timeout=1))

    def test_error_rejects_with_network_error(self):
        client = self.make_client()
        future = client.get("/a")
        transport = self.transports.last
        transport.finish("error")
        transport.fire("load")
        exc = future.exception(timeout=1)
        self.assertIsInstance(exc, NetworkError)
        self.assertIs(type(exc.response), Response)
        self.assertEqual(exc.event.type, "error")
        self.assertEqual(exc.response.status_code, 0)

    def test_failure_keeps_partial_headers(self):
        client = self.make_client()
        future = client.get("/a")
        transport = self.transports.last
        transport.status = 502
        transport.response_headers = {"server": "edge"}
        transport.finish("error")
        exc = future.exception(timeout=1)
        self.assertEqual(exc.response.status_code, 502)
        self.assertEqual(exc.response.headers["server"], "edge")

    def test_timeout_rejects(self):
        client = self.make_client()
        future = client.get("/a", timeout=5)
        exc = future.exception(timeout=2)
        self.assertIsInstance(exc, RequestTimeout)
        self.assertIsInstance(exc, TimeoutError)

    def test_decode_failure_surfaces_on_body_access(self):
        client = self.make_client()
        future = client.get("/a")
        self.transports.last.respond(text="not json")
        response = future.result(timeout=1)
        with self.assertRaises(ValueError):
            response.body


class TestCancellation(ClientTestCase):
    def test_cancel_before_settlement(self):
        client = self.make_client()
        aborted = []
        client.on("aborted", aborted.append)
        future = client.get("/a")
        transport = self.transports.last

        self.assertTrue(future.cancel())
        self.assertEqual(transport.abort_calls, 1)
        self.assertIsInstance(future.exception(timeout=1), RequestAborted)
        self.assertEqual(len(aborted), 1)

        self.assertFalse(future.cancel())
        self.assertEqual(transport.abort_calls, 1)

    def test_cancel_after_settlement_is_noop(self):
        client = self.make_client()
        future = client.get("/a")
        transport = self.transports.last
        transport.respond(text="{}")
        self.assertFalse(future.cancel())
        self.assertEqual(transport.abort_calls, 0)
        self.assertEqual(future.result(timeout=1).body, {})


class TestBrowserCancellation(unittest.TestCase):
    def setUp(self):
        self.page = SlowPage()
        self.transports = []

    def browser_transport(self, client):
        transport = BrowserTransport(client.page)
        self.transports.append(transport)
        return transport

    def test_cancel_right_after_dispatch_stops_browser_request(self):
        client = Client(
            page_factory=lambda options: self.page,
            cookie_store=MemoryCookieStore({"csrf": "abc123"}),
            transport_factory=self.browser_transport,
        )
        future = client.post("/api/items", payload="x")
        self.assertTrue(future.cancel())

        self.assertIsInstance(future.exception(timeout=5), RequestAborted)
        self.transports[0]._thread.join(timeout=5)
        self.assertEqual(self.page.sent, [])


if __name__ == "__main__":
    unittest.main()
