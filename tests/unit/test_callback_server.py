"""
Tests for the callback listener, using real loopback sockets.

Ports are either ephemeral (0) or picked from the OS right before use, so
these tests never depend on a specific port being free.
"""

import queue
import socket
import time

import pytest
import requests

from oauthbridge.callback_server import CallbackListener, start_callback_server, start_callback_server_in_range
from oauthbridge.sinks import FunctionSink
from oauthbridge.utils import CallbackBindError, OAuthBridgeException


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def _send_request(port, raw):
    with socket.create_connection(('127.0.0.1', port), timeout=5) as s:
        s.sendall(raw)
        chunks = []
        while True:
            data = s.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b''.join(chunks)


@pytest.fixture
def listeners():
    started = []
    yield started
    for listener in started:
        listener.cancel()


def _start(listeners, sink, port=0, **kwargs):
    listener = CallbackListener(port, sink, **kwargs)
    listeners.append(listener)
    url = listener.start()
    return listener, url


class TestBind:

    def test_returns_callback_url(self, listeners, sink):
        port = _free_port()

        listener, url = _start(listeners, sink, port)

        assert url == 'http://127.0.0.1:%d/callback' % port
        assert listener.port == port
        assert listener.state == CallbackListener.WAITING

    def test_ephemeral_port_reports_actual_port(self, listeners, sink):
        listener, url = _start(listeners, sink, 0)

        assert listener.port != 0
        assert url == 'http://127.0.0.1:%d/callback' % listener.port

    def test_second_bind_on_same_port_fails(self, listeners, sink):
        first, url = _start(listeners, sink, _free_port())

        with pytest.raises(CallbackBindError) as exc_info:
            start_callback_server(first.port, sink)

        assert exc_info.value.port == first.port
        assert 'Failed to bind to port %d' % first.port in str(exc_info.value)
        # The first listener is unaffected.
        assert first.state == CallbackListener.WAITING

    @pytest.mark.parametrize('port', [70000, -1])
    def test_invalid_port(self, sink, port):
        with pytest.raises(CallbackBindError):
            start_callback_server(port, sink)

    def test_bind_error_is_an_oauthbridge_exception(self, listeners, sink):
        first, _ = _start(listeners, sink)

        with pytest.raises(OAuthBridgeException):
            start_callback_server(first.port, sink)

    def test_listener_cannot_be_restarted(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        with pytest.raises(OAuthBridgeException):
            listener.start()


class TestCallback:

    def test_end_to_end(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        response = _send_request(listener.port, b'GET /callback?code=ABC123&state=xyz HTTP/1.1\r\n\r\n')

        head, body = response.split(b'\r\n\r\n', 1)
        assert head.startswith(b'HTTP/1.1 200 OK')
        assert b'Content-Length: %d' % len(body) in head
        assert b'You can close this window now.' in body

        assert sink.wait_for('oauth-server-callback', timeout=5) == {'code': 'ABC123', 'state': 'xyz'}
        assert listener.wait(timeout=5)
        assert listener.state == CallbackListener.NOTIFIED
        assert listener.params == {'code': 'ABC123', 'state': 'xyz'}
        # Exactly one notification.
        assert sink.drain() == []

    def test_malformed_segment_dropped(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        _send_request(listener.port, b'GET /callback?badpair&code=ABC HTTP/1.1\r\n\r\n')

        assert sink.wait_for('oauth-server-callback', timeout=5) == {'code': 'ABC'}

    def test_no_query_notifies_empty_mapping(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        response = _send_request(listener.port, b'GET /favicon.ico HTTP/1.1\r\n\r\n')

        assert response.startswith(b'HTTP/1.1 200 OK')
        assert sink.wait_for('oauth-server-callback', timeout=5) == {}

    def test_browser_redirect(self, listeners, sink):
        listener, url = _start(listeners, sink)

        response = requests.get(url + '?code=4%2F0Adeu&state=s1&scope=email', timeout=5)

        assert response.status_code == 200
        assert 'Authenticated!' in response.text
        assert sink.wait_for('oauth-server-callback', timeout=5) == {
            'code': '4%2F0Adeu',
            'state': 's1',
            'scope': 'email',
        }

    def test_accepts_only_one_connection(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        _send_request(listener.port, b'GET /callback?code=1 HTTP/1.1\r\n\r\n')
        assert listener.wait(timeout=5)

        with pytest.raises(OSError):
            _send_request(listener.port, b'GET /callback?code=2 HTTP/1.1\r\n\r\n')
        assert [e for e, _ in sink.drain()] == ['oauth-server-callback']

    def test_port_is_released_after_callback(self, listeners, sink):
        listener, _ = _start(listeners, sink)
        _send_request(listener.port, b'GET /callback?code=1 HTTP/1.1\r\n\r\n')
        assert listener.wait(timeout=5)

        again, url = _start(listeners, sink, listener.port)

        assert url == listener.url

    def test_failing_sink_still_finishes(self, listeners):
        messages = []

        def broken(event, payload):
            raise RuntimeError('frontend gone')

        listener = CallbackListener(0, FunctionSink(broken), print_debug_fn=messages.append)
        listeners.append(listener)
        listener.start()

        _send_request(listener.port, b'GET /callback?code=1 HTTP/1.1\r\n\r\n')

        assert listener.wait(timeout=5)
        assert listener.state == CallbackListener.NOTIFIED
        assert any('frontend gone' in m for m in messages)


class TestSilentFailures:

    def test_no_connection_no_notification(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        assert not listener.wait(timeout=0.3)
        assert listener.state == CallbackListener.WAITING
        with pytest.raises(queue.Empty):
            sink.get(timeout=0.1)

    def test_peer_closes_without_data(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        socket.create_connection(('127.0.0.1', listener.port), timeout=5).close()

        assert listener.wait(timeout=5)
        assert listener.state == CallbackListener.IDLE
        assert sink.drain() == []


class TestCancellationAndTimeout:

    def test_cancel(self, listeners, sink):
        listener, _ = _start(listeners, sink)

        listener.cancel()

        assert listener.is_done()
        assert listener.state == CallbackListener.CANCELLED
        assert sink.drain() == []
        # The port can be bound again.
        _start(listeners, sink, listener.port)

    def test_cancel_with_silent_connection(self, listeners, sink):
        listener, _ = _start(listeners, sink)
        # A preconnect that never sends its request.
        with socket.create_connection(('127.0.0.1', listener.port), timeout=5):
            time.sleep(0.7)

            listener.cancel(join_timeout=2.0)

            assert listener.is_done()
            assert listener.state == CallbackListener.CANCELLED
        assert sink.drain() == []
        _start(listeners, sink, listener.port)

    def test_silent_connection_past_deadline(self, listeners, sink):
        listener, _ = _start(listeners, sink, timeout=0.5)

        with socket.create_connection(('127.0.0.1', listener.port), timeout=5):
            assert listener.wait(timeout=5)

        assert listener.state == CallbackListener.IDLE
        assert sink.drain() == []

    def test_timeout_emits_server_error(self, listeners, sink):
        listener, _ = _start(listeners, sink, timeout=0.2)

        assert listener.wait(timeout=5)
        assert listener.state == CallbackListener.TIMED_OUT
        payload = sink.wait_for('oauth-server-error', timeout=1)
        assert payload['port'] == listener.port
        assert payload['error'] == 'timeout'

    def test_cancel_after_callback_is_harmless(self, listeners, sink):
        listener, _ = _start(listeners, sink)
        _send_request(listener.port, b'GET /callback?code=1 HTTP/1.1\r\n\r\n')
        assert listener.wait(timeout=5)

        listener.cancel()

        assert listener.state == CallbackListener.NOTIFIED


class TestPortRange:

    def test_skips_busy_port(self, listeners, sink):
        busy, _ = _start(listeners, sink)
        if busy.port > 65500:
            pytest.skip('ephemeral port too close to the end of the port space')

        url, listener = start_callback_server_in_range(busy.port, busy.port + 20, sink)
        listeners.append(listener)

        assert busy.port < listener.port <= busy.port + 20
        assert url == 'http://127.0.0.1:%d/callback' % listener.port

    def test_all_ports_busy(self, listeners, sink):
        busy, _ = _start(listeners, sink)

        with pytest.raises(CallbackBindError) as exc_info:
            start_callback_server_in_range(busy.port, busy.port, sink)

        assert 'currently in use' in str(exc_info.value)
