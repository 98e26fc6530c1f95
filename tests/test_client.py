import base64
import hashlib
import hmac
import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from fakes import API_KEY, API_KEY_BYTES, API_SECRET, API_SECRET_BYTES, TRADE_MESSAGE, FakeTransport, FixedSequence, text
from gox_stream.client import GoxClient
from gox_stream.config import AppConfig, CredentialsConfig, StreamConfig
from gox_stream.connection.exceptions import ConfigurationError, TransportError
from gox_stream.stream.dispatcher import StopReason


@pytest.fixture
def client(transport, sequence) -> GoxClient:
    return GoxClient(API_KEY, API_SECRET, transport, sequence=sequence)


def _unpack_call(envelope: dict):
    decoded = base64.b64decode(envelope["call"])
    return decoded[:16], decoded[16:80], decoded[80:]


def test_call_writes_signed_envelope(client, transport):
    request_id = client.call("private/info", {"foo": "bar"})

    assert request_id == "req-1"
    assert len(transport.written) == 1
    envelope = transport.written[0]
    assert envelope["op"] == "call"
    assert envelope["id"] == "req-1"
    assert envelope["context"] == "mtgox.com"

    key, signature, body = _unpack_call(envelope)
    assert key == API_KEY_BYTES
    assert signature == hmac.new(API_SECRET_BYTES, body, hashlib.sha512).digest()
    assert json.loads(body) == {
        "call": "private/info",
        "item": "BTC",
        "params": {"foo": "bar"},
        "id": "req-1",
        "nonce": 1001,
    }


def test_each_call_consumes_one_id_and_nonce(client, transport, sequence):
    client.request_info()
    client.call("private/orders")

    assert sequence.ids == 2
    assert sequence.nonces == 1002
    bodies = [json.loads(_unpack_call(envelope)[2]) for envelope in transport.written]
    assert [body["nonce"] for body in bodies] == [1001, 1002]
    assert bodies[0]["call"] == "private/info"


@pytest.mark.parametrize("key, secret", [("", API_SECRET), (API_KEY, ""), (None, None)])
def test_missing_credentials_fail_every_call_without_touching_transport(key, secret, sequence):
    transport = MagicMock()
    client = GoxClient(key, secret, transport, sequence=sequence)

    for _ in range(3):
        with pytest.raises(ConfigurationError):
            client.call("private/info")

    transport.write_json.assert_not_called()
    assert sequence.ids == 0


@pytest.mark.parametrize("key, secret", [("not-hex", API_SECRET), (API_KEY, "%%%")])
def test_malformed_credentials_fail_construction(key, secret, transport):
    with pytest.raises(ConfigurationError):
        GoxClient(key, secret, transport)


def test_transport_write_failure_reaches_caller(sequence):
    transport = MagicMock()
    transport.write_json.side_effect = TransportError("broken pipe")
    client = GoxClient(API_KEY, API_SECRET, transport, sequence=sequence)

    with pytest.raises(TransportError, match="broken pipe"):
        client.call("private/info")

    assert client.metrics.snapshot()["calls_sent"] == 0


def test_concurrent_calls_do_not_interleave_writes(sequence):
    active = []
    overlaps = []
    lock = threading.Lock()

    class SlowTransport(FakeTransport):
        def write_json(self, value):
            with lock:
                active.append(value)
                if len(active) > 1:
                    overlaps.append(value)
            threading.Event().wait(0.001)
            with lock:
                active.remove(value)
            super().write_json(value)

    transport = SlowTransport()
    client = GoxClient(API_KEY, API_SECRET, transport)
    threads = [threading.Thread(target=client.request_info) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []
    assert len(transport.written) == 8
    assert len({envelope["id"] for envelope in transport.written}) == 8


def test_nonces_reach_the_wire_in_draw_order():
    first_drawn = threading.Event()
    release = threading.Event()

    class StallingSequence(FixedSequence):
        def next_nonce(self):
            nonce = super().next_nonce()
            if nonce == 1001:
                first_drawn.set()
                release.wait(timeout=5)
            return nonce

    transport = FakeTransport()
    client = GoxClient(API_KEY, API_SECRET, transport, sequence=StallingSequence())

    first = threading.Thread(target=client.request_info)
    first.start()
    assert first_drawn.wait(timeout=5)
    second = threading.Thread(target=client.request_info)
    second.start()
    second.join(timeout=0.2)

    assert second.is_alive()
    assert transport.written == []

    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    nonces = [json.loads(_unpack_call(envelope)[2])["nonce"] for envelope in transport.written]
    assert nonces == [1001, 1002]


def test_start_dispatches_in_background(sequence):
    transport = FakeTransport([text(TRADE_MESSAGE)])
    client = GoxClient(API_KEY, API_SECRET, transport, sequence=sequence)

    client.start()
    payload = client.trades.get(timeout=2)
    client.disconnect()

    assert payload.trade.price == 4200000000
    assert client.is_running is False
    assert client.stop_reason in (StopReason.CONNECTION_CLOSED, StopReason.CLOSE_REQUESTED)
    assert transport.closed is True


def test_close_is_one_shot_and_blocks_calls(client, transport):
    client.close()
    client.close()

    with pytest.raises(TransportError, match="closed"):
        client.call("private/info")
    with pytest.raises(TransportError):
        client.start()
    assert transport.written == []
    assert transport.closed is False


def test_read_only_client_still_streams(sequence):
    transport = FakeTransport([text(TRADE_MESSAGE)])
    client = GoxClient("", "", transport, sequence=sequence)

    client.start()
    assert client.trades.get(timeout=2).trade.instrument == "BTC"
    client.disconnect()


def test_connect_builds_transport_from_config():
    config = AppConfig(
        stream=StreamConfig(currencies=["USD", "EUR"], secure=True, channel_capacity=3, error_capacity=4),
        credentials=CredentialsConfig(api_key=API_KEY, api_secret=API_SECRET),
    )
    transport = FakeTransport()

    with patch("gox_stream.client.WebSocketTransport.open", return_value=transport) as mock_open:
        client = GoxClient.connect(config)

    mock_open.assert_called_once_with(
        "wss://websocket.mtgox.com:443/mtgox?Currency=USD,EUR",
        origin="http://websocket.mtgox.com",
    )
    assert client.transport is transport
    assert client.trades.capacity == 3
    assert client.errors.capacity == 4


def test_connect_closes_transport_when_credentials_are_bad():
    config = AppConfig(credentials=CredentialsConfig(api_key="zz", api_secret=API_SECRET))
    transport = FakeTransport()

    with patch("gox_stream.client.WebSocketTransport.open", return_value=transport):
        with pytest.raises(ConfigurationError):
            GoxClient.connect(config)

    assert transport.closed is True
