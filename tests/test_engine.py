import pytest

from live_spectrograph import color
from live_spectrograph.config import SpectrographConfig
from live_spectrograph.connection import ConnectionState
from live_spectrograph.engine import Engine
from live_spectrograph.transport.loopback import LoopbackTransport
from live_spectrograph.transport.mqtt import MqttTransport


def _engine(wavelengths=None) -> Engine:
    cfg = SpectrographConfig(wavelengths=wavelengths or [415, 555, "clear"], client_id="engine-test")
    return Engine(cfg, transport=LoopbackTransport())


def test_three_band_end_to_end() -> None:
    engine = _engine()
    loop = engine.attach_chart()
    assert engine.colors == (color.color_for(415), color.color_for(555), color.color_for("clear"))
    assert engine.chart.model.background_color == list(engine.colors)
    assert engine.chart.model.labels == ["415", "555", "clear"]

    assert engine.start() is True
    assert engine.state is ConnectionState.CONNECTED
    engine.transport.deliver("spectrometer", "120,340,60")

    loop.tick()
    assert list(engine.chart.model.data) == [120.0, 340.0, 60.0]


def test_attach_chart_is_idempotent() -> None:
    engine = _engine()
    first = engine.attach_chart()
    chart = engine.chart
    assert engine.attach_chart() is first
    assert engine.chart is chart


def test_publish_frame_round_trip() -> None:
    engine = _engine()
    engine.attach_chart()
    assert engine.publish_frame([1, 2, 3]) is False

    engine.start()
    assert engine.publish_frame([1, 2.0, 3]) is True
    assert engine.transport.published == [("spectrometer", b"1,2,3")]
    frame = engine.store.latest()
    assert frame is not None and frame.readings == ("1", "2", "3")


def test_demo_values_match_band_count() -> None:
    engine = _engine([415, 445, 480, 515, 555, 590, 630, 680, 910, "clear"])
    values = engine.demo_values(t=0.0)
    assert len(values) == 10
    assert all(isinstance(v, int) and v >= 0 for v in values)
    assert values[-1] == int(0.6 * sum(values[:-1]))


def test_reconfigure_reconnects_with_new_topic() -> None:
    engine = _engine()
    engine.start()
    assert engine.reconfigure(topic="lab/spectrometer", broker_url="mqtt://localhost") is True
    assert engine.cfg.topic == "lab/spectrometer"
    assert engine.connection.broker.port == 1883
    assert engine.transport.subscribe_calls[-1] == "lab/spectrometer"
    assert engine.state is ConnectionState.CONNECTED


def test_reconfigure_rejects_bad_broker() -> None:
    engine = _engine()
    with pytest.raises(ValueError):
        engine.reconfigure(broker_url="http://example.com")
    assert engine.cfg.broker_url == "wss://public.cloud.shiftr.io"


def test_stop_halts_render_loop_and_connection() -> None:
    engine = _engine()
    engine.attach_chart()
    engine.start()
    engine.stop()
    assert engine.state is ConnectionState.DISCONNECTED


def test_default_transport_is_mqtt() -> None:
    engine = Engine(SpectrographConfig(client_id="default-transport"))
    assert isinstance(engine.transport, MqttTransport)
    assert engine.connection.options.username == "public"
    assert engine.connection.broker.transport == "websockets"


def test_status_message_counts() -> None:
    engine = _engine()
    engine.attach_chart()
    engine.start()
    engine.transport.deliver("spectrometer", "1,2,3")
    engine.transport.deliver("spectrometer", "4,5,6")
    engine.transport.deliver("spectrometer", "7")

    message = engine.status_message(seq=5)
    assert message["seq"] == 5
    assert message["state"] == "connected"
    assert message["messages_received"] == 3
    assert message["frames_decoded"] == 2
    assert message["frames_rejected"] == 1
    assert message["frames_skipped"] == 1
