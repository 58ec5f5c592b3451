import pytest

from live_spectrograph.config import SpectrographConfig, parse_wavelengths


def test_defaults() -> None:
    cfg = SpectrographConfig()
    cfg.validate()
    assert cfg.topic == "spectrometer"
    assert cfg.update_ms == 2000
    assert cfg.connect_timeout_ms == 10_000
    assert cfg.num_bands == 10
    assert cfg.wavelengths[-1] == "clear"


def test_client_id_is_generated_once() -> None:
    cfg = SpectrographConfig()
    client_id = cfg.resolved_client_id()
    assert client_id.startswith("mqttPyClient-")
    assert cfg.resolved_client_id() == client_id


def test_parse_wavelengths() -> None:
    assert parse_wavelengths("415, 445.5,clear,,910") == [415, 445.5, "clear", 910]


def test_from_env() -> None:
    env = {
        "SPECTROGRAPH_BROKER": "mqtt://localhost:1883",
        "SPECTROGRAPH_TOPIC": "lab/as7341",
        "SPECTROGRAPH_UPDATE_MS": "500",
        "SPECTROGRAPH_WAVELENGTHS": "415,555,clear",
        "SPECTROGRAPH_USERNAME": " ",
    }
    cfg = SpectrographConfig.from_env(env)
    assert cfg.broker_url == "mqtt://localhost:1883"
    assert cfg.topic == "lab/as7341"
    assert cfg.update_ms == 500
    assert cfg.wavelengths == [415, 555, "clear"]
    # Blank values fall back to defaults.
    assert cfg.username == "public"


def test_with_overrides_ignores_unset_values() -> None:
    cfg = SpectrographConfig().with_overrides(topic=None, update_ms=250)
    assert cfg.topic == "spectrometer"
    assert cfg.update_ms == 250


@pytest.mark.parametrize(
    "updates",
    [
        {"broker_url": " "},
        {"topic": ""},
        {"wavelengths": []},
        {"update_ms": 0},
        {"connect_timeout_ms": -1},
        {"server_port": 70000},
    ],
)
def test_validate_rejects(updates) -> None:
    cfg = SpectrographConfig().with_overrides(**updates)
    with pytest.raises(ValueError):
        cfg.validate()
