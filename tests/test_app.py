import pytest

from live_spectrograph import app


def test_cli_flags_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("SPECTROGRAPH_TOPIC", "env/topic")
    monkeypatch.setenv("SPECTROGRAPH_UPDATE_MS", "750")
    args = app.build_parser().parse_args(["--topic", "cli/topic", "--wavelengths", "415,clear"])
    cfg = app.load_config(args)
    assert cfg.topic == "cli/topic"
    assert cfg.update_ms == 750
    assert cfg.wavelengths == [415, "clear"]
    assert cfg.strict_frames is False


def test_strict_frames_flag(monkeypatch) -> None:
    monkeypatch.delenv("SPECTROGRAPH_WAVELENGTHS", raising=False)
    cfg = app.load_config(app.build_parser().parse_args(["--strict-frames"]))
    assert cfg.strict_frames is True
    assert cfg.num_bands == 10


def test_invalid_config_exits_with_usage_error(capsys) -> None:
    assert app.main(["--update-ms", "0"]) == 2
    assert "update_ms must be positive" in capsys.readouterr().err


def test_version_flag(capsys) -> None:
    with pytest.raises(SystemExit):
        app.main(["--version"])
    assert "live-spectrograph" in capsys.readouterr().out
