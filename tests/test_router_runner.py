import io
import socket
from pathlib import Path

import pytest

import router_runner
from router_runner import main, parse_args


def free_udp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def write_neighbors(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "neighbors.txt"
    path.write_text("\n".join(lines) + "\n")
    return path


def test_parse_args_defaults():
    args = parse_args(["10.0.0.1"])

    assert args.address == "10.0.0.1"
    assert args.neighbors == Path(router_runner.DEFAULT_NEIGHBORS_FILE)
    assert args.config is None
    assert args.port is None


def test_missing_neighbor_file_exits_non_zero(tmp_path: Path):
    assert main(["10.0.0.1", str(tmp_path / "absent.txt")]) == 1


def test_invalid_settings_exit_non_zero(tmp_path: Path):
    neighbors = write_neighbors(tmp_path, "127.0.0.1")
    settings = tmp_path / "router.yml"
    settings.write_text("advert_interval: -1\n")

    assert main(["10.0.0.1", str(neighbors), "--config", str(settings)]) == 1


def test_usage_error_exits_with_argparse_status():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_port_in_use_exits_non_zero(tmp_path: Path, monkeypatch):
    neighbors = write_neighbors(tmp_path, "127.0.0.1")
    monkeypatch.setattr("sys.stdin", io.StringIO("quit\n"))
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as busy:
        busy.bind(("0.0.0.0", 0))
        port = busy.getsockname()[1]

        assert main(["10.0.0.1", str(neighbors), "--port", str(port)]) == 1


def test_clean_shutdown_on_quit(tmp_path: Path, monkeypatch, capsys):
    """A router that starts, prints its table and is told to quit exits with 0."""
    neighbors = write_neighbors(tmp_path, "# loopback peer", "127.0.0.1")
    monkeypatch.setattr("sys.stdin", io.StringIO("table\nquit\n"))

    status = main(["10.9.9.9", str(neighbors), "--port", str(free_udp_port())])

    assert status == 0
    assert "routing table of 10.9.9.9" in capsys.readouterr().out
