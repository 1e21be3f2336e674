from pathlib import Path

import pytest

from rcli import __version__, cli, config
from rcli.services.files import FileService, ServeOptions


@pytest.fixture
def calls(monkeypatch) -> list[tuple[tuple, dict]]:
	"""Replaces the server's `run` so that commands return right away."""
	res: list[tuple[tuple, dict]] = []

	def run(*components, **kwargs) -> None:
		res.append((components, kwargs))

	monkeypatch.setattr(cli, "run", run)
	return res


def test_serve_defaults():
	options = cli.parser().parse_args(["http", "serve"])
	assert options.dir == Path(config.DIR)
	assert options.port == config.PORT
	assert options.host == config.HOST
	assert options.handler is cli.serve_command


def test_serve_options(tmp_path: Path):
	options = cli.parser().parse_args(
		["http", "serve", "-d", str(tmp_path), "-p", "9000", "--host", "127.0.0.1"]
	)
	assert options.dir == tmp_path
	assert options.port == 9000
	assert options.host == "127.0.0.1"
	options = cli.parser().parse_args(["http", "serve", "--dir", str(tmp_path)])
	assert options.dir == tmp_path


def test_serve_rejects_missing_directory(tmp_path: Path, capsys):
	with pytest.raises(SystemExit) as e:
		cli.parser().parse_args(["http", "serve", "-d", str(tmp_path / "nope")])
	assert e.value.code == 2
	assert "not a directory" in capsys.readouterr().err


def test_serve_rejects_file_as_directory(tmp_path: Path):
	path = tmp_path / "file.txt"
	path.write_text("")
	with pytest.raises(SystemExit):
		cli.parser().parse_args(["http", "serve", "-d", str(path)])


def test_serve_rejects_invalid_port():
	with pytest.raises(SystemExit):
		cli.parser().parse_args(["http", "serve", "-p", "http"])


def test_serve_rejects_out_of_range_port(tmp_path: Path, calls, capsys):
	for value in ("70000", "-1"):
		with pytest.raises(SystemExit) as e:
			cli.main(["http", "serve", "--dir", str(tmp_path), "--port", value])
		assert e.value.code == 2
	assert "between 0 and 65535" in capsys.readouterr().err
	assert calls == []
	assert cli.parser().parse_args(["http", "serve", "-p", "65535"]).port == 65_535
	assert cli.parser().parse_args(["http", "serve", "-p", "0"]).port == 0


def test_command_is_required():
	with pytest.raises(SystemExit):
		cli.parser().parse_args([])
	with pytest.raises(SystemExit):
		cli.parser().parse_args(["http"])


def test_version(capsys):
	with pytest.raises(SystemExit) as e:
		cli.main(["--version"])
	assert e.value.code == 0
	assert __version__ in capsys.readouterr().out


def test_serve_runs_file_service(tmp_path: Path, calls):
	assert cli.main(["http", "serve", "-d", str(tmp_path), "-p", "9000"]) == 0
	assert len(calls) == 1
	components, kwargs = calls[0]
	(service,) = components
	assert isinstance(service, FileService)
	assert service.options == ServeOptions(
		root=tmp_path, host=config.HOST, port=9000
	)
	assert kwargs["host"] == config.HOST
	assert kwargs["port"] == 9000


def test_serve_bind_failure_exits_with_error(tmp_path: Path, monkeypatch):
	def run(*components, **kwargs) -> None:
		raise OSError(98, "Address already in use")

	monkeypatch.setattr(cli, "run", run)
	assert cli.main(["http", "serve", "-d", str(tmp_path)]) == 1


# EOF
