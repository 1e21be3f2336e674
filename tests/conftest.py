from pathlib import Path

import pytest

from rcli.bridge import PythonBridge, run
from rcli.services.files import FileService, ServeOptions

# The file content that is not valid UTF-8
BINARY: bytes = bytes([0xFF, 0xFE, 0x00, 0x01])


@pytest.fixture
def root(tmp_path: Path) -> Path:
	"""A served directory with a text file, a binary file and a
	subdirectory."""
	(tmp_path / "index.txt").write_bytes(b"hello")
	(tmp_path / "image.bin").write_bytes(BINARY)
	(tmp_path / "sub").mkdir()
	(tmp_path / "sub" / "a b.txt").write_bytes(b"spaced\r\nout\n")
	return tmp_path


@pytest.fixture
def bridge(root: Path) -> PythonBridge:
	return run(FileService(ServeOptions(root=root)))


# EOF
