"""Shared fixtures: zip archives built on the fly."""

import stat
import struct
import zipfile
from pathlib import Path

import pytest

from zip_extract.common import ConfigLoader


def write_entries(zf: zipfile.ZipFile, entries) -> None:
    """Write entries described as tuples.

    ("file", name, content[, mode])  -- mode None leaves external_attr at 0
    ("dir", name[, mode])
    ("symlink", name, target)
    ("dosdir", name)                 -- MS-DOS style directory attribute
    """
    for entry in entries:
        kind, name = entry[0], entry[1]
        if kind == "file":
            content = entry[2]
            mode = entry[3] if len(entry) > 3 else 0o644
            info = zipfile.ZipInfo(name)
            if mode is not None:
                info.external_attr = (stat.S_IFREG | mode) << 16
            zf.writestr(info, content)
        elif kind == "dir":
            mode = entry[2] if len(entry) > 2 else 0o755
            info = zipfile.ZipInfo(name if name.endswith("/") else name + "/")
            info.external_attr = ((stat.S_IFDIR | mode) << 16) | 0x10
            zf.writestr(info, b"")
        elif kind == "symlink":
            info = zipfile.ZipInfo(name)
            info.create_system = 3
            info.external_attr = (stat.S_IFLNK | 0o777) << 16
            zf.writestr(info, entry[2])
        elif kind == "dosdir":
            info = zipfile.ZipInfo(name)
            info.create_system = 0
            info.external_attr = 0x10
            zf.writestr(info, b"")
        else:
            raise ValueError(f"Unknown fixture entry kind: {kind}")


@pytest.fixture
def make_zip(tmp_path):
    """Factory building a zip archive under tmp_path/archives."""
    archives = tmp_path / "archives"
    archives.mkdir()

    def _make(entries, name: str = "archive.zip") -> Path:
        path = archives / name
        with zipfile.ZipFile(path, "w") as zf:
            write_entries(zf, entries)
        return path

    return _make


@pytest.fixture
def target_dir(tmp_path):
    """Absolute extraction target that does not exist yet."""
    return tmp_path / "out"


@pytest.fixture
def cats_zip(make_zip):
    """Archive with files, nested and empty directories and a symlink."""
    return make_zip([
        ("dir", "cats/"),
        ("dir", "cats/orange/"),
        ("file", "cats/orange/tabby.txt", b"orange tabby"),
        ("file", "cats/gJqEYBs.jpg", b"\xff\xd8\xff\xe0 not really a jpeg"),
        ("dir", "cats/empty/"),
        ("symlink", "cats/orange_symlink", b"orange"),
        ("file", "cats/white/snow.txt", b"implied parent"),
    ], name="cats.zip")


@pytest.fixture
def broken_zip(make_zip):
    """Archive whose first central directory header signature is damaged."""
    path = make_zip([
        ("file", "a.txt", b"first"),
        ("file", "b.txt", b"second"),
    ], name="broken.zip")
    data = bytearray(path.read_bytes())
    pos = data.find(b"PK\x01\x02")
    data[pos] = 0x00
    path.write_bytes(bytes(data))
    return path


@pytest.fixture
def isolated_config(monkeypatch, tmp_path):
    """Keep ConfigLoader away from real system/user config files."""
    monkeypatch.setattr(ConfigLoader, "_system_config_path", lambda self: tmp_path / "no-system.toml")
    monkeypatch.setattr(ConfigLoader, "_user_config_path", lambda self: tmp_path / "no-user.toml")


@pytest.fixture
def patch_central_header():
    """Rewrite fields of the first central directory header of an archive.

    flag_bits are OR-ed into the general purpose flags; compress_type and
    name_bytes (same length as the stored name) replace the stored values.
    """

    def _patch(path: Path, flag_bits: int = 0, compress_type=None, name_bytes=None) -> Path:
        data = bytearray(path.read_bytes())
        pos = data.find(b"PK\x01\x02")
        (flags,) = struct.unpack_from("<H", data, pos + 8)
        struct.pack_into("<H", data, pos + 8, flags | flag_bits)
        if compress_type is not None:
            struct.pack_into("<H", data, pos + 10, compress_type)
        if name_bytes is not None:
            (name_len,) = struct.unpack_from("<H", data, pos + 28)
            assert len(name_bytes) == name_len
            data[pos + 46:pos + 46 + name_len] = name_bytes
        path.write_bytes(bytes(data))
        return path

    return _patch
