"""Tests for the zip-extract command line interface."""

import logging
import os

import pytest

from zip_extract.cli import APP_NAME, build_parser, main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_env(isolated_config, monkeypatch):
    for key in list(os.environ):
        if key.startswith("ZIP_EXTRACT_"):
            monkeypatch.delenv(key)


class TestCli:

    def test_app_name(self):
        assert APP_NAME == "zip-extract"

    def test_parser_defaults_target_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        args = build_parser().parse_args(["archive.zip"])

        assert args.target.resolve() == tmp_path.resolve()

    def test_extract_success(self, cats_zip, target_dir):
        assert main([str(cats_zip), str(target_dir)]) == 0
        assert (target_dir / "cats" / "gJqEYBs.jpg").exists()

    def test_relative_target_is_made_absolute(self, cats_zip, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main([str(cats_zip), "relative-out"]) == 0
        assert (tmp_path / "relative-out" / "cats" / "orange_symlink").is_symlink()

    def test_broken_archive_exit_code(self, broken_zip, target_dir, capsys):
        assert main([str(broken_zip), str(target_dir), "--log-format", "simple"]) == 1

        assert "invalid central directory file header signature: 0x2014b00" in capsys.readouterr().err

    def test_out_of_bounds_exit_code(self, make_zip, target_dir):
        archive = make_zip([("file", "../escape.txt", b"x")])

        assert main([str(archive), str(target_dir)]) == 1

    def test_config_file_modes(self, make_zip, target_dir, tmp_path):
        archive = make_zip([("file", "plain.txt", b"p", None)])
        config = tmp_path / "zip-extract.toml"
        config.write_text('[extraction]\ndefault_file_mode = "600"\n')

        assert main([str(archive), str(target_dir), "--config", str(config)]) == 0
        assert (target_dir / "plain.txt").stat().st_mode & 0o777 == 0o600

    def test_invalid_config(self, cats_zip, target_dir, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('[extraction]\nunknown_option = true\n')

        assert main([str(cats_zip), str(target_dir), "--config", str(config)]) == 2

    def test_encrypted_archive_exit_code(self, make_zip, patch_central_header, target_dir):
        archive = patch_central_header(make_zip([("file", "a.txt", b"secret")]), flag_bits=0x1)

        assert main([str(archive), str(target_dir)]) == 1
