"""
CLI and settings tests - commands run against archives in a temp directory.

Can be run standalone: python test_cli.py
Or via main runner: python tests.py --cli
"""

import io
import json
import sys
import zipfile
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from pak_builders import TestResults, build_pak, lmp, run_module_tests

from pakscape.cli import main
from pakscape.config import CodecSettings, LmpLayout
from pakscape.formats.pak import load_pak


def _write_sample(tmp_path: Path) -> Path:
    path = tmp_path / "pak0.pak"
    path.write_bytes(build_pak([
        ("default.cfg", b"bind w +forward\n"),
        ("gfx/qplaque.lmp", lmp(2, 2, bytes([1, 2, 3, 255]))),
        ("progs/player.mdl", b"IDPO"),
    ]))
    return path


def _run(*argv) -> str:
    out = io.StringIO()
    with redirect_stdout(out):
        main([str(a) for a in argv])
    return out.getvalue()


def _run_failing(*argv) -> str:
    err = io.StringIO()
    try:
        with redirect_stderr(err), redirect_stdout(io.StringIO()):
            main([str(a) for a in argv])
    except SystemExit as e:
        assert e.code == 1
        return err.getvalue()
    raise AssertionError(f"{argv} did not exit")


# ═══════════════════════════════════════════════════════════════════════════════
# READ COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

def test_list_json(tmp_path):
    pak = _write_sample(tmp_path)
    listing = json.loads(_run("--format", "json", "list", pak))
    assert listing["name"] == "pak0.pak"
    assert [e["name"] for e in listing["entries"]] == [
        "default.cfg", "gfx/qplaque.lmp", "progs/player.mdl"]


def test_info_table_shows_tree(tmp_path):
    pak = _write_sample(tmp_path)
    output = _run("info", pak)
    assert "gfx/" in output
    assert "qplaque.lmp" in output


def test_bad_archive_exits_with_error(tmp_path):
    bogus = tmp_path / "bogus.pak"
    bogus.write_bytes(bytes(12))
    assert "ERROR" in _run_failing("list", bogus)
    assert "ERROR" in _run_failing("list", tmp_path / "missing.pak")


def test_extract_writes_folders(tmp_path):
    pak = _write_sample(tmp_path)
    out_dir = tmp_path / "out"
    _run("extract", pak, out_dir)
    assert (out_dir / "default.cfg").read_bytes() == b"bind w +forward\n"
    assert (out_dir / "progs" / "player.mdl").read_bytes() == b"IDPO"


def test_extract_selected_paths(tmp_path):
    pak = _write_sample(tmp_path)
    out_dir = tmp_path / "out"
    _run("extract", pak, out_dir, "default.cfg")
    assert (out_dir / "default.cfg").exists()
    assert not (out_dir / "progs").exists()


# ═══════════════════════════════════════════════════════════════════════════════
# EDIT COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

def test_add_into_new_folder(tmp_path):
    pak = _write_sample(tmp_path)
    source = tmp_path / "autoexec.cfg"
    source.write_bytes(b"map e1m1\n")
    _run("add", pak, source, "--dest", "cfg/user")

    archive = load_pak(pak.read_bytes())
    node = archive.tree.find_path("cfg/user/autoexec.cfg")
    assert node is not None
    assert archive.data[node.entry.offset:node.entry.end] == b"map e1m1\n"


def test_rename_and_move_write_to_output(tmp_path):
    pak = _write_sample(tmp_path)
    renamed = tmp_path / "renamed.pak"
    _run("rename", pak, "default.cfg", "config.cfg", "--output", renamed)
    moved = tmp_path / "moved.pak"
    _run("mv", renamed, "config.cfg", "gfx", "--output", moved)

    names = [e.name for e in load_pak(moved.read_bytes()).entries]
    assert "gfx/config.cfg" in names
    assert "default.cfg" in [e.name for e in load_pak(pak.read_bytes()).entries]


def test_rm_folder(tmp_path):
    pak = _write_sample(tmp_path)
    _run("rm", pak, "progs")
    names = [e.name for e in load_pak(pak.read_bytes()).entries]
    assert names == ["default.cfg", "gfx/qplaque.lmp"]


def test_missing_path_exits(tmp_path):
    pak = _write_sample(tmp_path)
    assert "No entry" in _run_failing("rm", pak, "nope.txt")


def test_repack_is_stable(tmp_path):
    pak = _write_sample(tmp_path)
    first = tmp_path / "first.pak"
    second = tmp_path / "second.pak"
    _run("repack", pak, "-o", first)
    _run("repack", first, "-o", second)
    assert first.read_bytes() == second.read_bytes()


# ═══════════════════════════════════════════════════════════════════════════════
# EXPORT / PREVIEW
# ═══════════════════════════════════════════════════════════════════════════════

def test_export_zip(tmp_path):
    pak = _write_sample(tmp_path)
    out = tmp_path / "pak0.zip"
    _run("export-zip", pak, out)
    with zipfile.ZipFile(out) as zf:
        assert sorted(zf.namelist()) == ["default.cfg", "gfx/qplaque.lmp", "progs/player.mdl"]


def test_extract_skips_paths_leaving_output_dir(tmp_path):
    pak = tmp_path / "evil.pak"
    pak.write_bytes(build_pak([
        ("../../escaped.txt", b"outside"),
        ("safe/kept.txt", b"ok"),
    ]))
    out_dir = tmp_path / "a" / "b" / "out"
    output = _run("extract", pak, out_dir)

    assert "Extracted 1 files" in output
    assert (out_dir / "safe" / "kept.txt").read_bytes() == b"ok"
    assert not (tmp_path / "a" / "escaped.txt").exists()
    assert not (tmp_path / "a" / "b" / "escaped.txt").exists()
    assert [p.name for p in tmp_path.rglob("escaped.txt")] == []


def test_preview_writes_png(tmp_path):
    from PIL import Image

    pak = _write_sample(tmp_path)
    out = tmp_path / "qplaque.png"
    _run("preview", pak, "gfx/qplaque.lmp", out)
    with Image.open(out) as image:
        assert image.size == (2, 2)
        assert image.mode == "RGBA"
        assert image.getpixel((1, 1))[3] == 0


def test_preview_rejects_non_image(tmp_path):
    pak = _write_sample(tmp_path)
    assert "not a previewable image" in _run_failing(
        "preview", pak, "default.cfg", tmp_path / "x.png")


# ═══════════════════════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

def test_settings_json_round_trip(tmp_path):
    settings = CodecSettings(default_transparent_index=None, name_sentinel="_")
    settings.lmp_layouts["tiny.lmp"] = LmpLayout(2, 1)
    path = tmp_path / "settings.json"
    settings.save(path)

    loaded = CodecSettings.load(path)
    assert loaded == settings
    assert loaded.layout_for("GFX/Tiny.LMP") == LmpLayout(2, 1)


def test_settings_reject_bad_sentinel():
    try:
        CodecSettings.from_dict({"name_sentinel": "??"})
    except ValueError:
        pass
    else:
        raise AssertionError("multi-character sentinel accepted")


def test_config_option_changes_name_sentinel(tmp_path):
    pak = _write_sample(tmp_path)
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"name_sentinel": "_"}), encoding="utf-8")
    _run("--config", config, "rename", pak, "default.cfg", "café.cfg")
    names = [e.name for e in load_pak(pak.read_bytes()).entries]
    assert "caf_.cfg" in names


def run_all_tests(results: TestResults = None):
    results = results or TestResults()
    print("\n" + "="*60)
    print("CLI AND SETTINGS")
    print("="*60)
    run_module_tests(globals(), results)
    return results.passed, results.failed, results.skipped


if __name__ == "__main__":
    r = TestResults()
    run_all_tests(r)
    sys.exit(0 if r.summary("CLI AND SETTINGS SUMMARY") else 1)
