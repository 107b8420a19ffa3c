"""Tests for the analyze and batch_analyze command line tools."""

import pytest
from PIL import Image

import analyze
import batch_analyze
from color import Color, parse_hex_color


def save_quadrants(path, size=40):
    img = Image.new('RGBA', (size, size), (255, 0, 0, 255))
    half = size // 2
    img.paste((0, 0, 255, 255), (half, 0, size, size))
    img.save(path)


def test_parse_hex_color():
    assert parse_hex_color('#ff8000') == Color(255, 128, 0)
    assert parse_hex_color('0f0') == Color(0, 255, 0)
    assert Color(255, 128, 0).hex == '#ff8000'


@pytest.mark.parametrize("value", ['#12345', 'zzzzzz', ''])
def test_parse_hex_color_rejects_garbage(value):
    with pytest.raises(ValueError, match="Invalid hex color"):
        parse_hex_color(value)


def test_analyze_prints_area_palette(tmp_path, capsys):
    path = tmp_path / "halves.png"
    save_quadrants(path)

    code = analyze.main(['-i', str(path), '-s', 'area', '-n', '4'])

    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert [line.split()[0] for line in out] == ['#ff0000', '#0000ff', '#ff0000', '#0000ff']


def test_analyze_excludes_colors(tmp_path, capsys):
    path = tmp_path / "halves.png"
    save_quadrants(path)

    code = analyze.main(['-i', str(path), '-s', 'palette', '--exclude', '#ff0000'])

    out = capsys.readouterr().out
    assert code == 0
    assert '#0000ff' in out
    assert '#ff0000' not in out


def test_analyze_writes_swatch(tmp_path, capsys):
    path = tmp_path / "halves.png"
    save_quadrants(path)

    code = analyze.main(['-i', str(path), '-s', 'corners', '-o'])

    assert code == 0
    assert (tmp_path / "halves-corners.png").exists()


def test_analyze_reports_transparent_image(tmp_path, capsys):
    path = tmp_path / "clear.png"
    Image.new('RGBA', (20, 20), (0, 0, 0, 0)).save(path)

    code = analyze.main(['-i', str(path), '-s', 'edge', '--edge-width', '3'])

    assert code == 1
    assert 'Error analyzing image' in capsys.readouterr().err


def test_analyze_missing_file(tmp_path, capsys):
    code = analyze.main(['-i', str(tmp_path / "nope.png")])

    assert code == 1
    assert 'Image not found' in capsys.readouterr().err


def test_batch_processes_directory(tmp_path, capsys):
    source = tmp_path / "in"
    source.mkdir()
    save_quadrants(source / "a.png")
    Image.new('RGBA', (10, 10), (0, 0, 0, 0)).save(source / "b.png")
    (source / "readme.txt").write_text("skip me")
    output = tmp_path / "out"

    code = batch_analyze.main(['-i', str(source), '-o', str(output), '-n', '4'])

    captured = capsys.readouterr()
    assert code == 1
    assert (output / "a-palette.png").exists()
    assert 'a.png → #' in captured.out
    assert 'b.png → ERROR: EmptyInputError' in captured.err
    assert 'Completed: 1/2 succeeded' in captured.out


def test_batch_missing_input_directory(tmp_path, capsys):
    code = batch_analyze.main(['-i', str(tmp_path / "missing"), '-o', str(tmp_path / "out")])

    assert code == 2


def test_analyze_corners_read_full_resolution(tmp_path, capsys):
    """Large images are not resampled before corner sampling."""
    path = tmp_path / "big.png"
    img = Image.new('RGBA', (512, 512), (0, 255, 0, 255))
    img.putpixel((0, 0), (0, 0, 0, 0))
    img.putpixel((511, 511), (255, 0, 0, 255))
    img.save(path)

    code = analyze.main(['-i', str(path), '-s', 'corners'])

    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert [line.split()[0] for line in out] == ['#00ff00', '#00ff00', '#ff0000']


def test_analyze_palette_still_downscales(tmp_path, monkeypatch, capsys):
    path = tmp_path / "big.png"
    Image.new('RGBA', (300, 300), (0, 0, 255, 255)).save(path)
    seen = []
    real_load = analyze.load_buffer

    def recording_load(image_path, max_size=None):
        seen.append(max_size)
        return real_load(image_path, max_size=max_size)

    monkeypatch.setattr(analyze, 'load_buffer', recording_load)

    assert analyze.main(['-i', str(path), '-s', 'palette']) == 0
    assert analyze.main(['-i', str(path), '-s', 'edge']) == 0
    assert analyze.main(['-i', str(path), '-s', 'palette', '--no-downscale']) == 0
    assert seen == [analyze.DEFAULT_DOWNSCALE, None, None]
