import json
import asyncio

import numpy as np
from PIL import Image

from VimeTileServices.cli import main

from vime_fakes import FakeVimeServer, SOURCE_URL, STACK_INFO_PATH, uniform_jpeg, tile_path_for


def test_dump_default_json(capsys):
    assert main(['--dump-default-json']) == 0
    config = json.loads(capsys.readouterr().out)
    assert config["vime"]["encoding"] == "jpeg"


def test_dump_schema(capsys):
    assert main(['--dump-schema']) == 0
    schema = json.loads(capsys.readouterr().out)
    assert "vime" in schema["properties"]


def test_no_command(capsys):
    assert main([]) == 1


def _write_config(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(f"vime:\n  source-url: {SOURCE_URL}\n")
    return str(path)


def _run_main(argv, server):
    http = server.client()
    try:
        return main(argv, http)
    finally:
        asyncio.run(http.aclose())


def test_levels(capsys, tmp_path):
    server = FakeVimeServer()
    assert _run_main(['levels', '-c', _write_config(tmp_path)], server) == 0

    # Skip any log lines that precede the output
    out = capsys.readouterr().out
    levels = json.loads(out[out.index('[\n'):])
    assert [level["level"] for level in levels] == [0, 1]
    assert levels[1]["voxel_size"] == [8.0, 8.0, 40.0]
    assert levels[0]["chunk_data_size"] == [16, 8, 1]
    assert levels[0]["dtype"] == "uint8"
    assert server.requested_paths == [STACK_INFO_PATH]


def test_tile_path(capsys, tmp_path):
    server = FakeVimeServer()
    argv = ['tile-path', '-c', _write_config(tmp_path), '--level', '1', '--position', '5', '4', '1']
    assert _run_main(argv, server) == 0
    assert capsys.readouterr().out.strip().splitlines()[-1] == tile_path_for(5, 4, 1, level=1)


def test_fetch_tile(tmp_path):
    path = tile_path_for(2, 3, 4)
    server = FakeVimeServer(tiles={path: uniform_jpeg(16, 8, 120)})
    output = str(tmp_path / 'tile.png')

    argv = ['fetch-tile', '-c', _write_config(tmp_path), '--position', '2', '3', '4', '--output', output]
    assert _run_main(argv, server) == 0
    assert server.requested_paths == [STACK_INFO_PATH, path]

    image = np.array(Image.open(output))
    assert image.shape == (8, 16)
    assert (np.abs(image.astype(int) - 120) <= 2).all()


def test_level_out_of_range(tmp_path):
    server = FakeVimeServer()
    argv = ['tile-path', '-c', _write_config(tmp_path), '--level', '7', '--position', '0', '0', '0']
    assert _run_main(argv, server) == 1
    assert server.requested_paths == [STACK_INFO_PATH]
