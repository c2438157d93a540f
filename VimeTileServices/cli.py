import sys
import asyncio
import argparse
import logging

from PIL import Image

from .config import load_config, default_config, dump_schema
from .chunk import VolumeChunk
from .datasource import VimeSession
from .json_util import json_dumps

logger = logging.getLogger(__name__)


def main(argv=None, http_client=None):
    """
    Command-line entry point.
    http_client: Optional httpx.AsyncClient to use for all requests (mostly for testing).
    """
    parser = argparse.ArgumentParser(description="Inspect and download tiles from VIME stacks")

    parser.add_argument('--dump-schema', '-d', action="store_true",
            default=False, help="dump the config json schema")

    parser.add_argument('--dump-default-json', '-j', action="store_true",
            default=False, help="dump default config as json")

    parser.add_argument('--dump-default-yaml', '-y', action="store_true",
            default=False, help="dump default config as yaml")

    parser.add_argument('--dump-default-verbose-yaml', '-v', action="store_true",
            default=False, help="dump default config as yaml, with comments")

    subparsers = parser.add_subparsers(dest='command')

    levels_parser = subparsers.add_parser('levels', help="print the resolution levels of a stack")
    levels_parser.add_argument('--config-file', '-c', required=True, help="yaml or json config file")

    for name, help_text in [('tile-path', "print the server path of a single tile"),
                            ('fetch-tile', "download a single tile and save it as an image")]:
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument('--config-file', '-c', required=True, help="yaml or json config file")
        p.add_argument('--level', '-l', type=int, default=0, help="zoom level")
        p.add_argument('--position', '-p', type=int, nargs=3, required=True, metavar=('COLUMN', 'ROW', 'SLICE'),
                       help="chunk grid position")
        if name == 'fetch-tile':
            p.add_argument('--output', '-o', required=True, help="output image file, e.g. tile.png")

    args = parser.parse_args(argv)

    if args.dump_schema:
        print(dump_schema())
        return 0

    if args.dump_default_json:
        print(default_config("json"))
        return 0

    if args.dump_default_yaml:
        print(default_config("yaml"))
        return 0

    if args.dump_default_verbose_yaml:
        print(default_config("yaml-with-comments"))
        return 0

    if args.command is None:
        parser.print_help()
        return 1

    config = load_config(args.config_file)
    return asyncio.run(_run_command(args, config, http_client))


async def _run_command(args, config, http_client=None):
    async with VimeSession.from_config(config, http_client) as session:
        volume = await session.get_volume(config["vime"]["source-url"])
        sources = volume.get_sources()

        if args.command == 'levels':
            levels = [source.spec._asdict() for [source] in sources]
            print(json_dumps(levels, indent=4))
            return 0

        if not (0 <= args.level < len(sources)):
            logger.error(f"Level {args.level} is out of range. The stack has levels 0..{len(sources)-1}")
            return 1

        [source] = sources[args.level]
        if args.command == 'tile-path':
            print(source.tile_path(args.position))
            return 0

        chunk = VolumeChunk(args.position)
        await source.download(chunk)
        Image.fromarray(chunk.data[0]).save(args.output)
        logger.info(f"Wrote {args.output}")
        return 0


if __name__ == "__main__":
    sys.exit( main() )
