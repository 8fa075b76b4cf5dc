import argparse
import logging
import sys
from pathlib import Path

from . import orchestrator
from .civitai_client import CivitaiClient
from .config import Settings
from .errors import MissingCriticalArtifact, ServiceLaunchError
from .mirror import build_index
from .specs import read_list_file

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="comfy-bootstrap",
        description="Prepare a ComfyUI workspace and start its services",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Full bootstrap, ending with ComfyUI in the foreground (default)")
    sub.add_parser("sync-plugins", help="Clone/update custom nodes and install their requirements")

    index = sub.add_parser("build-index", help="Mirror Civitai metadata into Markdown docs")
    index.add_argument("input_file", nargs="?", help="Spec list (default: <RUNTIME_DIR>/civitai_models.txt)")
    index.add_argument("out_dir", nargs="?", help="Output directory (default: MODEL_DOCS_DIR)")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "run"
    return args


def main(argv=None, settings: Settings = None) -> int:
    args = parse_args(argv)
    try:
        settings = settings or Settings.from_env()
        settings.validate()
    except (RuntimeError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "build-index":
        input_file = Path(args.input_file) if args.input_file else settings.civitai_list_file
        out_dir = Path(args.out_dir) if args.out_dir else settings.model_docs_dir
        with CivitaiClient(api_key=settings.civitai_api_key) as client:
            build_index(read_list_file(input_file), out_dir, client)
        return 0

    if args.command == "sync-plugins":
        orchestrator.sync_plugins(settings)
        return 0

    try:
        orchestrator.run(settings)
    except MissingCriticalArtifact as e:
        logger.error(f"ERROR: {e.artifact} is required and could not be fetched. Aborting.")
        return 1
    except ServiceLaunchError as e:
        logger.error(f"ERROR: {e}. Check COMFY_HOME and COMFY_PYTHON.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
