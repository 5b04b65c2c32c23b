"""spm - minimal package manager.

Resolves the dependency tree of an spm-package.json against the registry,
deduplicates it, and installs it as nested spm_node_modules directories.
"""
import asyncio
import logging
import os
import sys

from args import parse_args
from cli_config import apply_overrides
from constants import Constants, ExitCodes
from common.errors import (
    ArchiveError,
    FileNotFoundInArchive,
    LocalArchiveNotFound,
    ManifestError,
    PackageFetchFailed,
    RegistryUnavailable,
    ScriptExecutionFailed,
    SpmError,
    UnresolvableVersion,
)
from common.http_client import HttpClient
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.progress import track_progress
from installer.linker import PackageLinker
from manifest import PackageManifest
from registry.fetcher import PackageFetcher
from resolver.models import PackageNode
from resolver.optimizer import optimize_tree
from resolver.tree_resolver import TreeResolver
from versioning.resolvers.npm import NpmVersionResolver

logger = logging.getLogger(__name__)

_EXIT_CODES = (
    (RegistryUnavailable, ExitCodes.CONNECTION_ERROR),
    (PackageFetchFailed, ExitCodes.CONNECTION_ERROR),
    (UnresolvableVersion, ExitCodes.RESOLUTION_ERROR),
    (ScriptExecutionFailed, ExitCodes.SCRIPT_ERROR),
    (LocalArchiveNotFound, ExitCodes.FILE_ERROR),
    (FileNotFoundInArchive, ExitCodes.FILE_ERROR),
    (ArchiveError, ExitCodes.FILE_ERROR),
    (ManifestError, ExitCodes.FILE_ERROR),
)


def exit_code_for(error: BaseException) -> int:
    """Map a failure to the process exit status."""
    for error_type, code in _EXIT_CODES:
        if isinstance(error, error_type):
            return code.value
    return ExitCodes.FILE_ERROR.value


async def run_install(
    manifest: PackageManifest,
    dest: str,
    *,
    base_dir: str,
    ignore_scripts: bool = False,
    quiet: bool = False,
    client=None,
) -> PackageNode:
    """Resolve, optimize and link ``manifest``'s dependencies into ``dest``.

    Returns the optimized tree that was installed.
    """
    own_client = client is None
    if own_client:
        client = HttpClient()
        await client.start()
    try:
        pinner = NpmVersionResolver(client)
        fetcher = PackageFetcher(client, base_dir=base_dir)

        logger.info("Resolving the package tree...")
        with track_progress("Resolving", quiet=quiet) as progress:
            tree = await TreeResolver(pinner, fetcher, progress).resolve_manifest(manifest)

        optimized = optimize_tree(tree)
        if is_debug_enabled(logger):
            logger.debug(
                "Optimized package tree",
                extra=extra_context(
                    event="decision",
                    component="cli",
                    action="optimize",
                    top_level=len(optimized.dependencies),
                    tree=optimized.to_dict(),
                ),
            )

        logger.info("Linking the packages on the filesystem...")
        with track_progress("Linking", quiet=quiet) as progress:
            await PackageLinker(fetcher, progress, ignore_scripts=ignore_scripts).link(optimized, dest)
        return optimized
    finally:
        if own_client:
            await client.stop()


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    level = "WARNING" if getattr(args, "QUIET", False) else getattr(args, "LOG_LEVEL", "INFO")
    configure_logging(level)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    apply_overrides(args)

    cwd = os.path.abspath(args.cwd or os.getcwd())
    dest = os.path.abspath(args.dest or cwd)

    try:
        manifest = PackageManifest.load(os.path.join(cwd, Constants.MANIFEST_FILE))
        asyncio.run(
            run_install(
                manifest,
                dest,
                base_dir=cwd,
                ignore_scripts=args.IGNORE_SCRIPTS,
                quiet=args.QUIET,
            )
        )
    except SpmError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc)
    except OSError as exc:
        logger.error("Filesystem error: %s", exc)
        return ExitCodes.FILE_ERROR.value

    return ExitCodes.SUCCESS.value


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
