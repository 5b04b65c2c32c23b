"""Materializes an optimized package tree on disk.

Layout, recursively for every installed package directory ``T``::

    T/spm_node_modules/<name>/      one directory per direct dependency
    T/spm_node_modules/.bin/<bin>   relative symlinks to dependency executables

A package is extracted before its children are written into its store
directory. Its bin links and lifecycle scripts run once its own subtree is in
place, so children always finish before the scripts of their parent.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import stat
from typing import Dict, Optional

from constants import Constants
from common.errors import ScriptExecutionFailed
from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.progress import ProgressTracker
from common.tasks import gather_or_cancel
from manifest import PackageManifest
from registry.archive import extract_package_to
from resolver.models import PackageNode

logger = logging.getLogger(__name__)

_OUTPUT_TAIL_CHARS = 2000


def store_dir(package_dir: str) -> str:
    return os.path.join(package_dir, Constants.STORE_DIR)


def bin_dir(package_dir: str) -> str:
    return os.path.join(store_dir(package_dir), Constants.BIN_DIR)


def script_env(package_dir: str, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Copy of the environment with the package's own bin dir first on PATH."""
    env = dict(os.environ if base_env is None else base_env)
    inherited = env.get("PATH", "")
    own_bin = bin_dir(package_dir)
    env["PATH"] = f"{own_bin}{os.pathsep}{inherited}" if inherited else own_bin
    return env


class PackageLinker:
    """Extracts packages, links executables and runs lifecycle scripts."""

    def __init__(
        self,
        fetcher,
        progress: Optional[ProgressTracker] = None,
        ignore_scripts: bool = False,
    ):
        self.fetcher = fetcher
        self.progress = progress or ProgressTracker("link", quiet=True)
        self.ignore_scripts = ignore_scripts

    async def link(self, node: PackageNode, target_dir: str) -> None:
        """Install ``node`` into ``target_dir`` and its subtree below it."""
        self.progress.add()

        if not node.is_root:
            data = await self.fetcher.fetch(node.as_dependency())
            extract_package_to(data, target_dir)
        else:
            os.makedirs(target_dir, exist_ok=True)

        await gather_or_cancel(
            self._link_dependency(dependency, target_dir)
            for dependency in node.dependencies
        )
        self.progress.tick(str(node))

    async def _link_dependency(self, dependency: PackageNode, parent_dir: str) -> None:
        target = os.path.join(store_dir(parent_dir), dependency.name)
        await self.link(dependency, target)

        manifest = PackageManifest.load(os.path.join(target, Constants.PACKAGE_JSON_FILE))
        self._link_bins(manifest, target, bin_dir(parent_dir))

        if self.ignore_scripts:
            return
        for script_name in Constants.LIFECYCLE_SCRIPTS:
            script = manifest.scripts.get(script_name)
            if not script:
                continue
            await self._run_script(dependency.name, script_name, script, target)

    def _link_bins(self, manifest: PackageManifest, package_dir: str, bin_target: str) -> None:
        if not manifest.bin:
            return
        os.makedirs(bin_target, exist_ok=True)

        for bin_name, relative_path in manifest.bin.items():
            source = os.path.normpath(os.path.join(package_dir, relative_path))
            dest = os.path.join(bin_target, posixpath.basename(bin_name))
            logger.info("bin: %s", dest)

            if os.path.lexists(dest):
                os.unlink(dest)
            os.symlink(os.path.relpath(source, bin_target), dest)

            if os.path.isfile(source):
                mode = os.stat(source).st_mode
                os.chmod(source, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    async def _run_script(self, package: str, script_name: str, script: str, cwd: str) -> None:
        logger.info("Running %s script of %s", script_name, package)
        with Timer() as t:
            process = await asyncio.create_subprocess_shell(
                script,
                cwd=cwd,
                env=script_env(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            try:
                output, _ = await process.communicate()
            except asyncio.CancelledError:
                if process.returncode is None:
                    process.kill()
                    await process.wait()
                raise

        text = output.decode("utf-8", errors="replace") if output else ""
        if is_debug_enabled(logger):
            logger.debug(
                "Lifecycle script finished",
                extra=extra_context(
                    event="subprocess",
                    component="linker",
                    action=script_name,
                    package=package,
                    exit_code=process.returncode,
                    duration_ms=t.duration_ms(),
                ),
            )
        if process.returncode != 0:
            raise ScriptExecutionFailed(
                package, script_name, process.returncode, text[-_OUTPUT_TAIL_CHARS:].strip()
            )
