"""End-to-end tests for the spm command line driver."""

import asyncio
import json

import pytest

import spm
from constants import Constants, ExitCodes
from manifest import PackageManifest

REGISTRY = "https://registry.test"


@pytest.fixture
def project(tmp_path, monkeypatch, registry):
    """A project directory wired to the in-memory registry."""
    monkeypatch.setattr(Constants, "REGISTRY_URL", REGISTRY)
    monkeypatch.setenv("SPM_CONFIG", str(tmp_path / "no-config.yml"))
    monkeypatch.delenv("SPM_REGISTRY_URL", raising=False)
    monkeypatch.setattr(spm, "HttpClient", lambda: registry)

    def write_manifest(dependencies):
        (tmp_path / Constants.MANIFEST_FILE).write_text(
            json.dumps({"name": "app", "dependencies": dependencies})
        )
        return tmp_path

    return write_manifest


class TestMain:
    """Tests for main() exit codes and on-disk results."""

    def test_installs_chain(self, project, registry, tmp_path):
        """Install a chain and check the nested layout."""
        registry.add_package("A", "1.0.0", dependencies={"B": "^2.0.0"})
        registry.add_package("B", "2.0.0")
        registry.add_package("B", "2.1.0")
        cwd = project({"A": "1.0.0"})

        code = spm.main([str(cwd)])

        assert code == ExitCodes.SUCCESS.value
        b_json = cwd / "spm_node_modules" / "A" / "spm_node_modules" / "B" / "package.json"
        assert json.loads(b_json.read_text())["version"] == "2.1.0"

    def test_separate_destination(self, project, registry, tmp_path):
        """Ensure a separate destination receives the install."""
        registry.add_package("A", "1.0.0")
        cwd = project({"A": "^1.0.0"})
        dest = tmp_path / "out"

        assert spm.main([str(cwd), str(dest)]) == 0
        assert (dest / "spm_node_modules" / "A" / "package.json").exists()
        assert not (cwd / "spm_node_modules").exists()

    def test_missing_manifest(self, project, tmp_path):
        """Ensure a missing manifest exits with FILE_ERROR."""
        assert spm.main([str(tmp_path / "empty")]) == ExitCodes.FILE_ERROR.value

    def test_unresolvable_range(self, project, registry):
        """Ensure an unmatched range exits with RESOLUTION_ERROR."""
        registry.add_package("A", "1.0.0")
        cwd = project({"A": "^2.0.0"})

        assert spm.main([str(cwd)]) == ExitCodes.RESOLUTION_ERROR.value

    def test_registry_down(self, project):
        """Ensure an unreachable package exits with CONNECTION_ERROR."""
        cwd = project({"A": "^1.0.0"})

        assert spm.main([str(cwd)]) == ExitCodes.CONNECTION_ERROR.value

    def test_failing_install_script(self, project, registry):
        """Ensure a failing install script exits with SCRIPT_ERROR."""
        registry.add_package("A", "1.0.0", scripts={"install": "exit 1"})
        cwd = project({"A": "1.0.0"})

        assert spm.main([str(cwd)]) == ExitCodes.SCRIPT_ERROR.value

    def test_ignore_scripts_flag(self, project, registry):
        """Ensure --ignore-scripts skips failing scripts."""
        registry.add_package("A", "1.0.0", scripts={"install": "exit 1"})
        cwd = project({"A": "1.0.0"})

        assert spm.main([str(cwd), "--ignore-scripts"]) == 0

    def test_local_archive_reference(self, project, registry, tarball, tmp_path):
        """Install a dependency from a local archive."""
        archive = tarball({"package.json": json.dumps({"name": "local", "version": "0.0.1"})})
        cwd = project({"local": "./vendor/local.tgz"})
        (cwd / "vendor").mkdir()
        (cwd / "vendor" / "local.tgz").write_bytes(archive)

        assert spm.main([str(cwd)]) == 0
        assert (cwd / "spm_node_modules" / "local" / "package.json").exists()


class TestRunInstall:
    """Tests for the resolve/optimize/link pipeline."""

    def test_hoisted_duplicate(self, tmp_path, registry, monkeypatch):
        """Ensure a duplicate dependency is installed once at the root."""
        monkeypatch.setattr(Constants, "REGISTRY_URL", REGISTRY)
        registry.add_package("A", "1.0.0", dependencies={"B": "^2.0.0"})
        registry.add_package("B", "2.0.0")
        manifest = PackageManifest(name="app", dependencies={"A": "1.0.0", "B": "2.0.0"})

        tree = asyncio.run(
            spm.run_install(manifest, str(tmp_path), base_dir=str(tmp_path), client=registry)
        )

        assert [(d.name, d.reference) for d in tree.dependencies] == [("A", "1.0.0"), ("B", "2.0.0")]
        assert tree.find("A").dependencies == []
        assert not (tmp_path / "spm_node_modules" / "A" / "spm_node_modules").exists()

    def test_conflict_kept_nested(self, tmp_path, registry, monkeypatch):
        """Ensure a conflicting version is installed nested."""
        monkeypatch.setattr(Constants, "REGISTRY_URL", REGISTRY)
        registry.add_package("A", "1.0.0", dependencies={"B": "^1.0.0"})
        registry.add_package("B", "1.3.0")
        registry.add_package("B", "2.0.0")
        manifest = PackageManifest(name="app", dependencies={"A": "1.0.0", "B": "2.0.0"})

        tree = asyncio.run(
            spm.run_install(manifest, str(tmp_path), base_dir=str(tmp_path), client=registry)
        )

        assert tree.find("B").reference == "2.0.0"
        assert [(d.name, d.reference) for d in tree.find("A").dependencies] == [("B", "1.3.0")]
        nested = tmp_path / "spm_node_modules" / "A" / "spm_node_modules" / "B" / "package.json"
        assert json.loads(nested.read_text())["version"] == "1.3.0"

    def test_each_phase_fetches_the_tarball(self, tmp_path, registry, monkeypatch):
        """Ensure resolution and linking each request the tarball."""
        monkeypatch.setattr(Constants, "REGISTRY_URL", REGISTRY)
        registry.add_package("A", "1.0.0")
        manifest = PackageManifest(name="app", dependencies={"A": "1.0.0"})

        asyncio.run(spm.run_install(manifest, str(tmp_path), base_dir=str(tmp_path), client=registry))

        tarball_url = f"{REGISTRY}/A/-/A-1.0.0.tgz"
        assert registry.requests.count(tarball_url) == 2


class TestConfig:
    """Tests for config file and override precedence."""

    def test_yaml_config_sets_registry(self, tmp_path, monkeypatch):
        """Ensure the YAML config sets registry and timeout."""
        monkeypatch.setattr(Constants, "REGISTRY_URL", Constants.REGISTRY_URL)
        monkeypatch.setattr(Constants, "REQUEST_TIMEOUT", Constants.REQUEST_TIMEOUT)
        monkeypatch.delenv("SPM_REGISTRY_URL", raising=False)
        config = tmp_path / "spm.yml"
        config.write_text("registry:\n  url: https://mirror.test/\nhttp:\n  timeout: 5\n")

        from cli_config import apply_overrides
        from args import parse_args

        apply_overrides(parse_args(["--config", str(config)]))

        assert Constants.REGISTRY_URL == "https://mirror.test"
        assert Constants.REQUEST_TIMEOUT == 5

    def test_cli_flag_beats_environment(self, tmp_path, monkeypatch):
        """Ensure --registry overrides SPM_REGISTRY_URL."""
        monkeypatch.setattr(Constants, "REGISTRY_URL", Constants.REGISTRY_URL)
        monkeypatch.setenv("SPM_CONFIG", str(tmp_path / "missing.yml"))
        monkeypatch.setenv("SPM_REGISTRY_URL", "https://env.test")

        from cli_config import apply_overrides
        from args import parse_args

        apply_overrides(parse_args([]))
        assert Constants.REGISTRY_URL == "https://env.test"

        apply_overrides(parse_args(["--registry", "https://flag.test/"]))
        assert Constants.REGISTRY_URL == "https://flag.test"


def test_exit_code_mapping_defaults_to_file_error():
    """Ensure unknown errors map to FILE_ERROR."""
    assert spm.exit_code_for(RuntimeError("x")) == ExitCodes.FILE_ERROR.value
