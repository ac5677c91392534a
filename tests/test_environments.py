"""Tests for specflow.runtime.environments."""

import pytest

from specflow.runtime.environments import (
    CliEnvironment,
    LocalEnvironment,
    VSCodeEnvironment,
    get_environment,
)
from specflow.runtime.errors import EnvironmentUnsupportedError


class TestCommands:
    def test_setup_switches_docs_branch(self):
        env = LocalEnvironment(docs_dir="docs")

        assert env.setup_command("docs-x") == "git -C docs switch -C docs-x"

    def test_setup_quotes_unsafe_paths(self):
        env = LocalEnvironment(docs_dir="my docs")

        assert env.setup_command("b") == "git -C 'my docs' switch -C b"

    def test_local_teardown_restores_base_branch(self):
        assert LocalEnvironment(base_branch="trunk").teardown_command() == "git -C docs switch trunk"

    def test_cli_teardown_is_empty(self):
        assert CliEnvironment().teardown_command() == ""


class TestFiles:
    def test_local_write_read_exists(self, tmp_path):
        env = LocalEnvironment(root=tmp_path)

        env.write_file("docs/design/a.md", "# A")

        assert env.file_exists("docs/design/a.md")
        assert env.read_file("docs/design/a.md") == "# A"
        assert (tmp_path / "docs" / "design" / "a.md").is_file()
        assert not env.file_exists("docs/design/b.md")

    def test_vscode_has_no_server_side_files(self, tmp_path):
        env = VSCodeEnvironment(root=tmp_path)

        with pytest.raises(EnvironmentUnsupportedError):
            env.file_exists("docs/a.md")
        with pytest.raises(EnvironmentUnsupportedError):
            env.read_file("docs/a.md")
        with pytest.raises(EnvironmentUnsupportedError):
            env.write_file("docs/a.md", "x")


class TestRegistry:
    @pytest.mark.parametrize("name, cls", [("local", LocalEnvironment), ("cli", CliEnvironment), ("vscode", VSCodeEnvironment)])
    def test_get_environment(self, name, cls, tmp_path):
        env = get_environment(name, root=tmp_path, docs_dir="d", base_branch="b")

        assert isinstance(env, cls)
        assert env.root == tmp_path
        assert env.docs_dir == "d"

    def test_unknown_environment(self):
        with pytest.raises(ValueError, match="Unknown environment"):
            get_environment("jupyter")
