import os

import pytest

from toolgate.errors import SandboxViolationError
from toolgate.infrastructure.security.sandbox import (
    SandboxConfig, assert_command_allowed, assert_within_workspace,
    resolve_path_inside_workspace, sanitize_cwd
)


@pytest.fixture
def config() -> SandboxConfig:
    return SandboxConfig(
        workspace_root="/tmp/workspace",
        blocked_commands=[r"(^|\s)sudo(\s|$)", r"rm\s+-rf\s+/"],
        blocked_paths=[".git", ".env"]
    )


class TestPathConfinement:
    """Paths are resolved against the workspace root and must stay inside it."""

    def test_relative_path_inside_workspace_resolves(self, config):
        """Test that a nested relative path resolves under the root."""
        assert resolve_path_inside_workspace("sub/file.txt", config) == os.path.normpath("/tmp/workspace/sub/file.txt")

    def test_parent_traversal_is_rejected(self, config):
        """Test that ../ escaping the root raises a sandbox violation."""
        with pytest.raises(SandboxViolationError) as exc_info:
            resolve_path_inside_workspace("../outside.txt", config)
        assert "resolves outside workspace" in exc_info.value.message

    def test_sibling_directory_sharing_prefix_is_rejected(self, config):
        """Test that /tmp/workspace-evil does not pass as inside /tmp/workspace."""
        with pytest.raises(SandboxViolationError):
            assert_within_workspace("../workspace-evil/file.txt", config)

    def test_absolute_path_outside_is_rejected(self, config):
        """Test that an absolute path elsewhere is rejected."""
        with pytest.raises(SandboxViolationError):
            resolve_path_inside_workspace("/etc/passwd", config)

    def test_workspace_root_itself_is_allowed(self, config):
        """Test that the root resolves to itself."""
        assert resolve_path_inside_workspace(".", config) == os.path.normpath("/tmp/workspace")

    def test_unrestricted_mode_allows_outside_paths(self, config):
        """Test that restrict_to_workspace=False lifts the confinement."""
        relaxed = config.model_copy(update={"restrict_to_workspace": False})
        assert resolve_path_inside_workspace("../outside.txt", relaxed) == os.path.normpath("/tmp/outside.txt")

    def test_blocked_segment_is_rejected(self, config):
        """Test that a path containing a blocked substring is rejected."""
        with pytest.raises(SandboxViolationError) as exc_info:
            resolve_path_inside_workspace(".git/config", config)
        assert "blocked segment" in exc_info.value.message


class TestSymlinkConfinement:
    """Links on disk are followed before deciding containment."""

    def test_link_leaving_workspace_is_rejected(self, tmp_path):
        """Test that only the symlink-aware check rejects a link to a sibling directory."""
        workspace = tmp_path / "workspace"
        outside = tmp_path / "outside"
        workspace.mkdir()
        outside.mkdir()
        os.symlink(str(outside), str(workspace / "link"))
        config = SandboxConfig(workspace_root=str(workspace))

        assert resolve_path_inside_workspace("link/file.txt", config) == str(workspace / "link" / "file.txt")
        with pytest.raises(SandboxViolationError):
            assert_within_workspace("link/file.txt", config)

    def test_link_within_workspace_is_allowed(self, tmp_path):
        """Test that a link to another workspace directory passes."""
        workspace = tmp_path / "workspace"
        (workspace / "real").mkdir(parents=True)
        os.symlink(str(workspace / "real"), str(workspace / "alias"))

        assert_within_workspace("alias/file.txt", SandboxConfig(workspace_root=str(workspace)))


class TestCommandPolicy:
    """Commands are matched case-insensitively against blocked patterns."""

    def test_sudo_is_blocked(self, config):
        """Test that sudo ls is rejected."""
        with pytest.raises(SandboxViolationError) as exc_info:
            assert_command_allowed("sudo ls", config)
        assert exc_info.value.metadata["pattern"] == r"(^|\s)sudo(\s|$)"

    def test_match_is_case_insensitive(self, config):
        """Test that SUDO in upper case is still rejected."""
        with pytest.raises(SandboxViolationError):
            assert_command_allowed("SUDO reboot", config)

    def test_harmless_command_is_allowed(self, config):
        """Test that echo ok passes."""
        assert_command_allowed("echo ok", config)

    def test_pattern_matches_anywhere_in_command(self, config):
        """Test that a blocked pattern after a separator is caught."""
        with pytest.raises(SandboxViolationError):
            assert_command_allowed("echo hi && rm -rf /", config)


class TestSanitizeCwd:
    """Working directories default to the root and are confined otherwise."""

    def test_missing_cwd_defaults_to_root(self, config):
        """Test that None falls back to the workspace root."""
        assert sanitize_cwd(None, config) == os.path.normpath("/tmp/workspace")

    def test_cwd_outside_is_rejected(self, config):
        """Test that a cwd escaping the root is rejected."""
        with pytest.raises(SandboxViolationError):
            sanitize_cwd("../..", config)
