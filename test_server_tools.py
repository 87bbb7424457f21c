#!/usr/bin/env python3
"""
Tests for the MCP tool layer: response shapes, validation errors and the
retry-with-selection flow a client uses after a NO_SELECTION response.
"""

import asyncio
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mcp.server.fastmcp import FastMCP

sys.path.insert(0, str(Path(__file__).parent))

from repo_resolver.config import Config
from repo_resolver.discovery.store import RemoteIndexStore
from repo_resolver.errors import error_handler
from repo_resolver.manager import ResolutionManager
from repo_resolver.resolver.candidates import get_clone_path
from repo_resolver.resolver.error_types import CloneFailedError, NoSelectionError
from repo_resolver.resolver.remote_url import canonical_remote
from repo_resolver.server import (
    list_index, lookup_remote, rebuild_index, register_tools, resolve_repository,
)
from git_test_utils import GIT_IDENTITY, clone, create_origin


class ServerToolTestCase(unittest.TestCase):

    def setUp(self):
        self.env_patcher = patch.dict(os.environ, GIT_IDENTITY)
        self.env_patcher.start()

        self.temp_dir = Path(os.path.realpath(tempfile.mkdtemp()))
        self.origin = create_origin(self.temp_dir)
        self.clone_url = str(self.origin)
        self.remote = canonical_remote(self.clone_url)
        self.config = Config(
            data_dir=self.temp_dir / "data",
            clone_path_template=str(self.temp_dir / "clones") + "${separator}${folderRelativePath}",
            scan_directory_template="",
            max_workers=2,
        )
        self.store = RemoteIndexStore(self.config.index_path, self.config.lock_dir)
        self.managers = []

    def tearDown(self):
        for manager in self.managers:
            manager.close()
        self.env_patcher.stop()
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def _manager(self):
        manager = ResolutionManager(self.config)
        self.managers.append(manager)
        return manager


class TestResolveRepositoryTool(ServerToolTestCase):

    def test_successful_resolution(self):
        response = resolve_repository(self._manager(), self.clone_url)

        self.assertTrue(response["success"])
        self.assertEqual(response["operation"], "resolve_repository")
        self.assertEqual(response["data"]["strategy"], "clone")
        self.assertEqual(response["data"]["path"], get_clone_path(self.config, self.remote))
        self.assertEqual(response["data"]["locator"], f"{self.remote}@HEAD")

    def test_git_resource_carries_the_revision(self):
        response = resolve_repository(self._manager(), f"git+file://{self.origin}?main")

        self.assertTrue(response["success"], response)
        self.assertEqual(response["data"]["strategy"], "clone")
        self.assertEqual(response["data"]["path"], get_clone_path(self.config, self.remote))
        self.assertEqual(response["data"]["locator"], f"{self.remote}@main")

    def test_explicit_revision_overrides_the_resource(self):
        response = resolve_repository(self._manager(), f"git+file://{self.origin}?main", "does-not-exist")

        self.assertEqual(response["error_code"], "REMOTE_REF_NOT_FOUND")
        self.assertEqual(response["context"]["revision"], "does-not-exist")

    def test_resource_without_remote(self):
        response = resolve_repository(self._manager(), "git+ssh://")
        self.assertEqual(response["error_code"], "VALIDATION_INVALID_URL")

    def test_invalid_clone_url(self):
        response = resolve_repository(self._manager(), "   ")
        self.assertEqual(response["error_code"], "VALIDATION_INVALID_URL")
        self.assertEqual(response["category"], "validation")

    def test_invalid_checkout_strategy(self):
        response = resolve_repository(self._manager(), self.clone_url, "main", checkout_strategy="merge")
        self.assertEqual(response["error_code"], "VALIDATION_INVALID_STRATEGY")

    def test_missing_revision(self):
        response = resolve_repository(self._manager(), self.clone_url, "does-not-exist")

        self.assertEqual(response["error_code"], "REMOTE_REF_NOT_FOUND")
        self.assertEqual(response["context"]["strategy"], "clone")
        self.assertEqual(response["context"]["revision"], "does-not-exist")
        self.assertEqual(response["context"]["recovery_action"], "user_action_required")

    def test_choices_then_retry_with_selection(self):
        well_known = clone(self.origin, Path(get_clone_path(self.config, self.remote)))
        other = clone(self.origin, self.temp_dir / "other")
        self.store.save([(self.remote, str(other))])
        manager = self._manager()

        response = resolve_repository(manager, self.clone_url)

        self.assertEqual(response["error_code"], "NO_SELECTION")
        self.assertEqual(response["context"]["recovery_action"], "retry_with_selection")
        choices = response["context"]["choices"]
        self.assertEqual([choice["detail"] for choice in choices], [str(well_known), str(other)])

        response = resolve_repository(manager, self.clone_url, selected_path=choices[1]["detail"])

        self.assertTrue(response["success"])
        self.assertEqual(response["data"]["path"], str(other))
        self.assertEqual(response["data"]["strategy"], "pick_any")


class TestIndexTools(ServerToolTestCase):

    def test_lookup_and_list(self):
        self.store.save([(self.remote, "/src/widgets"), ("github.com/acme/gadgets", "/src/gadgets")])
        manager = self._manager()

        response = lookup_remote(manager, self.clone_url + "/")
        self.assertEqual(response["data"], {"remote": self.remote, "path": "/src/widgets"})

        response = lookup_remote(manager, "https://github.com/acme/unknown.git")
        self.assertIsNone(response["data"]["path"])

        response = list_index(manager)
        self.assertEqual(response["data"]["entries"], [
            {"remote": "github.com/acme/gadgets", "path": "/src/gadgets"},
            {"remote": self.remote, "path": "/src/widgets"},
        ])

    def test_lookup_invalid_url(self):
        response = lookup_remote(self._manager(), "")
        self.assertEqual(response["error_code"], "VALIDATION_INVALID_URL")

    def test_rebuild_over_directory(self):
        tree = self.temp_dir / "tree"
        checkout = clone(self.origin, tree / "team" / "widgets")
        (tree / "plain").mkdir()
        manager = self._manager()

        response = rebuild_index(manager, str(tree))

        self.assertTrue(response["data"]["committed"])
        self.assertEqual(response["data"]["repositories"], 1)
        self.assertEqual(manager.lookup_remote(self.remote), str(checkout))
        self.assertEqual(self.store.load(), {self.remote: str(checkout)})

    def test_rebuild_without_directory_when_discovery_disabled(self):
        response = rebuild_index(self._manager())
        self.assertEqual(response["error_code"], "VALIDATION_GENERAL_ERROR")


class TestErrorHandler(unittest.TestCase):

    def test_clone_failure_gets_host_hints(self):
        error = CloneFailedError("Failed to clone git@github.com:acme/widgets.git: denied")
        response = error_handler.handle_resolution_error(
            error, {"clone_url": "git@github.com:acme/widgets.git"}).to_dict()

        self.assertEqual(response["error_code"], "CLONE_FAILED")
        self.assertEqual(response["error"], "The repository could not be cloned")
        self.assertTrue(response["context"]["hints"][0].startswith("GitHub clone failed"))

    def test_unexpected_exception(self):
        response = error_handler.handle_resolution_error(RuntimeError("boom"))
        self.assertEqual(response.error_code, "RESOLUTION_GENERAL_ERROR")
        self.assertIn("boom", response.message)

    def test_no_selection_without_choices(self):
        response = error_handler.handle_resolution_error(NoSelectionError()).to_dict()
        self.assertNotIn("choices", response["context"])


class TestToolRegistration(ServerToolTestCase):

    def test_tools_are_registered(self):
        server = FastMCP("Repo Resolver Test")
        register_tools(server, self._manager())

        tools = asyncio.run(server.list_tools())

        self.assertEqual(
            sorted(tool.name for tool in tools),
            ["list_index", "lookup_remote", "rebuild_index", "resolve_repository"],
        )


def run_tests():
    """Run all server tool tests."""
    print("Running MCP Server Tool Tests")
    print("=" * 60)

    suite = unittest.TestSuite()
    loader = unittest.TestLoader()
    for case in (TestResolveRepositoryTool, TestIndexTools, TestErrorHandler, TestToolRegistration):
        suite.addTests(loader.loadTestsFromTestCase(case))

    result = unittest.TextTestRunner(verbosity=2, stream=sys.stdout).run(suite)
    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
