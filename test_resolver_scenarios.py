#!/usr/bin/env python3
"""
End-to-end resolution scenarios through the ResolutionManager.

Each test builds a bare origin and some local clones, then resolves the
origin's URL and checks which strategy ran and what happened on disk.
"""

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from repo_resolver.config import Config
from repo_resolver.manager import ResolutionManager
from repo_resolver.resolver.candidates import get_clone_path
from repo_resolver.resolver.executor import SyncExecutor
from repo_resolver.resolver.performance_logger import get_performance_logger
from repo_resolver.resolver.prompter import PresetPrompter
from repo_resolver.resolver.remote_url import canonical_remote
from repo_resolver.resolver.repository import GitRepository
from repo_resolver.workspace import Workspace
from git_test_utils import (
    GIT_IDENTITY, clone, commit_file, create_origin, current_branch, git, head_commit, push_commit,
)


class FakeIndex:
    """In-memory stand-in for a RemoteIndex."""

    def __init__(self, entries=None):
        self.entries = dict(entries or {})
        self.cancelled = False

    def resolve_remote(self, remote):
        return self.entries.get(remote)

    def cancel(self):
        self.cancelled = True


class ResolverScenarioTestCase(unittest.TestCase):

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
        self.well_known = Path(get_clone_path(self.config, self.remote))
        self.index = FakeIndex()
        self.managers = []

    def tearDown(self):
        for manager in self.managers:
            manager.close()
        self.env_patcher.stop()
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def _manager(self, roots=()):
        manager = ResolutionManager(self.config, workspace=Workspace(roots), indexes=[self.index])
        self.managers.append(manager)
        return manager


class TestCloneAndReuse(ResolverScenarioTestCase):

    def test_clone_when_nothing_is_local(self):
        manager = self._manager()

        outcome = manager.resolve(self.clone_url)

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.strategy, "clone")
        self.assertEqual(outcome.path, str(self.well_known))
        self.assertEqual(current_branch(self.well_known), "main")
        self.assertIsNotNone(manager.workspace.get_repository(outcome.path))

    def test_second_resolution_reuses_the_clone(self):
        manager = self._manager()

        with patch.object(SyncExecutor, "clone", autospec=True, side_effect=SyncExecutor.clone) as clone_call:
            first = manager.resolve(self.clone_url)
            second = manager.resolve(self.clone_url)

        self.assertEqual(clone_call.call_count, 1)
        self.assertEqual(second.strategy, "pick_any")
        self.assertEqual(second.path, first.path)

    def test_clone_with_missing_revision(self):
        outcome = self._manager().resolve(self.clone_url, "does-not-exist")

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_code, "REMOTE_REF_NOT_FOUND")
        self.assertEqual(outcome.strategy, "clone")

        metrics = get_performance_logger().get_metrics("resolve")
        self.assertFalse(metrics.success)
        self.assertEqual(metrics.context, {"locator": f"{self.remote}@does-not-exist"})

    def test_invalid_clone_url(self):
        outcome = self._manager().resolve("   ")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_code, "INVALID_LOCATOR")


class TestFastForwardScenarios(ResolverScenarioTestCase):

    def setUp(self):
        super().setUp()
        clone(self.origin, self.well_known)
        self.initial = head_commit(self.well_known)

    def test_clone_at_tip_is_left_alone(self):
        with patch.object(GitRepository, "merge_fast_forward") as merge, \
                patch.object(GitRepository, "checkout") as checkout, \
                patch.object(GitRepository, "stash") as stash:
            outcome = self._manager().resolve(self.clone_url, "main")

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.strategy, "pick_and_fast_forward")
        merge.assert_not_called()
        checkout.assert_not_called()
        stash.assert_not_called()
        self.assertEqual(head_commit(self.well_known), self.initial)

    def test_clone_behind_remote_is_fast_forwarded(self):
        new_commit = push_commit(self.origin, self.temp_dir)

        outcome = self._manager().resolve(self.clone_url, "main")

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.strategy, "pick_and_fast_forward")
        self.assertEqual(head_commit(self.well_known), new_commit)
        self.assertEqual(current_branch(self.well_known), "main")

    def test_only_forwardable_clones_are_offered(self):
        other = clone(self.origin, self.temp_dir / "other")
        git("checkout", "-q", "-b", "feature", cwd=other)
        self.index.entries[self.remote] = str(other)

        # A dismissing prompter proves no prompt was needed
        outcome = self._manager().resolve(self.clone_url, "main", PresetPrompter())

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.path, str(self.well_known))
        self.assertEqual(current_branch(other), "feature")


class TestStashCheckoutScenarios(ResolverScenarioTestCase):

    def setUp(self):
        super().setUp()
        clone(self.origin, self.well_known)
        self.initial = head_commit(self.well_known)
        git("checkout", "-q", "-b", "feature", cwd=self.well_known)
        commit_file(self.well_known, "feature.txt", "feature work\n")
        (self.well_known / "README.md").write_text("uncommitted\n")

    def test_unrelated_branch_is_stashed_and_detached(self):
        prompter = PresetPrompter(selected_path=str(self.well_known))

        outcome = self._manager().resolve(self.clone_url, self.initial, prompter)

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.strategy, "pick_and_stash_checkout")
        self.assertEqual(head_commit(self.well_known), self.initial)
        self.assertEqual(current_branch(self.well_known), "")
        self.assertIn(f"WIP on feature to checkout {self.initial}",
                      git("stash", "list", cwd=self.well_known))
        # A single candidate is still confirmed before its changes are stashed
        self.assertEqual([item.detail for item in prompter.last_items], [str(self.well_known)])

    def test_dismissed_prompt_changes_nothing(self):
        outcome = self._manager().resolve(self.clone_url, self.initial)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_code, "NO_SELECTION")
        self.assertEqual(current_branch(self.well_known), "feature")
        self.assertEqual(git("stash", "list", cwd=self.well_known), "")

    def test_unknown_commit_is_reported(self):
        prompter = PresetPrompter(selected_path=str(self.well_known))

        outcome = self._manager().resolve(self.clone_url, "deadbeef" * 5, prompter)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_code, "REMOTE_REF_NOT_FOUND")
        self.assertEqual(outcome.strategy, "pick_and_stash_checkout")
        self.assertEqual(current_branch(self.well_known), "feature")
        self.assertEqual((self.well_known / "README.md").read_text(), "uncommitted\n")


class TestDisambiguationScenarios(ResolverScenarioTestCase):

    def setUp(self):
        super().setUp()
        clone(self.origin, self.well_known)
        self.other = clone(self.origin, self.temp_dir / "other")
        self.index.entries[self.remote] = str(self.other)

    def test_two_clones_are_offered_in_collection_order(self):
        prompter = PresetPrompter()

        outcome = self._manager().resolve(self.clone_url, prompter=prompter)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_code, "NO_SELECTION")
        self.assertEqual(prompter.last_placeholder, f"Choose a clone for repository {self.remote}")
        self.assertEqual([item.detail for item in prompter.last_items],
                         [str(self.well_known), str(self.other)])

    def test_selected_path_answers_the_prompt(self):
        outcome = self._manager().resolve(self.clone_url, prompter=PresetPrompter(selected_path=str(self.other)))

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.path, str(self.other))

    def test_workspace_root_is_picked_automatically(self):
        outcome = self._manager(roots=[str(self.other)]).resolve(self.clone_url)

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(outcome.strategy, "pick_any")
        self.assertEqual(outcome.path, str(self.other))

    def test_indexed_clone_is_registered_in_the_workspace(self):
        manager = self._manager(roots=[str(self.other)])

        outcome = manager.resolve(self.clone_url)
        handle = manager.workspace.get_repository(outcome.path)

        self.assertIsNotNone(handle)
        candidates = manager.collector.find_candidates(self.remote)
        self.assertIs(candidates[0], handle)
        manager.collector.release(candidates)


def run_tests():
    """Run all resolution scenario tests."""
    print("Running Resolution Scenario Tests")
    print("=" * 60)

    suite = unittest.TestSuite()
    loader = unittest.TestLoader()
    for case in (TestCloneAndReuse, TestFastForwardScenarios, TestStashCheckoutScenarios,
                 TestDisambiguationScenarios):
        suite.addTests(loader.loadTestsFromTestCase(case))

    result = unittest.TextTestRunner(verbosity=2, stream=sys.stdout).run(suite)
    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
