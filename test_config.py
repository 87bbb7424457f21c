#!/usr/bin/env python3
"""
Tests for configuration defaults, validation and environment loading.
"""

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from repo_resolver.config import Config, load_configuration, validate_configuration
from repo_resolver.platform import replace_variables


class TestConfig(unittest.TestCase):
    """Test cases for the Config dataclass."""

    def setUp(self):
        self.temp_dir = Path(os.path.realpath(tempfile.mkdtemp()))

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_defaults(self):
        config = Config(data_dir=self.temp_dir)
        self.assertEqual(config.crawl_max_depth, 10)
        self.assertEqual(config.crawl_prune_names, (".*", "node_modules"))
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(config.index_path, self.temp_dir / "remote_index.json")
        self.assertEqual(config.lock_dir, self.temp_dir / "locks")

    def test_string_data_dir_is_normalized(self):
        config = Config(data_dir=str(self.temp_dir / "sub" / ".." / "data"))
        self.assertEqual(config.data_dir, self.temp_dir / "data")

    def test_log_level_is_upper_cased(self):
        self.assertEqual(Config(data_dir=self.temp_dir, log_level="debug").log_level, "DEBUG")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            Config(data_dir=self.temp_dir, log_level="LOUD")
        with self.assertRaises(ValueError):
            Config(data_dir=self.temp_dir, crawl_max_depth=0)
        with self.assertRaises(ValueError):
            Config(data_dir=self.temp_dir, max_workers=0)

    def test_clone_template_needs_relative_path(self):
        with self.assertRaises(ValueError) as ctx:
            Config(data_dir=self.temp_dir, clone_path_template="${homePath}${separator}src")
        self.assertIn("${folderRelativePath}", str(ctx.exception))

    def test_scan_directory(self):
        self.assertEqual(Config(data_dir=self.temp_dir).scan_directory, Path(os.path.normpath(str(Path.home()))))
        self.assertIsNone(Config(data_dir=self.temp_dir, scan_directory_template="").scan_directory)
        self.assertEqual(
            Config(data_dir=self.temp_dir, scan_directory_template=str(self.temp_dir)).scan_directory,
            self.temp_dir,
        )


class TestTemplateVariables(unittest.TestCase):

    def test_known_and_unknown_variables(self):
        result = replace_variables("${a}/${b}/${a}", {"a": "x"})
        self.assertEqual(result, "x/${b}/x")


class TestLoadConfiguration(unittest.TestCase):
    """Test cases for load_configuration()."""

    def setUp(self):
        self.temp_dir = Path(os.path.realpath(tempfile.mkdtemp()))

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_environment_overrides(self):
        env = {
            "REPO_RESOLVER_DATA_DIR": str(self.temp_dir / "data"),
            "REPO_RESOLVER_CLONE_PATH": str(self.temp_dir) + "${separator}${folderRelativePath}",
            "REPO_RESOLVER_SCAN_DIRECTORY": "",
            "REPO_RESOLVER_CRAWL_MAX_DEPTH": "4",
            "REPO_RESOLVER_MAX_WORKERS": "2",
            "REPO_RESOLVER_LOG_LEVEL": "warning",
            "REPO_RESOLVER_AUTO_SCAN": "false",
        }
        with patch.dict(os.environ, env):
            config = load_configuration()

        self.assertEqual(config.data_dir, self.temp_dir / "data")
        self.assertIsNone(config.scan_directory)
        self.assertEqual(config.crawl_max_depth, 4)
        self.assertEqual(config.max_workers, 2)
        self.assertEqual(config.log_level, "WARNING")
        self.assertFalse(config.auto_scan)

    def test_bad_number_is_a_configuration_error(self):
        with patch.dict(os.environ, {"REPO_RESOLVER_CRAWL_MAX_DEPTH": "deep",
                                     "REPO_RESOLVER_DATA_DIR": str(self.temp_dir)}):
            with self.assertRaises(ValueError) as ctx:
                load_configuration()
        self.assertIn("Configuration error", str(ctx.exception))


class TestValidateConfiguration(unittest.TestCase):
    """Test cases for validate_configuration()."""

    def setUp(self):
        self.temp_dir = Path(os.path.realpath(tempfile.mkdtemp()))

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_valid_configuration(self):
        config = Config(data_dir=self.temp_dir / "data", scan_directory_template=str(self.temp_dir))
        self.assertEqual(validate_configuration(config), [])
        self.assertTrue((self.temp_dir / "data").is_dir())

    def test_missing_scan_directory_is_a_warning(self):
        config = Config(data_dir=self.temp_dir / "data",
                        scan_directory_template=str(self.temp_dir / "missing"))
        issues = validate_configuration(config)
        self.assertEqual(len(issues), 1)
        self.assertTrue(issues[0].startswith("WARNING:"))

    def test_deep_crawl_is_a_warning(self):
        config = Config(data_dir=self.temp_dir / "data", scan_directory_template="", crawl_max_depth=50)
        issues = validate_configuration(config)
        self.assertTrue(any("crawl_max_depth" in issue for issue in issues))


def run_tests():
    """Run all configuration tests."""
    print("Running Configuration Tests")
    print("=" * 60)

    suite = unittest.TestSuite()
    loader = unittest.TestLoader()
    for case in (TestConfig, TestTemplateVariables, TestLoadConfiguration, TestValidateConfiguration):
        suite.addTests(loader.loadTestsFromTestCase(case))

    result = unittest.TextTestRunner(verbosity=2, stream=sys.stdout).run(suite)
    success = len(result.failures) == 0 and len(result.errors) == 0
    print(f"\nOverall result: {'PASS' if success else 'FAIL'}")
    return success


if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
