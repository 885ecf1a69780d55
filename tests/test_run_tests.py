"""Tests for the run_tests.py suite summary."""

import importlib.util
from pathlib import Path

RUNNER_PATH = Path(__file__).parent.parent / 'run_tests.py'


def load_runner():
    spec = importlib.util.spec_from_file_location('run_tests', RUNNER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestSuiteSummary:

    def setup_method(self):
        self.runner = load_runner()

    def test_summary_follows_the_test_modules(self, tmp_path):
        (tmp_path / 'test_b.py').write_text('"""Second suite.\n\nDetails."""\n', encoding='utf-8')
        (tmp_path / 'test_a.py').write_text('"""First suite."""\nimport os\n', encoding='utf-8')
        (tmp_path / 'test_c.py').write_text('x = 1\n', encoding='utf-8')
        (tmp_path / 'conftest.py').write_text('"""Fixtures."""\n', encoding='utf-8')

        assert self.runner.suite_summary(tmp_path) == [
            ('test_a', 'First suite.'),
            ('test_b', 'Second suite.'),
            ('test_c', '(no description)'),
        ]

    def test_every_real_suite_is_listed(self):
        tests_dir = Path(__file__).parent
        modules = [name for name, _ in self.runner.suite_summary(tests_dir)]

        assert modules == sorted(p.stem for p in tests_dir.glob('test_*.py'))
        assert 'test_run_tests' in modules
