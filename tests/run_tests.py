#!/usr/bin/env python3
"""
Run the glbavatar test suite, or one module of it: run_tests.py [module]
"""

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).parent

sys.path.insert(0, str(TESTS_DIR.parent))
sys.path.insert(0, str(TESTS_DIR))


def build_suite(module_name: str = None) -> unittest.TestSuite:
    loader = unittest.TestLoader()
    if module_name is None:
        return loader.discover(str(TESTS_DIR), pattern='test_*.py')
    return loader.loadTestsFromName(f'test_{module_name}')


if __name__ == '__main__':
    suite = build_suite(sys.argv[1] if len(sys.argv) > 1 else None)
    result = unittest.TextTestRunner(verbosity=2).run(suite)
    sys.exit(0 if result.wasSuccessful() else 1)
