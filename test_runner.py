#!/usr/bin/env python3
"""
Test runner for the Family Movie Night app.

Runs the unittest suite with a per-module summary.
"""

import os
import sys
import time
import unittest
from io import StringIO

TESTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'tests')

MODULES = [
    ("rating_aggregation", "⭐ Rating Aggregation"),
    ("library_filter", "🔍 Library Search & Era Filters"),
    ("recommendation_requests", "🎯 Recommendation Requests"),
    ("gemini_client", "🤖 Gemini Client"),
    ("metadata_lookup", "🎞️  TMDB Metadata Lookup"),
    ("library_store", "🗄️  Firestore Library Store"),
    ("config", "⚙️  Configuration"),
    ("models", "📦 Data Models"),
    ("utils", "🛠️  Utility Functions & Constants"),
    ("main_app", "🖥️  App Widget Helpers"),
]


def run_all_tests():
    """Run all tests and print a report."""

    print("🎬 Family Movie Night - Test Suite")
    print("=" * 60)

    loader = unittest.TestLoader()
    suite = loader.discover(TESTS_DIR, pattern='test_*.py')

    stream = StringIO()
    runner = unittest.TextTestRunner(stream=stream, verbosity=2, buffer=True)

    print(f"📍 Running tests from: {TESTS_DIR}")
    print("-" * 60)

    start_time = time.time()
    result = runner.run(suite)
    elapsed = time.time() - start_time

    print("📊 TEST RESULTS")
    print("-" * 60)
    print(f"⏱️  Total time: {elapsed:.2f} seconds")
    print(f"🧪 Tests run: {result.testsRun}")
    print(f"✅ Passed: {result.testsRun - len(result.failures) - len(result.errors)}")
    print(f"❌ Failed: {len(result.failures)}")
    print(f"💥 Errors: {len(result.errors)}")
    print(f"⏭️  Skipped: {len(result.skipped)}")

    for title, problems in (("🚨 FAILURES:", result.failures), ("💥 ERRORS:", result.errors)):
        if problems:
            print(f"\n{title}")
            print("-" * 40)
            for test, traceback in problems:
                print(f"❌ {test}")
                print(f"   {traceback.strip()}")

    print("\n" + "=" * 60)
    if result.wasSuccessful():
        print("🎉 ALL TESTS PASSED! 🎉")
    elif result.testsRun:
        total_issues = len(result.failures) + len(result.errors)
        success_rate = ((result.testsRun - total_issues) / result.testsRun) * 100
        print(f"⚠️  Some tests failed. Success rate: {success_rate:.1f}%")

    print("\n📋 TEST COVERAGE BY MODULE:")
    print("-" * 40)
    for module, description in MODULES:
        if os.path.exists(os.path.join(TESTS_DIR, f"test_{module}.py")):
            print(f"✅ {description}")
        else:
            print(f"❌ {description} - MISSING TEST FILE")

    return result.wasSuccessful()


def run_specific_module(module_name):
    """Run tests for a specific module."""

    print(f"🎬 Running tests for module: {module_name}")
    print("=" * 60)

    if not os.path.exists(os.path.join(TESTS_DIR, f"test_{module_name}.py")):
        print(f"❌ Test file not found: tests/test_{module_name}.py")
        return False

    suite = unittest.TestLoader().discover(TESTS_DIR, pattern=f"test_{module_name}.py")
    result = unittest.TextTestRunner(verbosity=2).run(suite)
    return result.wasSuccessful()


def main():
    if len(sys.argv) > 1:
        if sys.argv[1] == "--help":
            print("🎬 Family Movie Night Test Runner")
            print("\nUsage:")
            print("  python test_runner.py                 - Run all tests")
            print("  python test_runner.py <module_name>   - Run specific module tests")
            print("\nAvailable modules:")
            print("  " + ", ".join(module for module, _ in MODULES))
            return True
        return run_specific_module(sys.argv[1])
    return run_all_tests()


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
