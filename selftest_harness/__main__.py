# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Allow ``python -m selftest_harness``."""

import sys

from selftest_harness.test_runner.cli import main

sys.exit(main())
