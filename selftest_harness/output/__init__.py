# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Console output for selftest runs."""

from selftest_harness.output.console import Console, USAGE, listing_rows

__all__ = ['Console', 'USAGE', 'listing_rows']
