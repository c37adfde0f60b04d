# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Engine error codes. Codes are errno values."""

import os


def describe_error(code: int) -> str:
    """Human-readable text for an engine error code."""
    if code == 0:
        return "Success"
    return f"{os.strerror(code)} [{code}]"


class EngineError(Exception):
    """An engine operation failed with an errno-style code."""

    def __init__(self, code: int, message: str = ''):
        self.code = code
        self.message = message
        super().__init__(f"{message}: {describe_error(code)}" if message
                         else describe_error(code))
