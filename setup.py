# Copyright 2026 The selftest_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Setup file for selftest_harness package.

Installs the Python package and the ``selftest`` console command.
"""

from setuptools import setup, find_packages

setup(
    name='selftest_harness',
    version='1.0.0',
    packages=find_packages(exclude=['test', 'test.*']),
    python_requires='>=3.8',
    install_requires=['setuptools'],
    extras_require={
        'hypothesis': ['hypothesis>=6.0'],
        'test': ['pytest>=7.0', 'hypothesis>=6.0'],
    },
    zip_safe=True,
    author='John',
    author_email='john@example.com',
    maintainer='John',
    maintainer_email='john@example.com',
    description='Selftest runner for an in-process communications engine',
    license='Apache-2.0',
    entry_points={
        'console_scripts': [
            'selftest = selftest_harness.test_runner.cli:main',
        ],
    },
)
