#!/usr/bin/env python3
"""
Setup script for Kimblog - blog rebuild and publish tool.
"""

from setuptools import setup, find_packages

# Project metadata and dependencies are defined in pyproject.toml

setup(
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'kimblog_pkg': [
            'templates/*.md',
        ],
    },
    include_package_data=True,
)
