#!/usr/bin/env python3
"""
Setup script for rdiff-python

Installation:
    pip install .
    pip install -e .  # Development mode

Distribution:
    python setup.py sdist bdist_wheel
    twine upload dist/*
"""

from setuptools import setup
import re

# Read version from rdiff_core.py
with open('rdiff_core.py', 'r', encoding='utf-8') as f:
    content = f.read()
    version_match = re.search(r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]', content, re.MULTILINE)
    if version_match:
        version = version_match.group(1)
    else:
        raise RuntimeError("Unable to find version string in rdiff_core.py")

# Read long description from README
with open('README.md', 'r', encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='rdiff-python',
    version=version,
    description='Pure Python block-signature delta computation - Karp-Rabin rolling hash, MurmurHash3 block verification, delta plans with literal runs, compressed plan encoding.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='rdiff-python contributors',
    py_modules=['rdiff_core', 'plan_codec'],
    python_requires='>=3.8',
    install_requires=[
        'xxhash>=3.0.0',
        'lz4>=4.0.0',
        'zstandard>=0.20.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'mypy>=1.0.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'isort>=5.12.0',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: System :: Archiving :: Mirroring',
    ],
    keywords='rsync rdiff delta rolling-hash signature diff',
    license='GPL-3.0-or-later',
    platforms=['any'],
    zip_safe=False,
)
