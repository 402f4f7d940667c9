"""Test configuration and fixtures for Kimblog tests."""

import pytest
import tempfile
import shutil
import sys
import os
from pathlib import Path
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from kimblog_pkg import Deployer

# Stands in for `npx hexo`: renders each post's title to public/<slug>/index.html.
# Creating a file named FAIL_GENERATE in the site makes `g` exit with status 2.
FAKE_GENERATOR = '''
import os
import shutil
import sys

import yaml

command = sys.argv[1]
if command == 'clean':
    shutil.rmtree('public', ignore_errors=True)
    sys.exit(0)
if command != 'g':
    sys.exit(1)
if os.path.exists('FAIL_GENERATE'):
    print('generate failed', file=sys.stderr)
    sys.exit(2)

os.makedirs('public', exist_ok=True)
titles = []
source = os.path.join('source', '_posts')
for name in sorted(os.listdir(source)):
    if not name.endswith('.md'):
        continue
    with open(os.path.join(source, name), encoding='utf-8') as f:
        metadata = yaml.safe_load(f.read().split('---')[1])
    slug = name[:-3]
    os.makedirs(os.path.join('public', slug), exist_ok=True)
    with open(os.path.join('public', slug, 'index.html'), 'w', encoding='utf-8') as f:
        f.write('<h1>%s</h1>' % metadata['title'])
    titles.append(metadata['title'])
with open(os.path.join('public', 'index.html'), 'w', encoding='utf-8') as f:
    f.write('<ul>%s</ul>' % ''.join('<li>%s</li>' % t for t in titles))
'''


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_site_dir(temp_dir):
    """Create a blog directory with one post and a fake generator."""
    site_dir = Path(temp_dir) / 'blog'
    posts_dir = site_dir / 'source' / '_posts'
    posts_dir.mkdir(parents=True)

    sample_post = posts_dir / 'test.md'
    sample_post.write_text("""---
title: "Test"
date: 2025-01-01
categories:
  - Notes
tags:
  - testing
---

# Test

Hello from the test post.
""", encoding='utf-8')

    (site_dir / 'fake_hexo.py').write_text(FAKE_GENERATOR, encoding='utf-8')
    return str(site_dir)


@pytest.fixture
def mock_publish_dir(temp_dir):
    """Published location inside a web root that exists but is empty."""
    web_root = Path(temp_dir) / 'www' / 'html'
    web_root.mkdir(parents=True)
    return str(web_root / 'kimblog')


@pytest.fixture
def make_deployer(mock_site_dir, mock_publish_dir):
    """Factory for Deployers wired to the fake generator and a no-op reload."""
    def factory(**overrides):
        options = dict(
            site_dir=mock_site_dir,
            generated='public',
            publish_dir=mock_publish_dir,
            generator=[sys.executable, 'fake_hexo.py'],
            reload_command=[sys.executable, '-c', 'pass'],
            log_dir=None,
        )
        options.update(overrides)
        return Deployer(**options)
    return factory


@pytest.fixture
def fixed_now():
    """A fixed timestamp for scaffolded posts."""
    return datetime(2025, 1, 1, 12, 30, 0)
